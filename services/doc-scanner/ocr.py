"""Mistral OCR provider: document bytes in, per-page markdown text out."""

import base64
import logging
import time

from context import RequestContext
from errors import InvalidResponseError, ScannerError
from mistral_client import MistralClient
from models import BoundingBox, Document, DocumentFormat, OCRPage
from result import Err, Ok, Result

logger = logging.getLogger(__name__)

# Mistral OCR reports no per-page confidence.
DEFAULT_PAGE_CONFIDENCE = 1.0


def _chunk_for(document: Document) -> dict:
    if document.type == DocumentFormat.PDF:
        mime_type = "application/pdf"
    else:
        mime_type = document.mime_type or "image/jpeg"
    data_url = f"data:{mime_type};base64,{base64.b64encode(document.content).decode()}"

    if document.type == DocumentFormat.PDF:
        return {"type": "document_url", "document_url": data_url}
    return {"type": "image_url", "image_url": data_url}


def _pages_from(response: dict) -> list[OCRPage]:
    pages = response.get("pages")
    if not isinstance(pages, list):
        raise InvalidResponseError("Mistral OCR response has no pages")

    results = []
    for position, page in enumerate(pages):
        if not isinstance(page, dict):
            continue
        dimensions = page.get("dimensions")
        bounding_box = None
        if isinstance(dimensions, dict):
            bounding_box = BoundingBox(
                width=float(dimensions.get("width") or 0),
                height=float(dimensions.get("height") or 0),
            )
        index = page.get("index")
        results.append(OCRPage(
            text=page.get("markdown") or "",
            confidence=DEFAULT_PAGE_CONFIDENCE,
            page_number=(index if isinstance(index, int) else position) + 1,
            bounding_box=bounding_box,
        ))
    return results


class MistralOCRProvider:
    def __init__(self, client: MistralClient | None = None):
        self._client = client or MistralClient()

    def process_documents(
        self, documents: list[Document], ctx: RequestContext | None = None
    ) -> Result[list[list[OCRPage]], ScannerError]:
        """OCR each document in order; the first failure aborts the batch."""
        ctx = ctx or RequestContext()
        log = ctx.logger(logger)

        results: list[list[OCRPage]] = []
        for document in documents:
            start = time.monotonic()
            try:
                response = self._client.ocr(
                    _chunk_for(document),
                    include_image_base64=document.type == DocumentFormat.PDF,
                )
                pages = _pages_from(response)
            except ScannerError as e:
                log.error("OCR failed for %s: %s", document.name, e)
                return Err(e)

            log.info(
                "OCR processed %s (%d bytes) into %d pages in %dms",
                document.name, len(document.content), len(pages),
                int((time.monotonic() - start) * 1000),
            )
            results.append(pages)

        return Ok(results)
