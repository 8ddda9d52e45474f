"""Check and receipt extraction from OCR text.

Each extractor fills its prompt template, asks the JSON extractor for a
schema-shaped payload, normalizes it and validates it into the typed model.
"""

import logging
from typing import Callable

import pydantic

from context import RequestContext
from extraction import JsonExtractor
from models import Check, DocumentExtraction, ExtractionRequest, JsonSchema, Receipt
from normalizer import normalize_check, normalize_receipt
from prompts import build_document_prompt
from result import Err, Ok, Result
from schemas import CHECK_SCHEMA, RECEIPT_SCHEMA

logger = logging.getLogger(__name__)


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for issue in error.errors():
        location = ".".join(str(p) for p in issue["loc"]) or "document"
        parts.append(f"{location}: {issue['msg']}")
    return "; ".join(parts)


class DocumentExtractor:
    document_type: str
    schema: JsonSchema
    model: type[Check] | type[Receipt]
    normalize: Callable[[dict], dict]

    def __init__(self, json_extractor: JsonExtractor):
        self._json_extractor = json_extractor

    def extract_from_text(
        self, ocr_text: str, ctx: RequestContext | None = None
    ) -> Result[DocumentExtraction, str]:
        ctx = ctx or RequestContext()
        log = ctx.logger(logger)

        request = ExtractionRequest(
            text=build_document_prompt(self.document_type, ocr_text),
            json_schema=self.schema,
        )
        result = self._json_extractor.extract(request, ctx)
        if not result.is_ok:
            return Err(str(result.error))

        extraction = result.value
        payload = dict(extraction.data)
        payload["confidence"] = extraction.confidence
        payload = self.normalize(payload)

        try:
            document = self.model.model_validate(payload)
        except pydantic.ValidationError as e:
            detail = _describe(e)
            log.warning("Extracted %s failed validation: %s", self.document_type, detail)
            return Err(f"Extracted {self.document_type} data failed validation: {detail}")

        return Ok(DocumentExtraction(document=document, confidence=extraction.confidence))


class CheckExtractor(DocumentExtractor):
    document_type = "check"
    schema = CHECK_SCHEMA
    model = Check
    normalize = staticmethod(normalize_check)


class ReceiptExtractor(DocumentExtractor):
    document_type = "receipt"
    schema = RECEIPT_SCHEMA
    model = Receipt
    normalize = staticmethod(normalize_receipt)
