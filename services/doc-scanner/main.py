"""FastAPI document scanner service for checks and receipts.

Accepts raw image (or PDF) bytes, runs Mistral OCR, extracts structured
fields with the configured LLM provider and returns them with a confidence
breakdown. Nothing is persisted: documents live in memory for one request.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from config import settings
from context import RequestContext
from errors import (
    ConfigurationError,
    ExtractionError,
    OCRError,
    ScannerError,
    ValidationError,
)
from extraction import JsonExtractor, create_json_extractor
from mistral_client import MistralClient
from models import ConfidenceBreakdown, Document, DocumentFormat, ScanResponse
from ocr import MistralOCRProvider
from scanner import DOCUMENT_TYPES, DocumentScanner, create_scanner

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_mistral_client: MistralClient | None = None
_json_extractor: JsonExtractor | None = None
_scanners: dict[str, DocumentScanner] = {}
_configuration_error: str | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared provider clients and scanners when credentials are present."""
    global _mistral_client, _json_extractor, _configuration_error

    try:
        _mistral_client = MistralClient()
        ocr = MistralOCRProvider(_mistral_client)
        _json_extractor = create_json_extractor(mistral_client=_mistral_client)
        for document_type in DOCUMENT_TYPES:
            _scanners[document_type] = create_scanner(document_type, ocr, _json_extractor)
        _configuration_error = None
        logger.info(
            "Scanner ready (json extractor: %s)",
            getattr(_json_extractor, "name", type(_json_extractor).__name__),
        )
    except ConfigurationError as e:
        _configuration_error = str(e)
        logger.warning("Scanner not configured, document endpoints disabled: %s", e)

    yield

    _scanners.clear()
    if _json_extractor is not None:
        _json_extractor.close()
        _json_extractor = None
    if _mistral_client is not None:
        _mistral_client.close()
        _mistral_client = None


app = FastAPI(title="Check & Receipt Scanner", version="1.0.0", lifespan=lifespan)


def _status_for(error: ScannerError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, (OCRError, ExtractionError)):
        return 502
    if isinstance(error, ConfigurationError):
        return 503
    return 500


def _error(status_code: int, message: str, ctx: RequestContext) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers={REQUEST_ID_HEADER: ctx.request_id},
    )


def _context_for(request: Request) -> RequestContext:
    request_id = request.headers.get(REQUEST_ID_HEADER)
    return RequestContext(request_id=request_id) if request_id else RequestContext()


async def _scan(request: Request, document_type: str, document_format: str) -> JSONResponse:
    ctx = _context_for(request)
    log = ctx.logger(logger)

    if document_type not in DOCUMENT_TYPES:
        return _error(400, f"Unsupported document type: {document_type}", ctx)
    if document_format not in (DocumentFormat.IMAGE.value, DocumentFormat.PDF.value):
        return _error(400, f"Unsupported format: {document_format}", ctx)

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if document_format == DocumentFormat.PDF.value:
        if content_type != "application/pdf":
            return _error(400, "Content-Type must be application/pdf for format=pdf", ctx)
    elif not content_type.startswith("image/"):
        return _error(400, "Content-Type must be an image type", ctx)

    scanner = _scanners.get(document_type)
    if scanner is None:
        detail = _configuration_error or "no OCR/LLM provider configured"
        return _error(503, f"Document scanning is not available: {detail}", ctx)

    content = await request.body()

    # Never log document content, only its size.
    log.info("Processing %s: format=%s size=%d bytes", document_type, document_format, len(content))

    document = Document(
        content=content,
        type=DocumentFormat(document_format),
        name=f"{document_type}-upload",
        mime_type=content_type,
    )
    result = await run_in_threadpool(scanner.process_document, document, ctx)
    if not result.is_ok:
        status_code = _status_for(result.error)
        log.warning("Scan failed with %d: %s", status_code, result.error)
        return _error(status_code, str(result.error), ctx)

    processed = result.value
    body = ScanResponse(
        data=processed.document.to_json(),
        document_type=document_type,
        confidence=ConfidenceBreakdown(
            ocr=processed.ocr_confidence,
            extraction=processed.extraction_confidence,
            overall=processed.overall_confidence,
        ),
    )
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers={REQUEST_ID_HEADER: ctx.request_id},
    )


@app.post("/check")
async def scan_check(request: Request):
    """Extract structured data from a check image."""
    return await _scan(request, "check", DocumentFormat.IMAGE.value)


@app.post("/receipt")
async def scan_receipt(request: Request):
    """Extract structured data from a receipt image."""
    return await _scan(request, "receipt", DocumentFormat.IMAGE.value)


@app.post("/process")
async def process(
    request: Request,
    document_type: str = Query(..., alias="type"),
    document_format: str = Query(DocumentFormat.IMAGE.value, alias="format"),
):
    """Generic entry point: ``?type=check|receipt&format=image|pdf``."""
    return await _scan(request, document_type.lower(), document_format.lower())


@app.get("/health")
async def health():
    """Return service status and provider configuration."""
    return {
        "status": "healthy",
        "configured": bool(_scanners),
        "json_extractor": settings.JSON_EXTRACTOR_TYPE,
        "version": app.version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
