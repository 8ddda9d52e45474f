"""Document scanners: validate, OCR, extract, combine confidences."""

import logging

from config import settings
from context import RequestContext
from documents import CheckExtractor, DocumentExtractor, ReceiptExtractor
from errors import ConfigurationError, ExtractionError, OCRError, ScannerError, ValidationError
from extraction import JsonExtractor
from models import Document, DocumentFormat, ProcessingResult
from ocr import MistralOCRProvider
from result import Err, Ok, Result

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/heic",
    "image/heif",
    "image/webp",
    "application/pdf",
})

DOCUMENT_TYPES = ("check", "receipt")


def validate_document(document: Document, max_bytes: int | None = None) -> None:
    """Raise ValidationError if *document* cannot be sent to OCR."""
    limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES
    if not document.content:
        raise ValidationError("Document content is empty")
    if document.mime_type is not None and document.mime_type.lower() not in SUPPORTED_MIME_TYPES:
        raise ValidationError(f"Unsupported content type: {document.mime_type}")
    if document.type == DocumentFormat.PDF and document.mime_type not in (None, "application/pdf"):
        raise ValidationError("PDF documents must use the application/pdf content type")
    if len(document.content) > limit:
        raise ValidationError(f"Document is {len(document.content)} bytes; the limit is {limit}")


class DocumentScanner:
    def __init__(
        self,
        ocr: MistralOCRProvider,
        extractor: DocumentExtractor,
        ocr_weight: float | None = None,
        max_bytes: int | None = None,
    ):
        self._ocr = ocr
        self._extractor = extractor
        self._ocr_weight = ocr_weight if ocr_weight is not None else settings.OCR_CONFIDENCE_WEIGHT
        if not 0 <= self._ocr_weight <= 1:
            raise ConfigurationError(f"OCR confidence weight must be within [0, 1], got {self._ocr_weight}")
        self._max_bytes = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES

    @property
    def document_type(self) -> str:
        return self._extractor.document_type

    def overall_confidence(self, ocr_confidence: float, extraction_confidence: float) -> float:
        blended = self._ocr_weight * ocr_confidence + (1 - self._ocr_weight) * extraction_confidence
        return round(blended, 2)

    def process_document(
        self, document: Document, ctx: RequestContext | None = None
    ) -> Result[ProcessingResult, ScannerError]:
        ctx = ctx or RequestContext()
        log = ctx.logger(logger)

        try:
            validate_document(document, self._max_bytes)
        except ValidationError as e:
            log.warning("Rejected %s: %s", document.name, e)
            return Err(e)

        ocr_result = self._ocr.process_documents([document], ctx)
        if not ocr_result.is_ok:
            return Err(OCRError(f"OCR processing failed: {ocr_result.error}"))
        if not ocr_result.value or not ocr_result.value[0]:
            return Err(OCRError("OCR processing failed: no text was recognized"))

        page = ocr_result.value[0][0]
        extracted = self._extractor.extract_from_text(page.text, ctx)
        if not extracted.is_ok:
            return Err(ExtractionError(f"Data extraction failed: {extracted.error}"))

        extraction = extracted.value
        overall = self.overall_confidence(page.confidence, extraction.confidence)
        log.info(
            "Scanned %s in %dms (ocr=%.2f extraction=%.2f overall=%.2f)",
            self.document_type, ctx.elapsed_ms(), page.confidence, extraction.confidence, overall,
        )
        return Ok(ProcessingResult(
            document=extraction.document,
            ocr_confidence=page.confidence,
            extraction_confidence=extraction.confidence,
            overall_confidence=overall,
            raw_text=page.text,
        ))

    def process_documents(
        self, documents: list[Document], ctx: RequestContext | None = None
    ) -> Result[list[ProcessingResult], ScannerError]:
        """Scan documents in order, stopping at the first failure."""
        ctx = ctx or RequestContext()
        results = []
        for document in documents:
            result = self.process_document(document, ctx)
            if not result.is_ok:
                return result
            results.append(result.value)
        return Ok(results)


_EXTRACTORS: dict[str, type[DocumentExtractor]] = {
    "check": CheckExtractor,
    "receipt": ReceiptExtractor,
}


def create_scanner(
    document_type: str,
    ocr: MistralOCRProvider,
    json_extractor: JsonExtractor,
) -> DocumentScanner:
    extractor_cls = _EXTRACTORS.get(document_type)
    if extractor_cls is None:
        raise ValidationError(f"Unsupported document type: {document_type}")
    return DocumentScanner(ocr, extractor_cls(json_extractor))
