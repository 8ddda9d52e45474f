"""Tests for the OCR provider and document scanners."""

import base64
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import StubJsonExtractor
from errors import (
    ConfigurationError,
    ExtractionError,
    InvalidResponseError,
    OCRError,
    ProviderUnavailable,
    TransportError,
    ValidationError,
)
from mistral_client import MistralClient
from models import Check, Document, DocumentFormat, OCRPage, Receipt
from ocr import MistralOCRProvider
from result import Err, Ok
from scanner import DocumentScanner, create_scanner, validate_document

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"


def _ocr_with(text: str = "PAY TO THE ORDER OF", confidence: float = 1.0) -> MagicMock:
    ocr = MagicMock(spec=MistralOCRProvider)
    ocr.process_documents.return_value = Ok([[OCRPage(text=text, confidence=confidence)]])
    return ocr


def _image(content: bytes = JPEG_BYTES, mime_type: str | None = "image/jpeg") -> Document:
    return Document(content=content, type=DocumentFormat.IMAGE, mime_type=mime_type)


class TestMistralOCRProvider:
    def test_image_sent_as_data_url(self):
        client = MagicMock(spec=MistralClient)
        client.ocr.return_value = {"pages": [{"index": 0, "markdown": "# Receipt", "dimensions": {"width": 800, "height": 1200, "dpi": 200}}]}

        result = MistralOCRProvider(client).process_documents([_image(mime_type="image/png")])

        chunk = client.ocr.call_args.args[0]
        assert chunk["type"] == "image_url"
        assert chunk["image_url"] == "data:image/png;base64," + base64.b64encode(JPEG_BYTES).decode()
        assert client.ocr.call_args.kwargs["include_image_base64"] is False
        page = result.value[0][0]
        assert page.text == "# Receipt"
        assert page.confidence == 1.0
        assert page.page_number == 1
        assert page.bounding_box.width == 800

    def test_pdf_sent_as_document_url(self):
        client = MagicMock(spec=MistralClient)
        client.ocr.return_value = {"pages": [{"index": 0, "markdown": "p1"}, {"index": 1, "markdown": "p2"}]}
        pdf = Document(content=b"%PDF-1.7", type=DocumentFormat.PDF, mime_type="application/pdf")

        result = MistralOCRProvider(client).process_documents([pdf])

        chunk = client.ocr.call_args.args[0]
        assert chunk["type"] == "document_url"
        assert chunk["document_url"].startswith("data:application/pdf;base64,")
        assert [p.page_number for p in result.value[0]] == [1, 2]

    def test_first_failure_aborts(self):
        client = MagicMock(spec=MistralClient)
        client.ocr.side_effect = [{"pages": []}, ProviderUnavailable("Rate limit exceeded"), {"pages": []}]

        result = MistralOCRProvider(client).process_documents([_image(), _image(), _image()])

        assert isinstance(result.error, ProviderUnavailable)
        assert client.ocr.call_count == 2

    def test_missing_pages(self):
        client = MagicMock(spec=MistralClient)
        client.ocr.return_value = {"model": "mistral-ocr-latest"}
        result = MistralOCRProvider(client).process_documents([_image()])
        assert isinstance(result.error, InvalidResponseError)


class TestValidateDocument:
    def test_accepts_supported_image(self):
        validate_document(_image(mime_type="image/heic"), max_bytes=1024)

    def test_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_document(_image(content=b""))

    def test_unsupported_type(self):
        with pytest.raises(ValidationError, match="image/gif"):
            validate_document(_image(mime_type="image/gif"))

    def test_too_large(self):
        with pytest.raises(ValidationError, match="limit"):
            validate_document(_image(content=b"x" * 11), max_bytes=10)


class TestDocumentScanner:
    def test_check_success(self, real_check_payload):
        scanner = create_scanner("check", _ocr_with(), StubJsonExtractor(real_check_payload, confidence=0.8))

        result = scanner.process_document(_image())

        assert result.is_ok
        assert isinstance(result.value.document, Check)
        assert result.value.ocr_confidence == 1.0
        assert result.value.extraction_confidence == 0.8
        # 0.6 * 1.0 + 0.4 * 0.8
        assert result.value.overall_confidence == 0.92
        assert result.value.raw_text == "PAY TO THE ORDER OF"

    def test_receipt_success(self, real_receipt_payload):
        scanner = create_scanner("receipt", _ocr_with("HARVEST MOON"), StubJsonExtractor(real_receipt_payload))
        result = scanner.process_document(_image())
        assert isinstance(result.value.document, Receipt)
        assert scanner.document_type == "receipt"

    def test_only_first_page_extracted(self, real_check_payload):
        ocr = MagicMock(spec=MistralOCRProvider)
        ocr.process_documents.return_value = Ok([[OCRPage(text="front"), OCRPage(text="back")]])
        scanner = create_scanner("check", ocr, StubJsonExtractor(real_check_payload))

        assert scanner.process_document(_image()).value.raw_text == "front"

    def test_validation_error_skips_ocr(self):
        ocr = _ocr_with()
        scanner = create_scanner("check", ocr, StubJsonExtractor())

        result = scanner.process_document(_image(content=b""))

        assert isinstance(result.error, ValidationError)
        ocr.process_documents.assert_not_called()

    def test_ocr_failure(self):
        ocr = MagicMock(spec=MistralOCRProvider)
        ocr.process_documents.return_value = Err(TransportError("Mistral OCR error (400): bad image"))
        result = create_scanner("check", ocr, StubJsonExtractor()).process_document(_image())

        assert isinstance(result.error, OCRError)
        assert str(result.error) == "OCR processing failed: Mistral OCR error (400): bad image"

    def test_ocr_empty_results(self):
        ocr = MagicMock(spec=MistralOCRProvider)
        ocr.process_documents.return_value = Ok([[]])
        result = create_scanner("check", ocr, StubJsonExtractor()).process_document(_image())
        assert isinstance(result.error, OCRError)

    def test_extraction_failure(self):
        stub = StubJsonExtractor(error=TransportError("Cannot connect to Mistral chat: refused"))
        result = create_scanner("check", _ocr_with(), stub).process_document(_image())

        assert isinstance(result.error, ExtractionError)
        assert str(result.error).startswith("Data extraction failed: ")
        assert "refused" in str(result.error)

    def test_overall_confidence_weight_configurable(self):
        scanner = DocumentScanner(_ocr_with(), MagicMock(), ocr_weight=0.5)
        assert scanner.overall_confidence(1.0, 0.5) == 0.75

    @pytest.mark.parametrize("weight", [-0.1, 1.5])
    def test_ocr_weight_out_of_range(self, weight):
        with pytest.raises(ConfigurationError, match="OCR confidence weight"):
            DocumentScanner(_ocr_with(), MagicMock(), ocr_weight=weight)

    @pytest.mark.parametrize("extraction", [0.0, 0.3, 0.55, 1.0])
    def test_overall_monotonic_in_extraction(self, extraction):
        scanner = DocumentScanner(_ocr_with(), MagicMock())
        assert scanner.overall_confidence(1.0, extraction) <= scanner.overall_confidence(1.0, min(extraction + 0.1, 1.0))

    def test_process_documents_stops_at_first_error(self, real_check_payload):
        ocr = _ocr_with()
        scanner = create_scanner("check", ocr, StubJsonExtractor(real_check_payload))

        result = scanner.process_documents([_image(), _image(content=b""), _image()])

        assert isinstance(result.error, ValidationError)
        assert ocr.process_documents.call_count == 1

    def test_process_documents_all_ok(self, real_check_payload):
        scanner = create_scanner("check", _ocr_with(), StubJsonExtractor(real_check_payload))
        result = scanner.process_documents([_image(), _image()])
        assert len(result.value) == 2


class TestCreateScanner:
    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="invoice"):
            create_scanner("invoice", _ocr_with(), StubJsonExtractor())
