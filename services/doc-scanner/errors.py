"""Error taxonomy shared by the OCR, extraction and scanner layers.

These are raised inside a component and converted to ``Err`` values before
they cross into the next one; see ``result.py``.
"""


class ScannerError(Exception):
    """Base class for every failure the scanner pipeline reports."""


class TransportError(ScannerError):
    """Network failure or non-success HTTP status from OCR/LLM providers."""


class ProviderUnavailable(TransportError):
    """Provider temporarily unavailable (429, 503, connection error); retryable."""


class InvalidResponseError(ScannerError):
    """Provider answered, but the payload is unusable."""


class JsonParseError(InvalidResponseError):
    """Model output could not be parsed as JSON."""

    def __init__(self, message: str, raw_content: str = ""):
        super().__init__(message)
        self.raw_content = raw_content


class ConfigurationError(ScannerError):
    """Missing or invalid credentials/bindings, detected at setup time."""


class ValidationError(ScannerError):
    """Caller input failed basic shape checks."""


class OCRError(ScannerError):
    """The OCR stage of a scan failed."""


class ExtractionError(ScannerError):
    """The structured-extraction stage of a scan failed."""
