"""Shared test fixtures for document scanner tests."""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import ExtractionResult  # noqa: E402
from result import Err, Ok  # noqa: E402

TEST_API_KEY = "sk-test0123456789abcdefghijkl"

CLEAR_CHECK_OCR = """FIRST COMMUNITY CREDIT UNION
Maria Alvarez                                    No. 4821
                                          Date: 03/14/2024
PAY TO THE ORDER OF  Greenfield Landscaping LLC   $ 842.17
Eight hundred forty-two and 17/100 ---------------- DOLLARS
MEMO  spring cleanup
⑆267084131⑆ ⑈0098765432⑈ ⑇4821⑇"""


def chat_response(content: str | dict, finish_reason: str | None = "stop") -> dict:
    """Build a Mistral chat-completions body around *content*."""
    if isinstance(content, dict):
        content = json.dumps(content)
    choice = {"index": 0, "message": {"role": "assistant", "content": content}}
    if finish_reason is not None:
        choice["finish_reason"] = finish_reason
    return {"id": "cmpl-1", "model": "mistral-large-latest", "choices": [choice]}


class StubJsonExtractor:
    """JSON extractor returning a canned payload (or error) and recording requests."""

    def __init__(self, data: dict | None = None, confidence: float = 0.9, error=None):
        self.data = data or {}
        self.confidence = confidence
        self.error = error
        self.requests = []

    def close(self):
        pass

    def extract(self, request, ctx=None):
        self.requests.append(request)
        if self.error is not None:
            return Err(self.error)
        return Ok(ExtractionResult(data=dict(self.data), confidence=self.confidence))


@pytest.fixture
def api_key() -> str:
    return TEST_API_KEY


@pytest.fixture
def clear_check_text() -> str:
    return CLEAR_CHECK_OCR


@pytest.fixture
def real_check_payload() -> dict:
    """Model output for a clearly legible personal check."""
    return {
        "checkNumber": "4821",
        "date": "03/14/2024",
        "payee": "Greenfield Landscaping LLC",
        "payer": "Maria Alvarez",
        "amount": 842.17,
        "amountText": "Eight hundred forty-two and 17/100",
        "memo": "spring cleanup",
        "bankName": "First Community Credit Union",
        "checkType": "Personal",
        "accountType": "Checking",
        "micrLine": "⑆267084131⑆ ⑈0098765432⑈ ⑇4821⑇",
        "isValidInput": True,
        "confidence": 0.92,
    }


@pytest.fixture
def hallucinated_check_payload() -> dict:
    """Textbook sample values a model invents for a blank image."""
    return {
        "checkNumber": "1234",
        "date": "2023-10-05",
        "payee": "John Doe",
        "amount": 100,
        "bankName": "Bank",
        "routingNumber": "123456789",
        "confidence": 0.95,
    }


@pytest.fixture
def real_receipt_payload() -> dict:
    """Model output for a legible grocery receipt."""
    return {
        "merchant": {
            "name": "Harvest Moon Grocers",
            "address": "2210 Alder Way, Portland, OR 97214",
            "phone": "(503) 555-0199",
        },
        "receiptNumber": "HMG-20240314-0087",
        "timestamp": "2024-03-14 17:42:10",
        "paymentMethod": "Credit Card",
        "currency": "usd",
        "totals": {"subtotal": 39.44, "tax": 2.99, "total": 42.43},
        "items": [
            {"description": "Organic Bananas", "quantity": 2.1, "unit": "lbs", "totalPrice": 1.87},
            {"description": "Sourdough Loaf", "quantity": 1, "unit": "each", "totalPrice": 6.49},
            {"description": "Cold Brew Concentrate", "quantity": 2, "totalPrice": 31.08},
        ],
        "payments": [{"method": "credit", "cardType": "Visa", "lastDigits": "4417", "amount": 42.43}],
        "isValidInput": True,
        "confidence": 0.9,
    }


@pytest.fixture
def hallucinated_receipt_payload() -> dict:
    return {
        "merchant": {"name": "Store", "address": "123 Main St"},
        "receiptNumber": "123",
        "currency": "USD",
        "totals": {"total": 10},
        "items": [{"description": "Item", "totalPrice": 10}],
        "confidence": 0.9,
    }
