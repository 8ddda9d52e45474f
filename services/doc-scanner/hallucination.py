"""Heuristic detection of hallucinated check and receipt extractions.

LLMs asked to fill a schema from a blank or unreadable image tend to produce
textbook sample values ("John Doe", check 1234, $100.00). Each detector
counts how many of those patterns an extraction hits; at or above the
threshold the payload is marked ``isValidInput = false`` and its confidence
is capped.

Detectors mutate the raw camelCase dict in place and never raise.
"""

import logging
from dataclasses import dataclass
from typing import Any

from config import settings
from normalizer import coerce_date, normalize_routing_number, parse_micr

logger = logging.getLogger(__name__)

CHECK_KEYS = frozenset({"checkNumber", "payee", "payer", "routingNumber", "accountNumber", "micrLine"})
RECEIPT_KEYS = frozenset({"merchant", "items", "totals", "receiptNumber", "taxes"})


@dataclass(frozen=True)
class Detection:
    suspicion_score: int
    is_valid_input: bool


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _matches(value: Any, placeholders: frozenset[str]) -> bool:
    text = _text(value)
    return text is not None and text.lower() in placeholders


def _lowered(*values: str) -> frozenset[str]:
    return frozenset(v.lower() for v in values)


class _Detector:
    """Shared threshold/cap handling; subclasses implement ``score``."""

    def __init__(self, threshold: int | None = None, confidence_cap: float | None = None):
        self.threshold = threshold if threshold is not None else settings.HALLUCINATION_SUSPICION_THRESHOLD
        self.confidence_cap = (
            confidence_cap if confidence_cap is not None else settings.HALLUCINATION_CONFIDENCE_CAP
        )

    def score(self, fields: dict) -> int:
        raise NotImplementedError

    def detect(self, fields: dict) -> Detection:
        if not isinstance(fields, dict):
            return Detection(suspicion_score=0, is_valid_input=True)

        score = self.score(fields)
        if score >= self.threshold:
            current = _number(fields.get("confidence")) or 0.0
            fields["isValidInput"] = False
            fields["confidence"] = min(current, self.confidence_cap)
            logger.info(
                "%s flagged as likely hallucination (suspicion score %d)",
                type(self).__name__, score,
            )
        else:
            fields["isValidInput"] = fields.get("isValidInput") is not False

        return Detection(suspicion_score=score, is_valid_input=fields["isValidInput"])


class CheckHallucinationDetector(_Detector):
    CHECK_NUMBERS = frozenset({"1234", "5678", "0000", "1001", "100", "123"})
    PAYEES = _lowered("John Doe", "Jane Doe", "John Smith", "Jane Smith", "ABC Company", "XYZ Corp")
    PAYERS = _lowered("John Doe", "Jane Doe", "John Smith", "Jane Smith")
    AMOUNTS = frozenset({100.0, 150.75, 200.0, 500.0, 1000.0, 50.0, 25.0})
    DATES = frozenset({"2023-10-05", "2024-01-05", "2023-01-01", "2024-01-01"})
    BANK_NAMES = _lowered("Bank", "First Bank", "National Bank", "City Bank")
    ROUTING_NUMBERS = frozenset({"123456789", "000000000", "111111111"})

    def score(self, fields: dict) -> int:
        score = 0
        check_number = _text(fields.get("checkNumber"))
        amount = _number(fields.get("amount"))
        payee = fields.get("payee")
        payer = fields.get("payer")

        if check_number in self.CHECK_NUMBERS:
            score += 1
        if _matches(payee, self.PAYEES):
            score += 1
        if _matches(payer, self.PAYERS):
            score += 1
        if amount in self.AMOUNTS:
            score += 1

        date = fields.get("date")
        if (coerce_date(date) or _text(date)) in self.DATES:
            score += 1

        if _matches(fields.get("bankName"), self.BANK_NAMES):
            score += 1
        # Score the routing number normalization will keep, MICR backfill included.
        routing_number = (
            normalize_routing_number(fields.get("routingNumber"))
            or parse_micr(fields.get("micrLine")).get("routingNumber")
        )
        if _text(routing_number) in self.ROUTING_NUMBERS:
            score += 1

        if check_number == "1234" and _matches(payee, _lowered("John Doe")) and amount == 100.0:
            score += 2

        if amount is not None and amount > 0 and not _text(payee) and not _text(payer):
            score += 1

        return score


class ReceiptHallucinationDetector(_Detector):
    MERCHANT_NAMES = _lowered(
        "Store", "Market", "Supermarket", "Shop", "Restaurant", "ABC Store", "XYZ Market",
    )
    TOTALS = frozenset({0.0, 10.0, 15.99, 20.0, 25.0, 50.0, 100.0, 5.99, 12.99})
    RECEIPT_NUMBERS = frozenset({"123", "1234", "001", "100", "r001", "txn123"})
    ADDRESSES = _lowered("123 Main St", "456 Oak Ave", "Address", "Street")
    ITEM_DESCRIPTIONS = _lowered("Item", "Product", "Food", "Drink", "Service")

    def score(self, fields: dict) -> int:
        score = 0
        merchant = fields.get("merchant") if isinstance(fields.get("merchant"), dict) else {}
        totals = fields.get("totals") if isinstance(fields.get("totals"), dict) else {}
        items = fields.get("items") if isinstance(fields.get("items"), list) else None

        name = _text(merchant.get("name"))
        total = _number(totals.get("total"))
        has_total = total is not None and total > 0
        placeholder_merchant = _matches(name, self.MERCHANT_NAMES)

        if name is not None:
            if placeholder_merchant:
                score += 1
        elif has_total:
            score += 1

        if total in self.TOTALS:
            score += 1

        currency = fields.get("currency")
        if isinstance(currency, str) and len(currency.strip()) == 3 and (name is None or placeholder_merchant):
            score += 1

        receipt_number = _text(fields.get("receiptNumber"))
        if receipt_number is not None and receipt_number.lower() in self.RECEIPT_NUMBERS:
            score += 1

        address = _text(merchant.get("address"))
        if address is not None and any(a in address.lower() for a in self.ADDRESSES):
            score += 1

        if items and any(
            isinstance(item, dict) and _matches(item.get("description"), self.ITEM_DESCRIPTIONS)
            for item in items
        ):
            score += 1

        if items is not None and len(items) <= 1 and total is not None and total > 20:
            score += 1

        if name is not None and name.lower() == "store" and total == 10.0 and items is not None and len(items) == 1:
            score += 2

        rich_output = name is not None or has_total or bool(items)
        minimal_input = (
            address is None
            and _text(merchant.get("phone")) is None
            and not items
        )
        if rich_output and minimal_input and has_total:
            score += 1

        if not _text(fields.get("timestamp")) and has_total and name is not None:
            score += 1

        return score


def document_type_of(fields: Any) -> str | None:
    """Guess whether a raw payload is a check or a receipt from its keys."""
    if not isinstance(fields, dict):
        return None
    keys = fields.keys()
    if CHECK_KEYS.intersection(keys):
        return "check"
    if RECEIPT_KEYS.intersection(keys):
        return "receipt"
    return None


class HallucinationDetectors:
    """Picks the detector matching a payload's document type."""

    def __init__(
        self,
        check: CheckHallucinationDetector | None = None,
        receipt: ReceiptHallucinationDetector | None = None,
    ):
        self._detectors: dict[str, _Detector] = {
            "check": check or CheckHallucinationDetector(),
            "receipt": receipt or ReceiptHallucinationDetector(),
        }

    def detect(self, fields: dict) -> Detection:
        document_type = document_type_of(fields)
        detector = self._detectors.get(document_type) if document_type else None
        if detector is not None:
            return detector.detect(fields)

        if not isinstance(fields, dict):
            return Detection(suspicion_score=0, is_valid_input=True)
        fields["isValidInput"] = fields.get("isValidInput") is not False
        return Detection(suspicion_score=0, is_valid_input=fields["isValidInput"])
