"""Canonicalization of raw extracted check and receipt payloads.

Both normalizers work on the camelCase dicts returned by the LLM, return a
deep copy, never raise, and are idempotent: running one twice gives the same
result as running it once.
"""

import copy
import re
from datetime import datetime
from typing import Any

from schemas import (
    ACCOUNT_TYPES,
    CARD_TYPES,
    CHECK_TYPES,
    PAYMENT_METHODS,
    RECEIPT_FORMATS,
    RECEIPT_TYPES,
    TAX_TYPES,
    UNITS,
)

ROUTING_NUMBER_LENGTH = 9

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)

_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# E-13B MICR symbols: transit, on-us, amount.
MICR_TRANSIT = "⑆"
MICR_ON_US = "⑈"
MICR_AMOUNT = "⑇"

_MICR_ROUTING = re.compile(rf"{MICR_TRANSIT}(\d{{9}}){MICR_TRANSIT}")
_MICR_ACCOUNT = re.compile(rf"{MICR_ON_US}(\d+){MICR_ON_US}")
_MICR_CHECK_NUMBER = re.compile(rf"{MICR_AMOUNT}(\d+){MICR_AMOUNT}")

# Variant spellings -> canonical enum value, keyed after snake-casing.
_ACCOUNT_TYPE_ALIASES = {
    "chequing": "checking",
    "checking_account": "checking",
    "saving": "savings",
    "savings_account": "savings",
    "moneymarket": "money_market",
}

_CHECK_TYPE_ALIASES = {
    "cashiers": "cashier",
    "cashiers_check": "cashier",
    "bank_draft": "cashier",
    "certified_check": "certified",
    "personal_check": "personal",
    "business_check": "business",
    "company": "business",
    "corporate": "business",
    "travelers": "traveler",
    "traveller": "traveler",
    "travellers": "traveler",
    "travelers_check": "traveler",
    "treasury": "government",
    "payroll_check": "payroll",
    "paycheck": "payroll",
    "moneyorder": "money_order",
}

_RECEIPT_TYPE_ALIASES = {
    "sales": "sale",
    "purchase": "sale",
    "returns": "return",
    "quote": "estimate",
    "pro_forma": "proforma",
}

_PAYMENT_METHOD_ALIASES = {
    "credit_card": "credit",
    "debit_card": "debit",
    "gift": "gift_card",
    "giftcard": "gift_card",
    "cheque": "check",
    "mobile": "mobile_payment",
    "apple_pay": "mobile_payment",
    "google_pay": "mobile_payment",
}

_CARD_TYPE_ALIASES = {
    "master_card": "mastercard",
    "mc": "mastercard",
    "american_express": "amex",
    "diners": "diners_club",
    "unionpay": "union_pay",
}

_TAX_TYPE_ALIASES = {
    "sales_tax": "sales",
    "value_added_tax": "vat",
    "goods_and_services_tax": "gst",
    "service_charge": "service",
}

_UNIT_ALIASES = {
    "each": "ea",
    "kilogram": "kg",
    "kgs": "kg",
    "gram": "g",
    "lbs": "lb",
    "pound": "lb",
    "ounce": "oz",
    "liter": "l",
    "litre": "l",
    "milliliter": "ml",
    "gallon": "gal",
    "piece": "pc",
    "pcs": "pc",
    "pair": "pr",
    "pack": "pk",
}

_RECEIPT_FORMAT_ALIASES = {
    "grocery": "retail",
    "hotel": "accommodation",
    "transport": "transportation",
}


def coerce_date(value: Any) -> str | None:
    """Return *value* as ``YYYY-MM-DD`` if it parses as a date, else None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    # ISO timestamps with a time part
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return None


def coerce_timestamp(value: Any) -> str | None:
    """Return *value* as ``YYYY-MM-DDTHH:MM:SSZ`` if it parses, else None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime(TIMESTAMP_FORMAT)
        except ValueError:
            continue
    date = coerce_date(text)
    if date is not None:
        return f"{date}T00:00:00Z"
    return None


def parse_micr(micr_line: Any) -> dict[str, str]:
    """Split a MICR line into whichever of routing/account/check number it holds."""
    if not isinstance(micr_line, str):
        return {}
    found = {}
    for key, pattern in (
        ("routingNumber", _MICR_ROUTING),
        ("accountNumber", _MICR_ACCOUNT),
        ("checkNumber", _MICR_CHECK_NUMBER),
    ):
        match = pattern.search(micr_line)
        if match:
            found[key] = match.group(1)
    return found


def _snake(value: str) -> str:
    key = value.strip().lower().replace("'", "").replace("’", "")
    return re.sub(r"[\s\-]+", "_", key)


def _coerce_enum(container: dict, key: str, allowed: list[str], aliases: dict[str, str]):
    value = container.get(key)
    if not isinstance(value, str):
        return
    if not value.strip():
        container[key] = None
        return
    canonical = _snake(value)
    if canonical in allowed:
        container[key] = canonical
    else:
        container[key] = aliases.get(canonical, "other")


def normalize_routing_number(value: Any) -> Any:
    """Reduce a routing number to its digits, trimmed to nine.

    Separators are dropped; longer runs lose leading zeros before the cut.
    A value with no digits at all is treated as absent.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return value
    digits = re.sub(r"\D", "", value)
    if not digits:
        return None
    if len(digits) <= ROUTING_NUMBER_LENGTH:
        return digits
    return digits.lstrip("0")[:ROUTING_NUMBER_LENGTH]


def normalize_check(data: dict) -> dict:
    check = copy.deepcopy(data)
    if not isinstance(check, dict):
        return check

    date = coerce_date(check.get("date"))
    if date is not None:
        check["date"] = date

    if "routingNumber" in check:
        check["routingNumber"] = normalize_routing_number(check["routingNumber"])
    _coerce_enum(check, "accountType", ACCOUNT_TYPES, _ACCOUNT_TYPE_ALIASES)
    _coerce_enum(check, "checkType", CHECK_TYPES, _CHECK_TYPE_ALIASES)

    # MICR only fills gaps; values the model read directly win.
    for key, value in parse_micr(check.get("micrLine")).items():
        if not check.get(key):
            check[key] = value

    return check


def _normalize_currency(container: dict):
    value = container.get("currency")
    if isinstance(value, str):
        container["currency"] = value.strip().upper()


def _dicts(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def normalize_receipt(data: dict) -> dict:
    receipt = copy.deepcopy(data)
    if not isinstance(receipt, dict):
        return receipt

    _normalize_currency(receipt)

    timestamp = receipt.get("timestamp")
    if isinstance(timestamp, str) and "T" not in timestamp:
        coerced = coerce_timestamp(timestamp)
        if coerced is not None:
            receipt["timestamp"] = coerced

    _coerce_enum(receipt, "receiptType", RECEIPT_TYPES, _RECEIPT_TYPE_ALIASES)
    _coerce_enum(receipt, "paymentMethod", PAYMENT_METHODS, _PAYMENT_METHOD_ALIASES)

    for item in _dicts(receipt.get("items")):
        _coerce_enum(item, "unit", UNITS, _UNIT_ALIASES)
    for tax in _dicts(receipt.get("taxes")):
        _coerce_enum(tax, "taxType", TAX_TYPES, _TAX_TYPE_ALIASES)
    for payment in _dicts(receipt.get("payments")):
        _coerce_enum(payment, "method", PAYMENT_METHODS, _PAYMENT_METHOD_ALIASES)
        _coerce_enum(payment, "cardType", CARD_TYPES, _CARD_TYPE_ALIASES)

    metadata = receipt.get("metadata")
    if isinstance(metadata, dict):
        _normalize_currency(metadata)
        _coerce_enum(metadata, "receiptFormat", RECEIPT_FORMATS, _RECEIPT_FORMAT_ALIASES)

    return receipt
