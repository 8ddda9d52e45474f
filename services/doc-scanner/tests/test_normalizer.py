"""Tests for check/receipt field normalization."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from normalizer import (
    coerce_date,
    coerce_timestamp,
    normalize_check,
    normalize_receipt,
    parse_micr,
)


class TestCoerceDate:
    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-14", "2024-03-14"),
        ("03/14/2024", "2024-03-14"),
        ("03-14-2024", "2024-03-14"),
        ("14.03.2024", "2024-03-14"),
        ("March 14, 2024", "2024-03-14"),
        ("Mar 14, 2024", "2024-03-14"),
        ("2024-03-14T09:30:00Z", "2024-03-14"),
    ])
    def test_formats(self, raw, expected):
        assert coerce_date(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "someday", None, 20240314])
    def test_unparseable(self, raw):
        assert coerce_date(raw) is None


class TestCoerceTimestamp:
    def test_date_only(self):
        assert coerce_timestamp("2023-01-01") == "2023-01-01T00:00:00Z"

    def test_space_separated(self):
        assert coerce_timestamp("2024-03-14 17:42:10") == "2024-03-14T17:42:10Z"

    def test_us_twelve_hour(self):
        assert coerce_timestamp("03/14/2024 5:42 PM") == "2024-03-14T17:42:00Z"

    def test_unparseable(self):
        assert coerce_timestamp("yesterday evening") is None


class TestParseMicr:
    def test_full_line(self):
        assert parse_micr("⑆267084131⑆ ⑈0098765432⑈ ⑇4821⑇") == {
            "routingNumber": "267084131",
            "accountNumber": "0098765432",
            "checkNumber": "4821",
        }

    def test_partial_line(self):
        assert parse_micr("⑈55501⑈") == {"accountNumber": "55501"}

    def test_letter_transliterations_not_guessed(self):
        assert parse_micr("T267084131T A0098765432A") == {}

    def test_non_string(self):
        assert parse_micr(None) == {}


class TestNormalizeCheck:
    def test_routing_number_leading_zeros(self):
        assert normalize_check({"routingNumber": "0001234567890"})["routingNumber"] == "123456789"

    def test_nine_digit_routing_untouched(self):
        assert normalize_check({"routingNumber": "012345678"})["routingNumber"] == "012345678"

    @pytest.mark.parametrize("raw,expected", [
        ("026-009-5930", "260095930"),
        ("026 009 593", "026009593"),
        (26009593, "26009593"),
        ("n/a", None),
    ])
    def test_routing_number_separators_dropped(self, raw, expected):
        assert normalize_check({"routingNumber": raw})["routingNumber"] == expected

    def test_routing_number_normalization_idempotent(self):
        once = normalize_check({"routingNumber": "026-009-5930"})
        assert normalize_check(once) == once

    def test_date_reformatted(self):
        assert normalize_check({"date": "03/14/2024"})["date"] == "2024-03-14"

    def test_unparseable_date_untouched(self):
        assert normalize_check({"date": "the ides of march"})["date"] == "the ides of march"

    @pytest.mark.parametrize("raw,expected", [
        ("Checking", "checking"),
        ("money market", "money_market"),
        ("Money-Market", "money_market"),
        ("chequing", "checking"),
        ("brokerage", "other"),
    ])
    def test_account_type(self, raw, expected):
        assert normalize_check({"accountType": raw})["accountType"] == expected

    @pytest.mark.parametrize("raw,expected", [
        ("Personal", "personal"),
        ("cashier's", "cashier"),
        ("Cashier's Check", "cashier"),
        ("money order", "money_order"),
        ("Traveller's", "traveler"),
        ("starter", "other"),
    ])
    def test_check_type(self, raw, expected):
        assert normalize_check({"checkType": raw})["checkType"] == expected

    def test_blank_enum_dropped(self):
        assert normalize_check({"checkType": "  "})["checkType"] is None

    def test_micr_backfills_missing_fields(self):
        check = normalize_check({"micrLine": "⑆267084131⑆ ⑈0098765432⑈ ⑇4821⑇", "checkNumber": ""})
        assert check["routingNumber"] == "267084131"
        assert check["accountNumber"] == "0098765432"
        assert check["checkNumber"] == "4821"

    def test_micr_does_not_override(self):
        check = normalize_check({"micrLine": "⑆267084131⑆ ⑇4821⑇", "routingNumber": "021000021"})
        assert check["routingNumber"] == "021000021"
        assert check["checkNumber"] == "4821"

    def test_returns_copy(self):
        raw = {"accountType": "Savings"}
        normalize_check(raw)
        assert raw == {"accountType": "Savings"}

    def test_idempotent(self, real_check_payload):
        once = normalize_check(real_check_payload)
        assert normalize_check(once) == once

    def test_non_dict_never_raises(self):
        assert normalize_check(None) is None


class TestNormalizeReceipt:
    def test_currency_upper_cased(self):
        assert normalize_receipt({"currency": " usd "})["currency"] == "USD"

    def test_date_only_timestamp(self):
        assert normalize_receipt({"timestamp": "2023-01-01"})["timestamp"] == "2023-01-01T00:00:00Z"

    def test_iso_timestamp_unchanged(self):
        assert normalize_receipt({"timestamp": "2023-01-01T12:00:00Z"})["timestamp"] == "2023-01-01T12:00:00Z"

    def test_unparseable_timestamp_untouched(self):
        assert normalize_receipt({"timestamp": "lunch time"})["timestamp"] == "lunch time"

    def test_nested_enums(self, real_receipt_payload):
        receipt = normalize_receipt(real_receipt_payload)
        assert receipt["paymentMethod"] == "credit"
        assert [item.get("unit") for item in receipt["items"]] == ["lb", "ea", None]
        assert receipt["payments"][0]["cardType"] == "visa"

    def test_tax_and_metadata_enums(self):
        receipt = normalize_receipt({
            "taxes": [{"taxType": "Sales Tax"}, {"taxType": "VAT"}, {"taxType": "tariff"}],
            "metadata": {"receiptFormat": "Hotel", "currency": "eur"},
            "receiptType": "Purchase",
        })
        assert [t["taxType"] for t in receipt["taxes"]] == ["sales", "vat", "other"]
        assert receipt["metadata"] == {"receiptFormat": "accommodation", "currency": "EUR"}
        assert receipt["receiptType"] == "sale"

    def test_idempotent(self, real_receipt_payload):
        once = normalize_receipt(real_receipt_payload)
        assert normalize_receipt(once) == once

    def test_odd_shapes_never_raise(self):
        receipt = normalize_receipt({"items": "many", "payments": [None, 3], "metadata": []})
        assert receipt["items"] == "many"
