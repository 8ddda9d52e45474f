"""JSON Schemas sent to the LLM providers for check and receipt extraction.

Only ``confidence`` is required so that sparse documents still validate.
Enum lists must stay in step with the enums in ``models.py``.
"""

from models import JsonSchema

_MONEY = {"type": "number", "minimum": 0}

CHECK_TYPES = ["personal", "business", "cashier", "certified", "traveler",
               "government", "payroll", "money_order", "other"]
ACCOUNT_TYPES = ["checking", "savings", "money_market", "other"]

RECEIPT_TYPES = ["sale", "return", "refund", "estimate", "proforma", "other"]
PAYMENT_METHODS = ["credit", "debit", "cash", "check", "gift_card",
                   "store_credit", "mobile_payment", "other"]
CARD_TYPES = ["visa", "mastercard", "amex", "discover", "diners_club", "jcb",
              "union_pay", "other"]
TAX_TYPES = ["sales", "vat", "gst", "pst", "hst", "excise", "service", "other"]
UNITS = ["ea", "kg", "g", "lb", "oz", "l", "ml", "gal", "pc", "pr", "pk", "box", "other"]
RECEIPT_FORMATS = ["retail", "restaurant", "service", "utility",
                   "transportation", "accommodation", "other"]

CHECK_SCHEMA = JsonSchema(
    name="Check",
    description="Structured data extracted from a bank check",
    definition={
        "type": "object",
        "required": ["confidence"],
        "properties": {
            "isValidInput": {"type": "boolean"},
            "checkNumber": {"type": "string"},
            "date": {"type": "string"},
            "payee": {"type": "string"},
            "payer": {"type": "string"},
            "amount": _MONEY,
            "amountText": {"type": "string"},
            "memo": {"type": "string"},
            "bankName": {"type": "string"},
            "routingNumber": {"type": "string", "pattern": r"^\d{9}$"},
            "accountNumber": {"type": "string"},
            "checkType": {"type": "string", "enum": CHECK_TYPES},
            "accountType": {"type": "string", "enum": ACCOUNT_TYPES},
            "signature": {"type": "boolean"},
            "signatureText": {"type": "string"},
            "fractionalCode": {"type": "string"},
            "micrLine": {"type": "string"},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
    },
)

RECEIPT_SCHEMA = JsonSchema(
    name="Receipt",
    description="Structured data extracted from a purchase receipt",
    definition={
        "type": "object",
        "required": ["confidence"],
        "properties": {
            "isValidInput": {"type": "boolean"},
            "merchant": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "address": {"type": "string"},
                    "phone": {"type": "string"},
                    "website": {"type": "string"},
                    "taxId": {"type": "string"},
                    "storeId": {"type": "string"},
                    "chainName": {"type": "string"},
                },
            },
            "receiptNumber": {"type": "string"},
            "receiptType": {"type": "string", "enum": RECEIPT_TYPES},
            "timestamp": {"type": "string", "format": "date-time"},
            "paymentMethod": {"type": "string", "enum": PAYMENT_METHODS},
            "totals": {
                "type": "object",
                "properties": {
                    "subtotal": _MONEY,
                    "tax": _MONEY,
                    "tip": _MONEY,
                    "discount": _MONEY,
                    "total": _MONEY,
                },
            },
            "currency": {"type": "string", "pattern": "^[A-Z]{3}$"},
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "description": {"type": "string"},
                        "sku": {"type": "string"},
                        "quantity": {"type": "number", "minimum": 0},
                        "unit": {"type": "string", "enum": UNITS},
                        "unitPrice": _MONEY,
                        "totalPrice": _MONEY,
                        "discounted": {"type": "boolean"},
                        "discountAmount": _MONEY,
                        "category": {"type": "string"},
                    },
                },
            },
            "taxes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "taxName": {"type": "string"},
                        "taxType": {"type": "string", "enum": TAX_TYPES},
                        "taxRate": {"type": "number", "minimum": 0, "maximum": 1},
                        "taxAmount": _MONEY,
                    },
                },
            },
            "payments": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "method": {"type": "string", "enum": PAYMENT_METHODS},
                        "cardType": {"type": "string", "enum": CARD_TYPES},
                        "lastDigits": {"type": "string", "pattern": r"^\d{4}$"},
                        "amount": _MONEY,
                        "transactionId": {"type": "string"},
                    },
                },
            },
            "notes": {"type": "array", "items": {"type": "string"}},
            "metadata": {
                "type": "object",
                "properties": {
                    "confidenceScore": {"type": "number", "minimum": 0, "maximum": 1},
                    "currency": {"type": "string", "pattern": "^[A-Z]{3}$"},
                    "languageCode": {"type": "string", "pattern": "^[a-z]{2}(-[A-Z]{2})?$"},
                    "timeZone": {"type": "string"},
                    "receiptFormat": {"type": "string", "enum": RECEIPT_FORMATS},
                    "sourceImageId": {"type": "string"},
                    "warnings": {"type": "array", "items": {"type": "string"}},
                },
            },
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
    },
)

SCHEMAS: dict[str, JsonSchema] = {
    "check": CHECK_SCHEMA,
    "receipt": RECEIPT_SCHEMA,
}
