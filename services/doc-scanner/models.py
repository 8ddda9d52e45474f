"""Pydantic models for scanned documents, provider I/O and API responses.

Field aliases follow the camelCase JSON contract the extraction schemas
describe; attributes stay snake_case.
"""

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StringConstraints


class _Document(BaseModel):
    # Models often emit identifiers such as check or card digits as JSON numbers.
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
        coerce_numbers_to_str=True,
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Pattern-constrained strings; an empty string from the model means "absent".
RoutingNumber = Annotated[
    Optional[Annotated[str, StringConstraints(pattern=r"^\d{9}$")]],
    BeforeValidator(_blank_to_none),
]
CurrencyCode = Annotated[
    Optional[Annotated[str, StringConstraints(pattern=r"^[A-Z]{3}$")]],
    BeforeValidator(_blank_to_none),
]
LastDigits = Annotated[
    Optional[Annotated[str, StringConstraints(pattern=r"^\d{4}$")]],
    BeforeValidator(_blank_to_none),
]
LanguageCode = Annotated[
    Optional[Annotated[str, StringConstraints(pattern=r"^[a-z]{2}(-[A-Z]{2})?$")]],
    BeforeValidator(_blank_to_none),
]


# ---------------------------------------------------------------------------
# Check
# ---------------------------------------------------------------------------


class CheckType(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    CASHIER = "cashier"
    CERTIFIED = "certified"
    TRAVELER = "traveler"
    GOVERNMENT = "government"
    PAYROLL = "payroll"
    MONEY_ORDER = "money_order"
    OTHER = "other"


class BankAccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    MONEY_MARKET = "money_market"
    OTHER = "other"


class Check(_Document):
    check_number: str | None = Field(None, alias="checkNumber")
    date: str | None = None
    payee: str | None = None
    payer: str | None = None
    amount: float | None = Field(None, ge=0)
    amount_text: str | None = Field(None, alias="amountText")
    memo: str | None = None
    bank_name: str | None = Field(None, alias="bankName")
    routing_number: RoutingNumber = Field(None, alias="routingNumber")
    account_number: str | None = Field(None, alias="accountNumber")
    check_type: CheckType | None = Field(None, alias="checkType")
    account_type: BankAccountType | None = Field(None, alias="accountType")
    signature: bool | None = None
    signature_text: str | None = Field(None, alias="signatureText")
    fractional_code: str | None = Field(None, alias="fractionalCode")
    micr_line: str | None = Field(None, alias="micrLine")
    is_valid_input: bool = Field(True, alias="isValidInput")
    confidence: float = Field(..., ge=0, le=1)


# ---------------------------------------------------------------------------
# Receipt
# ---------------------------------------------------------------------------


class ReceiptType(str, Enum):
    SALE = "sale"
    RETURN = "return"
    REFUND = "refund"
    ESTIMATE = "estimate"
    PROFORMA = "proforma"
    OTHER = "other"


class PaymentMethod(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    CASH = "cash"
    CHECK = "check"
    GIFT_CARD = "gift_card"
    STORE_CREDIT = "store_credit"
    MOBILE_PAYMENT = "mobile_payment"
    OTHER = "other"


class CardType(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    DISCOVER = "discover"
    DINERS_CLUB = "diners_club"
    JCB = "jcb"
    UNION_PAY = "union_pay"
    OTHER = "other"


class TaxType(str, Enum):
    SALES = "sales"
    VAT = "vat"
    GST = "gst"
    PST = "pst"
    HST = "hst"
    EXCISE = "excise"
    SERVICE = "service"
    OTHER = "other"


class UnitOfMeasure(str, Enum):
    EACH = "ea"
    KILOGRAM = "kg"
    GRAM = "g"
    POUND = "lb"
    OUNCE = "oz"
    LITER = "l"
    MILLILITER = "ml"
    GALLON = "gal"
    PIECE = "pc"
    PAIR = "pr"
    PACK = "pk"
    BOX = "box"
    OTHER = "other"


class ReceiptFormat(str, Enum):
    RETAIL = "retail"
    RESTAURANT = "restaurant"
    SERVICE = "service"
    UTILITY = "utility"
    TRANSPORTATION = "transportation"
    ACCOMMODATION = "accommodation"
    OTHER = "other"


class Merchant(_Document):
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    tax_id: str | None = Field(None, alias="taxId")
    store_id: str | None = Field(None, alias="storeId")
    chain_name: str | None = Field(None, alias="chainName")


class Totals(_Document):
    subtotal: float | None = Field(None, ge=0)
    tax: float | None = Field(None, ge=0)
    tip: float | None = Field(None, ge=0)
    discount: float | None = Field(None, ge=0)
    total: float | None = Field(None, ge=0)


class LineItem(_Document):
    description: str | None = None
    sku: str | None = None
    quantity: float | None = Field(None, ge=0)
    unit: UnitOfMeasure | None = None
    unit_price: float | None = Field(None, alias="unitPrice", ge=0)
    total_price: float | None = Field(None, alias="totalPrice", ge=0)
    discounted: bool | None = None
    discount_amount: float | None = Field(None, alias="discountAmount", ge=0)
    category: str | None = None


class TaxItem(_Document):
    tax_name: str | None = Field(None, alias="taxName")
    tax_type: TaxType | None = Field(None, alias="taxType")
    tax_rate: float | None = Field(None, alias="taxRate", ge=0, le=1)
    tax_amount: float | None = Field(None, alias="taxAmount", ge=0)


class Payment(_Document):
    method: PaymentMethod | None = None
    card_type: CardType | None = Field(None, alias="cardType")
    last_digits: LastDigits = Field(None, alias="lastDigits")
    amount: float | None = Field(None, ge=0)
    transaction_id: str | None = Field(None, alias="transactionId")


class ReceiptMetadata(_Document):
    confidence_score: float | None = Field(None, alias="confidenceScore", ge=0, le=1)
    currency: CurrencyCode = None
    language_code: LanguageCode = Field(None, alias="languageCode")
    time_zone: str | None = Field(None, alias="timeZone")
    receipt_format: ReceiptFormat | None = Field(None, alias="receiptFormat")
    source_image_id: str | None = Field(None, alias="sourceImageId")
    warnings: list[str] | None = None


class Receipt(_Document):
    merchant: Merchant | None = None
    receipt_number: str | None = Field(None, alias="receiptNumber")
    receipt_type: ReceiptType | None = Field(None, alias="receiptType")
    timestamp: str | None = None
    payment_method: PaymentMethod | None = Field(None, alias="paymentMethod")
    totals: Totals | None = None
    currency: CurrencyCode = None
    items: list[LineItem] | None = None
    taxes: list[TaxItem] | None = None
    payments: list[Payment] | None = None
    notes: list[str] | None = None
    metadata: ReceiptMetadata | None = None
    is_valid_input: bool = Field(True, alias="isValidInput")
    confidence: float = Field(..., ge=0, le=1)


# ---------------------------------------------------------------------------
# Extraction I/O
# ---------------------------------------------------------------------------


class JsonSchema(BaseModel):
    """Named JSON Schema handed to a model for schema-constrained output."""

    model_config = ConfigDict(frozen=True)

    name: str
    definition: dict[str, Any]
    description: str | None = None
    strict: bool = True


class ExtractionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    json_schema: JsonSchema | None = None


class ExtractionResult(BaseModel):
    """Raw extracted payload plus the confidence computed for it."""

    data: dict[str, Any]
    confidence: float = Field(ge=0, le=1)


class DocumentExtraction(BaseModel):
    document: Check | Receipt
    confidence: float = Field(ge=0, le=1)


# ---------------------------------------------------------------------------
# OCR / scanner
# ---------------------------------------------------------------------------


class DocumentFormat(str, Enum):
    IMAGE = "image"
    PDF = "pdf"


class Document(BaseModel):
    content: bytes
    type: DocumentFormat = DocumentFormat.IMAGE
    name: str = "uploaded-document"
    mime_type: str | None = None


class BoundingBox(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class OCRPage(BaseModel):
    text: str
    confidence: float = Field(1.0, ge=0, le=1)
    page_number: int = 1
    bounding_box: BoundingBox | None = None


class ProcessingResult(BaseModel):
    document: Check | Receipt
    ocr_confidence: float
    extraction_confidence: float
    overall_confidence: float
    raw_text: str = ""


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class ConfidenceBreakdown(BaseModel):
    ocr: float
    extraction: float
    overall: float


class ScanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: dict[str, Any]
    document_type: str = Field(alias="documentType")
    confidence: ConfidenceBreakdown
