"""Prompts for check and receipt extraction from OCR text.

The system prompt carries the anti-hallucination rules shared by every
provider; the per-document templates describe which fields to pull out of
the OCR text.
"""

import json

SYSTEM_PROMPT = """You are a top-tier JSON extraction professional.
Extract valid JSON from the provided text using these critical guidelines:
1. The given text is the ONLY source of truth
2. Use null, empty strings or 0 for fields you cannot confidently extract
3. NEVER invent data that is not explicitly in the text
4. Assign low confidence scores when information is unclear or incomplete
5. For minimal or empty input, provide empty values and low confidence
6. Set isValidInput=false if the input appears to be invalid or minimal
7. Prioritize accuracy over completeness
8. Return ONLY the JSON object, no additional text or formatting"""

# Appended by providers that cannot enforce a schema server-side.
_COMPLETION_RULES = """
9. Complete the entire JSON response, do not stop early
10. Every opening brace { and bracket [ must have a matching } or ]"""

SYSTEM_PROMPT_UNSTRUCTURED = SYSTEM_PROMPT + _COMPLETION_RULES

_RULES_SUFFIX = """

IMPORTANT:
- Extract only information that is clearly visible in the input
- Use null, empty strings, or 0 values for uncertain information
- Assign confidence scores proportional to clarity and completeness of the input
- Prioritize accuracy over completeness
- Set overall confidence below 0.5 if the input appears invalid or contains minimal information
- Set isValidInput to false if the text does not look like a {document}"""

_CHECK_TEMPLATE = """# Check Data Extraction

Below is the text extracted from a check image using OCR. Extract the relevant information into a structured JSON format.

## OCR Text:

{ocr_text}

## Instructions:

Extract the following information:
- Check number
- Date on the check
- Payee (the person or entity to whom the check is payable)
- Payer (the person or entity who wrote the check, if available)
- Amount (numerical value)
- Amount in words (if available)
- Memo line content (if available)
- Bank name (if available)
- Routing number (9 digits, if available)
- Account number (if available)
- Type of check (personal, business, cashier, certified, ...)
- Type of account (checking, savings, money_market, other)
- Whether the check appears to be signed
- The MICR line at the bottom of the check (if available)

For numerical values, extract them as numbers without currency symbols.
For the date, convert it to ISO 8601 format (YYYY-MM-DD) if possible.
Extract the routing number as a 9-digit string."""

_RECEIPT_TEMPLATE = """# Receipt Data Extraction

Below is the text extracted from a receipt image using OCR. Extract the relevant information into a structured JSON format.

## OCR Text:

{ocr_text}

## Instructions:

Extract the following information:
- Merchant information (grouped under a "merchant" object):
  - Name of store/merchant
  - Address
  - Phone number
  - Website (if present)
  - Store ID or branch number (if present)
  - Chain name (if applicable)
- Receipt number and date/time
- Items purchased with quantities, unit prices, and total prices
- Financial totals (grouped under a "totals" object):
  - Subtotal (pre-tax amount)
  - Tax amount
  - Tip amount (if applicable)
  - Discount amount (if applicable)
  - Total amount (final amount paid)
- Taxes with name, type, rate (0-1) and amount
- Payment method details
- Any other relevant information from the receipt, as notes

For numerical values, extract them as numbers without currency symbols.
For the date, convert it to ISO 8601 format (YYYY-MM-DDThh:mm:ssZ) if possible.
For the currency, use the standard 3-letter ISO currency code (e.g., USD, EUR, GBP)."""

PROMPTS: dict[str, str] = {
    "check": _CHECK_TEMPLATE + _RULES_SUFFIX.replace("{document}", "check"),
    "receipt": _RECEIPT_TEMPLATE + _RULES_SUFFIX.replace("{document}", "receipt"),
}


def build_document_prompt(document_type: str, ocr_text: str) -> str:
    """Fill the extraction template for *document_type* with the OCR text."""
    template = PROMPTS.get(document_type)
    if template is None:
        raise KeyError(f"No prompt defined for document type: {document_type}")
    return template.replace("{ocr_text}", ocr_text)


def build_schema_prompt(text: str, schema: dict | None) -> str:
    """User turn for providers that take the schema inline."""
    prompt = f"Extract structured data from the following text and return it as valid JSON:\n\n{text}\n\n"
    if schema:
        prompt += f"Follow this JSON schema structure:\n{json.dumps(schema, indent=2)}\n\n"
    return prompt + "Return only the JSON object with no additional text or formatting."
