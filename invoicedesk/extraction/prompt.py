"""Fixed extraction prompt shared by every AI provider."""

# Document text is appended after the instructions; keep braces literal (no .format)
EXTRACTION_PROMPT = """Extract document data from the following text and return a valid JSON \
object with this exact structure:

{
  "vendor": {
    "name": "string (company/vendor name)",
    "address": "string (optional)",
    "taxId": "string (optional)"
  },
  "invoice": {
    "number": "string (invoice/document number)",
    "date": "string in YYYY-MM-DD format (document date)",
    "currency": "string (optional, ISO 4217 code, default USD)",
    "subtotal": number (optional),
    "taxPercent": number (optional),
    "total": number (optional),
    "poNumber": "string (optional)",
    "poDate": "string in YYYY-MM-DD format (optional)",
    "lineItems": [
      {
        "description": "string (required)",
        "unitPrice": number (required),
        "quantity": number (required),
        "total": number (required)
      }
    ]
  }
}

Rules:
1. This can be any type of document (invoice, receipt, bill, contract, etc.)
2. Extract any visible line items with their descriptions, unit prices, quantities, and totals
3. If dates are in different formats, convert them to YYYY-MM-DD
4. If a value is not present in the document, use null
5. Extract numeric values without currency symbols or thousands separators
6. Ensure the JSON is valid and parseable
7. Only return the JSON object, no additional text or explanations

Document text:
"""


def build_extraction_prompt(document_text: str) -> str:
    """Append the document text to the fixed instructions."""
    return EXTRACTION_PROMPT + document_text
