INVOICE_EXTRACTION_PROMPT = """You are an invoice processing specialist. Analyze the attached {mime_type} document.

1. Decide whether it is an invoice. Look for an invoice number or reference,
   billing details, payment terms, line items or charges, and a total amount.

2. If it is an invoice, reply with JSON only, in this shape:
{{
  "isInvoice": true,
  "data": {{
    "customerName": "Customer/client name",
    "customerAddress": "Customer postal address",
    "vendorName": "Vendor/supplier name",
    "vendorAddress": "Vendor postal address",
    "invoiceNumber": "Invoice number/ID",
    "invoiceDate": "Issue date exactly as printed",
    "dueDate": "Due date exactly as printed, omit if absent",
    "amount": "Total amount as printed",
    "currency": "Currency symbol or ISO code",
    "contractNumber": "Contract or customer reference, omit if absent",
    "language": "ISO 639-1 code of the document language",
    "lineItems": [
      {{
        "description": "Item description including any service period",
        "quantity": "Quantity",
        "unitPrice": "Unit price",
        "total": "Line total"
      }}
    ]
  }}
}}

3. If it is not an invoice, reply with:
{{
  "isInvoice": false,
  "error": "Brief explanation of why it is not an invoice"
}}
"""
