from loguru import logger
from azure.ai.documentintelligence.aio import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError

from .base import ExtractionResult, InvoiceExtractor
from ...core.errors import ExtractionFailed
from ...models.invoice import NotInvoice, RawExtraction


def _field_content(fields, field_name):
    if not fields or field_name not in fields:
        return None
    field = fields[field_name]
    if getattr(field, "content", None):
        return field.content
    for attr in ("value_string", "value_date", "value_number"):
        value = getattr(field, attr, None)
        if value is not None:
            return value
    return None


def _line_items(fields) -> list[dict]:
    items_field = fields.get("Items") if fields else None
    entries = getattr(items_field, "value_array", None) or []

    items = []
    for entry in entries:
        item_fields = getattr(entry, "value_object", None) or {}
        items.append({
            "description": _field_content(item_fields, "Description") or "",
            "quantity": _field_content(item_fields, "Quantity"),
            "unitPrice": _field_content(item_fields, "UnitPrice"),
            "total": _field_content(item_fields, "Amount"),
        })
    return items


class DocumentIntelligenceExtractor(InvoiceExtractor):
    """
    Extractor backed by the Azure Document Intelligence prebuilt-invoice model.

    The model returns typed fields, so its output maps straight onto a
    RawExtraction without going through the JSON recovery parser. Amounts and
    dates are passed on as printed and normalized downstream.
    """

    name = "azure-document-intelligence"

    def __init__(self, endpoint: str, api_key: str, model_id: str = "prebuilt-invoice"):
        self.endpoint = endpoint
        self.api_key = api_key
        self.model_id = model_id

    async def analyze(self, file_bytes: bytes):
        logger.info(
            "Using Azure Document Intelligence for invoice extraction",
            endpoint=self.endpoint[:50] + "..." if len(self.endpoint) > 50 else self.endpoint,
            size_bytes=len(file_bytes),
        )
        try:
            async with DocumentIntelligenceClient(
                endpoint=self.endpoint,
                credential=AzureKeyCredential(self.api_key),
            ) as client:
                poller = await client.begin_analyze_document(
                    self.model_id,
                    body=file_bytes,
                    content_type="application/octet-stream",
                )
                return await poller.result()
        except AzureError as e:
            logger.error(f"Azure DI extraction failed: {str(e)}")
            raise ExtractionFailed(f"Invoice extraction failed: {str(e)}")

    async def extract(self, document: bytes, mime_type: str) -> ExtractionResult:
        result = await self.analyze(document)
        return self.to_extraction(result)

    @staticmethod
    def to_extraction(result) -> ExtractionResult:
        if not result.documents:
            # No structured invoice data found - likely a quote, receipt or other document
            logger.warning("Azure DI prebuilt-invoice model found no invoice in document")
            return NotInvoice(error="No invoice data was found in the document.")

        doc = result.documents[0]
        fields = doc.fields if hasattr(doc, "fields") else {}

        extraction = RawExtraction(
            customer_name=_field_content(fields, "CustomerName") or _field_content(fields, "BillingAddressRecipient"),
            vendor_name=_field_content(fields, "VendorName"),
            customer_address=_field_content(fields, "CustomerAddress"),
            vendor_address=_field_content(fields, "VendorAddress"),
            invoice_number=_field_content(fields, "InvoiceId"),
            invoice_date=_field_content(fields, "InvoiceDate"),
            due_date=_field_content(fields, "DueDate"),
            amount=_field_content(fields, "InvoiceTotal"),
            currency=_field_content(fields, "CurrencyCode"),
            contract_number=_field_content(fields, "PurchaseOrder"),
            line_items=_line_items(fields),
        )

        logger.info(
            "Successfully extracted invoice data from Azure DI",
            vendor=extraction.vendor_name,
            invoice_number=extraction.invoice_number,
            confidence=getattr(doc, "confidence", None),
        )
        return extraction


class MockInvoiceExtractor(InvoiceExtractor):
    """Canned extraction used when no model is configured (demo and tests)"""

    name = "mock"

    def __init__(self, payload: dict | None = None):
        self.payload = payload or {
            "customerName": "Ammons DataLabs",
            "vendorName": "Contoso GmbH",
            "vendorAddress": "Hauptstraße 1, 10115 Berlin",
            "invoiceNumber": "RE-10023",
            "invoiceDate": "30. September 2025",
            "dueDate": "15.10.25",
            "amount": "1.234,50 €",
            "currency": "EUR",
            "language": "de",
            "lineItems": [
                {
                    "description": "Hosting Dienst: web_01 01.09.25-30.09.25",
                    "quantity": "1",
                    "unitPrice": "1.234,50",
                    "total": "1.234,50",
                },
            ],
        }

    async def extract(self, document: bytes, mime_type: str) -> ExtractionResult:
        logger.warning(
            "No extraction model configured - using MOCK data. "
            "Set ANTHROPIC_API_KEY or AZ_DI_ENDPOINT and AZ_DI_API_KEY to use real extraction.",
            size_bytes=len(document or b""),
        )
        if not document:
            return NotInvoice(error="The uploaded document is empty.")
        return RawExtraction.model_validate(self.payload)
