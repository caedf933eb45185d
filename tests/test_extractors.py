"""
Tests for the extraction backends, using fake model clients.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock
import anthropic
import httpx
import pytest
from invoice_intake.core.errors import ExtractionFailed, ExtractionParseError
from invoice_intake.models.invoice import NotInvoice, RawExtraction
from invoice_intake.services.extractors.base import interpret_envelope
from invoice_intake.services.extractors.claude import ClaudeInvoiceExtractor
from invoice_intake.services.extractors.document_intelligence import (
    DocumentIntelligenceExtractor,
    MockInvoiceExtractor,
)
from invoice_intake.services.extractors.factory import create_extractor


class FakeMessages:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.reply)])


def fake_client(reply=None, error=None):
    return SimpleNamespace(messages=FakeMessages(reply, error))


class TestEnvelope:
    def test_invoice_envelope(self):
        result = interpret_envelope({"isInvoice": True, "data": {"vendorName": "Acme", "amount": "12,50"}})

        assert isinstance(result, RawExtraction)
        assert result.vendor_name == "Acme"
        assert result.amount == "12,50"

    def test_not_invoice_envelope(self):
        result = interpret_envelope({"isInvoice": False, "error": "This is a receipt."})

        assert isinstance(result, NotInvoice)
        assert result.error == "This is a receipt."

    def test_not_invoice_without_reason_gets_default_message(self):
        result = interpret_envelope({"isInvoice": False})
        assert result.error == "The uploaded document does not appear to be an invoice."

    def test_bare_payload_is_invoice_data(self):
        result = interpret_envelope({"invoiceNumber": "INV-7", "lineItems": "n/a"})

        assert result.invoice_number == "INV-7"
        assert result.line_items == []


class TestClaudeExtractor:
    def test_fenced_reply_is_recovered(self):
        reply = 'Here you go:\n```json\n{"isInvoice": true, "data": {"vendorName": "Acme", "invoiceNumber": "A-1"}}\n```'
        client = fake_client(reply)
        extractor = ClaudeInvoiceExtractor(client, model="test-model")

        result = asyncio.run(extractor.extract(b"%PDF-1.4", "application/pdf"))

        assert isinstance(result, RawExtraction)
        assert result.invoice_number == "A-1"

        call = client.messages.calls[0]
        assert call["model"] == "test-model"
        assert call["temperature"] == 0
        document_block, prompt_block = call["messages"][0]["content"]
        assert document_block["type"] == "document"
        assert document_block["source"]["media_type"] == "application/pdf"
        assert "application/pdf" in prompt_block["text"]

    def test_images_are_sent_as_image_blocks(self):
        client = fake_client('{"isInvoice": false}')
        extractor = ClaudeInvoiceExtractor(client, model="test-model")

        result = asyncio.run(extractor.extract(b"\x89PNG", "image/png"))

        assert isinstance(result, NotInvoice)
        assert client.messages.calls[0]["messages"][0]["content"][0]["type"] == "image"

    def test_reply_without_json_raises_parse_error(self):
        extractor = ClaudeInvoiceExtractor(fake_client("I cannot read this file."), model="test-model")

        with pytest.raises(ExtractionParseError):
            asyncio.run(extractor.extract(b"%PDF-1.4", "application/pdf"))

    def test_api_error_becomes_extraction_failed(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        extractor = ClaudeInvoiceExtractor(
            fake_client(error=anthropic.APIConnectionError(request=request)),
            model="test-model",
        )

        with pytest.raises(ExtractionFailed):
            asyncio.run(extractor.extract(b"%PDF-1.4", "application/pdf"))


def di_field(content):
    return SimpleNamespace(content=content)


class TestDocumentIntelligence:
    def test_fields_are_mapped(self):
        item = SimpleNamespace(value_object={
            "Description": di_field("Hosting 01.09.25-30.09.25"),
            "Quantity": SimpleNamespace(content=None, value_number=2.0),
            "Amount": di_field("200,00 €"),
        })
        fields = {
            "CustomerName": di_field("Ammons DataLabs"),
            "VendorName": di_field("Contoso GmbH"),
            "InvoiceId": di_field("RE-10023"),
            "InvoiceDate": di_field("30.09.2025"),
            "InvoiceTotal": di_field("200,00 €"),
            "PurchaseOrder": di_field("PO-9"),
            "Items": SimpleNamespace(value_array=[item]),
        }
        result = SimpleNamespace(documents=[SimpleNamespace(fields=fields, confidence=0.9)])

        extraction = DocumentIntelligenceExtractor.to_extraction(result)

        assert extraction.vendor_name == "Contoso GmbH"
        assert extraction.contract_number == "PO-9"
        assert extraction.amount == "200,00 €"
        assert extraction.line_items[0].quantity == 2.0
        assert extraction.line_items[0].total == "200,00 €"

    def test_customer_falls_back_to_billing_recipient(self):
        fields = {"BillingAddressRecipient": di_field("Fabrikam Ltd")}
        result = SimpleNamespace(documents=[SimpleNamespace(fields=fields)])

        assert DocumentIntelligenceExtractor.to_extraction(result).customer_name == "Fabrikam Ltd"

    def test_no_documents_is_not_an_invoice(self):
        result = DocumentIntelligenceExtractor.to_extraction(SimpleNamespace(documents=[]))

        assert isinstance(result, NotInvoice)
        assert result.error == "No invoice data was found in the document."


class TestMockExtractor:
    def test_returns_canned_extraction(self):
        result = asyncio.run(MockInvoiceExtractor().extract(b"%PDF-1.4", "application/pdf"))

        assert isinstance(result, RawExtraction)
        assert result.vendor_name == "Contoso GmbH"

    def test_empty_document_is_not_an_invoice(self):
        result = asyncio.run(MockInvoiceExtractor().extract(b"", "application/pdf"))
        assert isinstance(result, NotInvoice)


class TestFactory:
    def make_settings(self, **overrides):
        values = dict(
            anthropic_api_key=None,
            anthropic_model="claude-3-7-sonnet-20250219",
            anthropic_max_tokens=4096,
            anthropic_max_retries=2,
            extraction_timeout_seconds=120,
            az_di_endpoint=None,
            az_di_api_key=None,
        )
        values.update(overrides)
        return Mock(**values)

    def test_claude_preferred_when_key_configured(self):
        extractor = create_extractor(self.make_settings(
            anthropic_api_key="sk-test",
            az_di_endpoint="https://example.cognitiveservices.azure.com/",
            az_di_api_key="key",
        ))
        assert extractor.name == "claude"
        assert extractor.model == "claude-3-7-sonnet-20250219"

    def test_document_intelligence_when_configured(self):
        extractor = create_extractor(self.make_settings(
            az_di_endpoint="https://example.cognitiveservices.azure.com/",
            az_di_api_key="key",
        ))
        assert extractor.name == "azure-document-intelligence"

    def test_mock_without_configuration(self):
        assert create_extractor(self.make_settings()).name == "mock"
