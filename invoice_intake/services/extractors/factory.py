from loguru import logger

from .base import InvoiceExtractor
from .document_intelligence import DocumentIntelligenceExtractor, MockInvoiceExtractor


def create_extractor(settings) -> InvoiceExtractor:
    """
    Pick the extraction backend from configuration.

    Claude (text + JSON recovery) is preferred, then Azure Document
    Intelligence (structured fields), then the mock extractor.
    """
    if settings.anthropic_api_key:
        from .claude import create_claude_extractor

        logger.info("Invoice extraction backend selected", backend="claude", model=settings.anthropic_model)
        return create_claude_extractor(settings)

    if settings.az_di_endpoint and settings.az_di_api_key:
        logger.info("Invoice extraction backend selected", backend="azure-document-intelligence")
        return DocumentIntelligenceExtractor(settings.az_di_endpoint, settings.az_di_api_key)

    logger.warning("Invoice extraction backend selected", backend="mock")
    return MockInvoiceExtractor()
