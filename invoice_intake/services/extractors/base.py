"""
Common interface for invoice extractors (the AI model collaborators).

An extractor takes document bytes and returns either a RawExtraction or a
NotInvoice verdict. Text-producing models reply with a JSON envelope:

    {"isInvoice": true, "data": {...}}
    {"isInvoice": false, "error": "..."}
"""

from abc import ABC, abstractmethod
from typing import Any, Union

from ...models.invoice import NotInvoice, RawExtraction

ExtractionResult = Union[RawExtraction, NotInvoice]


class InvoiceExtractor(ABC):
    """Base class for model-backed extractors"""

    name = "base"

    @abstractmethod
    async def extract(self, document: bytes, mime_type: str) -> ExtractionResult:
        """
        Extract raw invoice fields from a document.

        Args:
            document: Raw document bytes (PDF or image)
            mime_type: Declared MIME type of the document

        Returns:
            RawExtraction, or NotInvoice when the model rejects the document

        Raises:
            ExtractionFailed: when the model call itself fails
            ExtractionParseError: when a text reply holds no recoverable JSON
        """
        pass


def interpret_envelope(payload: dict[str, Any]) -> ExtractionResult:
    """
    Turn a parsed model reply into an extraction result.

    Replies without an ``isInvoice`` flag are taken to be the invoice data itself.
    """
    if "isInvoice" in payload and not payload.get("isInvoice"):
        error = payload.get("error") or NotInvoice().error
        return NotInvoice(error=str(error))

    data = payload.get("data")
    if not isinstance(data, dict):
        data = {key: value for key, value in payload.items() if key != "isInvoice"}
    return RawExtraction.model_validate(data)
