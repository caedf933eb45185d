"""
Invoice extraction with Anthropic Claude.

The document is sent as a base64 content block together with the extraction
prompt. Claude answers in free text, so the reply goes through the
extraction-result parser before the envelope is interpreted.
"""

import base64
import anthropic
from loguru import logger

from .base import ExtractionResult, InvoiceExtractor, interpret_envelope
from .prompts import INVOICE_EXTRACTION_PROMPT
from ..extraction_parser import parse
from ...core.errors import ExtractionFailed
from ...models.invoice import NotInvoice


class ClaudeInvoiceExtractor(InvoiceExtractor):
    """
    Extractor backed by the Anthropic Messages API.

    Usage:
        client = anthropic.AsyncAnthropic(api_key=key, max_retries=2)
        extractor = ClaudeInvoiceExtractor(client, model="claude-3-7-sonnet-20250219")
        result = await extractor.extract(pdf_bytes, "application/pdf")
    """

    name = "claude"

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        model: str,
        max_tokens: int = 4096,
        prompt: str = INVOICE_EXTRACTION_PROMPT,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.prompt = prompt

    @staticmethod
    def _document_block(document: bytes, mime_type: str) -> dict:
        data = base64.standard_b64encode(document).decode("ascii")
        block_type = "document" if mime_type == "application/pdf" else "image"
        return {
            "type": block_type,
            "source": {"type": "base64", "media_type": mime_type, "data": data},
        }

    async def complete(self, document: bytes, mime_type: str) -> str:
        """Send the document to Claude and return the concatenated text reply"""
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                messages=[{
                    "role": "user",
                    "content": [
                        self._document_block(document, mime_type),
                        {"type": "text", "text": self.prompt.format(mime_type=mime_type)},
                    ],
                }],
            )
        except anthropic.APIError as e:
            logger.error("Claude extraction request failed", model=self.model, error=str(e))
            raise ExtractionFailed(f"Invoice extraction failed: {e}")

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def extract(self, document: bytes, mime_type: str) -> ExtractionResult:
        logger.info("Extracting invoice with Claude", model=self.model, size_bytes=len(document), mime_type=mime_type)

        text = await self.complete(document, mime_type)
        logger.debug("Claude extraction reply received", reply_chars=len(text))

        result = interpret_envelope(parse(text))
        if isinstance(result, NotInvoice):
            logger.info("Claude rejected document as non-invoice", reason=result.error)
        return result


def create_claude_extractor(settings) -> ClaudeInvoiceExtractor:
    client = anthropic.AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        timeout=settings.extraction_timeout_seconds,
    )
    return ClaudeInvoiceExtractor(
        client,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
    )
