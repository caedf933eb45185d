"""
End-to-end invoice processing.

extract -> normalize/validate -> store file -> reconcile, with every failure
converted into a ProcessingResult at this boundary. Callers branch on
``success`` and ``code``; nothing here is retried.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union
from loguru import logger

from .extractors.base import InvoiceExtractor
from .files import LocalFileStore
from .normalizer import InvoiceNormalizer
from .reconciliation import ReconciliationEngine, ReconciliationStatus
from ..core.errors import (
    DuplicateInvoice,
    InvoiceIntakeError,
    NotAnInvoice,
    PersistenceError,
    ValidationError,
)
from ..models.invoice import Invoice, NotInvoice
from ..models.results import ProcessingResult


@dataclass
class ProgressEvent:
    """Checkpoint notification pushed to an optional progress sink"""
    type: str
    content: Any = None


ProgressSink = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class InvoiceProcessor:
    """
    Orchestrates one invoice-processing call.

    All collaborators are injected:
        processor = InvoiceProcessor(
            extractor=ClaudeInvoiceExtractor(client, model),
            normalizer=InvoiceNormalizer(),
            engine=ReconciliationEngine(SQLiteInvoiceStore("invoices.db")),
            file_store=LocalFileStore("uploads"),
        )
        result = await processor.process(pdf_bytes, "application/pdf", "invoice.pdf")
    """

    def __init__(
        self,
        extractor: InvoiceExtractor,
        normalizer: InvoiceNormalizer,
        engine: ReconciliationEngine,
        file_store: Optional[LocalFileStore] = None,
    ):
        self.extractor = extractor
        self.normalizer = normalizer
        self.engine = engine
        self.file_store = file_store

    async def _notify(self, progress: Optional[ProgressSink], event_type: str, content: Any = None):
        if progress is None:
            return
        try:
            result = progress(ProgressEvent(type=event_type, content=content))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Progress reporting never fails the pipeline
            logger.warning("Progress sink failed", event_type=event_type, error=str(e))

    async def process(
        self,
        document: bytes,
        mime_type: str,
        file_name: str,
        update_if_exists: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> ProcessingResult:
        """
        Process an uploaded document into a stored invoice.

        Args:
            document: Raw document bytes
            mime_type: Declared MIME type
            file_name: Original file name (extension is kept for the stored copy)
            update_if_exists: Update a stored invoice with the same business key
                instead of rejecting the submission as a duplicate
            progress: Optional sink notified at each checkpoint

        Returns:
            ProcessingResult (never raises)
        """
        logger.info(
            "Starting invoice processing",
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=len(document),
            update_if_exists=update_if_exists,
        )
        try:
            invoice = await self._extract_and_normalize(document, mime_type, progress)
            file_path = self._store_file(document, file_name)
            result = self._reconcile(invoice, update_if_exists, file_path)
        except DuplicateInvoice as e:
            return ProcessingResult(
                success=False,
                error=e.error,
                code=e.code,
                message=e.message,
                existing_invoice=e.existing_invoice,
            )
        except InvoiceIntakeError as e:
            logger.warning("Invoice processing failed", code=e.code, error=e.error)
            return ProcessingResult(success=False, error=e.error, code=e.code, details=e.details)
        except Exception as e:
            logger.exception("Unexpected error while processing invoice")
            return ProcessingResult(
                success=False,
                error="Failed to process invoice",
                code="InternalError",
                details=str(e),
            )

        await self._notify(progress, "persisted", {"id": result.invoice.id})
        await self._notify(progress, "invoice-processed", result.invoice.model_dump(mode="json", by_alias=True))
        return result

    async def _extract_and_normalize(
        self, document: bytes, mime_type: str, progress: Optional[ProgressSink]
    ) -> Invoice:
        extraction = await self.extractor.extract(document, mime_type)
        if isinstance(extraction, NotInvoice):
            raise NotAnInvoice(extraction.error)
        await self._notify(progress, "extracted", {"extractor": self.extractor.name})

        invoice = self.normalizer.normalize(extraction)
        await self._notify(progress, "validated", {
            "invoiceNumber": invoice.invoice_number,
            "vendorName": invoice.vendor_name,
        })
        return invoice

    def _store_file(self, document: bytes, file_name: str) -> Optional[str]:
        if self.file_store is None:
            return None
        try:
            return self.file_store.store(document, file_name)
        except OSError as e:
            raise PersistenceError(f"Failed to store uploaded file: {e}")

    def _reconcile(self, invoice: Invoice, update_if_exists: bool, file_path: Optional[str]) -> ProcessingResult:
        outcome = self.engine.reconcile(invoice, update_if_exists=update_if_exists, file_path=file_path)

        if outcome.status == ReconciliationStatus.CREATED:
            return ProcessingResult(success=True, message="Invoice processed successfully", invoice=outcome.invoice)
        if outcome.status == ReconciliationStatus.UPDATED:
            return ProcessingResult(success=True, message="Invoice updated successfully", invoice=outcome.invoice)
        if outcome.status == ReconciliationStatus.REJECTED_DUPLICATE:
            raise DuplicateInvoice(
                "Duplicate invoice",
                existing_invoice=outcome.existing_invoice,
                message=(
                    f"An invoice with the number {invoice.invoice_number} "
                    f"from vendor {invoice.vendor_name} already exists."
                ),
            )
        if outcome.status == ReconciliationStatus.VALIDATION_FAILED:
            raise ValidationError(outcome.error, details=outcome.details)
        if file_path:
            logger.warning("Stored document left without invoice record", file_path=file_path)
        raise PersistenceError(outcome.error)
