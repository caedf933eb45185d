"""
Reconciliation of normalized invoices against the store.

Decides, per candidate, whether to create a new record, update the record
that shares its business key (invoice_number, vendor_name), or reject the
candidate as a duplicate.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union
from loguru import logger
from pydantic import BaseModel

from .normalizer import validate_invoice
from .storage.invoice_store_base import InvoiceStoreBase
from ..core.errors import DuplicateKeyError, ValidationError
from ..models.invoice import Invoice


class ReconciliationStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    REJECTED_DUPLICATE = "rejected_duplicate"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"


class ReconciliationOutcome(BaseModel):
    """Result of reconciling one candidate with the store"""
    status: ReconciliationStatus
    invoice: Optional[Invoice] = None
    existing_invoice: Optional[Invoice] = None
    error: Optional[str] = None
    details: Any = None

    @property
    def persisted(self) -> bool:
        return self.status in (ReconciliationStatus.CREATED, ReconciliationStatus.UPDATED)


class ReconciliationEngine:
    """
    Applies the insert / update / reject decision for invoice candidates.

    The store is injected so tests and alternative backends can be swapped in.
    The business-key lookup and the subsequent write are separate store calls;
    a store that enforces the unique key (e.g. SQLiteInvoiceStore) raises
    DuplicateKeyError on a lost race, which is handled like a found duplicate.
    """

    def __init__(self, store: InvoiceStoreBase):
        self.store = store

    def reconcile(
        self,
        candidate: Union[Invoice, Mapping[str, Any]],
        update_if_exists: bool = False,
        file_path: Optional[str] = None,
    ) -> ReconciliationOutcome:
        """
        Reconcile a candidate invoice with stored invoices.

        Args:
            candidate: Normalized invoice (mappings are schema-validated first)
            update_if_exists: Update the stored invoice instead of rejecting a duplicate
            file_path: Stored document path recorded on newly created invoices

        Returns:
            ReconciliationOutcome describing what happened
        """
        try:
            invoice = candidate if isinstance(candidate, Invoice) else validate_invoice(candidate)
        except ValidationError as e:
            return ReconciliationOutcome(
                status=ReconciliationStatus.VALIDATION_FAILED,
                error=e.error,
                details=e.details,
            )

        try:
            existing = self.store.find_by_key(invoice.invoice_number, invoice.vendor_name)
            if existing is None:
                try:
                    return self._create(invoice, file_path)
                except DuplicateKeyError:
                    # Another submission won the race between lookup and insert
                    logger.warning(
                        "Concurrent insert detected for business key",
                        invoice_number=invoice.invoice_number,
                        vendor=invoice.vendor_name,
                    )
                    existing = self.store.find_by_key(invoice.invoice_number, invoice.vendor_name)
                    if existing is None:
                        raise

            if not update_if_exists:
                logger.info(
                    "Duplicate invoice rejected",
                    invoice_number=invoice.invoice_number,
                    vendor=invoice.vendor_name,
                    existing_id=existing.id,
                )
                return ReconciliationOutcome(
                    status=ReconciliationStatus.REJECTED_DUPLICATE,
                    existing_invoice=existing,
                    error="Duplicate invoice",
                )

            return self._update(existing, invoice)

        except Exception as e:
            logger.error(
                "Invoice persistence failed",
                invoice_number=invoice.invoice_number,
                vendor=invoice.vendor_name,
                error=str(e),
            )
            return ReconciliationOutcome(
                status=ReconciliationStatus.PERSISTENCE_FAILED,
                error=f"Failed to save invoice: {e}",
            )

    def _create(self, invoice: Invoice, file_path: Optional[str]) -> ReconciliationOutcome:
        invoice_id = self.store.insert(invoice, file_path=file_path)
        logger.info(
            "Invoice created",
            invoice_id=invoice_id,
            invoice_number=invoice.invoice_number,
            vendor=invoice.vendor_name,
            line_items=len(invoice.line_items),
        )
        created = self.store.get(invoice_id) or invoice.model_copy(
            update={"id": invoice_id, "file_path": file_path}
        )
        return ReconciliationOutcome(status=ReconciliationStatus.CREATED, invoice=created)

    def _update(self, existing: Invoice, invoice: Invoice) -> ReconciliationOutcome:
        if not self.store.update(existing.id, invoice.scalar_fields()):
            # Deleted between lookup and update
            logger.warning("Invoice vanished before update", invoice_id=existing.id)
            return ReconciliationOutcome(
                status=ReconciliationStatus.PERSISTENCE_FAILED,
                error=f"Failed to save invoice: invoice {existing.id} no longer exists",
            )
        self.store.replace_line_items(existing.id, invoice.line_items)
        logger.info(
            "Invoice updated",
            invoice_id=existing.id,
            invoice_number=invoice.invoice_number,
            vendor=invoice.vendor_name,
            line_items=len(invoice.line_items),
        )
        updated = self.store.get(existing.id) or invoice.model_copy(
            update={"id": existing.id, "file_path": existing.file_path}
        )
        return ReconciliationOutcome(status=ReconciliationStatus.UPDATED, invoice=updated)
