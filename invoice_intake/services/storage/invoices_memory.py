"""
In-memory invoice store (for tests and demo runs).
In production, use the SQLite store or a server database.
"""
from datetime import datetime, UTC
from typing import Dict, Optional
import uuid

from .invoice_store_base import InvoiceStoreBase
from ...core.errors import DuplicateKeyError
from ...models.invoice import Invoice, LineItem


class InMemoryInvoiceStore(InvoiceStoreBase):
    def __init__(self):
        self._invoices: Dict[str, Invoice] = {}

    def find_by_key(self, invoice_number: str, vendor_name: str) -> Optional[Invoice]:
        for invoice in self._invoices.values():
            if invoice.business_key == (invoice_number, vendor_name):
                return invoice.model_copy(deep=True)
        return None

    def insert(self, invoice: Invoice, file_path: Optional[str] = None) -> str:
        """Store a copy of the invoice and return its new ID"""
        if self.find_by_key(invoice.invoice_number, invoice.vendor_name) is not None:
            raise DuplicateKeyError(
                f"Invoice {invoice.invoice_number} from {invoice.vendor_name} already exists"
            )

        invoice_id = str(uuid.uuid4())
        now = datetime.now(UTC).isoformat()
        self._invoices[invoice_id] = invoice.model_copy(
            deep=True,
            update={"id": invoice_id, "file_path": file_path, "created_at": now, "updated_at": now},
        )
        return invoice_id

    def update(self, invoice_id: str, fields: dict) -> bool:
        if invoice_id not in self._invoices:
            return False
        fields = dict(fields, updated_at=datetime.now(UTC).isoformat())
        self._invoices[invoice_id] = self._invoices[invoice_id].model_copy(update=fields)
        return True

    def replace_line_items(self, invoice_id: str, items: list[LineItem]) -> None:
        if invoice_id in self._invoices:
            self._invoices[invoice_id] = self._invoices[invoice_id].model_copy(
                update={"line_items": [item.model_copy() for item in items]}
            )

    def delete(self, invoice_id: str) -> bool:
        return self._invoices.pop(invoice_id, None) is not None

    def get(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self._invoices.get(invoice_id)
        return invoice.model_copy(deep=True) if invoice else None

    def list_all(self) -> list:
        """List all invoices, newest first"""
        return sorted(
            (invoice.model_copy(deep=True) for invoice in self._invoices.values()),
            key=lambda invoice: invoice.created_at or "",
            reverse=True,
        )
