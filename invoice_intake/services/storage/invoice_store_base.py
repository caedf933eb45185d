"""
Abstract base class for invoice store implementations.

Defines the interface the reconciliation engine and API depend on,
enabling dependency injection and easy swapping of storage backends.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ...models.invoice import Invoice, LineItem


class InvoiceStoreBase(ABC):
    """
    Abstract base class for invoice persistence.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-instance deployments)
    - PostgreSQL (for production)

    Implementations must keep the business key (invoice_number, vendor_name)
    unique and raise DuplicateKeyError from insert() when it would be violated.
    """

    @abstractmethod
    def find_by_key(self, invoice_number: str, vendor_name: str) -> Optional[Invoice]:
        """
        Find an invoice by its business key.

        Matching is exact and case-sensitive on both fields.

        Returns:
            The stored invoice (with line items) or None
        """
        pass

    @abstractmethod
    def insert(self, invoice: Invoice, file_path: Optional[str] = None) -> str:
        """
        Persist a new invoice together with its line items.

        Args:
            invoice: Validated invoice (its id, if any, is ignored)
            file_path: Stored document path, if the upload was saved

        Returns:
            Storage-assigned invoice ID

        Raises:
            DuplicateKeyError: if the business key is already taken
        """
        pass

    @abstractmethod
    def update(self, invoice_id: str, fields: dict) -> bool:
        """
        Replace scalar fields of an existing invoice in place.

        Args:
            invoice_id: Storage identifier
            fields: Mapping of snake_case scalar field names to new values

        Returns:
            True if successful, False if the invoice was not found
        """
        pass

    @abstractmethod
    def replace_line_items(self, invoice_id: str, items: list[LineItem]) -> None:
        """
        Atomically delete all line items of an invoice and insert ``items`` in order.
        """
        pass

    @abstractmethod
    def delete(self, invoice_id: str) -> bool:
        """
        Delete an invoice, removing its line items first.

        Returns:
            True if successful, False if the invoice was not found
        """
        pass

    @abstractmethod
    def get(self, invoice_id: str) -> Optional[Invoice]:
        """
        Get an invoice with its line items by storage identifier.
        """
        pass

    @abstractmethod
    def list_all(self) -> list[Invoice]:
        """
        List all invoices with line items (newest first).
        """
        pass
