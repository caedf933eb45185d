"""
SQLite-based invoice store.

Provides persistent storage of invoices and their line items with a unique
business-key index, so concurrent submissions of the same invoice cannot both
be inserted.
"""

import sqlite3
import uuid
from datetime import datetime, UTC
from typing import Optional

from .invoice_store_base import InvoiceStoreBase
from ...core.errors import DuplicateKeyError
from ...models.invoice import Invoice, LineItem

INVOICE_COLUMNS = (
    "customer_name",
    "vendor_name",
    "customer_address",
    "vendor_address",
    "invoice_number",
    "invoice_date",
    "due_date",
    "amount",
    "currency",
    "language",
    "contract_number",
)


class SQLiteInvoiceStore(InvoiceStoreBase):
    """
    SQLite-backed invoice store with persistent storage.

    Features:
    - Persistent storage across application restarts
    - UNIQUE (invoice_number, vendor_name) business key
    - Line items cascade-deleted with their invoice
    - Multi-statement writes run in a single transaction
    """

    def __init__(self, db_path: str = "invoices.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: invoices.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create tables if they don't exist"""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                id TEXT PRIMARY KEY,
                customer_name TEXT NOT NULL,
                vendor_name TEXT NOT NULL,
                customer_address TEXT NOT NULL DEFAULT '',
                vendor_address TEXT NOT NULL DEFAULT '',
                invoice_number TEXT NOT NULL,
                invoice_date TEXT NOT NULL,
                due_date TEXT,
                amount REAL NOT NULL,
                currency TEXT,
                language TEXT,
                contract_number TEXT,
                file_path TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS line_items (
                id TEXT PRIMARY KEY,
                invoice_id TEXT NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                description TEXT NOT NULL,
                quantity REAL,
                unit_price REAL,
                total REAL NOT NULL,
                service_id TEXT,
                service_start TEXT,
                service_end TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Business key for duplicate detection
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_invoice_business_key
            ON invoices(invoice_number, vendor_name)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_line_items_invoice
            ON line_items(invoice_id, position)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory and foreign keys enabled"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @staticmethod
    def _scalar_values(fields: dict) -> dict:
        values = {}
        for column in INVOICE_COLUMNS:
            if column not in fields:
                continue
            value = fields[column]
            if column in ("invoice_date", "due_date") and value is not None:
                value = value.isoformat() if hasattr(value, "isoformat") else str(value)
            values[column] = value
        return values

    @staticmethod
    def _insert_line_items(cursor: sqlite3.Cursor, invoice_id: str, items: list[LineItem]):
        created_at = datetime.now(UTC).isoformat()
        cursor.executemany("""
            INSERT INTO line_items (
                id, invoice_id, position, description, quantity, unit_price,
                total, service_id, service_start, service_end, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (
                str(uuid.uuid4()),
                invoice_id,
                position,
                item.description,
                item.quantity,
                item.unit_price,
                item.total,
                item.service_id,
                item.service_period.start.isoformat() if item.service_period else None,
                item.service_period.end.isoformat() if item.service_period else None,
                created_at,
            )
            for position, item in enumerate(items)
        ])

    def _load_line_items(self, conn: sqlite3.Connection, invoice_id: str) -> list[LineItem]:
        rows = conn.execute("""
            SELECT description, quantity, unit_price, total, service_id, service_start, service_end
            FROM line_items
            WHERE invoice_id = ?
            ORDER BY position
        """, (invoice_id,)).fetchall()

        return [
            LineItem(
                description=row["description"],
                quantity=row["quantity"] if row["quantity"] is not None else 1.0,
                unit_price=row["unit_price"] if row["unit_price"] is not None else 0.0,
                total=row["total"],
                service_id=row["service_id"],
                service_period=(
                    {"start": row["service_start"], "end": row["service_end"]}
                    if row["service_start"] and row["service_end"] else None
                ),
            )
            for row in rows
        ]

    def _row_to_invoice(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Invoice:
        return Invoice(
            id=row["id"],
            customer_name=row["customer_name"],
            vendor_name=row["vendor_name"],
            customer_address=row["customer_address"],
            vendor_address=row["vendor_address"],
            invoice_number=row["invoice_number"],
            invoice_date=row["invoice_date"],
            due_date=row["due_date"],
            amount=row["amount"],
            currency=row["currency"],
            language=row["language"],
            contract_number=row["contract_number"],
            line_items=self._load_line_items(conn, row["id"]),
            file_path=row["file_path"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def find_by_key(self, invoice_number: str, vendor_name: str) -> Optional[Invoice]:
        """
        Find an invoice by (invoice_number, vendor_name), exact match.
        """
        conn = self._get_connection()
        try:
            row = conn.execute("""
                SELECT * FROM invoices
                WHERE invoice_number = ? AND vendor_name = ?
            """, (invoice_number, vendor_name)).fetchone()
            return self._row_to_invoice(conn, row) if row else None
        finally:
            conn.close()

    def insert(self, invoice: Invoice, file_path: Optional[str] = None) -> str:
        """
        Insert invoice and line items in one transaction.

        Returns:
            Invoice ID (UUID string)
        """
        invoice_id = str(uuid.uuid4())
        now = datetime.now(UTC).isoformat()
        values = self._scalar_values(invoice.scalar_fields())
        values.update({"id": invoice_id, "file_path": file_path, "created_at": now, "updated_at": now})

        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO invoices ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            self._insert_line_items(cursor, invoice_id, invoice.line_items)
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e):
                raise DuplicateKeyError(
                    f"Invoice {invoice.invoice_number} from {invoice.vendor_name} already exists"
                ) from e
            raise
        finally:
            conn.close()

        return invoice_id

    def update(self, invoice_id: str, fields: dict) -> bool:
        """
        Update scalar fields of an invoice.

        Returns:
            True if successful, False if invoice not found
        """
        values = self._scalar_values(fields)
        values["updated_at"] = datetime.now(UTC).isoformat()
        assignments = ", ".join(f"{column} = ?" for column in values)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE invoices SET {assignments} WHERE id = ?",
                (*values.values(), invoice_id),
            )
            rows_affected = cursor.rowcount
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e):
                raise DuplicateKeyError(
                    f"Another invoice already uses number {fields.get('invoice_number')} "
                    f"for vendor {fields.get('vendor_name')}"
                ) from e
            raise
        finally:
            conn.close()

        return rows_affected > 0

    def replace_line_items(self, invoice_id: str, items: list[LineItem]) -> None:
        """
        Replace all line items of an invoice in one transaction.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM line_items WHERE invoice_id = ?", (invoice_id,))
            self._insert_line_items(cursor, invoice_id, items)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete(self, invoice_id: str) -> bool:
        """
        Delete an invoice after its line items.

        Returns:
            True if successful, False if invoice not found
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM line_items WHERE invoice_id = ?", (invoice_id,))
            cursor.execute("DELETE FROM invoices WHERE id = ?", (invoice_id,))
            rows_affected = cursor.rowcount
            conn.commit()
        finally:
            conn.close()

        return rows_affected > 0

    def get(self, invoice_id: str) -> Optional[Invoice]:
        """
        Get an invoice by ID.

        Returns:
            Invoice with line items, or None if not found
        """
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
            return self._row_to_invoice(conn, row) if row else None
        finally:
            conn.close()

    def list_all(self) -> list:
        """
        List all invoices (ordered by creation time, newest first).
        """
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT * FROM invoices ORDER BY created_at DESC").fetchall()
            return [self._row_to_invoice(conn, row) for row in rows]
        finally:
            conn.close()

