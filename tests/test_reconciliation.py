"""
Unit tests for the insert / update / reject decision.
"""

from datetime import date
import pytest
from invoice_intake.core.errors import DuplicateKeyError
from invoice_intake.models.invoice import Invoice, LineItem
from invoice_intake.services.reconciliation import (
    ReconciliationEngine,
    ReconciliationStatus,
)
from invoice_intake.services.storage.invoices_memory import InMemoryInvoiceStore


def make_invoice(**overrides) -> Invoice:
    values = dict(
        customer_name="Ammons DataLabs",
        vendor_name="Contoso GmbH",
        invoice_number="RE-10023",
        invoice_date=date(2025, 9, 30),
        amount=100.0,
        currency="EUR",
        line_items=[LineItem(description="Hosting", total=100.0)],
    )
    values.update(overrides)
    return Invoice(**values)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, db_path):
    if request.param == "memory":
        return InMemoryInvoiceStore()
    from invoice_intake.services.storage.invoices_sqlite import SQLiteInvoiceStore

    return SQLiteInvoiceStore(db_path)


@pytest.fixture
def engine(store):
    return ReconciliationEngine(store)


def test_first_submission_is_created(engine, store):
    outcome = engine.reconcile(make_invoice(), file_path="/uploads/a.pdf")

    assert outcome.status == ReconciliationStatus.CREATED
    assert outcome.persisted
    assert outcome.invoice.id is not None
    assert outcome.invoice.file_path == "/uploads/a.pdf"
    assert store.get(outcome.invoice.id).invoice_number == "RE-10023"


def test_second_submission_is_rejected_as_duplicate(engine, store):
    created = engine.reconcile(make_invoice()).invoice

    outcome = engine.reconcile(make_invoice(amount=250.0))

    assert outcome.status == ReconciliationStatus.REJECTED_DUPLICATE
    assert not outcome.persisted
    assert outcome.error == "Duplicate invoice"
    assert outcome.existing_invoice.id == created.id
    # Stored record is untouched
    assert store.get(created.id).amount == 100.0
    assert len(store.list_all()) == 1


def test_update_replaces_fields_and_line_items(engine, store):
    created = engine.reconcile(make_invoice(), file_path="/uploads/a.pdf").invoice

    outcome = engine.reconcile(
        make_invoice(
            amount=300.0,
            line_items=[
                LineItem(description="Hosting", total=100.0),
                LineItem(description="Support", quantity=2, unit_price=100.0, total=200.0),
            ],
        ),
        update_if_exists=True,
    )

    assert outcome.status == ReconciliationStatus.UPDATED
    assert outcome.invoice.id == created.id
    assert outcome.invoice.amount == 300.0
    assert [item.description for item in outcome.invoice.line_items] == ["Hosting", "Support"]
    # File path of the original upload is kept
    assert outcome.invoice.file_path == "/uploads/a.pdf"
    assert len(store.list_all()) == 1


def test_repeated_update_does_not_append_line_items(engine, store):
    engine.reconcile(make_invoice())
    engine.reconcile(make_invoice(), update_if_exists=True)
    outcome = engine.reconcile(make_invoice(), update_if_exists=True)

    assert len(outcome.invoice.line_items) == 1


def test_same_number_from_other_vendor_is_a_new_invoice(engine, store):
    engine.reconcile(make_invoice())

    outcome = engine.reconcile(make_invoice(vendor_name="Fabrikam Ltd"))

    assert outcome.status == ReconciliationStatus.CREATED
    assert len(store.list_all()) == 2


def test_mapping_candidate_failing_schema_is_not_persisted(engine, store):
    outcome = engine.reconcile({"vendorName": "Acme", "invoiceNumber": "1", "amount": -5})

    assert outcome.status == ReconciliationStatus.VALIDATION_FAILED
    assert outcome.details
    assert store.list_all() == []


def test_mapping_candidate_is_validated_and_created(engine):
    outcome = engine.reconcile(make_invoice().model_dump(by_alias=True))
    assert outcome.status == ReconciliationStatus.CREATED


class RacingStore(InMemoryInvoiceStore):
    """Store whose next lookup can be made to miss a key another writer already inserted"""

    def __init__(self):
        super().__init__()
        self.miss_next_lookup = False

    def find_by_key(self, invoice_number, vendor_name):
        if self.miss_next_lookup:
            self.miss_next_lookup = False
            return None
        return super().find_by_key(invoice_number, vendor_name)


def test_lost_insert_race_is_treated_as_duplicate():
    store = RacingStore()
    store.insert(make_invoice())
    store.miss_next_lookup = True
    engine = ReconciliationEngine(store)

    outcome = engine.reconcile(make_invoice())

    assert outcome.status == ReconciliationStatus.REJECTED_DUPLICATE
    assert len(store.list_all()) == 1


def test_lost_insert_race_with_update_flag_updates():
    store = RacingStore()
    store.insert(make_invoice())
    store.miss_next_lookup = True
    engine = ReconciliationEngine(store)

    outcome = engine.reconcile(make_invoice(amount=42.0), update_if_exists=True)

    assert outcome.status == ReconciliationStatus.UPDATED
    assert outcome.invoice.amount == 42.0


class FailingStore(InMemoryInvoiceStore):
    def insert(self, invoice, file_path=None):
        raise RuntimeError("disk full")


def test_store_failure_is_reported():
    outcome = ReconciliationEngine(FailingStore()).reconcile(make_invoice())

    assert outcome.status == ReconciliationStatus.PERSISTENCE_FAILED
    assert outcome.error == "Failed to save invoice: disk full"


class PhantomDuplicateStore(InMemoryInvoiceStore):
    def insert(self, invoice, file_path=None):
        raise DuplicateKeyError("unique constraint")


def test_duplicate_key_without_existing_record_is_a_persistence_failure():
    outcome = ReconciliationEngine(PhantomDuplicateStore()).reconcile(make_invoice())
    assert outcome.status == ReconciliationStatus.PERSISTENCE_FAILED


class VanishingStore(InMemoryInvoiceStore):
    """Store where the matched invoice is deleted before the update lands"""

    def update(self, invoice_id, fields):
        self.delete(invoice_id)
        return super().update(invoice_id, fields)


def test_update_of_vanished_invoice_is_a_persistence_failure():
    store = VanishingStore()
    invoice_id = store.insert(make_invoice())

    outcome = ReconciliationEngine(store).reconcile(make_invoice(amount=42.0), update_if_exists=True)

    assert outcome.status == ReconciliationStatus.PERSISTENCE_FAILED
    assert outcome.error == f"Failed to save invoice: invoice {invoice_id} no longer exists"
    assert store.list_all() == []
