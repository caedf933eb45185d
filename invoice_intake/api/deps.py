"""
Dependency providers for the API.

Each collaborator is built once from settings and handed to routes through
FastAPI's Depends, so tests can replace any of them via
``app.dependency_overrides``.
"""

from functools import lru_cache
from fastapi import Depends

from ..core.config import settings
from ..services.events.event_publisher import EventPublisher, create_event_publisher
from ..services.extractors.base import InvoiceExtractor
from ..services.extractors.factory import create_extractor
from ..services.files import LocalFileStore
from ..services.normalizer import create_normalizer
from ..services.pipeline import InvoiceProcessor
from ..services.reconciliation import ReconciliationEngine
from ..services.storage.invoice_store_base import InvoiceStoreBase
from ..services.storage.invoices_sqlite import SQLiteInvoiceStore


@lru_cache
def get_store() -> InvoiceStoreBase:
    return SQLiteInvoiceStore(settings.database_path)


@lru_cache
def get_extractor() -> InvoiceExtractor:
    return create_extractor(settings)


@lru_cache
def get_file_store() -> LocalFileStore:
    return LocalFileStore(settings.uploads_dir)


@lru_cache
def get_event_publisher() -> EventPublisher:
    return create_event_publisher(settings)


def get_processor(
    extractor: InvoiceExtractor = Depends(get_extractor),
    store: InvoiceStoreBase = Depends(get_store),
    file_store: LocalFileStore = Depends(get_file_store),
) -> InvoiceProcessor:
    return InvoiceProcessor(
        extractor=extractor,
        normalizer=create_normalizer(),
        engine=ReconciliationEngine(store),
        file_store=file_store,
    )
