from typing import Any
from pydantic import Field
from .invoice import CamelModel, Invoice


class ProcessingResult(CamelModel):
    """
    Outcome of one invoice-processing call.

    Successful calls carry ``invoice``; failures carry ``error`` plus a stable
    ``code`` from the error taxonomy. Duplicate rejections also carry the
    stored ``existing_invoice`` so the caller can ask the user what to do.
    """
    success: bool
    message: str | None = None
    invoice: Invoice | None = None
    error: str | None = None
    code: str | None = None
    details: Any = None
    existing_invoice: Invoice | None = Field(default=None)
