"""
Error taxonomy for invoice processing.

Every failure the pipeline can report derives from InvoiceIntakeError and
carries a stable ``code``. The processor converts these into structured
results at its boundary, so callers branch on ``success``/``code`` rather
than on exceptions.
"""

from typing import Any, Optional


class InvoiceIntakeError(Exception):
    """Base class for all reportable processing failures"""

    code = "InternalError"

    def __init__(self, error: str, details: Optional[Any] = None):
        super().__init__(error)
        self.error = error
        self.details = details


class NotAnInvoice(InvoiceIntakeError):
    """The upstream model decided the document is not an invoice"""

    code = "NotAnInvoice"


class ExtractionFailed(InvoiceIntakeError):
    """The call to the upstream model failed before producing output"""

    code = "ExtractionFailed"


class ExtractionParseError(InvoiceIntakeError):
    """No JSON object could be recovered from the model's text output"""

    code = "ExtractionParseError"

    def __init__(self, error: str, raw_text: str = "", reasons: Optional[list] = None):
        preview = raw_text.strip()
        if len(preview) > 120:
            preview = preview[:60] + " ... " + preview[-60:]
        super().__init__(
            error,
            details={
                "raw_length": len(raw_text),
                "preview": preview,
                "reasons": reasons or [],
            },
        )


class ValidationError(InvoiceIntakeError):
    """Normalized candidate failed schema checks; details list per-field errors"""

    code = "ValidationError"


class DuplicateInvoice(InvoiceIntakeError):
    """An invoice with the same (invoice number, vendor) is already stored"""

    code = "DuplicateInvoice"

    def __init__(self, error: str, existing_invoice: Any = None, message: Optional[str] = None):
        super().__init__(error)
        self.existing_invoice = existing_invoice
        self.message = message


class PersistenceError(InvoiceIntakeError):
    """A store or file operation failed"""

    code = "PersistenceError"


class DuplicateKeyError(PersistenceError):
    """Raised by a store when an insert collides with the business-key index"""

    code = "DuplicateKey"
