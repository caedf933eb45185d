"""
Invoice normalization.

Turns a RawExtraction into a canonical, schema-valid Invoice:
- amounts and dates through the locale-aware parsers
- identity fields filled with placeholders (or rejected, see NormalizerConfig)
- line items coerced, refined, and defaulted to a single "Invoice total" item

Normalizing an already-canonical invoice returns an identical invoice.
"""

import time
from datetime import date, timedelta
from typing import Any, Mapping, Union
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .amounts import parse_amount
from .dates import parse_date, try_parse_date
from .line_items import coerce_line_items
from ..core.errors import ValidationError
from ..models.invoice import Invoice, RawExtraction

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_VENDOR = "Unknown Vendor"


class NormalizerConfig(BaseModel):
    """Normalization policy (loaded from settings by create_normalizer)"""
    default_currency: str = "USD"
    amount_sentinel: float = 1.0
    due_date_net_days: int | None = None
    require_identity_fields: bool = False


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_invoice(data: Union[Mapping[str, Any], Invoice]) -> Invoice:
    """
    Check a candidate against the invoice schema.

    Raises:
        ValidationError: with one entry per failing field
    """
    if isinstance(data, Invoice):
        data = data.model_dump(by_alias=True)
    try:
        return Invoice.model_validate(data)
    except PydanticValidationError as e:
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        logger.warning("Invoice failed schema validation", errors=details)
        raise ValidationError(
            "Failed to extract valid invoice data. Please check the document and try again.",
            details=details,
        )


class InvoiceNormalizer:
    """
    Builds canonical invoice candidates from raw model output.

    Usage:
        normalizer = InvoiceNormalizer(NormalizerConfig(default_currency="EUR"))
        invoice = normalizer.normalize({"vendorName": "Acme", "amount": "1.234,56"})
    """

    def __init__(self, config: NormalizerConfig = None, today=None, clock=None):
        """
        Args:
            config: Normalization policy
            today: Callable returning the current date (default: date.today)
            clock: Callable returning epoch seconds, used for placeholder invoice numbers
        """
        self.config = config or NormalizerConfig()
        self._today = today or date.today
        self._clock = clock or time.time

    def _amount(self, raw_amount) -> float:
        amount = parse_amount(raw_amount, default=self.config.amount_sentinel)
        if not amount:
            # Zero or missing totals are treated as extraction failures, not data
            logger.warning(
                "Missing or zero invoice amount, substituting sentinel",
                raw=raw_amount,
                sentinel=self.config.amount_sentinel,
            )
            return self.config.amount_sentinel
        return amount

    def _due_date(self, raw_due_date, invoice_date: str) -> str | None:
        if raw_due_date in (None, ""):
            return None
        parsed = try_parse_date(raw_due_date)
        if parsed is not None:
            return parsed
        if self.config.due_date_net_days is not None:
            derived = date.fromisoformat(invoice_date) + timedelta(days=self.config.due_date_net_days)
            logger.info(
                "Unparseable due date, derived from invoice date",
                raw=str(raw_due_date),
                net_days=self.config.due_date_net_days,
            )
            return derived.isoformat()
        return parse_date(raw_due_date, fallback=self._today())

    def _identity(self, raw: RawExtraction) -> dict:
        identity = {
            "customer_name": _text(raw.customer_name),
            "vendor_name": _text(raw.vendor_name),
            "invoice_number": _text(raw.invoice_number),
        }
        missing = [name for name, value in identity.items() if not value]
        if not missing:
            return identity

        if self.config.require_identity_fields:
            raise ValidationError(
                "Invoice is missing required identity fields",
                details=[
                    {"field": name, "message": "Field required", "type": "missing"}
                    for name in missing
                ],
            )

        logger.warning("Identity fields missing, using placeholders", missing=missing)
        identity["customer_name"] = identity["customer_name"] or UNKNOWN_CUSTOMER
        identity["vendor_name"] = identity["vendor_name"] or UNKNOWN_VENDOR
        identity["invoice_number"] = identity["invoice_number"] or f"INV-{int(self._clock() * 1000)}"
        return identity

    def build_candidate(self, raw: Union[RawExtraction, Mapping[str, Any]]) -> dict:
        """Assemble the normalized field mapping (camelCase keys) without validating it"""
        if isinstance(raw, BaseModel) and not isinstance(raw, RawExtraction):
            raw = raw.model_dump(by_alias=True)
        if not isinstance(raw, RawExtraction):
            raw = RawExtraction.model_validate(dict(raw))

        amount = self._amount(raw.amount)
        invoice_date = parse_date(raw.invoice_date, fallback=self._today())
        due_date = self._due_date(raw.due_date, invoice_date)
        identity = self._identity(raw)
        line_items = coerce_line_items(raw.line_items, amount)

        contract_number = _text(raw.contract_number) or None
        language = _text(raw.language) or None

        return {
            "customerName": identity["customer_name"],
            "vendorName": identity["vendor_name"],
            "customerAddress": _text(raw.customer_address),
            "vendorAddress": _text(raw.vendor_address),
            "invoiceNumber": identity["invoice_number"],
            "invoiceDate": invoice_date,
            "dueDate": due_date,
            "amount": amount,
            "currency": _text(raw.currency) or self.config.default_currency,
            "language": language,
            "contractNumber": contract_number,
            "lineItems": [item.model_dump(by_alias=True) for item in line_items],
        }

    def normalize(self, raw: Union[RawExtraction, Mapping[str, Any]]) -> Invoice:
        """
        Normalize raw extraction output into a validated Invoice.

        Raises:
            ValidationError: when the candidate fails the schema (e.g. a negative
                amount) or, with require_identity_fields, when identity fields are absent
        """
        candidate = self.build_candidate(raw)
        invoice = validate_invoice(candidate)
        logger.info(
            "Invoice normalized",
            invoice_number=invoice.invoice_number,
            vendor=invoice.vendor_name,
            amount=invoice.amount,
            line_items=len(invoice.line_items),
        )
        return invoice


def create_normalizer(**overrides) -> InvoiceNormalizer:
    """
    Factory creating a normalizer from settings with optional overrides.
    """
    from ..core.config import settings

    values = {
        "default_currency": settings.default_currency,
        "amount_sentinel": settings.amount_sentinel,
        "due_date_net_days": settings.due_date_net_days,
        "require_identity_fields": settings.require_identity_fields,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return InvoiceNormalizer(NormalizerConfig(**values))
