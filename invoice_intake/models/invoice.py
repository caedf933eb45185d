from datetime import date
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (model output and API bodies) while keeping snake_case attributes"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Raw extraction (untyped model output)
# ---------------------------------------------------------------------------

class RawLineItem(CamelModel):
    description: Any = None
    quantity: Any = None
    unit_price: Any = None
    total: Any = None
    service_id: Any = None
    service_period: Any = None


class RawExtraction(CamelModel):
    """
    Partial invoice record as emitted by the extraction model.

    Every field is optional and loosely typed; the normalizer owns all coercion.
    Unknown keys are ignored.
    """
    customer_name: Any = None
    vendor_name: Any = None
    customer_address: Any = None
    vendor_address: Any = None
    invoice_number: Any = None
    invoice_date: Any = None
    due_date: Any = None
    amount: Any = None
    currency: Any = None
    language: Any = None
    contract_number: Any = None
    line_items: list[RawLineItem] | None = None

    @field_validator("line_items", mode="before")
    @classmethod
    def _keep_mapping_items(cls, value):
        # Models occasionally emit a bare string or mixed list here
        if value is None:
            return None
        if not isinstance(value, list):
            return []
        return [
            item.model_dump(by_alias=True) if isinstance(item, BaseModel) and not isinstance(item, RawLineItem) else item
            for item in value
            if isinstance(item, (dict, BaseModel))
        ]


class NotInvoice(BaseModel):
    """Extraction verdict for documents the model does not consider invoices"""
    error: str = "The uploaded document does not appear to be an invoice."


# ---------------------------------------------------------------------------
# Canonical invoice
# ---------------------------------------------------------------------------

class ServicePeriod(CamelModel):
    start: date
    end: date


class LineItem(CamelModel):
    description: str
    quantity: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    unit_price: float = Field(default=0.0, allow_inf_nan=False)
    total: float = Field(allow_inf_nan=False)
    service_id: str | None = None
    service_period: ServicePeriod | None = None


class Invoice(CamelModel):
    """
    Canonical invoice record.

    Business key is (invoice_number, vendor_name). ``id`` is assigned by the
    store on first persistence; ``amount`` is authoritative and is not derived
    from line items.
    """
    id: str | None = None
    customer_name: str = Field(min_length=1)
    vendor_name: str = Field(min_length=1)
    customer_address: str = ""
    vendor_address: str = ""
    invoice_number: str = Field(min_length=1)
    invoice_date: date
    due_date: date | None = None
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: str | None = None
    language: str | None = None
    contract_number: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    file_path: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def business_key(self) -> tuple[str, str]:
        return (self.invoice_number, self.vendor_name)

    def scalar_fields(self) -> dict:
        """Fields replaced in place when an existing invoice is updated"""
        return self.model_dump(
            exclude={"id", "line_items", "file_path", "created_at", "updated_at"}
        )


class InvoiceUpdate(CamelModel):
    """Request body for the invoice editing endpoint"""
    customer_name: str = Field(min_length=1)
    vendor_name: str = Field(min_length=1)
    customer_address: str = ""
    vendor_address: str = ""
    invoice_number: str = Field(min_length=1)
    invoice_date: date
    due_date: date | None = None
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: str | None = None
    language: str | None = None
    contract_number: str | None = None
    line_items: list[LineItem] | None = None
