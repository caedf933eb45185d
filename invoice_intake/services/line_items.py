"""
Line-item cleanup.

Recurring-service invoices often embed the billing period and a service
identifier in the free-text description, e.g.
"Hosting Dienst: web_01 01.05.14-15.05.14". ``refine`` pulls those out;
``coerce_line_item`` turns a raw model line item into a canonical one.
"""

import re
from dataclasses import dataclass
from typing import Optional
from loguru import logger

from .amounts import parse_amount
from .dates import parse_date
from ..models.invoice import LineItem, RawLineItem, ServicePeriod

SERVICE_PERIOD_PATTERN = re.compile(
    r"(\d{1,2}\.\d{1,2}\.\d{2}(?:\d{2})?)\s*[-–]\s*(\d{1,2}\.\d{1,2}\.\d{2}(?:\d{2})?)(?!\d)"
)
SERVICE_ID_PATTERN = re.compile(r"\b(?:Service|Dienst)\s*:\s*(\w+)", re.IGNORECASE)

DEFAULT_DESCRIPTION = "Unspecified item"
DEFAULT_LINE_ITEM_DESCRIPTION = "Invoice total"


@dataclass
class RefinedDescription:
    description: str
    service_period: Optional[ServicePeriod] = None
    service_id: Optional[str] = None


def _tidy(text: str) -> str:
    text = re.sub(r"\(\s*\)|\[\s*\]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text.strip(" ,;:-–")


def refine(description) -> RefinedDescription:
    """
    Split an embedded service period and service identifier out of a description.

    The period range is removed from the description; the service identifier
    is left in place.
    """
    text = str(description).strip() if description is not None else ""

    service_period = None
    match = SERVICE_PERIOD_PATTERN.search(text)
    if match:
        service_period = ServicePeriod(
            start=parse_date(match.group(1)),
            end=parse_date(match.group(2)),
        )
        text = _tidy(text[:match.start()] + " " + text[match.end():])

    service_id = None
    id_match = SERVICE_ID_PATTERN.search(text)
    if id_match:
        service_id = id_match.group(1)

    return RefinedDescription(
        description=text or DEFAULT_DESCRIPTION,
        service_period=service_period,
        service_id=service_id,
    )


def _existing_service_period(value) -> Optional[ServicePeriod]:
    if isinstance(value, ServicePeriod):
        return value
    if isinstance(value, dict) and value.get("start") and value.get("end"):
        return ServicePeriod(start=parse_date(value["start"]), end=parse_date(value["end"]))
    return None


def coerce_line_item(raw: RawLineItem) -> LineItem:
    """Coerce numeric fields and refine the description of one raw line item"""
    quantity = parse_amount(raw.quantity, default=0.0)
    if quantity <= 0:
        quantity = 1.0
    unit_price = parse_amount(raw.unit_price, default=0.0)

    if raw.total is None and raw.unit_price is not None:
        total = round(quantity * unit_price, 2)
    else:
        total = parse_amount(raw.total, default=0.0)

    refined = refine(raw.description)
    service_id = refined.service_id
    if service_id is None and raw.service_id not in (None, ""):
        service_id = str(raw.service_id).strip()

    return LineItem(
        description=refined.description,
        quantity=quantity,
        unit_price=unit_price,
        total=total,
        service_id=service_id,
        service_period=refined.service_period or _existing_service_period(raw.service_period),
    )


def default_line_item(amount: float) -> LineItem:
    """Single line item standing in for the whole invoice when none were extracted"""
    return LineItem(
        description=DEFAULT_LINE_ITEM_DESCRIPTION,
        quantity=1,
        unit_price=amount,
        total=amount,
    )


def coerce_line_items(raw_items: list[RawLineItem] | None, amount: float) -> list[LineItem]:
    items = [coerce_line_item(item) for item in raw_items or []]
    if not items:
        logger.debug("No line items extracted, synthesizing default", amount=amount)
        items = [default_line_item(amount)]
    return items
