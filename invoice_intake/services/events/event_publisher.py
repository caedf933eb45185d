"""
Azure Service Bus event publishing for processed invoices.

Enables downstream systems to react to invoice intake:
- Accounting systems can ingest newly stored invoices
- Audit systems can track every create/update
"""

import asyncio
import json
from datetime import datetime, UTC
from typing import Optional
from dataclasses import dataclass, asdict
from loguru import logger


@dataclass
class InvoiceProcessedEvent:
    """
    Event published when an invoice has been created or updated in the store.
    """

    invoice_id: str
    invoice_number: str
    vendor: str
    customer: str
    amount: float
    currency: Optional[str]
    line_item_count: int
    event_type: str = "InvoiceProcessed"
    timestamp: Optional[str] = None

    def __post_init__(self):
        """Set timestamp if not provided"""
        if self.timestamp is None:
            self.timestamp = datetime.now(UTC).isoformat()

    @classmethod
    def from_invoice_payload(cls, payload: dict) -> "InvoiceProcessedEvent":
        """Build the event from a camelCase invoice dump"""
        return cls(
            invoice_id=payload.get("id") or "",
            invoice_number=payload.get("invoiceNumber") or "",
            vendor=payload.get("vendorName") or "",
            customer=payload.get("customerName") or "",
            amount=payload.get("amount") or 0.0,
            currency=payload.get("currency"),
            line_item_count=len(payload.get("lineItems") or []),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class EventPublisher:
    """
    Publishes events to Azure Service Bus (Queue or Topic).

    Usage:
        from azure.servicebus import ServiceBusClient
        client = ServiceBusClient.from_connection_string(conn_str)
        sender = client.get_queue_sender(queue_name="invoice-events")
        publisher = EventPublisher(service_bus_sender=sender)

        # Disabled mode (no Service Bus configured)
        publisher = EventPublisher(service_bus_sender=None)
    """

    def __init__(
        self,
        service_bus_sender: Optional[object] = None,
        entity_name: str = "invoice-events"
    ):
        """
        Args:
            service_bus_sender: Azure Service Bus sender (ServiceBusSender) or None to disable
            entity_name: Service Bus queue or topic name (default: invoice-events)
        """
        self.service_bus_sender = service_bus_sender
        self.entity_name = entity_name

    @property
    def enabled(self) -> bool:
        return self.service_bus_sender is not None

    def publish_invoice_processed(self, event: InvoiceProcessedEvent) -> None:
        """
        Publish an invoice processed event to Service Bus.

        If service_bus_sender is None, this is a no-op (disabled mode).
        """
        if self.service_bus_sender is None:
            return

        from azure.servicebus import ServiceBusMessage

        message = ServiceBusMessage(event.to_json(), content_type="application/json")
        self.service_bus_sender.send_messages(message)

    async def progress_sink(self, event) -> None:
        """
        Progress sink for InvoiceProcessor: publishes on the "invoice-processed" checkpoint.

        The sender is blocking, so the send runs in a worker thread. Publishing
        failures are logged and swallowed so that intake still succeeds.
        """
        if event.type != "invoice-processed" or not self.enabled:
            return
        try:
            await asyncio.to_thread(
                self.publish_invoice_processed,
                InvoiceProcessedEvent.from_invoice_payload(event.content),
            )
            logger.info("Published InvoiceProcessed event", invoice_id=event.content.get("id"))
        except Exception as e:
            logger.warning(f"Failed to publish event: {e}")


def create_event_publisher(settings) -> EventPublisher:
    """
    Build a publisher from settings; disabled when no connection string is configured.
    """
    if not settings.service_bus_connection_string:
        return EventPublisher(service_bus_sender=None)

    from azure.servicebus import ServiceBusClient

    client = ServiceBusClient.from_connection_string(settings.service_bus_connection_string)
    sender = client.get_queue_sender(queue_name=settings.service_bus_queue)
    return EventPublisher(service_bus_sender=sender, entity_name=settings.service_bus_queue)
