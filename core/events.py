"""
Domain Events - Typed Publish/Subscribe for Ledger State Changes

Services publish an event after a state change has been written. Delivery is
fire-and-forget: a failing subscriber is logged and does not affect the
publisher or other subscribers.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, ClassVar, Optional, TypeVar


logger = logging.getLogger(__name__)


# =============================================================================
# Event Types
# =============================================================================


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all events. `name` is the wire name of the event."""

    name: ClassVar[str] = "domainEvent"

    def payload(self) -> dict:
        """Event fields as a plain dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class CommissionCreated(DomainEvent):
    name: ClassVar[str] = "commissionCreated"

    commission_ids: tuple[str, ...]
    property_id: str


@dataclass(frozen=True)
class CommissionApproved(DomainEvent):
    name: ClassVar[str] = "commissionApproved"

    commission_id: str
    approved_by: str


@dataclass(frozen=True)
class CommissionRejected(DomainEvent):
    name: ClassVar[str] = "commissionRejected"

    commission_id: str
    reason: str


@dataclass(frozen=True)
class CommissionOverridden(DomainEvent):
    name: ClassVar[str] = "commissionOverridden"

    commission_id: str
    new_amount: float
    reason: str


@dataclass(frozen=True)
class CommissionPaid(DomainEvent):
    name: ClassVar[str] = "commissionPaid"

    commission_id: str


@dataclass(frozen=True)
class DealCreated(DomainEvent):
    name: ClassVar[str] = "dealCreated"

    deal_id: str
    deal_number: str


@dataclass(frozen=True)
class DealStageProgressed(DomainEvent):
    name: ClassVar[str] = "dealStageProgressed"

    deal_id: str
    from_stage: str
    to_stage: str


@dataclass(frozen=True)
class DealPaymentRecorded(DomainEvent):
    name: ClassVar[str] = "dealPaymentRecorded"

    deal_id: str
    payment_id: str
    receipt_number: Optional[str]


@dataclass(frozen=True)
class DealCompleted(DomainEvent):
    name: ClassVar[str] = "dealCompleted"

    deal_id: str


@dataclass(frozen=True)
class DealCancelled(DomainEvent):
    name: ClassVar[str] = "dealCancelled"

    deal_id: str
    reason: str


@dataclass(frozen=True)
class ReceiptGenerated(DomainEvent):
    name: ClassVar[str] = "receiptGenerated"

    payment_id: str
    receipt_number: str
    version: int


@dataclass(frozen=True)
class ReceiptRegenerated(DomainEvent):
    name: ClassVar[str] = "receiptRegenerated"

    payment_id: str
    receipt_number: str
    version: int


# =============================================================================
# Event Bus
# =============================================================================

EventT = TypeVar("EventT", bound=DomainEvent)
Handler = Callable[[DomainEvent], None]


class EventBus:
    """
    In-process observer registry.

    Handlers subscribe to an event class; a handler registered for
    DomainEvent receives every event.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[type[DomainEvent], Handler]] = []

    def subscribe(
        self,
        event_type: type[EventT],
        handler: Callable[[EventT], None],
    ) -> Callable[[], None]:
        """
        Register a handler for an event type.

        Returns:
            A callable that removes the subscription
        """
        entry = (event_type, handler)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: DomainEvent) -> int:
        """
        Deliver an event to every matching subscriber.

        Returns:
            Number of handlers that received the event without error
        """
        delivered = 0
        for event_type, handler in list(self._subscribers):
            if not isinstance(event, event_type):
                continue
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception("Subscriber failed while handling %s", event.name)
        logger.debug("Published %s to %d subscriber(s)", event.name, delivered)
        return delivered

    def subscriber_count(self) -> int:
        return len(self._subscribers)


class EventRecorder:
    """Subscriber that keeps every event it receives, in order."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.events: list[DomainEvent] = []
        if bus is not None:
            bus.subscribe(DomainEvent, self.events.append)

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def of_type(self, event_type: type[EventT]) -> list[EventT]:
        return [e for e in self.events if isinstance(e, event_type)]
