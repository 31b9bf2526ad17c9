"""
Receipt Issuer - Unique Receipt Numbers and Reprint History

Receipt numbers have the form RCP-<year>-<counter>, drawn from a counter per
calendar year. A payment keeps its receipt number across any number of
reprints; each reprint only bumps the metadata version.

The counter is read, incremented and written back through the record store.
With the JSON file store this is not safe across processes (see core.store).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.clock import Clock, utc_now
from core.deals.schema import Deal, DealPayment
from core.events import EventBus, ReceiptGenerated, ReceiptRegenerated
from core.receipts.repository import ReceiptRepository
from core.receipts.schema import ReceiptMetadata, format_receipt_number
from core.store import RECEIPT_COUNTER_PREFIX, RecordStore, YearlyCounter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptStats:
    total_receipts: int
    receipts_this_year: int
    receipts_this_month: int

    def to_dict(self) -> dict:
        return {
            "total_receipts": self.total_receipts,
            "receipts_this_year": self.receipts_this_year,
            "receipts_this_month": self.receipts_this_month,
        }


class ReceiptIssuer:
    """Issue and reissue payment receipts."""

    def __init__(
        self,
        store: RecordStore,
        events: Optional[EventBus] = None,
        clock: Clock = utc_now,
    ):
        self._repository = ReceiptRepository(store)
        self._counter = YearlyCounter(store, RECEIPT_COUNTER_PREFIX)
        self._events = events
        self._clock = clock

    @property
    def repository(self) -> ReceiptRepository:
        return self._repository

    def _publish(self, event) -> None:
        if self._events is not None:
            self._events.publish(event)

    # =========================================================================
    # Issuing
    # =========================================================================

    def generate_receipt_number(self) -> str:
        """Take the next receipt number for the current calendar year."""
        year = self._clock().year
        counter = self._counter.next_value(year)
        return format_receipt_number(year, counter)

    def auto_generate_receipt(
        self,
        payment: DealPayment,
        deal: Deal,
        generated_by: str,
    ) -> ReceiptMetadata:
        """
        Issue a receipt for a recorded payment.

        Args:
            payment: Payment the receipt is for
            deal: Deal the payment belongs to
            generated_by: User issuing the receipt

        Returns:
            New ReceiptMetadata at version 1. Any previous record for the same
            payment is replaced.
        """
        metadata = ReceiptMetadata(
            receipt_number=self.generate_receipt_number(),
            payment_id=payment.id,
            deal_id=deal.id,
            generated_at=self._clock(),
            generated_by=generated_by,
            version=1,
        )
        self._repository.save(metadata)
        logger.info(
            "Issued receipt %s for payment %s on deal %s",
            metadata.receipt_number,
            payment.id,
            deal.deal_number,
        )
        self._publish(
            ReceiptGenerated(
                payment_id=payment.id,
                receipt_number=metadata.receipt_number,
                version=metadata.version,
            )
        )
        return metadata

    def regenerate_receipt(
        self,
        payment_id: str,
        regenerated_by: str,
    ) -> Optional[ReceiptMetadata]:
        """
        Record a reprint of an existing receipt.

        Returns:
            Updated metadata with the same receipt number and version + 1,
            or None if no receipt was ever issued for the payment
        """
        metadata = self._repository.get(payment_id)
        if metadata is None:
            logger.warning("No receipt to reprint for payment %s", payment_id)
            return None

        metadata.version += 1
        metadata.generated_at = self._clock()
        metadata.generated_by = regenerated_by
        self._repository.save(metadata)

        self._publish(
            ReceiptRegenerated(
                payment_id=payment_id,
                receipt_number=metadata.receipt_number,
                version=metadata.version,
            )
        )
        return metadata

    # =========================================================================
    # Queries
    # =========================================================================

    def get_receipt_metadata(self, payment_id: str) -> Optional[ReceiptMetadata]:
        return self._repository.get(payment_id)

    def has_receipt(self, payment_id: str) -> bool:
        return self._repository.get(payment_id) is not None

    def receipt_stats(self) -> ReceiptStats:
        """Receipt counts overall, this calendar year and this month."""
        now = self._clock()
        all_metadata = self._repository.list_all()
        this_year = [m for m in all_metadata if m.generated_at.year == now.year]
        this_month = [m for m in this_year if m.generated_at.month == now.month]
        return ReceiptStats(
            total_receipts=len(all_metadata),
            receipts_this_year=len(this_year),
            receipts_this_month=len(this_month),
        )
