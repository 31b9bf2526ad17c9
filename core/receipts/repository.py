"""
Receipt Repository - Receipt Metadata Keyed by Payment
"""

from __future__ import annotations

from typing import Optional

from core.receipts.schema import ReceiptMetadata
from core.store import RECEIPTS_METADATA_KEY, CollectionRepository, RecordStore


class ReceiptRepository(CollectionRepository[ReceiptMetadata]):
    """
    Receipt metadata store.

    Records are identified by payment id, so saving a second record for the
    same payment replaces the first.
    """

    key = RECEIPTS_METADATA_KEY

    def __init__(self, store: RecordStore):
        super().__init__(
            store,
            decode=ReceiptMetadata.from_dict,
            encode=lambda metadata: metadata.to_dict(),
            record_id=lambda metadata: metadata.payment_id,
        )

    def get_by_receipt_number(self, receipt_number: str) -> Optional[ReceiptMetadata]:
        return next(
            (m for m in self.list_all() if m.receipt_number == receipt_number), None
        )

    def list_by_deal(self, deal_id: str) -> list[ReceiptMetadata]:
        return [m for m in self.list_all() if m.deal_id == deal_id]
