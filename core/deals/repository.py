"""
Deal Repository - Deals Stored Under the "deals" Key
"""

from __future__ import annotations

from typing import Optional

from core.deals.schema import Deal, DealPayment, DealStage, DealStatus
from core.store import DEALS_KEY, CollectionRepository, RecordStore


class DealRepository(CollectionRepository[Deal]):
    """Read and upsert Deal records."""

    key = DEALS_KEY

    def __init__(self, store: RecordStore):
        super().__init__(
            store,
            decode=Deal.from_dict,
            encode=lambda deal: deal.to_dict(),
            record_id=lambda deal: deal.id,
        )

    def get_by_number(self, deal_number: str) -> Optional[Deal]:
        return next((d for d in self.list_all() if d.deal_number == deal_number), None)

    def list_by_status(self, status: DealStatus) -> list[Deal]:
        return [d for d in self.list_all() if d.lifecycle.status == status]

    def list_by_stage(self, stage: DealStage) -> list[Deal]:
        return [d for d in self.list_all() if d.lifecycle.stage == stage]

    def list_by_property(self, property_id: str) -> list[Deal]:
        return [d for d in self.list_all() if d.property_id == property_id]

    def list_by_agent(self, agent_id: str) -> list[Deal]:
        result = []
        for deal in self.list_all():
            secondary = deal.agents.secondary
            if deal.agents.primary.id == agent_id or (secondary and secondary.id == agent_id):
                result.append(deal)
        return result

    def stage_counts(self) -> dict[str, int]:
        """Count of active deals per stage."""
        counts: dict[str, int] = {stage.value: 0 for stage in DealStage}
        for deal in self.list_by_status(DealStatus.ACTIVE):
            counts[deal.lifecycle.stage.value] += 1
        return counts

    def find_payment(self, payment_id: str) -> Optional[tuple[Deal, DealPayment]]:
        """Locate a payment and the deal it belongs to."""
        for deal in self.list_all():
            payment = deal.financial.find_payment(payment_id)
            if payment is not None:
                return deal, payment
        return None
