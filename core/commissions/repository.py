"""
Commission Repository - Commissions Stored Under the "commissions" Key
"""

from __future__ import annotations

from core.commissions.schema import ApprovalStatus, Commission, CommissionStatus
from core.store import COMMISSIONS_KEY, CollectionRepository, RecordStore


class CommissionRepository(CollectionRepository[Commission]):
    """Read and upsert Commission records."""

    key = COMMISSIONS_KEY

    def __init__(self, store: RecordStore):
        super().__init__(
            store,
            decode=Commission.from_dict,
            encode=lambda commission: commission.to_dict(),
            record_id=lambda commission: commission.id,
        )

    def list_by_agent(self, agent_id: str) -> list[Commission]:
        return [c for c in self.list_all() if c.agent_id == agent_id]

    def list_by_property(self, property_id: str) -> list[Commission]:
        return [c for c in self.list_all() if c.property_id == property_id]

    def list_pending_approval(self) -> list[Commission]:
        return [
            c for c in self.list_all()
            if c.approval_status == ApprovalStatus.PENDING_APPROVAL
        ]

    def list_overdue(self) -> list[Commission]:
        return [
            c for c in self.list_all()
            if c.is_overdue and c.status == CommissionStatus.PENDING
        ]
