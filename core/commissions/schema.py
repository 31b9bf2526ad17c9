"""
Commission Schema - Agent Commission Records

A Commission is what one agent is owed for one sale. Team sales are split
by percentage into one record per agent; every record then runs through the
approval workflow independently.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final, Optional

from core.clock import format_timestamp, parse_timestamp, utc_now


class PayoutTrigger(Enum):
    """Event in the sale that makes a commission payable."""

    BOOKING = "booking"
    FIFTY_PERCENT = "50-percent"
    POSSESSION = "possession"
    FULL_PAYMENT = "full-payment"

    @classmethod
    def parse(cls, value: Any) -> Optional["PayoutTrigger"]:
        """Trigger for a stored or requested value; unknown values mean unspecified."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class CommissionStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


class ApprovalStatus(Enum):
    PENDING_APPROVAL = "pending-approval"
    APPROVED = "approved"
    REJECTED = "rejected"


# Days from creation until a commission falls due
PAYOUT_DUE_DAYS: Final[dict[PayoutTrigger, int]] = {
    PayoutTrigger.BOOKING: 7,
    PayoutTrigger.FIFTY_PERCENT: 14,
    PayoutTrigger.POSSESSION: 30,
    PayoutTrigger.FULL_PAYMENT: 7,
}

DEFAULT_DUE_DAYS: Final[int] = 30


def generate_commission_id() -> str:
    return f"COMM-{uuid.uuid4().hex[:12].upper()}"


@dataclass(frozen=True)
class CommissionSplit:
    """One agent's share of a split commission."""

    agent_id: str
    percentage: float
    agent_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionSplit":
        return cls(
            agent_id=data["agent_id"],
            percentage=float(data["percentage"]),
            agent_name=data.get("agent_name"),
        )


@dataclass
class Commission:
    """Commission owed to one agent for one property sale."""

    id: str
    agent_id: str
    property_id: str
    amount: float
    rate: float
    status: CommissionStatus = CommissionStatus.PENDING
    approval_status: ApprovalStatus = ApprovalStatus.PENDING_APPROVAL
    payout_trigger: Optional[PayoutTrigger] = None
    due_date: Optional[datetime] = None
    is_split: bool = False
    total_amount: Optional[float] = None
    agent_name: Optional[str] = None

    # Approval audit
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    # Override audit
    override_amount: Optional[float] = None
    override_reason: Optional[str] = None
    overridden_by: Optional[str] = None
    overridden_at: Optional[datetime] = None

    is_overdue: bool = False
    created_at: datetime = field(default_factory=utc_now)
    paid_at: Optional[datetime] = None

    @property
    def is_decided(self) -> bool:
        return self.approval_status != ApprovalStatus.PENDING_APPROVAL

    @property
    def is_overridden(self) -> bool:
        return self.override_amount is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "property_id": self.property_id,
            "amount": self.amount,
            "rate": self.rate,
            "status": self.status.value,
            "approval_status": self.approval_status.value,
            "payout_trigger": self.payout_trigger.value if self.payout_trigger else None,
            "due_date": format_timestamp(self.due_date),
            "is_split": self.is_split,
            "total_amount": self.total_amount,
            "approved_by": self.approved_by,
            "approved_at": format_timestamp(self.approved_at),
            "rejection_reason": self.rejection_reason,
            "override_amount": self.override_amount,
            "override_reason": self.override_reason,
            "overridden_by": self.overridden_by,
            "overridden_at": format_timestamp(self.overridden_at),
            "is_overdue": self.is_overdue,
            "created_at": format_timestamp(self.created_at),
            "paid_at": format_timestamp(self.paid_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Commission":
        trigger = data.get("payout_trigger")
        total_amount = data.get("total_amount")
        override_amount = data.get("override_amount")
        return cls(
            id=data["id"],
            agent_id=data["agent_id"],
            agent_name=data.get("agent_name"),
            property_id=data["property_id"],
            amount=float(data["amount"]),
            rate=float(data.get("rate", 0)),
            status=CommissionStatus(data.get("status", "pending")),
            approval_status=ApprovalStatus(data.get("approval_status", "pending-approval")),
            payout_trigger=PayoutTrigger.parse(trigger),
            due_date=parse_timestamp(data.get("due_date")),
            is_split=bool(data.get("is_split", False)),
            total_amount=float(total_amount) if total_amount is not None else None,
            approved_by=data.get("approved_by"),
            approved_at=parse_timestamp(data.get("approved_at")),
            rejection_reason=data.get("rejection_reason"),
            override_amount=float(override_amount) if override_amount is not None else None,
            override_reason=data.get("override_reason"),
            overridden_by=data.get("overridden_by"),
            overridden_at=parse_timestamp(data.get("overridden_at")),
            is_overdue=bool(data.get("is_overdue", False)),
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
            paid_at=parse_timestamp(data.get("paid_at")),
        )
