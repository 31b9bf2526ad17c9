"""
Agent Commissions - Splits, Approval and Payout

Commissions are computed from a sale by percentage split, approved or
rejected once, optionally overridden with a reason, and swept for overdue
payouts.
"""

from core.commissions.schema import (
    Commission,
    CommissionSplit,
    CommissionStatus,
    ApprovalStatus,
    PayoutTrigger,
    PAYOUT_DUE_DAYS,
    DEFAULT_DUE_DAYS,
)
from core.commissions.repository import CommissionRepository
from core.commissions.engine import (
    CommissionEngine,
    CommissionYearSummary,
    calculate_due_date,
    validate_commission_splits,
)
