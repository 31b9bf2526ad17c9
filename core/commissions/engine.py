"""
Commission Engine - Split Calculation, Approval Workflow and Payout Dates

Commissions are created pending approval with a due date derived from the
payout trigger. From pending-approval a commission is either approved or
rejected, once. The amount can be overridden at any time, with a reason;
the override replaces the live amount.

The engine looks at the property's deal only to flag anomalies, such as a
commission requested before any money was received.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from core.clock import Clock, utc_now
from core.commissions.repository import CommissionRepository
from core.commissions.schema import (
    DEFAULT_DUE_DAYS,
    PAYOUT_DUE_DAYS,
    ApprovalStatus,
    Commission,
    CommissionSplit,
    CommissionStatus,
    PayoutTrigger,
    generate_commission_id,
)
from core.deals.ledger import has_recorded_payments
from core.deals.repository import DealRepository
from core.errors import CommissionNotFoundError, CommissionStateError, ValidationFailedError
from core.events import (
    CommissionApproved,
    CommissionCreated,
    CommissionOverridden,
    CommissionPaid,
    CommissionRejected,
    EventBus,
)
from core.store import RecordStore
from core.templates import render_template
from core.validation import ValidationResult
from utils.formatting import format_currency


logger = logging.getLogger(__name__)

SPLIT_TOLERANCE_PERCENT = 0.01

TriggerLike = Union[PayoutTrigger, str, None]


def trigger_warnings(trigger: TriggerLike) -> list[str]:
    """Warn when a trigger was given but is not one the due-date table knows."""
    if trigger and PayoutTrigger.parse(trigger) is None:
        return [f"Unknown payout trigger '{trigger}'; due date set {DEFAULT_DUE_DAYS} days out"]
    return []


def calculate_due_date(trigger: TriggerLike, created_at: datetime) -> datetime:
    """
    Due date for a commission created at created_at.

    booking +7 days, 50-percent +14, possession +30, full-payment +7;
    a missing or unrecognised trigger falls back to +30.
    """
    trigger = PayoutTrigger.parse(trigger)
    days = PAYOUT_DUE_DAYS.get(trigger, DEFAULT_DUE_DAYS) if trigger else DEFAULT_DUE_DAYS
    return created_at + timedelta(days=days)


def validate_commission_splits(
    splits: Sequence[CommissionSplit],
    require_full_allocation: bool = True,
) -> ValidationResult:
    """
    Check a set of agent splits before commissions are created from it.

    Percentages must be positive, at most 100 and one per agent. When
    require_full_allocation is set they must also total 100% (within
    0.01); otherwise a different total is only a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not splits:
        errors.append("At least one commission split is required")
        return ValidationResult.build(errors, warnings)

    seen: set[str] = set()
    for split in splits:
        if not split.agent_id:
            errors.append("Every split needs an agent id")
        elif split.agent_id in seen:
            errors.append(f"Agent {split.agent_id} appears in more than one split")
        else:
            seen.add(split.agent_id)

        if split.percentage <= 0 or split.percentage > 100:
            errors.append(
                f"Split percentage for agent {split.agent_id} must be between 0% and 100%"
            )

    total = math.fsum(split.percentage for split in splits)
    if abs(total - 100) > SPLIT_TOLERANCE_PERCENT:
        message = f"Commission splits must total 100% (currently {total:.1f}%)"
        if require_full_allocation:
            errors.append(message)
        else:
            warnings.append(message)

    return ValidationResult.build(errors, warnings)


# =============================================================================
# Summaries
# =============================================================================


@dataclass(frozen=True)
class CommissionYearSummary:
    """Year-to-date commission figures for one agent."""

    agent_id: str
    year: int
    total_amount: float
    paid_amount: float
    pending_amount: float
    count: int
    paid_count: int
    pending_count: int
    average_rate: float

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "year": self.year,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "pending_amount": self.pending_amount,
            "count": self.count,
            "paid_count": self.paid_count,
            "pending_count": self.pending_count,
            "average_rate": self.average_rate,
        }


# =============================================================================
# Engine
# =============================================================================


class CommissionEngine:
    """Create commissions and run them through approval and payout."""

    def __init__(
        self,
        store: RecordStore,
        events: Optional[EventBus] = None,
        clock: Clock = utc_now,
        require_full_allocation: bool = True,
    ):
        self._commissions = CommissionRepository(store)
        self._deals = DealRepository(store)
        self._events = events
        self._clock = clock
        self._require_full_allocation = require_full_allocation

    @property
    def commissions(self) -> CommissionRepository:
        return self._commissions

    def _publish(self, event) -> None:
        if self._events is not None:
            self._events.publish(event)

    def get_commission(self, commission_id: str) -> Commission:
        """
        Load a commission.

        Raises:
            CommissionNotFoundError: If no commission has this id
        """
        commission = self._commissions.get(commission_id)
        if commission is None:
            raise CommissionNotFoundError(commission_id)
        return commission

    # =========================================================================
    # Creation
    # =========================================================================

    def payment_anomalies(self, property_id: str) -> list[str]:
        """Warnings about creating a commission given the property's deal."""
        deals = self._deals.list_by_property(property_id)
        if not deals:
            return [f"No deal found for property {property_id}"]
        if not any(has_recorded_payments(deal) for deal in deals):
            return ["Commission requested before any payment was recorded on the deal"]
        return []

    def validate_commission_request(
        self,
        property_id: str,
        total_amount: float,
        splits: Sequence[CommissionSplit],
    ) -> ValidationResult:
        """Split validation plus amount checks and deal anomalies."""
        errors: list[str] = []
        if not property_id:
            errors.append("Property is required")
        if total_amount is None or total_amount <= 0:
            errors.append("Commission amount must be greater than 0")

        result = ValidationResult.build(errors).merge(
            validate_commission_splits(splits, self._require_full_allocation)
        )
        if property_id:
            result = result.merge(
                ValidationResult.build((), self.payment_anomalies(property_id))
            )
        return result

    @staticmethod
    def _created_message(commission: Commission) -> str:
        return render_template(
            "commission_created",
            {
                "amount": format_currency(commission.amount),
                "agent_id": commission.agent_id,
                "property_id": commission.property_id,
            },
        )

    def _build(
        self,
        property_id: str,
        amount: float,
        rate: float,
        agent_id: str,
        trigger: Optional[PayoutTrigger],
        created_at: datetime,
        agent_name: Optional[str] = None,
        total_amount: Optional[float] = None,
    ) -> Commission:
        return Commission(
            id=generate_commission_id(),
            agent_id=agent_id,
            agent_name=agent_name,
            property_id=property_id,
            amount=amount,
            rate=rate,
            status=CommissionStatus.PENDING,
            approval_status=ApprovalStatus.PENDING_APPROVAL,
            payout_trigger=trigger,
            due_date=calculate_due_date(trigger, created_at),
            is_split=total_amount is not None,
            total_amount=total_amount,
            created_at=created_at,
        )

    def create_commission_with_splits(
        self,
        property_id: str,
        total_amount: float,
        splits: Iterable[Union[CommissionSplit, dict]],
        payout_trigger: TriggerLike = None,
    ) -> tuple[list[Commission], ValidationResult]:
        """
        Divide a commission among agents by percentage.

        Args:
            property_id: Property the sale belongs to
            total_amount: Undivided commission amount
            splits: Agent shares; each yields amount = total * percentage / 100
            payout_trigger: Determines the due date; None means +30 days

        Returns:
            (created commissions, validation result with any warnings)

        Raises:
            ValidationFailedError: If the request has blocking errors
        """
        splits = [s if isinstance(s, CommissionSplit) else CommissionSplit.from_dict(s) for s in splits]
        trigger = PayoutTrigger.parse(payout_trigger)

        validation = self.validate_commission_request(property_id, total_amount, splits).merge(
            ValidationResult.build((), trigger_warnings(payout_trigger))
        )
        if not validation.is_valid:
            raise ValidationFailedError(validation)

        now = self._clock()
        created = [
            self._build(
                property_id=property_id,
                amount=total_amount * split.percentage / 100,
                rate=split.percentage,
                agent_id=split.agent_id,
                agent_name=split.agent_name,
                trigger=trigger,
                created_at=now,
                total_amount=float(total_amount),
            )
            for split in splits
        ]
        self._commissions.append_all(created)

        for commission in created:
            logger.info("%s", self._created_message(commission))
        self._publish(
            CommissionCreated(
                commission_ids=tuple(c.id for c in created),
                property_id=property_id,
            )
        )
        return created, validation

    def create_single_commission(
        self,
        property_id: str,
        sale_amount: float,
        rate: float,
        agent_id: str,
        payout_trigger: TriggerLike = None,
        agent_name: Optional[str] = None,
    ) -> tuple[Commission, ValidationResult]:
        """
        Create one commission of rate% of the sale amount.

        Raises:
            ValidationFailedError: If the amount, rate or agent is invalid
        """
        errors: list[str] = []
        if not agent_id:
            errors.append("Agent is required")
        if not property_id:
            errors.append("Property is required")
        if sale_amount is None or sale_amount <= 0:
            errors.append("Sale amount must be greater than 0")
        if rate is None or rate <= 0 or rate > 100:
            errors.append("Commission rate must be between 0% and 100%")

        warnings = self.payment_anomalies(property_id) if property_id else []
        warnings.extend(trigger_warnings(payout_trigger))
        validation = ValidationResult.build(errors, warnings)
        if not validation.is_valid:
            raise ValidationFailedError(validation)

        commission = self._build(
            property_id=property_id,
            amount=sale_amount * rate / 100,
            rate=rate,
            agent_id=agent_id,
            agent_name=agent_name,
            trigger=PayoutTrigger.parse(payout_trigger),
            created_at=self._clock(),
        )
        self._commissions.append_all([commission])
        logger.info("%s", self._created_message(commission))
        self._publish(CommissionCreated(commission_ids=(commission.id,), property_id=property_id))
        return commission, validation

    # =========================================================================
    # Approval Workflow
    # =========================================================================

    def _require_undecided(self, commission: Commission) -> None:
        if commission.is_decided:
            raise CommissionStateError(
                f"Commission {commission.id} is already {commission.approval_status.value}"
            )

    def approve_commission(self, commission_id: str, approved_by: str) -> Commission:
        """
        Approve a commission that is pending approval.

        Raises:
            CommissionNotFoundError: Unknown commission
            CommissionStateError: Already approved or rejected
        """
        commission = self.get_commission(commission_id)
        self._require_undecided(commission)

        commission.approval_status = ApprovalStatus.APPROVED
        commission.approved_by = approved_by
        commission.approved_at = self._clock()
        self._commissions.save(commission)

        logger.info(
            "%s",
            render_template(
                "commission_approved",
                {"commission_id": commission_id, "approved_by": approved_by},
            ),
        )
        self._publish(CommissionApproved(commission_id=commission_id, approved_by=approved_by))
        return commission

    def reject_commission(self, commission_id: str, reason: str) -> Commission:
        """
        Reject a commission that is pending approval.

        Raises:
            CommissionNotFoundError: Unknown commission
            CommissionStateError: Already approved or rejected
        """
        commission = self.get_commission(commission_id)
        self._require_undecided(commission)

        commission.approval_status = ApprovalStatus.REJECTED
        commission.rejection_reason = reason
        self._commissions.save(commission)

        logger.info(
            "%s",
            render_template("commission_rejected", {"commission_id": commission_id, "reason": reason}),
        )
        self._publish(CommissionRejected(commission_id=commission_id, reason=reason))
        return commission

    def override_commission(
        self,
        commission_id: str,
        new_amount: float,
        reason: str,
        overridden_by: str,
    ) -> Commission:
        """
        Replace a commission's amount.

        The new amount becomes the live amount; the audit fields record who
        changed it, when and why.

        Raises:
            CommissionNotFoundError: Unknown commission
            ValidationFailedError: Missing reason or negative amount
        """
        errors: list[str] = []
        if not reason or not reason.strip():
            errors.append("Override reason is required")
        if new_amount is None or new_amount < 0:
            errors.append("Override amount cannot be negative")
        if not overridden_by:
            errors.append("Overriding user is required")
        if errors:
            raise ValidationFailedError(ValidationResult.build(errors))

        commission = self.get_commission(commission_id)
        commission.override_amount = float(new_amount)
        commission.override_reason = reason.strip()
        commission.overridden_by = overridden_by
        commission.overridden_at = self._clock()
        commission.amount = float(new_amount)
        self._commissions.save(commission)

        logger.info(
            "%s",
            render_template(
                "commission_overridden",
                {
                    "commission_id": commission_id,
                    "amount": format_currency(commission.amount),
                    "overridden_by": overridden_by,
                    "reason": commission.override_reason,
                },
            ),
        )
        self._publish(
            CommissionOverridden(
                commission_id=commission_id,
                new_amount=commission.amount,
                reason=commission.override_reason,
            )
        )
        return commission

    def mark_commission_paid(self, commission_id: str) -> Commission:
        """
        Record payout of an approved commission.

        Raises:
            CommissionStateError: Not approved, or already paid
        """
        commission = self.get_commission(commission_id)
        if commission.status == CommissionStatus.PAID:
            raise CommissionStateError(f"Commission {commission_id} is already paid")
        if commission.approval_status != ApprovalStatus.APPROVED:
            raise CommissionStateError(
                f"Commission {commission_id} must be approved before it is paid"
            )

        commission.status = CommissionStatus.PAID
        commission.paid_at = self._clock()
        commission.is_overdue = False
        self._commissions.save(commission)
        self._publish(CommissionPaid(commission_id=commission_id))
        return commission

    # =========================================================================
    # Batch and Reporting
    # =========================================================================

    def update_overdue_commissions(self, now: Optional[datetime] = None) -> int:
        """
        Refresh is_overdue on every pending commission with a due date.

        Returns:
            Number of commissions that became overdue in this sweep
        """
        now = now or self._clock()
        commissions = self._commissions.list_all()
        newly_overdue = 0
        changed = False

        for commission in commissions:
            if commission.status != CommissionStatus.PENDING or commission.due_date is None:
                continue
            was_overdue = commission.is_overdue
            commission.is_overdue = now > commission.due_date
            if commission.is_overdue != was_overdue:
                changed = True
                if commission.is_overdue:
                    newly_overdue += 1

        if changed:
            self._commissions.save_all(commissions)
        if newly_overdue:
            logger.info("%d commission(s) became overdue", newly_overdue)
        return newly_overdue

    def ytd_summary(self, agent_id: str, year: Optional[int] = None) -> CommissionYearSummary:
        """Totals for commissions created for an agent in a calendar year."""
        year = year or self._clock().year
        records = [
            c for c in self._commissions.list_by_agent(agent_id)
            if c.created_at.year == year
        ]
        paid = [c for c in records if c.status == CommissionStatus.PAID]
        pending = [c for c in records if c.status == CommissionStatus.PENDING]
        average_rate = sum(c.rate for c in records) / len(records) if records else 0.0

        return CommissionYearSummary(
            agent_id=agent_id,
            year=year,
            total_amount=sum(c.amount for c in records),
            paid_amount=sum(c.amount for c in paid),
            pending_amount=sum(c.amount for c in pending),
            count=len(records),
            paid_count=len(paid),
            pending_count=len(pending),
            average_rate=average_rate,
        )
