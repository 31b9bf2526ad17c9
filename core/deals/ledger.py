"""
Payment Ledger - Payment Validation and Financial Reconciliation

Validates individual payment records against a deal's financial snapshot and
derives the deal totals from its payments.

Totals are always recomputed from the full payment list after a mutation.
Overpayment is representable (negative balance) and only ever reported as a
warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from core.clock import utc_now
from core.deals.schema import (
    Deal,
    DealPayment,
    DealStage,
    PaymentStatus,
    TaskPriority,
)
from core.validation import ValidationResult
from utils.formatting import format_currency


# =============================================================================
# Aggregate Recomputation
# =============================================================================


@dataclass(frozen=True)
class LedgerTotals:
    """Totals derived from a payment list."""

    agreed_price: float
    total_paid: float
    balance_remaining: float

    @property
    def is_overpaid(self) -> bool:
        return self.balance_remaining < 0

    @property
    def is_settled(self) -> bool:
        return self.balance_remaining <= 0


def compute_totals(agreed_price: float, payments: Iterable[DealPayment]) -> LedgerTotals:
    """
    Derive total paid and balance remaining from payments.

    Completed payments count their paid amount (or full amount when no paid
    amount was captured); partial payments count what has been paid so far;
    pending payments count nothing.
    """
    total_paid = sum(p.settled_amount for p in payments)
    return LedgerTotals(
        agreed_price=agreed_price,
        total_paid=total_paid,
        balance_remaining=agreed_price - total_paid,
    )


def recompute_financials(deal: Deal) -> LedgerTotals:
    """Recompute and store the deal's totals from its payments."""
    totals = compute_totals(deal.financial.agreed_price, deal.financial.payments)
    deal.financial.total_paid = totals.total_paid
    deal.financial.balance_remaining = totals.balance_remaining
    return totals


def has_recorded_payments(deal: Deal) -> bool:
    """True once any money has been received against the deal."""
    return any(p.settled_amount > 0 for p in deal.financial.payments)


# =============================================================================
# Payment Recording Gate
# =============================================================================


def validate_payment_recording(
    payment: DealPayment,
    deal: Deal,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """
    Validate recording money against a payment.

    `payment.paid_amount` is the amount the payment will have received once
    recorded. When the payment already holds money (a partial payment being
    topped up) that money is already part of the deal total and is not
    counted twice in the overpayment projection.

    Args:
        payment: Payment as it will be recorded
        deal: Deal the payment belongs to
        now: Reference time for the overdue check

    Returns:
        ValidationResult; completed payments can never be re-recorded
    """
    errors: list[str] = []
    warnings: list[str] = []
    now = now or utc_now()

    if payment.status == PaymentStatus.COMPLETED:
        errors.append("Payment is already marked as completed")

    new_paid_amount = payment.paid_amount or 0.0
    if new_paid_amount > payment.amount:
        errors.append("Paid amount cannot exceed payment amount")

    stored = deal.financial.find_payment(payment.id)
    already_counted = stored.settled_amount if stored is not None else 0.0
    projected_total = deal.financial.total_paid - already_counted + new_paid_amount
    if projected_total > deal.financial.agreed_price:
        warnings.append("This payment will result in overpayment")

    if (
        payment.status == PaymentStatus.PENDING
        and payment.due_date is not None
        and payment.due_date < now
    ):
        warnings.append("This payment is overdue")

    return ValidationResult.build(errors, warnings)


# =============================================================================
# Deal Completion Gate
# =============================================================================


def validate_deal_completion(deal: Deal, currency: str = "PKR") -> ValidationResult:
    """
    Validate that a deal may be marked completed.

    Requires the final-handover stage, no pending payments, no outstanding
    balance and verified agreement documents. Incomplete high-priority
    tasks only warn.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if deal.lifecycle.stage != DealStage.FINAL_HANDOVER:
        errors.append("Deal must be in final-handover stage to be completed")

    pending_payments = [
        p for p in deal.financial.payments if p.status == PaymentStatus.PENDING
    ]
    if pending_payments:
        errors.append(f"{len(pending_payments)} payments are still pending")

    if deal.financial.balance_remaining > 0:
        errors.append(
            f"Outstanding balance of {format_currency(deal.financial.balance_remaining, currency)}"
        )

    incomplete_tasks = [
        t for t in deal.tasks
        if not t.is_completed and t.priority == TaskPriority.HIGH
    ]
    if incomplete_tasks:
        warnings.append(f"{len(incomplete_tasks)} high-priority tasks are incomplete")

    unverified_agreements = [
        d for d in deal.documents if d.is_agreement and not d.is_verified
    ]
    if unverified_agreements:
        errors.append(f"{len(unverified_agreements)} critical documents are not verified")

    return ValidationResult.build(errors, warnings)


# =============================================================================
# Payment Summary
# =============================================================================


@dataclass(frozen=True)
class NextPaymentDue:
    payment_id: str
    payment_type: str
    due_date: Optional[datetime]
    amount: float


@dataclass(frozen=True)
class PaymentSummary:
    """Read-only payment overview for one deal."""

    deal_id: str
    agreed_price: float
    total_paid: float
    balance_remaining: float
    percentage_paid: float
    payment_count: int
    completed_count: int
    partial_count: int
    pending_count: int
    next_payment_due: Optional[NextPaymentDue]
    overdue_payment_ids: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        next_due = None
        if self.next_payment_due:
            next_due = {
                "payment_id": self.next_payment_due.payment_id,
                "payment_type": self.next_payment_due.payment_type,
                "due_date": (
                    self.next_payment_due.due_date.isoformat()
                    if self.next_payment_due.due_date else None
                ),
                "amount": self.next_payment_due.amount,
            }
        return {
            "deal_id": self.deal_id,
            "agreed_price": self.agreed_price,
            "total_paid": self.total_paid,
            "balance_remaining": self.balance_remaining,
            "percentage_paid": self.percentage_paid,
            "payment_count": self.payment_count,
            "completed_count": self.completed_count,
            "partial_count": self.partial_count,
            "pending_count": self.pending_count,
            "next_payment_due": next_due,
            "overdue_payment_ids": list(self.overdue_payment_ids),
        }


def overdue_payments(deal: Deal, now: Optional[datetime] = None) -> list[DealPayment]:
    """Uncompleted payments whose due date has passed."""
    now = now or utc_now()
    return [p for p in deal.financial.payments if p.is_overdue(now)]


def payment_summary(deal: Deal, now: Optional[datetime] = None) -> PaymentSummary:
    """
    Summarise a deal's payments.

    Totals are derived from the payments, not read from the stored snapshot.
    The next payment due is the earliest-dated payment not yet completed;
    undated payments sort last.
    """
    now = now or utc_now()
    payments = deal.financial.payments
    totals = compute_totals(deal.financial.agreed_price, payments)

    open_payments = sorted(
        (p for p in payments if p.status != PaymentStatus.COMPLETED),
        key=lambda p: (p.due_date is None, p.due_date or now),
    )
    next_due = None
    if open_payments:
        upcoming = open_payments[0]
        next_due = NextPaymentDue(
            payment_id=upcoming.id,
            payment_type=upcoming.type,
            due_date=upcoming.due_date,
            amount=upcoming.outstanding_amount,
        )

    percentage = 0.0
    if totals.agreed_price > 0:
        percentage = totals.total_paid / totals.agreed_price * 100

    return PaymentSummary(
        deal_id=deal.id,
        agreed_price=totals.agreed_price,
        total_paid=totals.total_paid,
        balance_remaining=totals.balance_remaining,
        percentage_paid=percentage,
        payment_count=len(payments),
        completed_count=sum(1 for p in payments if p.status == PaymentStatus.COMPLETED),
        partial_count=sum(1 for p in payments if p.status == PaymentStatus.PARTIAL),
        pending_count=sum(1 for p in payments if p.status == PaymentStatus.PENDING),
        next_payment_due=next_due,
        overdue_payment_ids=tuple(p.id for p in overdue_payments(deal, now)),
    )
