"""
Stage Gate - Lifecycle Transition Validation

A deal advances exactly one stage at a time. Before it may leave its
current stage, at least half of that stage's tasks must be completed and at
least half of its documents verified. Anything short of 80% and any missing
required payment is reported as a warning only.

The gate has no side effects: callers apply the stage change only when the
result is valid.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Final, Iterable, Optional, TypeVar, Union

from core.clock import utc_now
from core.deals.schema import (
    Deal,
    DealStage,
    DealStatus,
    DealTask,
    PaymentStatus,
    PaymentType,
    stage_index,
)
from core.validation import ValidationResult


# =============================================================================
# Thresholds
# =============================================================================

MIN_COMPLETION_PERCENT: Final[float] = 50.0
RECOMMENDED_COMPLETION_PERCENT: Final[float] = 80.0

_BASE_PAYMENTS: Final[tuple[str, ...]] = (PaymentType.TOKEN, PaymentType.DOWN_PAYMENT)

# Payments that should be completed before leaving each stage
REQUIRED_PAYMENTS_BY_STAGE: Final[dict[DealStage, tuple[str, ...]]] = {
    DealStage.OFFER_ACCEPTED: (PaymentType.TOKEN,),
    DealStage.AGREEMENT_SIGNING: _BASE_PAYMENTS,
    DealStage.DOCUMENTATION: _BASE_PAYMENTS,
    DealStage.PAYMENT_PROCESSING: _BASE_PAYMENTS + (PaymentType.installment(1),),
    DealStage.HANDOVER_PREPARATION: _BASE_PAYMENTS + (
        PaymentType.installment(1),
        PaymentType.installment(2),
    ),
    DealStage.TRANSFER_REGISTRATION: _BASE_PAYMENTS + (
        PaymentType.installment(1),
        PaymentType.installment(2),
        PaymentType.installment(3),
    ),
    DealStage.FINAL_HANDOVER: _BASE_PAYMENTS + (
        PaymentType.installment(1),
        PaymentType.installment(2),
        PaymentType.installment(3),
    ),
}


def required_payments_for_stage(stage: DealStage) -> tuple[str, ...]:
    return REQUIRED_PAYMENTS_BY_STAGE.get(stage, ())


# =============================================================================
# Helpers
# =============================================================================

ItemT = TypeVar("ItemT")


def completion_rate(items: Iterable[ItemT], is_done: Callable[[ItemT], bool]) -> float:
    """Percentage of items that are done; an empty set counts as 100%."""
    items = list(items)
    if not items:
        return 100.0
    done = sum(1 for item in items if is_done(item))
    return done / len(items) * 100


def _percent_label(rate: float) -> int:
    """Round half up for display (62.5 -> 63)."""
    return int(math.floor(rate + 0.5))


def _check_threshold(
    rate: float,
    noun: str,
    verb: str,
    errors: list[str],
    warnings: list[str],
) -> None:
    label = _percent_label(rate)
    if rate < MIN_COMPLETION_PERCENT:
        errors.append(
            f"Only {label}% of {noun} {verb} - minimum {MIN_COMPLETION_PERCENT:.0f}% required"
        )
    elif rate < RECOMMENDED_COMPLETION_PERCENT:
        warnings.append(
            f"{label}% of {noun} {verb} - recommended {RECOMMENDED_COMPLETION_PERCENT:.0f}%+"
        )


def completed_required_payments(deal: Deal, stage: DealStage) -> tuple[list[str], list[str]]:
    """
    Split the stage's required payment types into completed and missing.

    A type counts as completed when the first payment of that type is
    completed.
    """
    completed: list[str] = []
    missing: list[str] = []
    for payment_type in required_payments_for_stage(stage):
        payment = next(
            (p for p in deal.financial.payments if p.type == payment_type), None
        )
        if payment is not None and payment.status == PaymentStatus.COMPLETED:
            completed.append(payment_type)
        else:
            missing.append(payment_type)
    return completed, missing


# =============================================================================
# Gates
# =============================================================================


def validate_stage_progression(
    deal: Deal,
    target_stage: Union[DealStage, str],
) -> ValidationResult:
    """
    Validate moving a deal from its current stage to target_stage.

    Args:
        deal: Deal to check
        target_stage: Requested next stage (enum or its string value)

    Returns:
        ValidationResult; errors block the transition
    """
    errors: list[str] = []
    warnings: list[str] = []

    if deal.lifecycle.status != DealStatus.ACTIVE:
        errors.append("Cannot progress a non-active deal")
        return ValidationResult.build(errors, warnings)

    if not isinstance(target_stage, DealStage):
        try:
            target_stage = DealStage(target_stage)
        except ValueError:
            errors.append(f"Unknown stage: {target_stage}")
            return ValidationResult.build(errors, warnings)

    current_stage = deal.lifecycle.stage
    current_index = stage_index(current_stage)
    target_index = stage_index(target_stage)

    if target_index <= current_index:
        errors.append("Cannot move to a previous or same stage")
    if target_index > current_index + 1:
        errors.append("Cannot skip stages - progress sequentially")

    task_rate = completion_rate(deal.tasks_for_stage(current_stage), lambda t: t.is_completed)
    _check_threshold(task_rate, "tasks", "completed", errors, warnings)

    doc_rate = completion_rate(deal.documents_for_stage(current_stage), lambda d: d.is_verified)
    _check_threshold(doc_rate, "documents", "verified", errors, warnings)

    completed, _ = completed_required_payments(deal, current_stage)
    required = required_payments_for_stage(current_stage)
    if len(completed) < len(required):
        warnings.append(f"{len(completed)}/{len(required)} required payments completed")

    return ValidationResult.build(errors, warnings)


def validate_task_completion(
    task: DealTask,
    deal: Deal,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Completing a task never blocks; it only warns about odd timing."""
    warnings: list[str] = []
    now = now or utc_now()

    if task.is_completed:
        warnings.append("Task is already marked as completed")

    if stage_index(task.stage) > stage_index(deal.lifecycle.stage):
        warnings.append("This task belongs to a future stage")

    if task.due_date is not None and task.due_date < now:
        warnings.append("This task is overdue")

    return ValidationResult.build((), warnings)
