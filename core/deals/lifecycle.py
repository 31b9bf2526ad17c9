"""
Deal Lifecycle Service - Stored Deal Mutations Behind the Gates

Each operation reads the deal from the record store, runs the relevant gate,
applies the change only when the gate passes, writes the deal back and
publishes a domain event. Gate warnings are returned to the caller with the
updated deal; gate errors raise ValidationFailedError carrying the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from core.clock import Clock, TimestampLike, parse_timestamp, utc_now
from core.deals.ledger import (
    PaymentSummary,
    payment_summary,
    recompute_financials,
    validate_deal_completion,
    validate_payment_recording,
)
from core.deals.playbook import build_stage_documents, build_stage_tasks
from core.deals.repository import DealRepository
from core.deals.schema import (
    AgentRef,
    Deal,
    DealAgents,
    DealFinancial,
    DealLifecycle,
    DealParties,
    DealPayment,
    DealStage,
    DealStatus,
    DocumentStatus,
    Party,
    PaymentStatus,
    StageTransition,
    TaskStatus,
    format_deal_number,
    generate_deal_id,
    generate_payment_id,
)
from core.deals.stage_gate import validate_stage_progression, validate_task_completion
from core.deals.validation import validate_deal_cancellation, validate_deal_creation
from core.errors import (
    DealNotFoundError,
    PaymentNotFoundError,
    RecordNotFoundError,
    ValidationFailedError,
)
from core.events import (
    DealCancelled,
    DealCompleted,
    DealCreated,
    DealPaymentRecorded,
    DealStageProgressed,
    EventBus,
)
from core.receipts.issuer import ReceiptIssuer
from core.receipts.schema import ReceiptMetadata
from core.store import DEAL_COUNTER_PREFIX, RecordStore, YearlyCounter
from core.templates import render_template
from core.validation import ValidationResult
from utils.formatting import format_currency


logger = logging.getLogger(__name__)


# =============================================================================
# Outcome
# =============================================================================


@dataclass(frozen=True)
class LifecycleOutcome:
    """Result of a successful lifecycle operation."""

    deal: Deal
    validation: ValidationResult = field(default_factory=ValidationResult)
    payment: Optional[DealPayment] = None
    receipt: Optional[ReceiptMetadata] = None

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.validation.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "deal": self.deal.to_dict(),
            "validation": self.validation.to_dict(),
            "payment": self.payment.to_dict() if self.payment else None,
            "receipt": self.receipt.to_dict() if self.receipt else None,
        }


# =============================================================================
# Service
# =============================================================================


class DealLifecycleService:
    """Create deals, record payments and move deals through their stages."""

    def __init__(
        self,
        store: RecordStore,
        receipts: Optional[ReceiptIssuer] = None,
        events: Optional[EventBus] = None,
        clock: Clock = utc_now,
        currency: str = "PKR",
    ):
        self._deals = DealRepository(store)
        self._deal_counter = YearlyCounter(store, DEAL_COUNTER_PREFIX)
        self._events = events
        self._receipts = receipts or ReceiptIssuer(store, events=events, clock=clock)
        self._clock = clock
        self._currency = currency

    @property
    def deals(self) -> DealRepository:
        return self._deals

    @property
    def receipts(self) -> ReceiptIssuer:
        return self._receipts

    # =========================================================================
    # Internals
    # =========================================================================

    def _publish(self, event) -> None:
        if self._events is not None:
            self._events.publish(event)

    def _money(self, amount: float) -> str:
        return format_currency(amount, self._currency)

    def get_deal(self, deal_id: str) -> Deal:
        """
        Load a deal.

        Raises:
            DealNotFoundError: If the deal does not exist
        """
        deal = self._deals.get(deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)
        return deal

    def _save(self, deal: Deal) -> Deal:
        deal.updated_at = self._clock()
        return self._deals.save(deal)

    @staticmethod
    def _require_valid(result: ValidationResult) -> None:
        if not result.is_valid:
            raise ValidationFailedError(result)

    # =========================================================================
    # Creation
    # =========================================================================

    def create_deal(
        self,
        property_id: str,
        agreed_price: float,
        buyer: Party,
        seller: Party,
        primary_agent: AgentRef,
        secondary_agent: Optional[AgentRef] = None,
        seed_playbook: bool = True,
    ) -> LifecycleOutcome:
        """
        Create a deal at the offer-accepted stage.

        Raises:
            ValidationFailedError: If the creation data is invalid
        """
        validation = validate_deal_creation(
            {
                "property_id": property_id,
                "primary_agent_id": primary_agent.id if primary_agent else None,
                "buyer_name": buyer.name if buyer else None,
                "seller_name": seller.name if seller else None,
                "agreed_price": agreed_price,
            },
            currency=self._currency,
        )
        self._require_valid(validation)

        now = self._clock()
        sequence = self._deal_counter.next_value(now.year)
        deal = Deal(
            id=generate_deal_id(),
            deal_number=format_deal_number(now.year, sequence),
            property_id=property_id,
            parties=DealParties(buyer=buyer, seller=seller),
            agents=DealAgents(primary=primary_agent, secondary=secondary_agent),
            financial=DealFinancial(agreed_price=float(agreed_price)),
            lifecycle=DealLifecycle(stage=DealStage.OFFER_ACCEPTED, status=DealStatus.ACTIVE),
            created_at=now,
            updated_at=now,
        )
        if seed_playbook:
            deal.tasks.extend(build_stage_tasks(DealStage.OFFER_ACCEPTED, now))
            deal.documents.extend(build_stage_documents(DealStage.OFFER_ACCEPTED))

        deal.add_note(
            render_template(
                "deal_created",
                {
                    "deal_number": deal.deal_number,
                    "buyer_name": buyer.name,
                    "agreed_price": self._money(deal.financial.agreed_price),
                },
            ),
            created_by=primary_agent.id,
            now=now,
        )
        self._save(deal)
        logger.info("Created deal %s for property %s", deal.deal_number, property_id)
        self._publish(DealCreated(deal_id=deal.id, deal_number=deal.deal_number))
        return LifecycleOutcome(deal=deal, validation=validation)

    # =========================================================================
    # Payments
    # =========================================================================

    def schedule_payment(
        self,
        deal_id: str,
        payment_type: str,
        amount: float,
        due_date: TimestampLike = None,
        notes: Optional[str] = None,
    ) -> DealPayment:
        """
        Add a pending payment to a deal's schedule.

        Raises:
            DealNotFoundError: If the deal does not exist
            ValueError: If the amount is not positive or the deal is not active
        """
        if amount <= 0:
            raise ValueError("Payment amount must be greater than 0")
        deal = self.get_deal(deal_id)
        if not deal.lifecycle.is_active:
            raise ValueError(f"Cannot schedule payments on a {deal.lifecycle.status.value} deal")

        payment = DealPayment(
            id=generate_payment_id(),
            type=payment_type,
            amount=float(amount),
            status=PaymentStatus.PENDING,
            due_date=parse_timestamp(due_date),
            notes=notes,
        )
        deal.financial.payments.append(payment)
        recompute_financials(deal)
        self._save(deal)
        return payment

    def record_payment(
        self,
        deal_id: str,
        payment_id: str,
        recorded_by: str,
        paid_amount: Optional[float] = None,
        payment_method: Optional[str] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        paid_date: TimestampLike = None,
        issue_receipt: bool = True,
    ) -> LifecycleOutcome:
        """
        Record money received against a scheduled payment.

        paid_amount is the amount received now; it defaults to the payment's
        outstanding amount. The payment becomes completed once fully paid and
        partial otherwise. Totals are recomputed from all payments and a
        receipt is issued.

        Raises:
            DealNotFoundError / PaymentNotFoundError: Unknown deal or payment
            ValidationFailedError: If the ledger rejects the recording
        """
        deal = self.get_deal(deal_id)
        payment = deal.financial.find_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        received = payment.outstanding_amount if paid_amount is None else float(paid_amount)
        already_paid = payment.paid_amount or 0.0
        candidate = DealPayment.from_dict(payment.to_dict())
        candidate.paid_amount = already_paid + received

        now = self._clock()
        validation = validate_payment_recording(candidate, deal, now=now)
        if received <= 0:
            validation = validation.merge(
                ValidationResult.build(errors=["Paid amount must be greater than 0"])
            )
        self._require_valid(validation)

        payment.paid_amount = candidate.paid_amount
        payment.status = (
            PaymentStatus.COMPLETED
            if payment.paid_amount >= payment.amount
            else PaymentStatus.PARTIAL
        )
        payment.paid_date = parse_timestamp(paid_date) or now
        payment.payment_method = payment_method or payment.payment_method
        payment.reference_number = reference_number or payment.reference_number
        payment.notes = notes or payment.notes
        payment.recorded_by = recorded_by

        totals = recompute_financials(deal)

        receipt = None
        if issue_receipt:
            receipt = self._receipts.auto_generate_receipt(payment, deal, recorded_by)
            payment.receipt_number = receipt.receipt_number

        deal.add_note(
            render_template(
                "payment_recorded",
                {
                    "payment_type": payment.type,
                    "amount": self._money(received),
                    "deal_number": deal.deal_number,
                    "receipt_number": payment.receipt_number or "not issued",
                },
            ),
            created_by=recorded_by,
            now=now,
        )
        self._save(deal)

        if totals.is_overpaid:
            logger.warning(
                "Deal %s is overpaid by %s",
                deal.deal_number,
                self._money(-totals.balance_remaining),
            )
        self._publish(
            DealPaymentRecorded(
                deal_id=deal.id,
                payment_id=payment.id,
                receipt_number=payment.receipt_number,
            )
        )
        return LifecycleOutcome(deal=deal, validation=validation, payment=payment, receipt=receipt)

    def payment_summary(self, deal_id: str) -> PaymentSummary:
        return payment_summary(self.get_deal(deal_id), now=self._clock())

    # =========================================================================
    # Stages
    # =========================================================================

    def check_progression(self, deal_id: str, target_stage: Union[DealStage, str]) -> ValidationResult:
        """Dry-run the stage gate without changing anything."""
        return validate_stage_progression(self.get_deal(deal_id), target_stage)

    def progress_stage(
        self,
        deal_id: str,
        target_stage: Union[DealStage, str],
        agent_id: str,
    ) -> LifecycleOutcome:
        """
        Advance a deal by one stage and seed the new stage's checklist.

        Raises:
            ValidationFailedError: If the stage gate reports errors
        """
        deal = self.get_deal(deal_id)
        validation = validate_stage_progression(deal, target_stage)
        self._require_valid(validation)

        target = DealStage(target_stage)
        previous = deal.lifecycle.stage
        now = self._clock()

        deal.lifecycle.stage = target
        deal.lifecycle.history.append(
            StageTransition(
                from_stage=previous,
                to_stage=target,
                transitioned_at=now,
                transitioned_by=agent_id,
            )
        )
        deal.tasks.extend(build_stage_tasks(target, now))
        deal.documents.extend(build_stage_documents(target))
        deal.add_note(
            render_template(
                "stage_progressed",
                {
                    "deal_number": deal.deal_number,
                    "from_stage": previous.value,
                    "to_stage": target.value,
                    "agent_id": agent_id,
                },
            ),
            created_by=agent_id,
            now=now,
        )
        self._save(deal)

        logger.info("Deal %s moved %s -> %s", deal.deal_number, previous.value, target.value)
        self._publish(
            DealStageProgressed(deal_id=deal.id, from_stage=previous.value, to_stage=target.value)
        )
        return LifecycleOutcome(deal=deal, validation=validation)

    # =========================================================================
    # Terminal States
    # =========================================================================

    def complete_deal(self, deal_id: str, agent_id: str) -> LifecycleOutcome:
        """
        Mark a deal completed.

        Raises:
            ValidationFailedError: If the deal is inactive or the completion
                gate reports errors
        """
        deal = self.get_deal(deal_id)
        recompute_financials(deal)

        validation = validate_deal_completion(deal, currency=self._currency)
        if not deal.lifecycle.is_active:
            validation = ValidationResult.build(
                errors=[f"Deal is already {deal.lifecycle.status.value}"]
            ).merge(validation)
        self._require_valid(validation)

        deal.lifecycle.status = DealStatus.COMPLETED
        deal.add_note(
            render_template(
                "deal_completed",
                {"deal_number": deal.deal_number, "agent_id": agent_id},
            ),
            created_by=agent_id,
            now=self._clock(),
        )
        self._save(deal)
        logger.info("Deal %s completed", deal.deal_number)
        self._publish(DealCompleted(deal_id=deal.id))
        return LifecycleOutcome(deal=deal, validation=validation)

    def cancel_deal(self, deal_id: str, reason: str, agent_id: str) -> LifecycleOutcome:
        """
        Cancel an active deal from any stage.

        Raises:
            ValidationFailedError: If the cancellation gate reports errors
        """
        deal = self.get_deal(deal_id)
        validation = validate_deal_cancellation(deal, reason, currency=self._currency)
        self._require_valid(validation)

        deal.lifecycle.status = DealStatus.CANCELLED
        deal.add_note(
            render_template("deal_cancelled", {"reason": reason.strip()}),
            created_by=agent_id,
            now=self._clock(),
        )
        self._save(deal)
        logger.info("Deal %s cancelled", deal.deal_number)
        self._publish(DealCancelled(deal_id=deal.id, reason=reason.strip()))
        return LifecycleOutcome(deal=deal, validation=validation)

    # =========================================================================
    # Checklist
    # =========================================================================

    def complete_task(self, deal_id: str, task_id: str, agent_id: str) -> LifecycleOutcome:
        """Mark a task completed; timing problems come back as warnings."""
        deal = self.get_deal(deal_id)
        task = deal.find_task(task_id)
        if task is None:
            raise RecordNotFoundError(task_id)

        now = self._clock()
        validation = validate_task_completion(task, deal, now=now)
        if not task.is_completed:
            task.status = TaskStatus.COMPLETED
            task.completed_at = now
            task.assigned_to = task.assigned_to or agent_id
            self._save(deal)
        return LifecycleOutcome(deal=deal, validation=validation)

    def verify_document(self, deal_id: str, document_id: str, verified_by: str) -> LifecycleOutcome:
        """Mark a document verified."""
        deal = self.get_deal(deal_id)
        document = deal.find_document(document_id)
        if document is None:
            raise RecordNotFoundError(document_id)

        warnings: list[str] = []
        if document.is_verified:
            warnings.append("Document is already verified")
        else:
            document.status = DocumentStatus.VERIFIED
            document.verified_by = verified_by
            document.verified_at = self._clock()
            self._save(deal)
        return LifecycleOutcome(deal=deal, validation=ValidationResult.build((), warnings))

    def overdue_payments(self, now: Optional[datetime] = None) -> list[tuple[Deal, DealPayment]]:
        """Overdue payments across all active deals."""
        now = now or self._clock()
        result = []
        for deal in self._deals.list_by_status(DealStatus.ACTIVE):
            for payment in deal.financial.payments:
                if payment.is_overdue(now):
                    result.append((deal, payment))
        return result
