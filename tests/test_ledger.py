"""
Tests for the Payment Ledger

Tests cover:
- Payment recording gate (idempotency, overpayment, overdue)
- Totals recomputed from the payment list
- Deal completion gate
- Payment summary
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.deals.ledger import (
    compute_totals,
    has_recorded_payments,
    overdue_payments,
    payment_summary,
    recompute_financials,
    validate_deal_completion,
    validate_payment_recording,
)
from core.deals.schema import (
    AgentRef,
    Deal,
    DealAgents,
    DealDocument,
    DealFinancial,
    DealLifecycle,
    DealParties,
    DealPayment,
    DealStage,
    DealTask,
    DocumentStatus,
    Party,
    PaymentStatus,
    TaskPriority,
    TaskStatus,
)


NOW = datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Fixtures
# =============================================================================


def payment(payment_id, amount, status=PaymentStatus.PENDING, paid_amount=None, due_date=None, payment_type="installment-1"):
    return DealPayment(
        id=payment_id,
        type=payment_type,
        amount=amount,
        status=status,
        paid_amount=paid_amount,
        due_date=due_date,
    )


@pytest.fixture
def deal():
    """Deal with an agreed price of 1,000,000 and no payments yet."""
    return Deal(
        id="DEAL-LEDGER",
        deal_number="DEAL-2026-0002",
        property_id="PROP-2",
        parties=DealParties(buyer=Party("Bilal Ahmed"), seller=Party("Sana Malik")),
        agents=DealAgents(primary=AgentRef("AG-1", "Ayesha Khan")),
        financial=DealFinancial(agreed_price=1_000_000),
    )


@pytest.fixture
def handover_deal(deal):
    """Final-handover deal: 900,000 received, one 100,000 payment pending."""
    deal.lifecycle = DealLifecycle(stage=DealStage.FINAL_HANDOVER)
    deal.financial.payments = [
        payment("PAY-1", 900_000, PaymentStatus.COMPLETED, 900_000, payment_type="down-payment"),
        payment("PAY-2", 100_000, payment_type="final-payment"),
    ]
    deal.documents = [
        DealDocument(
            id="DOC-1",
            name="Sale Agreement",
            type="sale-agreement",
            stage=DealStage.AGREEMENT_SIGNING,
            status=DocumentStatus.VERIFIED,
        )
    ]
    deal.tasks = [
        DealTask(
            id="TASK-1",
            title="Exchange keys",
            stage=DealStage.FINAL_HANDOVER,
            status=TaskStatus.COMPLETED,
            priority=TaskPriority.HIGH,
        )
    ]
    recompute_financials(deal)
    return deal


# =============================================================================
# Payment Recording Gate
# =============================================================================


class TestPaymentRecording:

    def test_valid_recording(self, deal):
        candidate = payment("PAY-1", 250_000, paid_amount=250_000, due_date=NOW + timedelta(days=3))
        deal.financial.payments.append(payment("PAY-1", 250_000))

        result = validate_payment_recording(candidate, deal, now=NOW)

        assert result.is_valid
        assert result.warnings == ()

    def test_completed_payment_cannot_be_recorded_again(self, deal):
        done = payment("PAY-1", 250_000, PaymentStatus.COMPLETED, 250_000)
        deal.financial.payments.append(done)
        recompute_financials(deal)
        before = (deal.financial.total_paid, deal.financial.balance_remaining)

        result = validate_payment_recording(done, deal, now=NOW)

        assert not result.is_valid
        assert "Payment is already marked as completed" in result.errors
        assert (deal.financial.total_paid, deal.financial.balance_remaining) == before

    def test_paid_amount_above_amount_is_an_error(self, deal):
        candidate = payment("PAY-1", 100_000, paid_amount=150_000)

        result = validate_payment_recording(candidate, deal, now=NOW)

        assert "Paid amount cannot exceed payment amount" in result.errors

    def test_overpayment_is_only_a_warning(self, deal):
        deal.financial.payments.append(payment("PAY-1", 900_000, PaymentStatus.COMPLETED, 900_000))
        recompute_financials(deal)
        candidate = payment("PAY-2", 200_000, paid_amount=200_000)

        result = validate_payment_recording(candidate, deal, now=NOW)

        assert result.is_valid
        assert result.warnings == ("This payment will result in overpayment",)

    def test_top_up_of_partial_payment_is_not_double_counted(self, deal):
        deal.financial.payments = [
            payment("PAY-1", 900_000, PaymentStatus.COMPLETED, 900_000),
            payment("PAY-2", 100_000, PaymentStatus.PARTIAL, 40_000),
        ]
        recompute_financials(deal)
        candidate = payment("PAY-2", 100_000, PaymentStatus.PARTIAL, 100_000)

        result = validate_payment_recording(candidate, deal, now=NOW)

        assert result.is_valid
        assert result.warnings == ()

    def test_overdue_pending_payment_warns(self, deal):
        candidate = payment("PAY-1", 100_000, paid_amount=100_000, due_date=NOW - timedelta(days=2))

        result = validate_payment_recording(candidate, deal, now=NOW)

        assert result.is_valid
        assert "This payment is overdue" in result.warnings


# =============================================================================
# Totals
# =============================================================================


class TestTotals:

    def test_totals_follow_payment_status(self):
        payments = [
            payment("A", 300_000, PaymentStatus.COMPLETED, 300_000),
            payment("B", 200_000, PaymentStatus.COMPLETED),
            payment("C", 100_000, PaymentStatus.PARTIAL, 25_000),
            payment("D", 400_000),
        ]

        totals = compute_totals(1_000_000, payments)

        assert totals.total_paid == 525_000
        assert totals.balance_remaining == 475_000
        assert not totals.is_settled

    def test_identity_holds_after_every_mutation(self, deal):
        deal.financial.payments = [payment(f"P{i}", 250_000) for i in range(4)]
        for index, scheduled in enumerate(deal.financial.payments):
            scheduled.paid_amount = scheduled.amount
            scheduled.status = PaymentStatus.COMPLETED
            recompute_financials(deal)
            financial = deal.financial
            assert financial.total_paid + financial.balance_remaining == financial.agreed_price
            assert financial.total_paid == 250_000 * (index + 1)

        assert deal.financial.balance_remaining == 0

    def test_overpayment_leaves_negative_balance(self, deal):
        deal.financial.payments = [payment("P1", 1_200_000, PaymentStatus.COMPLETED, 1_200_000)]

        totals = recompute_financials(deal)

        assert totals.is_overpaid
        assert deal.financial.balance_remaining == -200_000

    def test_recorded_payments_flag(self, deal):
        assert not has_recorded_payments(deal)
        deal.financial.payments.append(payment("P1", 100, PaymentStatus.PARTIAL, 10))
        assert has_recorded_payments(deal)


# =============================================================================
# Deal Completion Gate
# =============================================================================


class TestDealCompletion:

    def test_pending_payment_blocks_then_passes_once_paid(self, handover_deal):
        result = validate_deal_completion(handover_deal)

        assert not result.is_valid
        assert "1 payments are still pending" in result.errors
        assert "Outstanding balance of PKR 100,000" in result.errors

        final = handover_deal.financial.find_payment("PAY-2")
        final.status = PaymentStatus.COMPLETED
        final.paid_amount = 100_000
        recompute_financials(handover_deal)

        result = validate_deal_completion(handover_deal)
        assert handover_deal.financial.balance_remaining == 0
        assert result.is_valid
        assert result.errors == ()

    def test_requires_final_handover_stage(self, handover_deal):
        handover_deal.lifecycle.stage = DealStage.TRANSFER_REGISTRATION

        result = validate_deal_completion(handover_deal)

        assert "Deal must be in final-handover stage to be completed" in result.errors

    def test_unverified_agreement_blocks(self, handover_deal):
        handover_deal.documents[0].status = DocumentStatus.UPLOADED
        handover_deal.documents.append(
            DealDocument(
                id="DOC-2",
                name="Agreement to Sell",
                type="Agreement-To-Sell",
                stage=DealStage.OFFER_ACCEPTED,
            )
        )

        result = validate_deal_completion(handover_deal)

        assert "2 critical documents are not verified" in result.errors

    def test_non_agreement_documents_do_not_block(self, handover_deal):
        handover_deal.documents.append(
            DealDocument(id="DOC-3", name="NOC", type="noc", stage=DealStage.DOCUMENTATION)
        )

        result = validate_deal_completion(handover_deal)

        assert not any("critical documents" in e for e in result.errors)

    def test_incomplete_high_priority_task_only_warns(self, handover_deal):
        handover_deal.tasks[0].status = TaskStatus.IN_PROGRESS

        result = validate_deal_completion(handover_deal)

        assert "1 high-priority tasks are incomplete" in result.warnings
        assert not any("high-priority" in e for e in result.errors)


# =============================================================================
# Payment Summary
# =============================================================================


class TestPaymentSummary:

    def test_summary_of_mixed_payments(self, deal):
        deal.financial.payments = [
            payment("P1", 200_000, PaymentStatus.COMPLETED, 200_000, due_date=NOW - timedelta(days=30)),
            payment("P2", 300_000, PaymentStatus.PARTIAL, 100_000, due_date=NOW - timedelta(days=1)),
            payment("P3", 500_000, due_date=NOW + timedelta(days=30)),
        ]

        summary = payment_summary(deal, now=NOW)

        assert summary.total_paid == 300_000
        assert summary.balance_remaining == 700_000
        assert summary.percentage_paid == pytest.approx(30.0)
        assert (summary.completed_count, summary.partial_count, summary.pending_count) == (1, 1, 1)
        assert summary.next_payment_due.payment_id == "P2"
        assert summary.next_payment_due.amount == 200_000
        assert summary.overdue_payment_ids == ("P2",)

    def test_overdue_payments_exclude_completed(self, deal):
        deal.financial.payments = [
            payment("P1", 1, PaymentStatus.COMPLETED, 1, due_date=NOW - timedelta(days=3)),
            payment("P2", 1, due_date=NOW - timedelta(days=3)),
            payment("P3", 1),
        ]

        assert [p.id for p in overdue_payments(deal, now=NOW)] == ["P2"]

    def test_summary_without_payments(self, deal):
        summary = payment_summary(deal, now=NOW)

        assert summary.next_payment_due is None
        assert summary.to_dict()["percentage_paid"] == 0.0
