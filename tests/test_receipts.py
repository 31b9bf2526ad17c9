"""
Tests for the Receipt Issuer

Tests cover:
- Receipt number format and per-year counters
- Uniqueness across many payments
- Reprints keeping the number and bumping the version
- Receipt statistics
"""

from datetime import datetime, timezone

import pytest

from core.deals.schema import (
    AgentRef,
    Deal,
    DealAgents,
    DealFinancial,
    DealParties,
    DealPayment,
    Party,
    PaymentStatus,
)
from core.events import EventBus, EventRecorder, ReceiptGenerated, ReceiptRegenerated
from core.receipts.issuer import ReceiptIssuer
from core.receipts.schema import ReceiptMetadata, format_receipt_number, parse_receipt_number
from core.store import InMemoryRecordStore


NOW = datetime(2026, 6, 10, 14, 30, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def issuer(clock, events):
    return ReceiptIssuer(InMemoryRecordStore(), events=events, clock=clock)


@pytest.fixture
def deal():
    return Deal(
        id="DEAL-R1",
        deal_number="DEAL-2026-0010",
        property_id="PROP-R1",
        parties=DealParties(buyer=Party("Bilal Ahmed"), seller=Party("Sana Malik")),
        agents=DealAgents(primary=AgentRef("AG-1", "Ayesha Khan")),
        financial=DealFinancial(agreed_price=5_000_000),
    )


def paid(payment_id, amount=100_000):
    return DealPayment(
        id=payment_id,
        type="installment-1",
        amount=amount,
        status=PaymentStatus.COMPLETED,
        paid_amount=amount,
    )


# =============================================================================
# Receipt Numbers
# =============================================================================


class TestReceiptNumbers:

    def test_format_pads_to_three_digits(self):
        assert format_receipt_number(2026, 1) == "RCP-2026-001"
        assert format_receipt_number(2026, 42) == "RCP-2026-042"
        assert format_receipt_number(2026, 1234) == "RCP-2026-1234"

    def test_parse(self):
        assert parse_receipt_number("RCP-2026-007") == (2026, 7)
        with pytest.raises(ValueError):
            parse_receipt_number("RCPT-2026-7")

    def test_numbers_are_unique_and_increasing(self, issuer, deal):
        numbers = [
            issuer.auto_generate_receipt(paid(f"PAY-{i}"), deal, "cashier").receipt_number
            for i in range(12)
        ]

        assert numbers[0] == "RCP-2026-001"
        assert numbers[-1] == "RCP-2026-012"
        assert len(set(numbers)) == len(numbers)
        counters = [parse_receipt_number(n)[1] for n in numbers]
        assert counters == sorted(counters)

    def test_years_count_independently(self, issuer, deal, clock):
        issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")
        issuer.auto_generate_receipt(paid("PAY-2"), deal, "cashier")

        clock.now = NOW.replace(year=2027, month=1, day=2)
        first_of_2027 = issuer.auto_generate_receipt(paid("PAY-3"), deal, "cashier")

        clock.now = NOW
        third_of_2026 = issuer.auto_generate_receipt(paid("PAY-4"), deal, "cashier")

        assert first_of_2027.receipt_number == "RCP-2027-001"
        assert third_of_2026.receipt_number == "RCP-2026-003"


# =============================================================================
# Issuing and Reprinting
# =============================================================================


class TestIssuing:

    def test_new_receipt_metadata(self, issuer, deal, events):
        recorder = EventRecorder(events)

        metadata = issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")

        assert metadata.version == 1
        assert not metadata.is_reprint
        assert metadata.payment_id == "PAY-1"
        assert metadata.deal_id == "DEAL-R1"
        assert metadata.generated_by == "cashier"
        assert metadata.generated_at == NOW
        assert issuer.has_receipt("PAY-1")
        assert recorder.of_type(ReceiptGenerated)[0].receipt_number == metadata.receipt_number

    def test_reprint_keeps_number(self, issuer, deal, clock, events):
        recorder = EventRecorder(events)
        original = issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")

        clock.now = NOW.replace(day=20)
        first = issuer.regenerate_receipt("PAY-1", "manager")
        second = issuer.regenerate_receipt("PAY-1", "auditor")

        assert first.receipt_number == original.receipt_number
        assert first.version == 2
        assert second.version == 3
        assert second.is_reprint

        stored = issuer.get_receipt_metadata("PAY-1")
        assert stored.version == 3
        assert stored.generated_by == "auditor"
        assert stored.generated_at == NOW.replace(day=20)
        assert [e.version for e in recorder.of_type(ReceiptRegenerated)] == [2, 3]

    def test_reprint_does_not_consume_a_number(self, issuer, deal):
        issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")
        issuer.regenerate_receipt("PAY-1", "manager")

        following = issuer.auto_generate_receipt(paid("PAY-2"), deal, "cashier")

        assert following.receipt_number == "RCP-2026-002"

    def test_reprint_without_receipt_returns_none(self, issuer):
        assert issuer.regenerate_receipt("PAY-NONE", "manager") is None
        assert issuer.get_receipt_metadata("PAY-NONE") is None
        assert not issuer.has_receipt("PAY-NONE")

    def test_reissue_replaces_record_for_same_payment(self, issuer, deal):
        issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")
        reissued = issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")

        assert reissued.receipt_number == "RCP-2026-002"
        assert issuer.repository.count() == 1
        assert issuer.get_receipt_metadata("PAY-1").receipt_number == "RCP-2026-002"

    def test_lookup_by_number_and_deal(self, issuer, deal):
        issuer.auto_generate_receipt(paid("PAY-1"), deal, "cashier")
        second = issuer.auto_generate_receipt(paid("PAY-2"), deal, "cashier")

        found = issuer.repository.get_by_receipt_number(second.receipt_number)
        assert found.payment_id == "PAY-2"
        assert [m.payment_id for m in issuer.repository.list_by_deal("DEAL-R1")] == ["PAY-1", "PAY-2"]


class TestReceiptStats:

    def test_counts_by_period(self, issuer, deal, clock):
        clock.now = datetime(2025, 12, 30, tzinfo=timezone.utc)
        issuer.auto_generate_receipt(paid("PAY-OLD"), deal, "cashier")

        clock.now = datetime(2026, 5, 2, tzinfo=timezone.utc)
        issuer.auto_generate_receipt(paid("PAY-MAY"), deal, "cashier")

        clock.now = NOW
        issuer.auto_generate_receipt(paid("PAY-JUN-1"), deal, "cashier")
        issuer.auto_generate_receipt(paid("PAY-JUN-2"), deal, "cashier")

        stats = issuer.receipt_stats()

        assert stats.total_receipts == 4
        assert stats.receipts_this_year == 3
        assert stats.receipts_this_month == 2
        assert stats.to_dict()["total_receipts"] == 4

    def test_metadata_round_trip_accepts_zulu_timestamps(self):
        metadata = ReceiptMetadata.from_dict(
            {
                "receipt_number": "RCP-2026-005",
                "payment_id": "PAY-1",
                "deal_id": "DEAL-1",
                "generated_at": "2026-06-10T14:30:00Z",
                "generated_by": "cashier",
                "version": "2",
            }
        )

        assert metadata.generated_at == NOW
        assert metadata.version == 2
        assert metadata.to_dict()["generated_at"] == "2026-06-10T14:30:00+00:00"
