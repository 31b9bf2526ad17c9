"""
Tests for the receipts and housekeeping CLI.
"""

import json

import pytest

from core.deals.lifecycle import DealLifecycleService
from core.deals.schema import AgentRef, Party, PaymentType
from core.receipts.issuer import ReceiptIssuer
from core.store import JsonFileRecordStore
from reporting.cli import main


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DEAL_STORE_PATH", raising=False)
    monkeypatch.delenv("RECEIPTS_DIR", raising=False)
    return tmp_path


@pytest.fixture
def payment_id(data_dir):
    service = DealLifecycleService(JsonFileRecordStore(str(data_dir / "deal_store.json")))
    deal = service.create_deal(
        property_id="PROP-1",
        agreed_price=1_000_000,
        buyer=Party("Bilal Ahmed"),
        seller=Party("Sana Malik"),
        primary_agent=AgentRef("AG-1", "Ayesha Khan"),
    ).deal
    payment = service.schedule_payment(deal.id, PaymentType.TOKEN, 100_000)
    service.record_payment(deal.id, payment.id, "cashier")
    return payment.id


class TestReceiptCommand:

    def test_renders_pdf(self, data_dir, payment_id, capsys):
        assert main(["receipt", payment_id]) == 0

        receipts = list((data_dir / "receipts").glob("*.pdf"))
        assert len(receipts) == 1
        assert receipts[0].name.endswith("-v1.pdf")
        assert "version 1" in capsys.readouterr().out

    def test_reprint_bumps_version(self, data_dir, payment_id):
        assert main(["receipt", payment_id, "--reprint", "--by", "accounts"]) == 0

        assert [p.name[-7:] for p in (data_dir / "receipts").glob("*.pdf")] == ["-v2.pdf"]

    def test_unknown_payment(self, data_dir, capsys):
        assert main(["receipt", "PAY-NOPE"]) == 1
        assert "No receipt issued for payment PAY-NOPE" in capsys.readouterr().err

    def test_reprint_is_not_recorded_when_deal_is_missing(self, data_dir, payment_id, capsys):
        store = JsonFileRecordStore(str(data_dir / "deal_store.json"))
        deal_id = store.read("deals")[0]["id"]
        store.write("deals", [])

        assert main(["receipt", payment_id, "--reprint", "--by", "accounts"]) == 1

        assert f"Deal {deal_id} not found" in capsys.readouterr().err
        assert ReceiptIssuer(store).get_receipt_metadata(payment_id).version == 1
        assert list(data_dir.glob("receipts/*.pdf")) == []


class TestHousekeeping:

    def test_sweep(self, data_dir, capsys):
        assert main(["sweep-commissions"]) == 0
        assert "0 commission(s) became overdue" in capsys.readouterr().out

    def test_stats(self, data_dir, payment_id, capsys):
        assert main(["stats"]) == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["receipts"]["total_receipts"] == 1
        assert stats["active_deals_by_stage"]["offer-accepted"] == 1
