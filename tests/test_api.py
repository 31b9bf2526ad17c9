"""
Tests for the web API.

Each test gets its own application over an in-memory store and a fixed
clock.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from core.store import InMemoryRecordStore
from utils.config import Config
from web.app import create_app


NOW = datetime(2026, 7, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client(tmp_path):
    config = Config(data_dir=str(tmp_path))
    app = create_app(config=config, store=InMemoryRecordStore(), clock=lambda: NOW)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def deal(client):
    response = client.post(
        "/deals",
        json={
            "property_id": "PROP-1",
            "agreed_price": 1_000_000,
            "buyer_name": "Bilal Ahmed",
            "seller_name": "Sana Malik",
            "primary_agent_id": "AG-1",
            "primary_agent_name": "Ayesha Khan",
        },
    )
    assert response.status_code == 201
    return response.json()["deal"]


@pytest.fixture
def recorded_payment(client, deal):
    scheduled = client.post(
        f"/deals/{deal['id']}/payments",
        json={"type": "token", "amount": 100_000},
    ).json()
    response = client.post(
        f"/deals/{deal['id']}/payments/{scheduled['id']}/record",
        json={"recorded_by": "cashier", "payment_method": "cash"},
    )
    assert response.status_code == 200
    return response.json()


# =============================================================================
# Health
# =============================================================================


class TestHealth:

    def test_health_endpoints(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/api/health").json()["status"] == "healthy"

    def test_startup_creates_receipts_dir(self, client, tmp_path):
        assert (tmp_path / "receipts").is_dir()


# =============================================================================
# Deals
# =============================================================================


class TestDealRoutes:

    def test_create_and_fetch(self, client, deal):
        assert deal["deal_number"] == "DEAL-2026-0001"
        assert deal["lifecycle"]["stage"] == "offer-accepted"

        fetched = client.get(f"/deals/{deal['id']}").json()
        assert fetched["id"] == deal["id"]

    def test_invalid_creation_returns_validation_result(self, client):
        response = client.post(
            "/deals",
            json={
                "property_id": "PROP-1",
                "agreed_price": -5,
                "buyer_name": "Bilal Ahmed",
                "seller_name": "",
                "primary_agent_id": "AG-1",
            },
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["is_valid"] is False
        assert "Seller name is required" in detail["errors"]
        assert "Agreed price must be greater than 0" in detail["errors"]

    def test_unknown_deal_is_404(self, client):
        assert client.get("/deals/DEAL-NOPE").status_code == 404

    def test_list_filters(self, client, deal):
        assert client.get("/deals").json()["count"] == 1
        assert client.get("/deals", params={"status": "cancelled"}).json()["count"] == 0
        assert client.get("/deals", params={"stage": "offer-accepted"}).json()["count"] == 1
        assert client.get("/deals", params={"status": "archived"}).status_code == 422

    def test_record_payment_issues_receipt(self, client, deal, recorded_payment):
        assert recorded_payment["payment"]["status"] == "completed"
        assert recorded_payment["receipt"]["receipt_number"] == "RCP-2026-001"
        assert recorded_payment["deal"]["financial"]["balance_remaining"] == 900_000

        summary = client.get(f"/deals/{deal['id']}/payment-summary").json()
        assert summary["total_paid"] == 100_000

        receipts = client.get(f"/deals/{deal['id']}/receipts").json()
        assert receipts["count"] == 1

    def test_recording_twice_is_rejected(self, client, deal, recorded_payment):
        payment_id = recorded_payment["payment"]["id"]

        response = client.post(
            f"/deals/{deal['id']}/payments/{payment_id}/record",
            json={"recorded_by": "cashier", "paid_amount": 1},
        )

        assert response.status_code == 422
        assert "Payment is already marked as completed" in response.json()["detail"]["errors"]

    def test_schedule_non_positive_amount(self, client, deal):
        response = client.post(f"/deals/{deal['id']}/payments", json={"type": "token", "amount": 0})
        assert response.status_code == 422

    def test_progression_dry_run_and_gate(self, client, deal):
        body = {"target_stage": "agreement-signing", "agent_id": "AG-1"}

        dry_run = client.post(f"/deals/{deal['id']}/validate-progression", json=body).json()
        assert dry_run["is_valid"] is False

        response = client.post(f"/deals/{deal['id']}/progress", json=body)
        assert response.status_code == 422

    def test_progress_after_checklist(self, client, deal):
        for task in deal["tasks"]:
            client.post(f"/deals/{deal['id']}/tasks/{task['id']}/complete", json={"agent_id": "AG-1"})
        for document in deal["documents"]:
            client.post(
                f"/deals/{deal['id']}/documents/{document['id']}/verify",
                json={"verified_by": "AG-1"},
            )

        response = client.post(
            f"/deals/{deal['id']}/progress",
            json={"target_stage": "agreement-signing", "agent_id": "AG-1"},
        )

        assert response.status_code == 200
        outcome = response.json()
        assert outcome["deal"]["lifecycle"]["stage"] == "agreement-signing"
        assert outcome["validation"]["warnings"] == ["0/1 required payments completed"]

    def test_cancel(self, client, deal):
        response = client.post(
            f"/deals/{deal['id']}/cancel",
            json={"reason": "Buyer withdrew financing", "agent_id": "AG-1"},
        )

        assert response.status_code == 200
        assert response.json()["deal"]["lifecycle"]["status"] == "cancelled"

    def test_complete_too_early(self, client, deal):
        response = client.post(f"/deals/{deal['id']}/complete", json={"agent_id": "AG-1"})
        assert response.status_code == 422


# =============================================================================
# Commissions
# =============================================================================


class TestCommissionRoutes:

    def test_split_workflow(self, client, recorded_payment):
        response = client.post(
            "/commissions/splits",
            json={
                "property_id": "PROP-1",
                "total_amount": 1_000_000,
                "payout_trigger": "possession",
                "splits": [
                    {"agent_id": "AG-1", "percentage": 40},
                    {"agent_id": "AG-2", "percentage": 30},
                    {"agent_id": "AG-3", "percentage": 30},
                ],
            },
        )

        assert response.status_code == 201
        payload = response.json()
        assert [c["amount"] for c in payload["commissions"]] == [400_000, 300_000, 300_000]
        assert payload["validation"]["warnings"] == []

        commission_id = payload["commissions"][0]["id"]
        approved = client.post(f"/commissions/{commission_id}/approve", json={"approved_by": "manager"})
        assert approved.json()["approval_status"] == "approved"

        again = client.post(f"/commissions/{commission_id}/reject", json={"reason": "late"})
        assert again.status_code == 409

        paid = client.post(f"/commissions/{commission_id}/mark-paid")
        assert paid.json()["status"] == "paid"

        ytd = client.get("/commissions/agents/AG-1/ytd", params={"year": 2026}).json()
        assert ytd["paid_amount"] == 400_000

    def test_under_allocated_split_is_422(self, client):
        response = client.post(
            "/commissions/splits",
            json={
                "property_id": "PROP-1",
                "total_amount": 1_000_000,
                "splits": [{"agent_id": "AG-1", "percentage": 40}],
            },
        )

        assert response.status_code == 422
        assert "Commission splits must total 100% (currently 40.0%)" in response.json()["detail"]["errors"]

    def test_single_commission_without_deal_warns(self, client):
        response = client.post(
            "/commissions",
            json={"property_id": "PROP-X", "sale_amount": 5_000_000, "rate": 2, "agent_id": "AG-1"},
        )

        assert response.status_code == 201
        assert response.json()["validation"]["warnings"] == ["No deal found for property PROP-X"]

    def test_unrecognised_trigger_defaults_to_thirty_days(self, client):
        response = client.post(
            "/commissions",
            json={
                "property_id": "PROP-X",
                "sale_amount": 5_000_000,
                "rate": 2,
                "agent_id": "AG-1",
                "payout_trigger": "someday",
            },
        )

        assert response.status_code == 201
        payload = response.json()
        assert payload["commission"]["payout_trigger"] is None
        assert payload["commission"]["due_date"].startswith("2026-07-31")
        assert "Unknown payout trigger 'someday'; due date set 30 days out" in payload["validation"]["warnings"]

    def test_override_and_listing(self, client):
        created = client.post(
            "/commissions",
            json={"property_id": "PROP-X", "sale_amount": 5_000_000, "rate": 2, "agent_id": "AG-1"},
        ).json()["commission"]

        response = client.post(
            f"/commissions/{created['id']}/override",
            json={"new_amount": 75_000, "reason": "Agreed discount", "overridden_by": "director"},
        )

        assert response.json()["amount"] == 75_000
        listed = client.get("/commissions", params={"agent_id": "AG-1"}).json()
        assert listed["commissions"][0]["override_reason"] == "Agreed discount"

    def test_unknown_commission_is_404(self, client):
        assert client.get("/commissions/COMM-NOPE").status_code == 404

    def test_sweep(self, client):
        assert client.post("/commissions/sweep-overdue").json() == {"newly_overdue": 0}


# =============================================================================
# Receipts
# =============================================================================


class TestReceiptRoutes:

    def test_metadata_and_reprint(self, client, recorded_payment):
        payment_id = recorded_payment["payment"]["id"]

        metadata = client.get(f"/receipts/{payment_id}").json()
        assert metadata["version"] == 1

        reprint = client.post(f"/receipts/{payment_id}/reprint", json={"regenerated_by": "manager"}).json()
        assert reprint["receipt_number"] == metadata["receipt_number"]
        assert reprint["version"] == 2

    def test_pdf_download(self, client, recorded_payment):
        payment_id = recorded_payment["payment"]["id"]

        response = client.get(f"/receipts/{payment_id}/pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="RCP-2026-001-v1.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_missing_receipt(self, client):
        assert client.get("/receipts/PAY-NOPE").status_code == 404
        assert client.post("/receipts/PAY-NOPE/reprint", json={"regenerated_by": "x"}).status_code == 404
        assert client.get("/receipts/PAY-NOPE/pdf").status_code == 404

    def test_stats(self, client, recorded_payment):
        stats = client.get("/receipts/stats").json()
        assert stats == {"total_receipts": 1, "receipts_this_year": 1, "receipts_this_month": 1}
