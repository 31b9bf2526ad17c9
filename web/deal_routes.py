"""
Deal Routes - Web API for the Deal Lifecycle

Create deals, schedule and record payments, and move deals through their
stages. Gate failures come back as 422 with the full validation result;
gate warnings are returned alongside the updated deal.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from core.deals.schema import AgentRef, DealStage, DealStatus, Party
from web.services import LedgerServices, get_services, ledger_errors


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/deals", tags=["deals"])


# =============================================================================
# Request Models
# =============================================================================


class CreateDealRequest(BaseModel):
    property_id: str
    agreed_price: float
    buyer_name: str
    seller_name: str
    primary_agent_id: str
    primary_agent_name: str = ""
    buyer_contact: Optional[str] = None
    seller_contact: Optional[str] = None
    secondary_agent_id: Optional[str] = None
    secondary_agent_name: Optional[str] = None


class SchedulePaymentRequest(BaseModel):
    type: str = Field(..., description="token, down-payment, installment-N, ...")
    amount: float
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class RecordPaymentRequest(BaseModel):
    recorded_by: str
    paid_amount: Optional[float] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    paid_date: Optional[datetime] = None


class ProgressStageRequest(BaseModel):
    target_stage: str
    agent_id: str


class AgentActionRequest(BaseModel):
    agent_id: str


class CancelDealRequest(BaseModel):
    reason: str
    agent_id: str


class VerifyDocumentRequest(BaseModel):
    verified_by: str


# =============================================================================
# Deals
# =============================================================================


@router.post("", status_code=201)
async def create_deal(
    body: CreateDealRequest,
    services: LedgerServices = Depends(get_services),
):
    """Create a deal at the offer-accepted stage."""
    secondary = None
    if body.secondary_agent_id:
        secondary = AgentRef(id=body.secondary_agent_id, name=body.secondary_agent_name or "")

    with ledger_errors():
        outcome = services.deals.create_deal(
            property_id=body.property_id,
            agreed_price=body.agreed_price,
            buyer=Party(name=body.buyer_name, contact=body.buyer_contact),
            seller=Party(name=body.seller_name, contact=body.seller_contact),
            primary_agent=AgentRef(id=body.primary_agent_id, name=body.primary_agent_name),
            secondary_agent=secondary,
        )
    return outcome.to_dict()


@router.get("")
async def list_deals(
    status: Optional[str] = Query(None, description="active, completed or cancelled"),
    stage: Optional[str] = Query(None),
    services: LedgerServices = Depends(get_services),
):
    """List deals, optionally narrowed to one status or stage."""
    repository = services.deals.deals
    with ledger_errors():
        if status:
            deals = repository.list_by_status(DealStatus(status))
        else:
            deals = repository.list_all()
        if stage:
            wanted = DealStage(stage)
            deals = [d for d in deals if d.lifecycle.stage == wanted]
    return {"deals": [d.to_dict() for d in deals], "count": len(deals)}


@router.get("/overdue-payments")
async def overdue_payments(services: LedgerServices = Depends(get_services)):
    """Overdue payments across active deals."""
    overdue = services.deals.overdue_payments()
    return {
        "payments": [
            {"deal_id": deal.id, "deal_number": deal.deal_number, "payment": payment.to_dict()}
            for deal, payment in overdue
        ],
        "count": len(overdue),
    }


@router.get("/{deal_id}")
async def get_deal(deal_id: str, services: LedgerServices = Depends(get_services)):
    with ledger_errors():
        return services.deals.get_deal(deal_id).to_dict()


@router.get("/{deal_id}/payment-summary")
async def payment_summary(deal_id: str, services: LedgerServices = Depends(get_services)):
    with ledger_errors():
        return services.deals.payment_summary(deal_id).to_dict()


# =============================================================================
# Payments
# =============================================================================


@router.post("/{deal_id}/payments", status_code=201)
async def schedule_payment(
    deal_id: str,
    body: SchedulePaymentRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        payment = services.deals.schedule_payment(
            deal_id,
            payment_type=body.type,
            amount=body.amount,
            due_date=body.due_date,
            notes=body.notes,
        )
    return payment.to_dict()


@router.post("/{deal_id}/payments/{payment_id}/record")
async def record_payment(
    deal_id: str,
    payment_id: str,
    body: RecordPaymentRequest,
    services: LedgerServices = Depends(get_services),
):
    """Record money received; a receipt is issued automatically."""
    with ledger_errors():
        outcome = services.deals.record_payment(
            deal_id,
            payment_id,
            recorded_by=body.recorded_by,
            paid_amount=body.paid_amount,
            payment_method=body.payment_method,
            reference_number=body.reference_number,
            notes=body.notes,
            paid_date=body.paid_date,
        )
    return outcome.to_dict()


# =============================================================================
# Stages and Terminal States
# =============================================================================


@router.post("/{deal_id}/validate-progression")
async def validate_progression(
    deal_id: str,
    body: ProgressStageRequest,
    services: LedgerServices = Depends(get_services),
):
    """Dry-run the stage gate."""
    with ledger_errors():
        return services.deals.check_progression(deal_id, body.target_stage).to_dict()


@router.post("/{deal_id}/progress")
async def progress_stage(
    deal_id: str,
    body: ProgressStageRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        outcome = services.deals.progress_stage(deal_id, body.target_stage, body.agent_id)
    return outcome.to_dict()


@router.post("/{deal_id}/complete")
async def complete_deal(
    deal_id: str,
    body: AgentActionRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        outcome = services.deals.complete_deal(deal_id, body.agent_id)
    return outcome.to_dict()


@router.post("/{deal_id}/cancel")
async def cancel_deal(
    deal_id: str,
    body: CancelDealRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        outcome = services.deals.cancel_deal(deal_id, body.reason, body.agent_id)
    return outcome.to_dict()


# =============================================================================
# Checklist
# =============================================================================


@router.post("/{deal_id}/tasks/{task_id}/complete")
async def complete_task(
    deal_id: str,
    task_id: str,
    body: AgentActionRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        outcome = services.deals.complete_task(deal_id, task_id, body.agent_id)
    return outcome.to_dict()


@router.post("/{deal_id}/documents/{document_id}/verify")
async def verify_document(
    deal_id: str,
    document_id: str,
    body: VerifyDocumentRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        outcome = services.deals.verify_document(deal_id, document_id, body.verified_by)
    return outcome.to_dict()


@router.get("/{deal_id}/receipts")
async def deal_receipts(deal_id: str, services: LedgerServices = Depends(get_services)):
    """Receipt metadata for every payment on a deal."""
    with ledger_errors():
        services.deals.get_deal(deal_id)
    receipts = services.receipts.repository.list_by_deal(deal_id)
    return {"receipts": [r.to_dict() for r in receipts], "count": len(receipts)}
