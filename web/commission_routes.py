"""
Commission Routes - Web API for Agent Commissions

Create split or single commissions, run the approval workflow, override
amounts and sweep for overdue payouts.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from core.commissions.schema import CommissionSplit
from web.services import LedgerServices, get_services, ledger_errors


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/commissions", tags=["commissions"])


# =============================================================================
# Request Models
# =============================================================================


class SplitInput(BaseModel):
    agent_id: str
    percentage: float
    agent_name: Optional[str] = None


class CreateSplitCommissionRequest(BaseModel):
    property_id: str
    total_amount: float
    splits: List[SplitInput]
    payout_trigger: Optional[str] = Field(
        None, description="booking, 50-percent, possession or full-payment"
    )


class CreateSingleCommissionRequest(BaseModel):
    property_id: str
    sale_amount: float
    rate: float
    agent_id: str
    agent_name: Optional[str] = None
    payout_trigger: Optional[str] = None


class ApproveRequest(BaseModel):
    approved_by: str


class RejectRequest(BaseModel):
    reason: str


class OverrideRequest(BaseModel):
    new_amount: float
    reason: str
    overridden_by: str


# =============================================================================
# Creation
# =============================================================================


@router.post("/splits", status_code=201)
async def create_split_commission(
    body: CreateSplitCommissionRequest,
    services: LedgerServices = Depends(get_services),
):
    """Create one commission per agent split."""
    splits = [
        CommissionSplit(agent_id=s.agent_id, percentage=s.percentage, agent_name=s.agent_name)
        for s in body.splits
    ]
    with ledger_errors():
        commissions, validation = services.commissions.create_commission_with_splits(
            body.property_id,
            body.total_amount,
            splits,
            payout_trigger=body.payout_trigger,
        )
    return {
        "commissions": [c.to_dict() for c in commissions],
        "validation": validation.to_dict(),
    }


@router.post("", status_code=201)
async def create_single_commission(
    body: CreateSingleCommissionRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        commission, validation = services.commissions.create_single_commission(
            body.property_id,
            body.sale_amount,
            body.rate,
            body.agent_id,
            payout_trigger=body.payout_trigger,
            agent_name=body.agent_name,
        )
    return {"commission": commission.to_dict(), "validation": validation.to_dict()}


# =============================================================================
# Queries
# =============================================================================


@router.get("")
async def list_commissions(
    agent_id: Optional[str] = Query(None),
    property_id: Optional[str] = Query(None),
    services: LedgerServices = Depends(get_services),
):
    repository = services.commissions.commissions
    if agent_id:
        commissions = repository.list_by_agent(agent_id)
    elif property_id:
        commissions = repository.list_by_property(property_id)
    else:
        commissions = repository.list_all()
    return {"commissions": [c.to_dict() for c in commissions], "count": len(commissions)}


@router.get("/agents/{agent_id}/ytd")
async def ytd_summary(
    agent_id: str,
    year: Optional[int] = Query(None),
    services: LedgerServices = Depends(get_services),
):
    """Year-to-date totals for an agent."""
    return services.commissions.ytd_summary(agent_id, year).to_dict()


@router.post("/sweep-overdue")
async def sweep_overdue(services: LedgerServices = Depends(get_services)):
    """Flag overdue commissions; reports only the newly overdue."""
    return {"newly_overdue": services.commissions.update_overdue_commissions()}


@router.get("/{commission_id}")
async def get_commission(commission_id: str, services: LedgerServices = Depends(get_services)):
    with ledger_errors():
        return services.commissions.get_commission(commission_id).to_dict()


# =============================================================================
# Approval Workflow
# =============================================================================


@router.post("/{commission_id}/approve")
async def approve_commission(
    commission_id: str,
    body: ApproveRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        return services.commissions.approve_commission(commission_id, body.approved_by).to_dict()


@router.post("/{commission_id}/reject")
async def reject_commission(
    commission_id: str,
    body: RejectRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        return services.commissions.reject_commission(commission_id, body.reason).to_dict()


@router.post("/{commission_id}/override")
async def override_commission(
    commission_id: str,
    body: OverrideRequest,
    services: LedgerServices = Depends(get_services),
):
    with ledger_errors():
        commission = services.commissions.override_commission(
            commission_id, body.new_amount, body.reason, body.overridden_by
        )
    return commission.to_dict()


@router.post("/{commission_id}/mark-paid")
async def mark_paid(commission_id: str, services: LedgerServices = Depends(get_services)):
    with ledger_errors():
        return services.commissions.mark_commission_paid(commission_id).to_dict()
