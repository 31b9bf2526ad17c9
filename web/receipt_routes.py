"""
Receipt Routes - Receipt Metadata, Reprints and PDF Download
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from core.errors import ReceiptNotFoundError
from web.services import LedgerServices, get_services


router = APIRouter(prefix="/receipts", tags=["receipts"])


class ReprintRequest(BaseModel):
    regenerated_by: str


@router.get("/stats")
async def receipt_stats(services: LedgerServices = Depends(get_services)):
    return services.receipts.receipt_stats().to_dict()


@router.get("/{payment_id}")
async def get_receipt(payment_id: str, services: LedgerServices = Depends(get_services)):
    metadata = services.receipts.get_receipt_metadata(payment_id)
    if metadata is None:
        raise HTTPException(status_code=404, detail=str(ReceiptNotFoundError(payment_id)))
    return metadata.to_dict()


@router.post("/{payment_id}/reprint")
async def reprint_receipt(
    payment_id: str,
    body: ReprintRequest,
    services: LedgerServices = Depends(get_services),
):
    """Record a reprint: same receipt number, next version."""
    metadata = services.receipts.regenerate_receipt(payment_id, body.regenerated_by)
    if metadata is None:
        raise HTTPException(status_code=404, detail=str(ReceiptNotFoundError(payment_id)))
    return metadata.to_dict()


@router.get("/{payment_id}/pdf")
async def download_receipt(payment_id: str, services: LedgerServices = Depends(get_services)):
    """Render the current version of a payment's receipt."""
    metadata = services.receipts.get_receipt_metadata(payment_id)
    found = services.deals.deals.find_payment(payment_id)
    if metadata is None or found is None:
        raise HTTPException(status_code=404, detail=f"No receipt for payment {payment_id}")

    deal, payment = found
    content = services.receipt_pdf.generate_to_buffer(deal, payment, metadata)
    filename = f"{metadata.receipt_number}-v{metadata.version}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
