"""
Stage Playbook - Default Tasks and Documents per Stage

When a deal enters a stage it receives that stage's standard checklist.
These seeded items are what the stage gate measures completion against.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

from core.deals.schema import (
    DealDocument,
    DealStage,
    DealTask,
    DocumentStatus,
    TaskPriority,
    TaskStatus,
    generate_document_id,
    generate_task_id,
)


@dataclass(frozen=True)
class TaskTemplate:
    title: str
    description: str
    priority: TaskPriority
    days_until_due: int


@dataclass(frozen=True)
class DocumentTemplate:
    type: str
    name: str


_P = TaskPriority

STAGE_TASK_TEMPLATES: Final[dict[DealStage, tuple[TaskTemplate, ...]]] = {
    DealStage.OFFER_ACCEPTED: (
        TaskTemplate("Schedule signing meeting", "Coordinate buyer and seller for agreement signing", _P.HIGH, 2),
        TaskTemplate("Prepare sale agreement", "Draft and review sale agreement document", _P.MEDIUM, 4),
        TaskTemplate("Request buyer documentation", "Collect identity documents and proof of funds", _P.MEDIUM, 3),
        TaskTemplate("Collect token money", "Receive and document token payment", _P.URGENT, 5),
    ),
    DealStage.AGREEMENT_SIGNING: (
        TaskTemplate("Finalize sale agreement", "Review and finalize all terms", _P.HIGH, 2),
        TaskTemplate("Obtain buyer signature", "Get buyer to sign agreement", _P.HIGH, 5),
        TaskTemplate("Obtain seller signature", "Get seller to sign agreement", _P.HIGH, 5),
        TaskTemplate("Collect down payment", "Receive down payment from buyer", _P.URGENT, 7),
    ),
    DealStage.DOCUMENTATION: (
        TaskTemplate("Collect property title deed", "Obtain original title from seller", _P.HIGH, 3),
        TaskTemplate("Obtain NOC from society", "Get No Objection Certificate", _P.HIGH, 7),
        TaskTemplate("Clear property tax dues", "Ensure all taxes are paid", _P.MEDIUM, 5),
        TaskTemplate("Legal document verification", "Verify all documents with lawyer", _P.HIGH, 10),
    ),
    DealStage.PAYMENT_PROCESSING: (
        TaskTemplate("Track installment payments", "Ensure installments arrive on time", _P.HIGH, 3),
        TaskTemplate("Issue installment receipts", "Provide official receipts", _P.MEDIUM, 3),
        TaskTemplate("Update financial records", "Maintain accurate payment log", _P.LOW, 1),
    ),
    DealStage.HANDOVER_PREPARATION: (
        TaskTemplate("Schedule final property inspection", "Arrange final walkthrough", _P.HIGH, 5),
        TaskTemplate("Document meter readings", "Record all utility meters", _P.LOW, 3),
        TaskTemplate("Collect all keys from seller", "Get all sets of keys", _P.MEDIUM, 3),
    ),
    DealStage.TRANSFER_REGISTRATION: (
        TaskTemplate("Prepare transfer documents", "Prepare all transfer paperwork", _P.HIGH, 3),
        TaskTemplate("Schedule registrar appointment", "Book appointment at the registrar office", _P.HIGH, 5),
        TaskTemplate("Pay stamp duty", "Pay stamp duty on the transfer", _P.URGENT, 7),
    ),
    DealStage.FINAL_HANDOVER: (
        TaskTemplate("Collect final payment", "Receive final payment from buyer", _P.HIGH, 2),
        TaskTemplate("Conduct handover meeting", "Meet with all parties", _P.HIGH, 5),
        TaskTemplate("Exchange keys", "Hand over all keys to buyer", _P.HIGH, 5),
        TaskTemplate("Calculate commission", "Calculate agent commission", _P.MEDIUM, 7),
    ),
}

STAGE_DOCUMENT_TEMPLATES: Final[dict[DealStage, tuple[DocumentTemplate, ...]]] = {
    DealStage.OFFER_ACCEPTED: (
        DocumentTemplate("offer-letter", "Offer Acceptance Letter"),
        DocumentTemplate("agreement-to-sell", "Initial Agreement to Sell"),
    ),
    DealStage.AGREEMENT_SIGNING: (
        DocumentTemplate("sale-agreement", "Sale Agreement"),
        DocumentTemplate("payment-schedule", "Payment Schedule Document"),
    ),
    DealStage.DOCUMENTATION: (
        DocumentTemplate("title-deed", "Property Title Deed"),
        DocumentTemplate("noc", "NOC from Society"),
        DocumentTemplate("tax-clearance", "Property Tax Clearance"),
    ),
    DealStage.PAYMENT_PROCESSING: (
        DocumentTemplate("payment-log", "Complete Payment Log"),
    ),
    DealStage.HANDOVER_PREPARATION: (
        DocumentTemplate("inspection-report", "Final Inspection Report"),
        DocumentTemplate("handover-checklist", "Handover Checklist"),
    ),
    DealStage.TRANSFER_REGISTRATION: (
        DocumentTemplate("transfer-documents", "Property Transfer Documents"),
        DocumentTemplate("registered-deed", "Registered Property Deed"),
    ),
    DealStage.FINAL_HANDOVER: (
        DocumentTemplate("handover-certificate", "Property Handover Certificate"),
        DocumentTemplate("final-receipt", "Final Payment Receipt"),
    ),
}


def build_stage_tasks(stage: DealStage, now: datetime) -> list[DealTask]:
    """Fresh pending tasks for a stage, due relative to now."""
    return [
        DealTask(
            id=generate_task_id(),
            title=template.title,
            description=template.description,
            stage=stage,
            status=TaskStatus.PENDING,
            priority=template.priority,
            due_date=now + timedelta(days=template.days_until_due),
            automated=True,
        )
        for template in STAGE_TASK_TEMPLATES.get(stage, ())
    ]


def build_stage_documents(stage: DealStage) -> list[DealDocument]:
    """Fresh pending document slots for a stage."""
    return [
        DealDocument(
            id=generate_document_id(),
            name=template.name,
            type=template.type,
            stage=stage,
            status=DocumentStatus.PENDING,
        )
        for template in STAGE_DOCUMENT_TEMPLATES.get(stage, ())
    ]
