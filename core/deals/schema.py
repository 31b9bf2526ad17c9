"""
Deal Schema - The Transaction Aggregate and Its Parts

A Deal tracks one property transaction from accepted offer to handover:
its lifecycle stage, the payments made against the agreed price, and the
tasks and documents that gate each stage.

Records are mutable dataclasses; they are read from the record store in
full, mutated in memory and written back in full.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final, Optional

from core.clock import format_timestamp, parse_timestamp, utc_now


# =============================================================================
# Enums
# =============================================================================


class DealStage(Enum):
    """Lifecycle stages, in the only order a deal may pass through them."""

    OFFER_ACCEPTED = "offer-accepted"
    AGREEMENT_SIGNING = "agreement-signing"
    DOCUMENTATION = "documentation"
    PAYMENT_PROCESSING = "payment-processing"
    HANDOVER_PREPARATION = "handover-preparation"
    TRANSFER_REGISTRATION = "transfer-registration"
    FINAL_HANDOVER = "final-handover"


class DealStatus(Enum):
    """Status of the deal as a whole."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DocumentStatus(Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"


class PaymentType:
    """
    Well-known payment type identifiers.

    Payment types are open-ended strings; installments are numbered
    installment-1, installment-2, ...
    """

    TOKEN: Final[str] = "token"
    DOWN_PAYMENT: Final[str] = "down-payment"
    FINAL: Final[str] = "final-payment"
    OTHER: Final[str] = "other"

    @staticmethod
    def installment(number: int) -> str:
        if number < 1:
            raise ValueError("Installment numbers start at 1")
        return f"installment-{number}"


# =============================================================================
# Constants
# =============================================================================

STAGE_ORDER: Final[tuple[DealStage, ...]] = tuple(DealStage)


def stage_index(stage: DealStage) -> int:
    """Position of a stage in STAGE_ORDER."""
    return STAGE_ORDER.index(stage)


def next_stage(stage: DealStage) -> Optional[DealStage]:
    """The stage after this one, or None for the last stage."""
    index = stage_index(stage)
    if index + 1 >= len(STAGE_ORDER):
        return None
    return STAGE_ORDER[index + 1]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def generate_deal_id() -> str:
    return _new_id("DEAL")


def generate_payment_id() -> str:
    return _new_id("PAY")


def generate_task_id() -> str:
    return _new_id("TASK")


def generate_document_id() -> str:
    return _new_id("DOC")


def generate_note_id() -> str:
    return _new_id("NOTE")


def format_deal_number(year: int, sequence: int) -> str:
    """Human-readable deal number, e.g. DEAL-2026-0007."""
    return f"DEAL-{year}-{sequence:04d}"


# =============================================================================
# Parties and Agents
# =============================================================================


@dataclass
class Party:
    """Buyer or seller as referenced by the deal (contact data lives elsewhere)."""

    name: str
    contact: Optional[str] = None
    contact_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "contact": self.contact, "contact_id": self.contact_id}

    @classmethod
    def from_dict(cls, data: dict) -> "Party":
        return cls(
            name=data["name"],
            contact=data.get("contact"),
            contact_id=data.get("contact_id"),
        )


@dataclass
class AgentRef:
    """Agent working the deal."""

    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "AgentRef":
        return cls(id=data["id"], name=data.get("name", ""))


@dataclass
class DealParties:
    buyer: Party
    seller: Party

    def to_dict(self) -> dict:
        return {"buyer": self.buyer.to_dict(), "seller": self.seller.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "DealParties":
        return cls(
            buyer=Party.from_dict(data["buyer"]),
            seller=Party.from_dict(data["seller"]),
        )


@dataclass
class DealAgents:
    primary: AgentRef
    secondary: Optional[AgentRef] = None

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict() if self.secondary else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealAgents":
        secondary = data.get("secondary")
        return cls(
            primary=AgentRef.from_dict(data["primary"]),
            secondary=AgentRef.from_dict(secondary) if secondary else None,
        )


# =============================================================================
# Payments
# =============================================================================


@dataclass
class DealPayment:
    """
    A scheduled or recorded payment against the agreed price.

    Payments are never deleted, only moved pending -> partial -> completed.
    """

    id: str
    type: str
    amount: float
    status: PaymentStatus = PaymentStatus.PENDING
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    paid_amount: Optional[float] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    receipt_number: Optional[str] = None

    @property
    def settled_amount(self) -> float:
        """Money actually received for this payment."""
        if self.status == PaymentStatus.COMPLETED:
            return self.paid_amount if self.paid_amount is not None else self.amount
        return self.paid_amount or 0.0

    @property
    def outstanding_amount(self) -> float:
        return max(0.0, self.amount - self.settled_amount)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Not yet completed and past its due date."""
        if self.status == PaymentStatus.COMPLETED or self.due_date is None:
            return False
        return self.due_date < (now or utc_now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "status": self.status.value,
            "due_date": format_timestamp(self.due_date),
            "paid_date": format_timestamp(self.paid_date),
            "paid_amount": self.paid_amount,
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "recorded_by": self.recorded_by,
            "receipt_number": self.receipt_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealPayment":
        paid_amount = data.get("paid_amount")
        return cls(
            id=data["id"],
            type=data["type"],
            amount=float(data["amount"]),
            status=PaymentStatus(data.get("status", "pending")),
            due_date=parse_timestamp(data.get("due_date")),
            paid_date=parse_timestamp(data.get("paid_date")),
            paid_amount=float(paid_amount) if paid_amount is not None else None,
            payment_method=data.get("payment_method"),
            reference_number=data.get("reference_number"),
            notes=data.get("notes"),
            recorded_by=data.get("recorded_by"),
            receipt_number=data.get("receipt_number"),
        )


# =============================================================================
# Tasks, Documents and Notes
# =============================================================================


@dataclass
class DealTask:
    """Checklist item belonging to one stage."""

    id: str
    title: str
    stage: DealStage
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    description: str = ""
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    completed_at: Optional[datetime] = None
    automated: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "stage": self.stage.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "description": self.description,
            "due_date": format_timestamp(self.due_date),
            "assigned_to": self.assigned_to,
            "completed_at": format_timestamp(self.completed_at),
            "automated": self.automated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealTask":
        return cls(
            id=data["id"],
            title=data["title"],
            stage=DealStage(data["stage"]),
            status=TaskStatus(data.get("status", "pending")),
            priority=TaskPriority(data.get("priority", "medium")),
            description=data.get("description", ""),
            due_date=parse_timestamp(data.get("due_date")),
            assigned_to=data.get("assigned_to"),
            completed_at=parse_timestamp(data.get("completed_at")),
            automated=data.get("automated", False),
        )


@dataclass
class DealDocument:
    """Document expected or held for one stage."""

    id: str
    name: str
    type: str
    stage: DealStage
    status: DocumentStatus = DocumentStatus.PENDING
    required: bool = True
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None

    @property
    def is_verified(self) -> bool:
        return self.status == DocumentStatus.VERIFIED

    @property
    def is_agreement(self) -> bool:
        """Agreement documents must be verified before a deal can complete."""
        return "agreement" in self.type.lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "stage": self.stage.value,
            "status": self.status.value,
            "required": self.required,
            "verified_by": self.verified_by,
            "verified_at": format_timestamp(self.verified_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealDocument":
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            stage=DealStage(data["stage"]),
            status=DocumentStatus(data.get("status", "pending")),
            required=data.get("required", True),
            verified_by=data.get("verified_by"),
            verified_at=parse_timestamp(data.get("verified_at")),
        )


@dataclass
class DealNote:
    id: str
    content: str
    created_by: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "created_by": self.created_by,
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealNote":
        return cls(
            id=data["id"],
            content=data["content"],
            created_by=data.get("created_by", ""),
            created_at=parse_timestamp(data["created_at"]),
        )


# =============================================================================
# Lifecycle and Financial Snapshot
# =============================================================================


@dataclass
class StageTransition:
    """Audit entry written every time a deal advances."""

    from_stage: DealStage
    to_stage: DealStage
    transitioned_at: datetime
    transitioned_by: str

    def to_dict(self) -> dict:
        return {
            "from_stage": self.from_stage.value,
            "to_stage": self.to_stage.value,
            "transitioned_at": format_timestamp(self.transitioned_at),
            "transitioned_by": self.transitioned_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StageTransition":
        return cls(
            from_stage=DealStage(data["from_stage"]),
            to_stage=DealStage(data["to_stage"]),
            transitioned_at=parse_timestamp(data["transitioned_at"]),
            transitioned_by=data.get("transitioned_by", ""),
        )


@dataclass
class DealLifecycle:
    stage: DealStage = DealStage.OFFER_ACCEPTED
    status: DealStatus = DealStatus.ACTIVE
    history: list[StageTransition] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == DealStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "history": [t.to_dict() for t in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealLifecycle":
        return cls(
            stage=DealStage(data["stage"]),
            status=DealStatus(data.get("status", "active")),
            history=[StageTransition.from_dict(t) for t in data.get("history", [])],
        )


@dataclass
class DealFinancial:
    """
    Financial snapshot of a deal.

    total_paid and balance_remaining are derived from payments by the
    ledger; they are stored for display, never patched incrementally.
    """

    agreed_price: float
    total_paid: float = 0.0
    balance_remaining: Optional[float] = None
    payments: list[DealPayment] = field(default_factory=list)

    def __post_init__(self):
        if self.balance_remaining is None:
            self.balance_remaining = self.agreed_price - self.total_paid

    def find_payment(self, payment_id: str) -> Optional[DealPayment]:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        return None

    def to_dict(self) -> dict:
        return {
            "agreed_price": self.agreed_price,
            "total_paid": self.total_paid,
            "balance_remaining": self.balance_remaining,
            "payments": [p.to_dict() for p in self.payments],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealFinancial":
        balance = data.get("balance_remaining")
        return cls(
            agreed_price=float(data["agreed_price"]),
            total_paid=float(data.get("total_paid", 0)),
            balance_remaining=float(balance) if balance is not None else None,
            payments=[DealPayment.from_dict(p) for p in data.get("payments", [])],
        )


# =============================================================================
# Deal
# =============================================================================


@dataclass
class Deal:
    """The transaction aggregate."""

    id: str
    deal_number: str
    property_id: str
    parties: DealParties
    agents: DealAgents
    financial: DealFinancial
    lifecycle: DealLifecycle = field(default_factory=DealLifecycle)
    tasks: list[DealTask] = field(default_factory=list)
    documents: list[DealDocument] = field(default_factory=list)
    notes: list[DealNote] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def stage(self) -> DealStage:
        return self.lifecycle.stage

    @property
    def status(self) -> DealStatus:
        return self.lifecycle.status

    def find_task(self, task_id: str) -> Optional[DealTask]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_document(self, document_id: str) -> Optional[DealDocument]:
        return next((d for d in self.documents if d.id == document_id), None)

    def tasks_for_stage(self, stage: DealStage) -> list[DealTask]:
        return [t for t in self.tasks if t.stage == stage]

    def documents_for_stage(self, stage: DealStage) -> list[DealDocument]:
        return [d for d in self.documents if d.stage == stage]

    def add_note(self, content: str, created_by: str, now: Optional[datetime] = None) -> DealNote:
        note = DealNote(
            id=generate_note_id(),
            content=content,
            created_by=created_by,
            created_at=now or utc_now(),
        )
        self.notes.append(note)
        return note

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "deal_number": self.deal_number,
            "property_id": self.property_id,
            "parties": self.parties.to_dict(),
            "agents": self.agents.to_dict(),
            "financial": self.financial.to_dict(),
            "lifecycle": self.lifecycle.to_dict(),
            "tasks": [t.to_dict() for t in self.tasks],
            "documents": [d.to_dict() for d in self.documents],
            "notes": [n.to_dict() for n in self.notes],
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Deal":
        return cls(
            id=data["id"],
            deal_number=data["deal_number"],
            property_id=data.get("property_id", ""),
            parties=DealParties.from_dict(data["parties"]),
            agents=DealAgents.from_dict(data["agents"]),
            financial=DealFinancial.from_dict(data["financial"]),
            lifecycle=DealLifecycle.from_dict(data["lifecycle"]),
            tasks=[DealTask.from_dict(t) for t in data.get("tasks", [])],
            documents=[DealDocument.from_dict(d) for d in data.get("documents", [])],
            notes=[DealNote.from_dict(n) for n in data.get("notes", [])],
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
            updated_at=parse_timestamp(data.get("updated_at")) or utc_now(),
        )
