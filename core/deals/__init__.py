"""
Deal Lifecycle - Stages, Payments and Completion

A deal moves through seven fixed stages from accepted offer to final
handover. Stage changes pass through the stage gate; payments and completion
pass through the payment ledger. The lifecycle service applies both to
stored deals.
"""

from core.deals.schema import (
    Deal,
    DealStage,
    DealStatus,
    DealPayment,
    DealTask,
    DealDocument,
    DealNote,
    DealFinancial,
    DealLifecycle,
    DealParties,
    DealAgents,
    Party,
    AgentRef,
    PaymentStatus,
    PaymentType,
    TaskStatus,
    TaskPriority,
    DocumentStatus,
    StageTransition,
    STAGE_ORDER,
    stage_index,
    next_stage,
)
from core.deals.ledger import (
    LedgerTotals,
    PaymentSummary,
    compute_totals,
    recompute_financials,
    validate_payment_recording,
    validate_deal_completion,
    payment_summary,
    overdue_payments,
)
from core.deals.stage_gate import (
    REQUIRED_PAYMENTS_BY_STAGE,
    required_payments_for_stage,
    validate_stage_progression,
    validate_task_completion,
)
from core.deals.playbook import build_stage_tasks, build_stage_documents
from core.deals.validation import validate_deal_creation, validate_deal_cancellation
from core.deals.repository import DealRepository
from core.deals.lifecycle import DealLifecycleService, LifecycleOutcome
