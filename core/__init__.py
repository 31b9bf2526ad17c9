"""
Deal Ledger - Core Business Logic

Governs one property transaction from accepted offer to handover:
1. Stage Gate (one stage at a time, task/document completion thresholds)
2. Payment Ledger (payment recording, totals, completion gate)
3. Commission Engine (splits, approval, overrides, payout dates)
4. Receipt Issuer (unique yearly receipt numbers, reprint versions)

Gating functions return a ValidationResult. Services that change stored
records raise the exceptions in core.errors.
"""

from .errors import (
    DealLedgerError,
    RecordNotFoundError,
    DealNotFoundError,
    PaymentNotFoundError,
    CommissionNotFoundError,
    ReceiptNotFoundError,
    ValidationFailedError,
    CommissionStateError,
)
from .validation import ValidationResult
from .clock import utc_now, parse_timestamp
from .store import (
    RecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    YearlyCounter,
    get_record_store,
    reset_record_store,
)
from .events import DomainEvent, EventBus, EventRecorder
from .templates import render_template, substitute

# Deal lifecycle and payment ledger
from .deals import (
    Deal,
    DealStage,
    DealStatus,
    DealPayment,
    PaymentStatus,
    PaymentType,
    DealRepository,
    DealLifecycleService,
    LifecycleOutcome,
    validate_stage_progression,
    validate_payment_recording,
    validate_deal_completion,
    recompute_financials,
    payment_summary,
)

# Receipts
from .receipts import ReceiptIssuer, ReceiptMetadata, ReceiptRepository

# Commissions
from .commissions import (
    Commission,
    CommissionSplit,
    CommissionEngine,
    ApprovalStatus,
    CommissionStatus,
    PayoutTrigger,
    calculate_due_date,
    validate_commission_splits,
)

__all__ = [
    # Errors
    "DealLedgerError",
    "RecordNotFoundError",
    "DealNotFoundError",
    "PaymentNotFoundError",
    "CommissionNotFoundError",
    "ReceiptNotFoundError",
    "ValidationFailedError",
    "CommissionStateError",
    # Shared
    "ValidationResult",
    "utc_now",
    "parse_timestamp",
    "RecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "YearlyCounter",
    "get_record_store",
    "reset_record_store",
    "DomainEvent",
    "EventBus",
    "EventRecorder",
    "render_template",
    "substitute",
    # Deals
    "Deal",
    "DealStage",
    "DealStatus",
    "DealPayment",
    "PaymentStatus",
    "PaymentType",
    "DealRepository",
    "DealLifecycleService",
    "LifecycleOutcome",
    "validate_stage_progression",
    "validate_payment_recording",
    "validate_deal_completion",
    "recompute_financials",
    "payment_summary",
    # Receipts
    "ReceiptIssuer",
    "ReceiptMetadata",
    "ReceiptRepository",
    # Commissions
    "Commission",
    "CommissionSplit",
    "CommissionEngine",
    "ApprovalStatus",
    "CommissionStatus",
    "PayoutTrigger",
    "calculate_due_date",
    "validate_commission_splits",
]
