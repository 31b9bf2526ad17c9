"""
Exceptions raised by the deal ledger services.

Gating functions never raise: they return a ValidationResult. Services that
perform a mutation raise these when the mutation cannot proceed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.validation import ValidationResult


class DealLedgerError(Exception):
    """Base class for all deal ledger errors."""


class RecordNotFoundError(DealLedgerError):
    """A referenced record does not exist in the store."""

    record_type = "Record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.record_type} {record_id} not found")


class DealNotFoundError(RecordNotFoundError):
    record_type = "Deal"


class PaymentNotFoundError(RecordNotFoundError):
    record_type = "Payment"


class CommissionNotFoundError(RecordNotFoundError):
    record_type = "Commission"


class ReceiptNotFoundError(RecordNotFoundError):
    record_type = "Receipt for payment"


class ValidationFailedError(DealLedgerError):
    """A gate returned blocking errors; carries the full result."""

    def __init__(self, result: "ValidationResult"):
        self.result = result
        super().__init__("; ".join(result.errors) or "Validation failed")


class CommissionStateError(DealLedgerError):
    """Commission is not in a state that allows the requested transition."""
