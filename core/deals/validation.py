"""
Deal Validation - Creation and Cancellation Gates

Stage, payment and completion gates live with the stage gate and the
payment ledger; this module covers the two ends of a deal's life.
"""

from __future__ import annotations

from typing import Any, Final

from core.deals.schema import Deal, DealStatus
from core.validation import ValidationResult
from utils.formatting import format_currency


# =============================================================================
# Constants
# =============================================================================

LOW_PRICE_WARNING_THRESHOLD: Final[float] = 100_000
HIGH_PRICE_WARNING_THRESHOLD: Final[float] = 10_000_000_000
MIN_CANCELLATION_REASON_LENGTH: Final[int] = 10

REQUIRED_CREATION_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("property_id", "Property ID is required"),
    ("primary_agent_id", "Primary agent ID is required"),
    ("buyer_name", "Buyer name is required"),
    ("seller_name", "Seller name is required"),
)


# =============================================================================
# Gates
# =============================================================================


def validate_deal_creation(data: dict[str, Any], currency: str = "PKR") -> ValidationResult:
    """
    Validate raw deal creation data.

    Args:
        data: Raw creation fields (property_id, primary_agent_id, buyer_name,
              seller_name, agreed_price)
        currency: Currency code used in warning text

    Returns:
        ValidationResult; unusual prices only warn
    """
    errors: list[str] = []
    warnings: list[str] = []

    for field_name, message in REQUIRED_CREATION_FIELDS:
        value = data.get(field_name)
        if not value or not str(value).strip():
            errors.append(message)

    price = data.get("agreed_price")
    try:
        price = float(price) if price is not None else 0.0
    except (TypeError, ValueError):
        errors.append("Agreed price must be a number")
        return ValidationResult.build(errors, warnings)

    if price <= 0:
        errors.append("Agreed price must be greater than 0")
    elif price < LOW_PRICE_WARNING_THRESHOLD:
        warnings.append(
            "Agreed price seems unusually low "
            f"(less than {format_currency(LOW_PRICE_WARNING_THRESHOLD, currency)})"
        )
    elif price > HIGH_PRICE_WARNING_THRESHOLD:
        warnings.append(
            "Agreed price seems unusually high "
            f"(over {format_currency(HIGH_PRICE_WARNING_THRESHOLD, currency)})"
        )

    return ValidationResult.build(errors, warnings)


def validate_deal_cancellation(deal: Deal, reason: str, currency: str = "PKR") -> ValidationResult:
    """Any active deal may be cancelled with a meaningful reason."""
    errors: list[str] = []
    warnings: list[str] = []

    if deal.lifecycle.status == DealStatus.COMPLETED:
        errors.append("Cannot cancel a completed deal")
    if deal.lifecycle.status == DealStatus.CANCELLED:
        errors.append("Deal is already cancelled")

    if not reason or len(reason.strip()) < MIN_CANCELLATION_REASON_LENGTH:
        errors.append(
            f"Cancellation reason must be at least {MIN_CANCELLATION_REASON_LENGTH} characters"
        )

    if deal.financial.total_paid > 0:
        warnings.append(
            f"{format_currency(deal.financial.total_paid, currency)} has been paid. "
            "Ensure refund arrangements are made."
        )

    return ValidationResult.build(errors, warnings)
