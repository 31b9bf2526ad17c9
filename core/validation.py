"""
Validation result shared by every gate in the ledger.

Errors block the caller; warnings are advisory and may be acknowledged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a gating check."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        """Valid when no blocking errors were reported."""
        return len(self.errors) == 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @classmethod
    def build(
        cls,
        errors: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> "ValidationResult":
        """Create a result from mutable lists collected during a check."""
        return cls(errors=tuple(errors), warnings=tuple(warnings))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Combine two results, keeping message order."""
        return ValidationResult(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
