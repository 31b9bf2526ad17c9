"""
Receipt Metadata - Uniqueness and Audit Record Behind a Printed Receipt

One record per payment. The receipt number is assigned once; reprints
bump the version and update who generated it and when.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from core.clock import format_timestamp, parse_timestamp


RECEIPT_PREFIX: Final[str] = "RCP"
RECEIPT_NUMBER_PATTERN: Final = re.compile(r"^RCP-(\d{4})-(\d{3,})$")


def format_receipt_number(year: int, counter: int) -> str:
    """RCP-<year>-<counter padded to at least 3 digits>."""
    return f"{RECEIPT_PREFIX}-{year}-{counter:03d}"


def parse_receipt_number(receipt_number: str) -> tuple[int, int]:
    """
    Split a receipt number into (year, counter).

    Raises:
        ValueError: If the receipt number is not in RCP-YYYY-NNN form
    """
    match = RECEIPT_NUMBER_PATTERN.match(receipt_number)
    if not match:
        raise ValueError(f"Invalid receipt number: {receipt_number}")
    return int(match.group(1)), int(match.group(2))


@dataclass
class ReceiptMetadata:
    receipt_number: str
    payment_id: str
    deal_id: str
    generated_at: datetime
    generated_by: str
    version: int = 1

    @property
    def is_reprint(self) -> bool:
        return self.version > 1

    def to_dict(self) -> dict:
        return {
            "receipt_number": self.receipt_number,
            "payment_id": self.payment_id,
            "deal_id": self.deal_id,
            "generated_at": format_timestamp(self.generated_at),
            "generated_by": self.generated_by,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReceiptMetadata":
        return cls(
            receipt_number=data["receipt_number"],
            payment_id=data["payment_id"],
            deal_id=data["deal_id"],
            generated_at=parse_timestamp(data["generated_at"]),
            generated_by=data.get("generated_by", ""),
            version=int(data.get("version", 1)),
        )
