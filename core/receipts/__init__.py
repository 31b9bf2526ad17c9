"""
Payment Receipts - Numbering and Reprint History

Every recorded payment gets one receipt number, RCP-<year>-<counter>, that
never changes across reprints.
"""

from core.receipts.schema import (
    ReceiptMetadata,
    RECEIPT_NUMBER_PATTERN,
    format_receipt_number,
    parse_receipt_number,
)
from core.receipts.repository import ReceiptRepository
from core.receipts.issuer import ReceiptIssuer, ReceiptStats
