"""
Reporting module for the deal ledger.

Renders payment receipts as PDFs from a deal, a payment and the receipt
metadata issued for it.

Usage:
    from reporting import ReceiptPDFGenerator

    generator = ReceiptPDFGenerator(output_dir="data/receipts")
    result = generator.generate(deal, payment, metadata)
"""

from .receipt_pdf import (
    ReceiptPDFGenerator,
    ReceiptRenderSuccess,
    ReceiptRenderFailure,
    ReceiptRenderResult,
    amount_in_words,
    number_to_words,
)

__all__ = [
    "ReceiptPDFGenerator",
    "ReceiptRenderSuccess",
    "ReceiptRenderFailure",
    "ReceiptRenderResult",
    "amount_in_words",
    "number_to_words",
]
