#!/usr/bin/env python3
"""
CLI for receipts and ledger housekeeping.

Usage:
    python -m reporting.cli receipt <payment_id>
    python -m reporting.cli receipt <payment_id> --reprint --by <name>
    python -m reporting.cli sweep-commissions
    python -m reporting.cli stats

Examples:
    # Render the receipt issued for a payment
    python -m reporting.cli receipt PAY-1A2B3C4D5E6F

    # Reprint it (same receipt number, next version)
    python -m reporting.cli receipt PAY-1A2B3C4D5E6F --reprint --by accounts
"""

import argparse
import json
import sys

from core.commissions.engine import CommissionEngine
from core.receipts.issuer import ReceiptIssuer
from core.deals.repository import DealRepository
from core.store import JsonFileRecordStore
from utils.config import Config
from utils.log import configure_logging

from .receipt_pdf import ReceiptPDFGenerator, ReceiptRenderSuccess


def cmd_receipt(args, config: Config) -> int:
    """Render (or reprint) the receipt for a payment."""
    store = JsonFileRecordStore(config.store_path)
    issuer = ReceiptIssuer(store)

    metadata = issuer.get_receipt_metadata(args.payment_id)
    if metadata is None:
        print(f"Error: No receipt issued for payment {args.payment_id}", file=sys.stderr)
        return 1

    # A reprint is only recorded once the receipt can actually be rendered
    found = DealRepository(store).find_payment(args.payment_id)
    if found is None:
        print(f"Error: Deal {metadata.deal_id} not found", file=sys.stderr)
        return 1
    deal, payment = found

    if args.reprint:
        metadata = issuer.regenerate_receipt(args.payment_id, args.by)

    generator = ReceiptPDFGenerator(
        output_dir=config.receipts_dir,
        company_name=config.company_name,
        currency=config.currency,
    )
    result = generator.generate(deal, payment, metadata)
    if not isinstance(result, ReceiptRenderSuccess):
        print(f"Error: {result.reason}", file=sys.stderr)
        return 1

    print(f"Receipt {result.receipt_number} (version {result.version}): {result.path}")
    return 0


def cmd_sweep_commissions(args, config: Config) -> int:
    """Flag commissions whose payout date has passed."""
    engine = CommissionEngine(JsonFileRecordStore(config.store_path))
    count = engine.update_overdue_commissions()
    print(f"{count} commission(s) became overdue")
    return 0


def cmd_stats(args, config: Config) -> int:
    """Print receipt and deal-stage counts as JSON."""
    store = JsonFileRecordStore(config.store_path)
    stats = {
        "receipts": ReceiptIssuer(store).receipt_stats().to_dict(),
        "active_deals_by_stage": DealRepository(store).stage_counts(),
    }
    print(json.dumps(stats, indent=2))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Deal Ledger - receipts and housekeeping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli receipt PAY-1A2B3C4D5E6F
    python -m reporting.cli receipt PAY-1A2B3C4D5E6F --reprint --by accounts
    python -m reporting.cli sweep-commissions

Output:
    Receipts are saved to: <RECEIPTS_DIR>/<receipt_number>-v<version>.pdf
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Receipt command
    receipt_parser = subparsers.add_parser(
        "receipt",
        help="Render the receipt PDF for a payment",
    )
    receipt_parser.add_argument("payment_id", help="Payment id the receipt was issued for")
    receipt_parser.add_argument(
        "--reprint",
        action="store_true",
        help="Record a reprint (bumps the version, keeps the number)",
    )
    receipt_parser.add_argument("--by", default="system", help="User printing the receipt")
    receipt_parser.set_defaults(func=cmd_receipt)

    # Sweep command
    sweep_parser = subparsers.add_parser(
        "sweep-commissions",
        help="Flag overdue commissions",
    )
    sweep_parser.set_defaults(func=cmd_sweep_commissions)

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show receipt and deal counts",
    )
    stats_parser.set_defaults(func=cmd_stats)

    args = parser.parse_args(argv)
    config = Config.load()
    configure_logging(config.log_level)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
