"""
Service wiring for the web layer.

One LedgerServices instance is built per application and kept on
app.state; routes reach it through the get_services dependency.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from fastapi import HTTPException, Request

from core.clock import Clock, utc_now
from core.commissions.engine import CommissionEngine
from core.deals.lifecycle import DealLifecycleService
from core.errors import (
    CommissionStateError,
    DealLedgerError,
    RecordNotFoundError,
    ValidationFailedError,
)
from core.events import EventBus
from core.receipts.issuer import ReceiptIssuer
from core.store import JsonFileRecordStore, RecordStore
from reporting.receipt_pdf import ReceiptPDFGenerator
from utils.config import Config


logger = logging.getLogger(__name__)


@dataclass
class LedgerServices:
    """Everything a request handler needs, sharing one store and event bus."""

    config: Config
    store: RecordStore
    events: EventBus
    receipts: ReceiptIssuer
    deals: DealLifecycleService
    commissions: CommissionEngine
    receipt_pdf: ReceiptPDFGenerator


def build_services(
    config: Optional[Config] = None,
    store: Optional[RecordStore] = None,
    clock: Clock = utc_now,
) -> LedgerServices:
    """
    Wire the ledger services.

    Args:
        config: Application config (loaded from the environment if omitted)
        store: Record store (JSON file at config.store_path if omitted)
        clock: Time source shared by every service
    """
    config = config or Config.load()
    store = store or JsonFileRecordStore(config.store_path)
    events = EventBus()
    receipts = ReceiptIssuer(store, events=events, clock=clock)
    return LedgerServices(
        config=config,
        store=store,
        events=events,
        receipts=receipts,
        deals=DealLifecycleService(
            store,
            receipts=receipts,
            events=events,
            clock=clock,
            currency=config.currency,
        ),
        commissions=CommissionEngine(
            store,
            events=events,
            clock=clock,
            require_full_allocation=config.require_full_split_allocation,
        ),
        receipt_pdf=ReceiptPDFGenerator(
            output_dir=config.receipts_dir,
            company_name=config.company_name,
            currency=config.currency,
        ),
    )


def get_services(request: Request) -> LedgerServices:
    """FastAPI dependency returning the application's services."""
    return request.app.state.services


@contextmanager
def ledger_errors() -> Iterator[None]:
    """
    Translate ledger exceptions into HTTP errors.

    RecordNotFoundError -> 404, CommissionStateError -> 409,
    ValidationFailedError and ValueError -> 422.
    """
    try:
        yield
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except CommissionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValidationFailedError as e:
        raise HTTPException(status_code=422, detail=e.result.to_dict()) from e
    except DealLedgerError as e:
        logger.warning("Unhandled ledger error: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
