"""
Record Store - Whole-Collection Persistence for the Deal Ledger

Every logical key holds one JSON-compatible value (usually an ordered list
of records). Access follows read-entire-value -> mutate in memory ->
write-entire-value, with last-write-wins semantics.

Concurrency:
    The file-backed store is NOT atomic across processes. Two processes that
    read the same key, mutate it and write it back will lose one of the
    updates. The receipt counter inherits this: two processes issuing receipts
    at the same moment can read the same counter value and produce the same
    receipt number. Callers needing cross-process correctness must back
    YearlyCounter with a transactional or compare-and-swap store.

Logical keys:
    deals                    Deal records
    commissions              Commission records
    receipts-metadata        ReceiptMetadata records, one per payment
    receipt-counter:<year>   Integer receipt counter per calendar year
    deal-counter:<year>      Integer deal-number counter per calendar year
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Final, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Keys
# =============================================================================

DEALS_KEY: Final[str] = "deals"
COMMISSIONS_KEY: Final[str] = "commissions"
RECEIPTS_METADATA_KEY: Final[str] = "receipts-metadata"
RECEIPT_COUNTER_PREFIX: Final[str] = "receipt-counter"
DEAL_COUNTER_PREFIX: Final[str] = "deal-counter"

DEFAULT_STORE_PATH: Final[str] = "data/deal_store.json"


# =============================================================================
# Store Interface
# =============================================================================


class RecordStore(ABC):
    """Synchronous key/value store holding whole collections per key."""

    @abstractmethod
    def read(self, key: str) -> Optional[Any]:
        """
        Read the full value stored under a key.

        Returns:
            The stored value, or None when the key is absent or unreadable
        """

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """Replace the full value stored under a key."""

    def read_list(self, key: str) -> list:
        """Read a collection, degrading anything that is not a list to []."""
        value = self.read(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("Expected a list under key %s, got %s", key, type(value).__name__)
            return []
        return value


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store for tests and embedded use.

    Values are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def read(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def write(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        """List stored keys."""
        return list(self._data.keys())


class JsonFileRecordStore(RecordStore):
    """
    Single-file JSON store.

    The file is re-read on every access so that values written by another
    writer are visible, and rewritten in full on every write.
    """

    def __init__(self, path: Optional[str] = None):
        """
        Initialise the file store.

        Args:
            path: Path to the JSON document. Defaults to data/deal_store.json.
        """
        self._path = Path(path or DEFAULT_STORE_PATH)

    @property
    def path(self) -> Path:
        """Get the backing file path."""
        return self._path

    def _load(self) -> dict[str, Any]:
        """Load the whole document; unreadable files count as empty."""
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read record store %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Record store %s is not a JSON object; ignoring it", self._path)
            return {}
        return data

    def read(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def write(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")


# =============================================================================
# Counter Service
# =============================================================================


class YearlyCounter:
    """
    Per-calendar-year counter stored under "<prefix>:<year>".

    Counters for different years are independent and never reset.
    """

    def __init__(self, store: RecordStore, prefix: str = RECEIPT_COUNTER_PREFIX):
        self._store = store
        self._prefix = prefix

    def key_for(self, year: int) -> str:
        return f"{self._prefix}:{year}"

    def peek(self, year: int) -> int:
        """Current counter value for a year (0 when never issued)."""
        value = self._store.read(self.key_for(year))
        if value is None:
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Counter %s holds a non-integer value %r", self.key_for(year), value)
            return 0

    def next_value(self, year: int) -> int:
        """Increment the counter for a year and return the new value."""
        next_value = self.peek(year) + 1
        self._store.write(self.key_for(year), next_value)
        return next_value


# =============================================================================
# Collection Repository
# =============================================================================

RecordT = TypeVar("RecordT")


class CollectionRepository(Generic[RecordT]):
    """
    Typed view over one logical key of a RecordStore.

    Subclasses provide the key, the record id accessor and the dict codec.
    Records that fail to decode are skipped on read and logged; writes carry
    them through unchanged so a mutation never drops a stored record.
    """

    key: str = ""

    def __init__(
        self,
        store: RecordStore,
        decode: Callable[[dict], RecordT],
        encode: Callable[[RecordT], dict],
        record_id: Callable[[RecordT], str],
    ):
        self._store = store
        self._decode = decode
        self._encode = encode
        self._record_id = record_id

    @property
    def store(self) -> RecordStore:
        return self._store

    def _try_decode(self, raw: Any) -> Optional[RecordT]:
        try:
            return self._decode(raw)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed record under %s: %s", self.key, e)
            return None

    def list_all(self) -> list[RecordT]:
        """Read and decode every record under the key."""
        records: list[RecordT] = []
        for raw in self._store.read_list(self.key):
            record = self._try_decode(raw)
            if record is not None:
                records.append(record)
        return records

    def get(self, record_id: str) -> Optional[RecordT]:
        for record in self.list_all():
            if self._record_id(record) == record_id:
                return record
        return None

    def save(self, record: RecordT) -> RecordT:
        """Upsert a single record, keeping collection order."""
        raw_records = self._store.read_list(self.key)
        target = self._record_id(record)
        for index, raw in enumerate(raw_records):
            existing = self._try_decode(raw)
            if existing is not None and self._record_id(existing) == target:
                raw_records[index] = self._encode(record)
                break
        else:
            raw_records.append(self._encode(record))
        self._store.write(self.key, raw_records)
        return record

    def save_all(self, records: list[RecordT]) -> None:
        """
        Replace every decodable record in the collection.

        Entries that do not decode keep their position and content; the
        given records fill the remaining slots in order and any extra are
        appended.
        """
        pending = [self._encode(r) for r in records]
        merged: list[Any] = []
        for raw in self._store.read_list(self.key):
            if self._try_decode(raw) is None:
                merged.append(raw)
            elif pending:
                merged.append(pending.pop(0))
        merged.extend(pending)
        self._store.write(self.key, merged)

    def append_all(self, records: list[RecordT]) -> None:
        """Add new records to the end of the collection in one write."""
        raw_records = self._store.read_list(self.key)
        raw_records.extend(self._encode(r) for r in records)
        self._store.write(self.key, raw_records)

    def count(self) -> int:
        return len(self.list_all())


# =============================================================================
# Singleton Instance
# =============================================================================

_store_instance: Optional[RecordStore] = None


def get_record_store(path: Optional[str] = None) -> RecordStore:
    """
    Get the record store singleton.

    Args:
        path: Optional path for the JSON file (only used on first call)

    Returns:
        RecordStore instance
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = JsonFileRecordStore(path or DEFAULT_STORE_PATH)
    return _store_instance


def reset_record_store() -> None:
    """Reset the singleton instance (for testing)."""
    global _store_instance
    _store_instance = None
