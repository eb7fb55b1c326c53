"""Data store boundary for registrants, groups and project applications.

Rows are plain dicts. Every method returns copies, so callers never mutate
store state by accident. ``MemoryStore`` keeps everything in process;
``JsonFileStore`` persists the same tables to one JSON file.
"""
import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from src.services.storage_service import load_json, lock_file, save_json
from src.utils.date_utils import now_iso
from src.utils.env import get_setting
from src.utils.exceptions import UNIQUE_VIOLATION, StoreError

logger = logging.getLogger(__name__)

REGISTRATIONS = "registrations"
GROUPS = "groups"
PROJECT_APPLICATIONS = "project_applications"
TEAM_MEMBERS = "team_members"

TABLES = [REGISTRATIONS, GROUPS, PROJECT_APPLICATIONS, TEAM_MEMBERS]

UNIQUE_FIELDS = {REGISTRATIONS: ["phone"]}

LOCK_NOT_AVAILABLE = "55P03"
UNKNOWN_TABLE = "42P01"

DEFAULT_DATA_FILE = "data/teamup.json"

ChangeCallback = Callable[[Dict[str, Any]], None]


class Where:
    """
    Conjunction of row conditions.

    Usage:
        Where().eq("assigned", False)
        Where().in_("id", member_ids).eq("assigned", False)
        Where().not_null("id")
    """

    def __init__(self):
        self._conditions: List[Tuple[str, str, Any]] = []

    def eq(self, field: str, value: Any) -> "Where":
        self._conditions.append(("eq", field, value))
        return self

    def is_null(self, field: str) -> "Where":
        self._conditions.append(("is_null", field, None))
        return self

    def not_null(self, field: str) -> "Where":
        self._conditions.append(("not_null", field, None))
        return self

    def in_(self, field: str, values) -> "Where":
        self._conditions.append(("in", field, set(values)))
        return self

    def matches(self, row: Dict[str, Any]) -> bool:
        for op, field, value in self._conditions:
            current = row.get(field)
            if op == "eq" and current != value:
                return False
            if op == "is_null" and current is not None:
                return False
            if op == "not_null" and current is None:
                return False
            if op == "in" and current not in value:
                return False
        return True

    def __repr__(self) -> str:
        return f"Where({self._conditions!r})"


def _match(where: Optional[Where], row: Dict[str, Any]) -> bool:
    return where is None or where.matches(row)


class MemoryStore:
    """In-process store with the same contract as the hosted backend."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self._tables = {name: [] for name in TABLES}
        if tables:
            for name, rows in tables.items():
                self._tables[name] = copy.deepcopy(rows)
        self._mutex = threading.RLock()
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._advisory_locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def _transaction(self, write: bool) -> Iterator[Dict[str, List[Dict[str, Any]]]]:
        with self._mutex:
            yield self._tables

    def _table(self, tables: Dict[str, List[Dict[str, Any]]], table: str) -> List[Dict[str, Any]]:
        if table not in TABLES:
            raise StoreError(f"Could not find the table '{table}'", code=UNKNOWN_TABLE)
        return tables.setdefault(table, [])

    def select(self, table: str, where: Optional[Where] = None,
               order_by: Optional[str] = None, descending: bool = False) -> List[Dict[str, Any]]:
        with self._transaction(write=False) as tables:
            rows = [copy.deepcopy(r) for r in self._table(tables, table) if _match(where, r)]

        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is not None, r.get(order_by) or ""), reverse=descending)
        return rows

    def count(self, table: str, where: Optional[Where] = None) -> int:
        with self._transaction(write=False) as tables:
            return sum(1 for r in self._table(tables, table) if _match(where, r))

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one row and return it with its assigned id.

        Raises:
            StoreError: code UNIQUE_VIOLATION if a unique field is taken
        """
        record = copy.deepcopy(row)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", now_iso())

        with self._transaction(write=True) as tables:
            rows = self._table(tables, table)
            for field in UNIQUE_FIELDS.get(table, []):
                value = record.get(field)
                if value is not None and any(r.get(field) == value for r in rows):
                    raise StoreError(
                        f'duplicate key value violates unique constraint "{table}_{field}_key"',
                        code=UNIQUE_VIOLATION,
                    )
            if any(r.get("id") == record["id"] for r in rows):
                raise StoreError(f"duplicate id {record['id']}", code=UNIQUE_VIOLATION)
            rows.append(record)

        self._notify(table, "INSERT", record)
        return copy.deepcopy(record)

    def update(self, table: str, where: Where, patch: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Apply ``patch`` to every matching row and return the updated rows."""
        updated = []
        with self._transaction(write=True) as tables:
            for r in self._table(tables, table):
                if where.matches(r):
                    r.update(copy.deepcopy(patch))
                    updated.append(copy.deepcopy(r))

        for record in updated:
            self._notify(table, "UPDATE", record)
        return updated

    def delete(self, table: str, where: Where) -> List[Dict[str, Any]]:
        """Delete every matching row and return the deleted rows."""
        with self._transaction(write=True) as tables:
            rows = self._table(tables, table)
            removed = [r for r in rows if where.matches(r)]
            tables[table] = [r for r in rows if not where.matches(r)]

        for record in removed:
            self._notify(table, "DELETE", record)
        return removed

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        """
        Register a change listener for ``table``.

        Returns:
            Callable that removes the listener
        """
        with self._mutex:
            self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            with self._mutex:
                listeners = self._subscribers.get(table, [])
                if callback in listeners:
                    listeners.remove(callback)

        return unsubscribe

    def _notify(self, table: str, event_type: str, record: Dict[str, Any]) -> None:
        with self._mutex:
            listeners = list(self._subscribers.get(table, []))

        event = {"table": table, "type": event_type, "record": copy.deepcopy(record)}
        for callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Change listener for {table} failed: {e}")

    @contextmanager
    def advisory_lock(self, name: str):
        """
        Hold a named, non-blocking advisory lock.

        Raises:
            StoreError: code LOCK_NOT_AVAILABLE if another caller holds it
        """
        with self._mutex:
            lock = self._advisory_locks.setdefault(name, threading.Lock())

        if not lock.acquire(blocking=False):
            raise StoreError(f"Advisory lock '{name}' is held", code=LOCK_NOT_AVAILABLE)
        try:
            yield
        finally:
            lock.release()


class JsonFileStore(MemoryStore):
    """Store persisted to a single JSON file, one table per top-level key."""

    def __init__(self, file_path: str):
        super().__init__()
        self.file_path = file_path

    @contextmanager
    def _transaction(self, write: bool) -> Iterator[Dict[str, List[Dict[str, Any]]]]:
        with self._mutex:
            try:
                with lock_file(self.file_path):
                    tables = load_json(self.file_path, default={name: [] for name in TABLES})
                    yield tables
                    if write:
                        save_json(self.file_path, tables)
            except (IOError, TimeoutError, ValueError) as e:
                logger.error(f"Data file operation failed: {e}")
                raise StoreError(str(e)) from e


_store: Optional[MemoryStore] = None


def get_store() -> MemoryStore:
    """Process-wide store backed by TEAMUP_DATA_FILE."""
    global _store

    if _store is None:
        _store = JsonFileStore(get_setting("TEAMUP_DATA_FILE", DEFAULT_DATA_FILE))
    return _store


def _clear_store() -> None:
    global _store
    _store = None
