"""Shared fixtures: in-memory stores with optional injected failures."""
import random

import pytest

from src.models.registrant import Registrant
from src.services.store import REGISTRATIONS, MemoryStore
from src.utils.exceptions import StoreError

WRITE_OPS = {"insert", "update", "delete"}


class FlakyStore(MemoryStore):
    """MemoryStore that records calls and fails on configured ones."""

    def __init__(self, tables=None):
        super().__init__(tables)
        self.calls = []
        self._rules = []

    def fail_when(self, op, table, predicate=None, code=None, message="injected failure"):
        """Fail every ``op`` on ``table`` whose payload satisfies ``predicate``."""
        self._rules.append((op, table, predicate or (lambda payload: True), code, message))

    def clear_failures(self):
        self._rules = []

    @property
    def writes(self):
        return [c for c in self.calls if c[0] in WRITE_OPS]

    def _check(self, op, table, payload):
        self.calls.append((op, table, payload))
        for rule_op, rule_table, predicate, code, message in self._rules:
            if rule_op == op and rule_table == table and predicate(payload):
                raise StoreError(message, code=code)

    def select(self, table, where=None, order_by=None, descending=False):
        self._check("select", table, where)
        return super().select(table, where, order_by, descending)

    def insert(self, table, row):
        self._check("insert", table, row)
        return super().insert(table, row)

    def update(self, table, where, patch):
        self._check("update", table, patch)
        return super().update(table, where, patch)

    def delete(self, table, where):
        self._check("delete", table, where)
        return super().delete(table, where)


def make_registrant(index, interest="software", is_dummy=False, **overrides):
    data = {
        "id": f"r{index:03d}",
        "name": f"Student {index}",
        "phone": f"0100{index:07d}",
        "interest": interest,
        "college": "كلية الهندسة",
        "assigned": False,
        "group_id": None,
        "is_dummy": is_dummy,
        "created_at": f"2025-01-01T10:{index % 60:02d}:00+00:00",
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def registrant_factory():
    """Build Registrant objects: registrant_factory(index, interest='software', is_dummy=False)."""
    def factory(index, interest="software", is_dummy=False, **overrides):
        return Registrant.from_dict(make_registrant(index, interest, is_dummy, **overrides))
    return factory


@pytest.fixture
def seeded_store():
    """Store with 7 real (3 software, 2 marketing, 2 other) and 3 synthetic registrants."""
    interests = ["software", "software", "software", "marketing", "marketing", "other", "other"]
    rows = [make_registrant(i, interest) for i, interest in enumerate(interests)]
    rows += [make_registrant(100 + i, "software", is_dummy=True) for i in range(3)]
    return FlakyStore({REGISTRATIONS: rows})
