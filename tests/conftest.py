"""
Shared pytest fixtures for the trip calendar tests.

Provides an in-memory stand-in for the Supabase query builder so the data
layer can be exercised without a network connection.
"""
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

# ─────────────────────────── PATH SETUP ───────────────────────────

TEST_ROOT = Path(__file__).resolve().parent
sys.path.append(str(TEST_ROOT.parent))


# ─────────────────────────── FAKE SUPABASE ───────────────────────────

class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.filters = []
        self.payload = None
        self.inserted = None
        self.deleting = False
        self.order_key = None
        self.desc = False

    def select(self, columns: str = "*"):
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def in_(self, column: str, values: List[Any]):
        wanted = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def or_(self, expression: str):
        # Only "col.eq.value,col.eq.value" is used by the app.
        clauses = [part.split(".eq.", 1) for part in expression.split(",")]
        self.filters.append(
            lambda row: any(str(row.get(col)) == val for col, val in clauses)
        )
        return self

    def order(self, column: str, desc: bool = False):
        self.order_key = column
        self.desc = desc
        return self

    def update(self, payload: Dict[str, Any]):
        self.payload = payload
        return self

    def insert(self, payload: Dict[str, Any]):
        self.inserted = payload
        return self

    def delete(self):
        self.deleting = True
        return self

    def execute(self):
        self.client.executed.append(self)
        if self.client.fail:
            raise RuntimeError("connection refused")

        table = self.client.tables.setdefault(self.table, [])
        if self.inserted is not None:
            row = dict(self.inserted)
            row.setdefault("id", f"{self.table}-{len(table) + 1}")
            table.append(row)
            return SimpleNamespace(data=[dict(row)])

        rows = [
            row for row in table
            if all(f(row) for f in self.filters)
        ]
        if self.payload is not None:
            for row in rows:
                row.update(self.payload)
        if self.deleting:
            self.client.tables[self.table] = [row for row in table if all(row is not r for r in rows)]
        if self.order_key:
            # NULLs sort last, as in Postgres ascending order
            rows.sort(key=lambda r: (r.get(self.order_key) is None, r.get(self.order_key)), reverse=self.desc)
        return SimpleNamespace(data=[dict(r) for r in rows])


class FakeSupabase:
    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] = None, fail: bool = False):
        self.tables = tables or {}
        self.fail = fail
        self.executed: List[FakeQuery] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# ─────────────────────────── SEED DATA ───────────────────────────

VIEWER = "u1"


def seed_tables() -> Dict[str, List[Dict[str, Any]]]:
    """
    u1 is the viewer. u2 and u3 are accepted pals, u9 is a pending friend.
    u9 owns a road trip that u1 is invited to and u2 has confirmed.
    """
    return {
        "trips": [
            {"id": "t1", "owner_id": "u1", "name": "Lisbon", "destination": "Lisbon, Portugal",
             "start_date": "2024-06-01", "end_date": "2024-06-10", "visibility": "full_details"},
            {"id": "t2", "owner_id": "u2", "name": "Tokyo", "destination": "Tokyo, Japan",
             "start_date": "2024-07-01", "end_date": "2024-07-14", "visibility": "dates_only"},
            {"id": "t3", "owner_id": "u3", "name": "Secret", "destination": "Somewhere",
             "start_date": "2024-08-01", "end_date": "2024-08-05", "visibility": "only_me"},
            {"id": "t4", "owner_id": "u9", "name": "Road trip", "destination": "Route 66",
             "start_date": "2024-09-01", "end_date": "2024-09-05", "visibility": "full_details"},
        ],
        "trip_participants": [
            {"trip_id": "t4", "user_id": "u1", "status": "invited", "personal_visibility": None},
            {"trip_id": "t4", "user_id": "u2", "status": "confirmed", "personal_visibility": "busy_only"},
        ],
        "friendships": [
            {"requester_id": "u1", "addressee_id": "u2", "status": "accepted"},
            {"requester_id": "u3", "addressee_id": "u1", "status": "accepted"},
            {"requester_id": "u1", "addressee_id": "u9", "status": "pending"},
        ],
        "trip_locations": [
            {"id": "l2", "trip_id": "t1", "destination": "Porto", "order_index": 1,
             "start_date": "2024-06-05", "end_date": "2024-06-10"},
            {"id": "l1", "trip_id": "t1", "destination": "Lisbon", "order_index": 0,
             "start_date": "2024-06-01", "end_date": "2024-06-05"},
            {"id": "l3", "trip_id": "t1", "destination": "Sintra", "order_index": 2,
             "start_date": None, "end_date": None},
        ],
        "trip_resources": [
            {"id": "r1", "trip_id": "t1", "category": "flight", "title": "TAP 202",
             "start_date": "2024-06-01T08:30:00+00:00", "end_date": "2024-06-01T11:00:00+00:00",
             "order_index": 1, "metadata": {"airline": "TAP"}},
            {"id": "r2", "trip_id": "t1", "category": "accommodation", "title": "Casa do Jardim",
             "start_date": "2024-06-01T14:00:00+00:00", "end_date": "2024-06-05T11:00:00+00:00",
             "order_index": 0, "metadata": {"address": "Rua das Flores 12"}},
            {"id": "r3", "trip_id": "t1", "category": "document", "title": "Passport copy",
             "start_date": None, "end_date": None, "order_index": 2, "metadata": {}},
        ],
    }


@pytest.fixture
def supabase():
    return FakeSupabase(seed_tables())


@pytest.fixture
def broken_supabase():
    return FakeSupabase(seed_tables(), fail=True)
