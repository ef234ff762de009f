"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths, an in-memory stand-in for the
    Motor collections the services touch, and a recording SMS gateway.
"""

from __future__ import annotations

import sys
from itertools import count
from pathlib import Path
from types import SimpleNamespace

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from bson import ObjectId
from fastapi import HTTPException, status

import obsada.database as _db


def _matches_condition(value, condition) -> bool:
    if isinstance(condition, dict) and any(str(k).startswith("$") for k in condition):
        for op, expected in condition.items():
            if op == "$in" and value not in expected:
                return False
            if op == "$ne" and value == expected:
                return False
            if op == "$gte" and (value is None or value < expected):
                return False
            if op == "$lte" and (value is None or value > expected):
                return False
            if op == "$gt" and (value is None or value <= expected):
                return False
            if op == "$lt" and (value is None or value >= expected):
                return False
        return True
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def _matches(doc: dict, query: dict) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in condition):
                return False
            continue
        if not _matches_condition(doc.get(key), condition):
            return False
    return True


class _FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length: int):
        return [dict(d) for d in self._docs[:length]]


class FakeCollection:
    """Subset of the Motor collection API used by the services."""

    def __init__(self, docs: list[dict] | None = None):
        self.docs = [dict(d) for d in docs or []]

    def find(self, query: dict | None = None, _projection=None):
        return _FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def find_one(self, query: dict, _projection=None, sort=None):
        found = [d for d in self.docs if _matches(d, query)]
        for key, direction in reversed(sort or []):
            found.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return dict(found[0]) if found else None

    async def count_documents(self, query: dict):
        return len([d for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc: dict):
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query: dict, update: dict):
        for doc in self.docs:
            if not _matches(doc, query):
                continue
            doc.update(update.get("$set") or {})
            for key, value in (update.get("$addToSet") or {}).items():
                items = doc.setdefault(key, [])
                if value not in items:
                    items.append(value)
            for key, value in (update.get("$pull") or {}).items():
                doc[key] = [v for v in doc.get(key, []) if v != value]
            return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict):
        for idx, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[idx]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: dict):
        kept = [d for d in self.docs if not _matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)


class RecordingSms:
    """SMS gateway double: records calls in order and hands out numeric ids."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._ids = count(5001)

    def _maybe_fail(self, action: str) -> None:
        if action in self.fail_on:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"SMS API error: {action} failed",
            )

    async def schedule(self, match_date, message_key: str, recipient: str) -> str:
        self.calls.append(("schedule", message_key, recipient))
        self._maybe_fail("schedule")
        return str(next(self._ids))

    async def cancel(self, message_id: str) -> None:
        self.calls.append(("cancel", message_id))
        self._maybe_fail("cancel")

    async def send_one_way(self, recipient: str, message: str) -> None:
        self.calls.append(("send", recipient, message))
        self._maybe_fail("send")

    def sent(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "send"]


@pytest.fixture
def fake_db(monkeypatch):
    db = SimpleNamespace(
        users=FakeCollection(),
        leagues=FakeCollection(),
        teams=FakeCollection(),
        matches=FakeCollection(),
        fouls=FakeCollection(),
        audit_logs=FakeCollection(),
    )
    monkeypatch.setattr(_db, "db", db)
    return db


@pytest.fixture
def sms():
    return RecordingSms()
