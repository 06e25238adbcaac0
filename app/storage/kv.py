"""
Durable, origin-scoped key-value storage.

Values are JSON-encoded strings (the same contract as browser localStorage).
Every row carries a revision so callers can do compare-and-set updates instead
of blind overwrites when several clients share an origin.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import select, update, delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.shared.errors import StorageConflictError
from app.storage.models import KVEntry

logger = logging.getLogger(__name__)

OK = "ok"
DEFAULTED = "defaulted"


@dataclass(frozen=True)
class ReadResult:
    """Outcome of a JSON read: the parsed value, or the caller's default and why."""
    value: Any
    status: str = OK
    reason: Optional[str] = None
    revision: int = 0  # 0 = key absent

    @property
    def ok(self) -> bool:
        return self.status == OK

    @property
    def defaulted(self) -> bool:
        return self.status == DEFAULTED


@dataclass(frozen=True)
class StorageChange:
    origin: str
    key: str
    revision: int  # 0 when the key was removed


Listener = Callable[[StorageChange], None]


class KeyValueStore:
    def __init__(
        self,
        db: Session,
        origin: str = "default",
        listeners: Iterable[Listener] | None = None,
        cas_retries: int = 5,
    ):
        self.db = db
        self.origin = origin
        self.listeners: list[Listener] = list(listeners or [])
        self.cas_retries = cas_retries

    # -------------------- raw strings --------------------

    def _read(self, key: str) -> tuple[Optional[str], int]:
        row = self.db.execute(
            select(KVEntry.value, KVEntry.revision).where(KVEntry.origin == self.origin, KVEntry.key == key)
        ).first()
        if row is None:
            return None, 0
        return row[0], row[1]

    def get_item(self, key: str) -> Optional[str]:
        return self._read(key)[0]

    def set_item(self, key: str, value: str) -> int:
        old, rev = self._read(key)
        if rev and old == value:
            # unchanged values are not writes (no revision bump, no notification)
            return rev
        if rev:
            self.db.execute(
                update(KVEntry)
                .where(KVEntry.origin == self.origin, KVEntry.key == key)
                .values(value=value, revision=KVEntry.revision + 1)
            )
        else:
            self.db.execute(insert(KVEntry).values(origin=self.origin, key=key, value=value, revision=1))
        self.db.commit()
        new_rev = self._read(key)[1]
        self._notify(key, new_rev)
        return new_rev

    def remove_item(self, key: str) -> bool:
        res = self.db.execute(delete(KVEntry).where(KVEntry.origin == self.origin, KVEntry.key == key))
        self.db.commit()
        if res.rowcount:
            self._notify(key, 0)
            return True
        return False

    def keys(self) -> list[str]:
        return list(self.db.scalars(select(KVEntry.key).where(KVEntry.origin == self.origin).order_by(KVEntry.key)))

    def compare_and_set(self, key: str, expected_revision: int, value: str) -> bool:
        """Write `value` only if the stored revision still equals `expected_revision` (0 = must be absent)."""
        if expected_revision == 0:
            try:
                self.db.execute(insert(KVEntry).values(origin=self.origin, key=key, value=value, revision=1))
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                return False
            self._notify(key, 1)
            return True

        res = self.db.execute(
            update(KVEntry)
            .where(
                KVEntry.origin == self.origin,
                KVEntry.key == key,
                KVEntry.revision == expected_revision,
            )
            .values(value=value, revision=expected_revision + 1)
        )
        self.db.commit()
        if res.rowcount != 1:
            return False
        self._notify(key, expected_revision + 1)
        return True

    # -------------------- JSON --------------------

    def read_json(self, key: str, default: Any = None, expect: type | None = None) -> ReadResult:
        """
        Parse the JSON value under `key`. Absent, unparseable or wrong-typed
        values come back as `defaulted` with `default` as the value; never raises.
        """
        raw, rev = self._read(key)
        if raw is None or raw == "":
            return ReadResult(default, DEFAULTED, "missing", rev)
        try:
            val = json.loads(raw)
        except ValueError:
            return ReadResult(default, DEFAULTED, "malformed", rev)
        if expect is not None and not isinstance(val, expect):
            return ReadResult(default, DEFAULTED, "unexpected_type", rev)
        return ReadResult(val, OK, None, rev)

    def write_json(self, key: str, value: Any) -> int:
        return self.set_item(key, json.dumps(value))

    def update_json(
        self,
        key: str,
        fn: Callable[[Any], Any],
        default_factory: Callable[[], Any] = dict,
        expect: type | None = dict,
    ) -> Any:
        """
        Read-modify-write with compare-and-set. `fn` receives the current value
        (or a fresh default) and returns the value to store.
        """
        for attempt in range(self.cas_retries + 1):
            current = self.read_json(key, default_factory(), expect)
            new_value = fn(current.value)
            encoded = json.dumps(new_value)
            if current.revision and encoded == self._read(key)[0]:
                return new_value
            if self.compare_and_set(key, current.revision, encoded):
                return new_value
            logger.warning("CAS conflict on %s/%s (attempt %d)", self.origin, key, attempt + 1)
        raise StorageConflictError(f"Concurrent update on {key} did not settle", details={"key": key})

    # -------------------- change notifications --------------------

    def _notify(self, key: str, revision: int):
        change = StorageChange(self.origin, key, revision)
        for listener in self.listeners:
            listener(change)
