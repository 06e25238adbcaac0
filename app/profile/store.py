import json
import logging
import time
import uuid
from typing import Any, Callable

from app.shared.errors import StorageConflictError
from app.storage.keys import USER_KEY
from app.storage.kv import KeyValueStore, ReadResult

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)

def _id32() -> str:
    return uuid.uuid4().hex

def default_user(user_id: str, created_at: int) -> dict:
    return {
        "id": user_id,
        "name": "Guest",
        "email": "",
        "plan": "free",
        "tier": "free",
        "balance": 0,
        "createdAt": created_at,
    }

class ProfileStore:
    """The single user record of a storage origin."""

    def __init__(self, kv: KeyValueStore, now_ms: Callable[[], int] = _now_ms, new_id: Callable[[], str] = _id32):
        self.kv = kv
        self.now_ms = now_ms
        self.new_id = new_id

    def read_user(self) -> ReadResult:
        """Raw read; a stored value without an id counts as defaulted."""
        res = self.kv.read_json(USER_KEY, None, expect=dict)
        if res.ok and not res.value.get("id"):
            return ReadResult(None, "defaulted", "missing_id", res.revision)
        return res

    def get_user(self) -> dict:
        for _ in range(self.kv.cas_retries + 1):
            res = self.read_user()
            if res.ok:
                return res.value
            fresh = default_user(self.new_id(), self.now_ms())
            if res.reason != "missing":
                logger.warning("profile in origin %s was %s; replacing with a fresh guest", self.kv.origin, res.reason)
            # another client may create the profile first; its id wins
            if self.kv.compare_and_set(USER_KEY, res.revision, json.dumps(fresh)):
                return fresh
        raise StorageConflictError("Concurrent profile creation did not settle", details={"key": USER_KEY})

    def set_user(self, patch: dict[str, Any]) -> dict:
        patch = {k: v for k, v in (patch or {}).items() if k != "id"}
        self.get_user()

        def _merge(u: dict) -> dict:
            base = u if u.get("id") else default_user(self.new_id(), self.now_ms())
            return {**base, **patch}

        return self.kv.update_json(USER_KEY, _merge)
