"""
Static survey catalog: fetch once, cache in memory, normalize for display.
"""
from __future__ import annotations

import asyncio
import math
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx
from jsonschema import Draft202012Validator, ValidationError

from app.shared.errors import CatalogLoadError

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load db.json"
RETAKE_BLOCKED = "Already completed. Retakes are not allowed."

CATALOG_SCHEMA = {
    "type": "object",
    "properties": {
        "surveys": {
            "type": "array",
            "items": {"type": "object"},
        }
    },
}


@dataclass(frozen=True)
class FetchPolicy:
    cache_mode: str = "no-store"      # sent as Cache-Control; "default" sends nothing
    cache_bust: bool = True           # append _=<epoch ms>
    retries: int = 0
    timeout: Optional[float] = None   # seconds; None waits forever
    backoff: float = 0.5


def catalog_url(base_path: str = "/", origin: str = "") -> str:
    base = str(base_path or "/")
    norm = (base if base.startswith("/") else f"/{base}").rstrip("/")
    return f"{origin.rstrip('/')}{norm}/db.json"


def bust(url: str, now_ms: int) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}_={now_ms}"


class CatalogLoader:
    """Owns its cache; one instance per context, never module state."""

    def __init__(self, url: str, policy: FetchPolicy | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.url = url
        self.policy = policy or FetchPolicy()
        self.transport = transport
        self._cache: dict | None = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> dict | None:
        return self._cache

    def clear(self):
        self._cache = None

    async def load_db(self) -> dict:
        if self._cache is not None:
            return self._cache
        async with self._lock:
            if self._cache is None:
                self._cache = await self._fetch()
        return self._cache

    async def _fetch(self) -> dict:
        p = self.policy
        headers = {} if p.cache_mode == "default" else {"Cache-Control": p.cache_mode}
        last: Exception | None = None
        async with httpx.AsyncClient(transport=self.transport, timeout=p.timeout) as client:
            for attempt in range(p.retries + 1):
                url = bust(self.url, int(time.time() * 1000)) if p.cache_bust else self.url
                try:
                    r = await client.get(url, headers=headers)
                    r.raise_for_status()
                    doc = r.json()
                    Draft202012Validator(CATALOG_SCHEMA).validate(doc)
                    logger.info("catalog loaded from %s (%d surveys)", self.url, len(doc.get("surveys") or []))
                    return doc
                except (httpx.HTTPError, ValueError, ValidationError) as e:
                    last = e
                    logger.warning("catalog load attempt %d/%d failed: %s", attempt + 1, p.retries + 1, e)
                    if attempt < p.retries:
                        await asyncio.sleep(p.backoff * (2 ** attempt))
        raise CatalogLoadError(LOAD_ERROR, details=str(last))


def normalize_questions(s: dict) -> tuple[list, int]:
    items, questions = s.get("items"), s.get("questions")
    if isinstance(items, list):
        return items, len(items)
    if isinstance(questions, list):
        return questions, len(questions)
    if isinstance(questions, (int, float)) and not isinstance(questions, bool) and math.isfinite(questions):
        return [], int(questions)
    return [], 0


def normalize_entry(s: dict, completed_ids: Iterable[str]) -> dict[str, Any]:
    questions, count = normalize_questions(s)
    done = str(s.get("id")) in set(completed_ids)
    return {
        "id": s.get("id"),
        "title": s.get("name") or s.get("title") or "Survey",
        "name": s.get("name"),
        "description": s.get("description") or "",
        "premium": bool(s.get("premium")),
        "reward": s.get("payout"),
        "currency": str(s.get("currency") or "ksh").lower(),
        "questions": questions,
        "questionsCount": count,
        "completed": done,
        "status": "completed" if done else "available",
        "locked": done,
        "retakeBlockedReason": RETAKE_BLOCKED if done else None,
    }


def find_survey(db: dict, survey_id: str) -> dict | None:
    return next((s for s in db.get("surveys") or [] if str(s.get("id")) == str(survey_id)), None)
