from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from sqlalchemy.orm import Session

from app.catalog.loader import CatalogLoader, FetchPolicy, catalog_url
from app.completions.store import CompletionLog
from app.profile.store import ProfileStore
from app.quota.policy import QuotaPolicy
from app.shared.config import Settings
from app.shared.sse import EventHub
from app.shared.time import today_local
from app.storage.keys import WATCHED_KEYS
from app.storage.kv import KeyValueStore, StorageChange
from app.toasts.service import WithdrawalTicker, Withdrawal


@dataclass
class Stores:
    """Per-request view of one storage origin."""
    kv: KeyValueStore
    profiles: ProfileStore
    log: CompletionLog
    policy: QuotaPolicy


@dataclass
class SurveyContext:
    """
    Everything that would otherwise be module state: the catalog cache (inside
    the loader), the toast ticker and the change-notification hub.
    """
    settings: Settings
    loader: CatalogLoader
    hub: EventHub = field(default_factory=EventHub)
    ticker: WithdrawalTicker | None = None
    today: Callable[[], date] | None = None

    def __post_init__(self):
        if self.ticker is None:
            self.ticker = WithdrawalTicker(self.publish_withdrawal, interval=self.settings.TOAST_INTERVAL_SECONDS)
        if self.today is None:
            tz = self.settings.TZ
            self.today = lambda: today_local(tz)

    def on_storage_change(self, change: StorageChange):
        if change.key in WATCHED_KEYS:
            self.hub.publish_nowait(change.origin, "storage", {"key": change.key, "revision": change.revision})

    async def publish_withdrawal(self, w: Withdrawal):
        for room in self.hub.rooms():
            await self.hub.publish(room, "withdrawal", w.to_dict())

    def storage(self, db: Session, origin: str) -> Stores:
        kv = KeyValueStore(db, origin, listeners=[self.on_storage_change], cas_retries=self.settings.STORAGE_CAS_RETRIES)
        profiles = ProfileStore(kv)
        log = CompletionLog(kv, today=self.today)
        return Stores(kv=kv, profiles=profiles, log=log, policy=QuotaPolicy(profiles, log))


def build_context(settings: Settings, transport=None) -> SurveyContext:
    url = settings.CATALOG_URL or catalog_url(settings.BASE_PATH, settings.CATALOG_ORIGIN)
    policy = FetchPolicy(
        cache_mode=settings.CATALOG_CACHE_MODE,
        cache_bust=settings.CATALOG_CACHE_BUST,
        retries=settings.CATALOG_RETRIES,
        timeout=settings.CATALOG_TIMEOUT,
    )
    return SurveyContext(settings=settings, loader=CatalogLoader(url, policy, transport=transport))
