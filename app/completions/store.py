"""
Per-user completion log, the rolling daily counter and the version marker.

Layout under the origin's key-value store:
    surveys.completions.v1       {userId: {surveyId: {answers, completedAt}}}
    surveys.dailyCompletions.v1  {userId: {"YYYY-MM-DD": count}}
    surveys:version              epoch ms of the last completion change
"""
import logging
from datetime import date, datetime
from typing import Any, Callable

from app.shared.time import now_utc, iso_utc, epoch_ms
from app.storage.keys import COMPLETIONS_KEY, DAILY_COMPLETIONS_KEY, SURVEYS_VERSION_KEY
from app.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


class CompletionLog:
    def __init__(
        self,
        kv: KeyValueStore,
        today: Callable[[], date] | None = None,
        now: Callable[[], datetime] = now_utc,
    ):
        self.kv = kv
        self.now = now
        self.today = today or (lambda: self.now().date())

    def _today_str(self) -> str:
        return self.today().isoformat()

    # -------------------- completions --------------------

    def _read_completions(self) -> dict:
        return self.kv.read_json(COMPLETIONS_KEY, {}, expect=dict).value

    def get_completed_ids(self, user_id: str) -> set[str]:
        mine = self._read_completions().get(user_id) or {}
        return set(mine.keys()) if isinstance(mine, dict) else set()

    def has_completed(self, user_id: str, survey_id: str) -> bool:
        mine = self._read_completions().get(user_id) or {}
        return isinstance(mine, dict) and bool(mine.get(str(survey_id)))

    def get_record(self, user_id: str, survey_id: str) -> dict | None:
        mine = self._read_completions().get(user_id) or {}
        return mine.get(str(survey_id)) if isinstance(mine, dict) else None

    def mark_completed(self, user_id: str, survey_id: str, answers: dict[str, Any] | None = None) -> bool:
        """
        Record a finished survey. Returns False (and changes nothing) when the
        pair is already recorded, so a double submit never counts twice.
        """
        survey_id = str(survey_id)
        created = False

        def _add(all_: dict) -> dict:
            nonlocal created
            mine = all_.get(user_id)
            if not isinstance(mine, dict):
                mine = {}
            if mine.get(survey_id):
                created = False
                return all_
            mine[survey_id] = {"answers": answers or {}, "completedAt": iso_utc(self.now())}
            all_[user_id] = mine
            created = True
            return all_

        self.kv.update_json(COMPLETIONS_KEY, _add)
        if not created:
            logger.info("survey %s already completed by %s; ignoring duplicate", survey_id, user_id)
            return False

        self._increment_daily(user_id)
        self._bump_version()
        logger.info("survey %s completed by %s", survey_id, user_id)
        return True

    def reset_completions(self, user_id: str) -> bool:
        if user_id not in self._read_completions():
            return False
        self.kv.update_json(COMPLETIONS_KEY, lambda all_: {k: v for k, v in all_.items() if k != user_id})
        self._bump_version()
        logger.info("completions reset for %s", user_id)
        return True

    # -------------------- daily counter --------------------

    def _prune(self, all_: dict, user_id: str) -> dict:
        today = self._today_str()
        daily = all_.get(user_id)
        if not isinstance(daily, dict):
            daily = {}
        all_[user_id] = {d: n for d, n in daily.items() if d == today}
        return all_

    def prune_daily(self, user_id: str) -> dict[str, int]:
        """Drop every counter of `user_id` not dated today; returns what is left."""
        pruned = self.kv.update_json(DAILY_COMPLETIONS_KEY, lambda all_: self._prune(all_, user_id))
        return pruned[user_id]

    def today_count(self, user_id: str) -> int:
        daily = self.prune_daily(user_id)
        try:
            return int(daily.get(self._today_str(), 0))
        except (TypeError, ValueError):
            return 0

    def _increment_daily(self, user_id: str):
        today = self._today_str()

        def _inc(all_: dict) -> dict:
            all_ = self._prune(all_, user_id)
            daily = all_[user_id]
            try:
                daily[today] = int(daily.get(today, 0)) + 1
            except (TypeError, ValueError):
                daily[today] = 1
            return all_

        self.kv.update_json(DAILY_COMPLETIONS_KEY, _inc)

    # -------------------- version marker --------------------

    def _bump_version(self):
        self.kv.set_item(SURVEYS_VERSION_KEY, str(epoch_ms(self.now())))

    def version(self) -> str | None:
        return self.kv.get_item(SURVEYS_VERSION_KEY)
