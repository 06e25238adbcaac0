"""
Tier-indexed, day-scoped survey quota.

A user may complete at most PACKAGE_LIMITS[tier] surveys per local calendar
day and never the same survey twice.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

from app.completions.store import CompletionLog
from app.profile.store import ProfileStore
from app.shared.errors import SurveyNotAllowedError

PACKAGE_LIMITS = {
    "free": 1,
    "silver": 5,
    "gold": 10,
    "platinum": 20,
}

PACKAGES: dict[str, dict[str, Any]] = {
    "free": {
        "limit": 1,
        "next_tier": "silver",
        "benefits": ["5 surveys/day", "Higher earnings", "Lower withdrawal limits"],
    },
    "silver": {
        "limit": 5,
        "next_tier": "gold",
        "benefits": ["10 surveys/day", "Even higher earnings", "Priority surveys"],
    },
    "gold": {
        "limit": 10,
        "next_tier": "platinum",
        "benefits": ["20 surveys/day", "Maximum earnings", "All premium surveys"],
    },
    "platinum": {
        "limit": 20,
        "next_tier": None,
        "benefits": ["Maximum benefits", "All features unlocked"],
    },
}

PREMIUM_TIERS = {"silver", "gold", "platinum"}
UPGRADE_PATH = "/packages"
RETAKE_MESSAGE = "This survey is already completed and cannot be taken again."


def daily_limit(tier: Optional[str]) -> int:
    return PACKAGE_LIMITS.get(tier or "", 0)


def remaining(limit: int, today_count: int) -> int:
    return max(0, limit - today_count)


def is_premium_user(user: dict) -> bool:
    return user.get("plan") == "premium" or user.get("tier") in PREMIUM_TIERS


def limit_message(limit: int) -> str:
    return f"You have reached your daily limit of {limit} surveys."


def daily_limit_dialog(tier: str) -> dict:
    pkg = PACKAGES.get(tier) or PACKAGES["free"]
    nxt = pkg["next_tier"]
    title = f"Upgrade to {nxt.capitalize()}" if nxt else "Upgrade to Premium"
    message = f"You've completed all {pkg['limit']} surveys available for your {tier} plan today."
    return {
        "title": title,
        "message": message,
        "next_tier": nxt,
        "benefits": pkg["benefits"] if nxt else [],
        "note": None if nxt else "You already have our highest plan! Check back tomorrow for more surveys",
        "upgrade_path": UPGRADE_PATH if nxt else None,
    }


def premium_dialog() -> dict:
    return {
        "title": "Premium Survey",
        "message": "This is a premium survey. Upgrade to access it and enjoy:",
        "benefits": ["Higher payouts", "More survey opportunities", "Exclusive content"],
        "upgrade_path": UPGRADE_PATH,
    }


@dataclass(frozen=True)
class StartDecision:
    allowed: bool
    reason: Optional[str] = None  # already_completed | daily_limit | premium_required
    limit: int = 0
    remaining: int = 0
    dialog: dict = field(default_factory=dict)


class QuotaPolicy:
    def __init__(self, profiles: ProfileStore, log: CompletionLog):
        self.profiles = profiles
        self.log = log

    def limit_for(self, user: dict) -> int:
        return daily_limit(user.get("tier"))

    def get_remaining_surveys(self, user_id: str) -> int:
        user = self.profiles.get_user()
        return remaining(self.limit_for(user), self.log.today_count(user_id))

    def can_start_survey(self, survey_id: str) -> bool:
        user = self.profiles.get_user()
        if self.log.has_completed(user["id"], survey_id):
            return False
        return self.log.today_count(user["id"]) < self.limit_for(user)

    def ensure_not_completed(self, survey_id: str) -> None:
        if not self.can_start_survey(survey_id):
            user = self.profiles.get_user()
            limit = self.limit_for(user)
            reason = "already_completed" if self.log.has_completed(user["id"], survey_id) else "daily_limit"
            raise SurveyNotAllowedError(limit_message(limit), reason=reason, limit=limit)

    def check_start(self, survey: dict) -> StartDecision:
        """Retake, then daily quota, then premium gating; first failure wins."""
        user = self.profiles.get_user()
        tier = user.get("tier") or "free"
        limit = self.limit_for(user)
        left = remaining(limit, self.log.today_count(user["id"]))

        if self.log.has_completed(user["id"], survey["id"]):
            return StartDecision(False, "already_completed", limit, left, {
                "title": "Survey Already Completed",
                "message": RETAKE_MESSAGE,
            })
        if left <= 0:
            return StartDecision(False, "daily_limit", limit, left, daily_limit_dialog(tier))
        if survey.get("premium") and not is_premium_user(user):
            return StartDecision(False, "premium_required", limit, left, premium_dialog())
        return StartDecision(True, None, limit, left)
