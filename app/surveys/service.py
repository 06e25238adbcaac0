# app/surveys/service.py
import logging
from typing import Any

from app.catalog.loader import normalize_entry, find_survey
from app.quota.policy import PACKAGES, daily_limit
from app.shared.errors import SurveyNotAllowedError, PremiumRequiredError, NotFoundError
from app.surveys.context import SurveyContext, Stores

logger = logging.getLogger(__name__)


async def list_surveys_for_user(ctx: SurveyContext, stores: Stores) -> list[dict]:
    user = stores.profiles.get_user()
    completed = stores.log.get_completed_ids(user["id"])
    db = await ctx.loader.load_db()
    return [normalize_entry(s, completed) for s in db.get("surveys") or []]


async def survey_page(ctx: SurveyContext, stores: Stores) -> dict:
    surveys = await list_surveys_for_user(ctx, stores)
    user = stores.profiles.get_user()
    tier = user.get("tier") or "free"
    limit = daily_limit(tier)
    left = stores.policy.get_remaining_surveys(user["id"])
    if surveys:
        empty = None
    elif left > 0:
        empty = "No surveys available at this time. Check back later!"
    else:
        empty = f"You've completed all {limit} surveys available for your {tier} plan today"
    return {
        "surveys": surveys,
        "remaining": left,
        "limit": limit,
        "tier": tier,
        "package": PACKAGES.get(tier),
        "disabled": left <= 0,
        "empty_message": empty,
    }


async def _require_survey(ctx: SurveyContext, survey_id: str) -> dict:
    db = await ctx.loader.load_db()
    survey = find_survey(db, survey_id)
    if survey is None:
        raise NotFoundError("Survey not found", details={"survey_id": survey_id})
    return survey


def _gate(stores: Stores, survey: dict, survey_id: str):
    """Retake, daily quota and premium checks shared by start and complete."""
    decision = stores.policy.check_start({"id": str(survey["id"]), "premium": bool(survey.get("premium"))})
    if decision.reason == "premium_required":
        raise PremiumRequiredError("Premium survey", details={"dialog": decision.dialog, "survey_id": survey_id})
    if not decision.allowed:
        raise SurveyNotAllowedError(
            decision.dialog.get("message") or "Survey not available",
            reason=decision.reason,
            limit=decision.limit,
            dialog=decision.dialog,
        )
    return decision


async def start_survey(ctx: SurveyContext, stores: Stores, survey_id: str) -> dict:
    survey = await _require_survey(ctx, survey_id)
    decision = _gate(stores, survey, survey_id)
    return {"survey_id": survey_id, "navigate": f"/surveys/{survey_id}", "remaining": decision.remaining}


async def complete_survey(ctx: SurveyContext, stores: Stores, survey_id: str, answers: dict[str, Any]) -> dict:
    survey = await _require_survey(ctx, survey_id)
    # retake and daily-limit failures carry the limit message; premium is gated after
    stores.policy.ensure_not_completed(survey_id)
    _gate(stores, survey, survey_id)
    user = stores.profiles.get_user()
    stores.log.mark_completed(user["id"], survey_id, answers)
    return {
        "survey_id": survey_id,
        "record": stores.log.get_record(user["id"], survey_id),
        "remaining": stores.policy.get_remaining_surveys(user["id"]),
        "version": stores.log.version(),
    }


def reset_surveys(stores: Stores) -> dict:
    user = stores.profiles.get_user()
    changed = stores.log.reset_completions(user["id"])
    return {"reset": changed, "version": stores.log.version()}
