import pytest

from app.quota.policy import daily_limit, is_premium_user, daily_limit_dialog
from app.shared.errors import SurveyNotAllowedError


@pytest.mark.parametrize("tier,limit", [("free", 1), ("silver", 5), ("gold", 10), ("platinum", 20), ("bronze", 0), (None, 0)])
def test_daily_limits(tier, limit):
    assert daily_limit(tier) == limit


def test_silver_quota_arithmetic(profiles, log, policy):
    uid = profiles.set_user({"tier": "silver"})["id"]
    for sid in ("a", "b", "c"):
        log.mark_completed(uid, sid)
    assert policy.get_remaining_surveys(uid) == 2
    assert policy.can_start_survey("d")

    log.mark_completed(uid, "d")
    log.mark_completed(uid, "e")
    assert policy.get_remaining_surveys(uid) == 0
    assert policy.can_start_survey("f") is False


def test_completed_survey_can_never_be_started_again(profiles, log, policy, clock):
    uid = profiles.set_user({"tier": "platinum"})["id"]
    log.mark_completed(uid, "s1")
    for _ in range(3):
        assert policy.can_start_survey("s1") is False
        clock.advance(days=1)
    assert log.has_completed(uid, "s1")
    assert policy.can_start_survey("s2") is True


def test_yesterdays_count_does_not_reduce_today(profiles, log, policy, clock):
    uid = profiles.get_user()["id"]
    log.mark_completed(uid, "s1")
    assert policy.get_remaining_surveys(uid) == 0
    clock.advance(days=1)
    assert policy.get_remaining_surveys(uid) == 1
    assert policy.can_start_survey("s2")


def test_unknown_tier_has_no_quota(profiles, policy):
    uid = profiles.set_user({"tier": "bronze"})["id"]
    assert policy.get_remaining_surveys(uid) == 0
    assert policy.can_start_survey("s1") is False


def test_ensure_not_completed_states_the_limit(profiles, log, policy):
    uid = profiles.set_user({"tier": "silver"})["id"]
    policy.ensure_not_completed("s1")
    log.mark_completed(uid, "s1")
    with pytest.raises(SurveyNotAllowedError) as ei:
        policy.ensure_not_completed("s1")
    assert str(ei.value) == "You have reached your daily limit of 5 surveys."
    assert ei.value.reason == "already_completed" and ei.value.limit == 5


def test_check_start_order(profiles, log, policy):
    uid = profiles.get_user()["id"]
    d = policy.check_start({"id": "p1", "premium": True})
    assert not d.allowed and d.reason == "premium_required"
    assert d.dialog["upgrade_path"] == "/packages"

    assert policy.check_start({"id": "s1", "premium": False}).allowed
    log.mark_completed(uid, "s1")
    assert policy.check_start({"id": "s1"}).reason == "already_completed"
    d = policy.check_start({"id": "s2"})
    assert d.reason == "daily_limit" and d.remaining == 0
    assert d.dialog["title"] == "Upgrade to Silver"
    assert d.dialog["benefits"][0] == "5 surveys/day"


def test_premium_users():
    assert is_premium_user({"tier": "silver"})
    assert is_premium_user({"tier": "free", "plan": "premium"})
    assert not is_premium_user({"tier": "free", "plan": "free"})


def test_top_tier_dialog_has_no_upgrade():
    d = daily_limit_dialog("platinum")
    assert d["next_tier"] is None and d["upgrade_path"] is None
    assert "20 surveys" in d["message"]
