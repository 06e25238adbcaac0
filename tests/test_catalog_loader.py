import asyncio

import httpx
import pytest

from app.catalog.loader import (
    CatalogLoader, FetchPolicy, catalog_url, bust, normalize_entry, find_survey,
)
from app.shared.errors import CatalogLoadError
from tests.conftest import CATALOG, catalog_transport


def test_catalog_url_follows_base_path():
    assert catalog_url("/") == "/db.json"
    assert catalog_url("") == "/db.json"
    assert catalog_url("app/") == "/app/db.json"
    assert catalog_url("/app//", "http://cdn.test/") == "http://cdn.test/app/db.json"


def test_cache_bust_param():
    assert bust("/db.json", 5) == "/db.json?_=5"
    assert bust("/db.json?v=2", 5) == "/db.json?v=2&_=5"


def test_load_is_cache_busted_no_store_and_cached():
    calls = []
    loader = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport(calls=calls))
    doc = asyncio.run(loader.load_db())
    again = asyncio.run(loader.load_db())
    assert doc == CATALOG and again is doc
    assert len(calls) == 1
    assert "_" in calls[0].url.params
    assert calls[0].headers["cache-control"] == "no-store"


def test_policy_without_busting_or_cache_header():
    calls = []
    policy = FetchPolicy(cache_mode="default", cache_bust=False)
    loader = CatalogLoader("http://catalog.test/db.json", policy, transport=catalog_transport(calls=calls))
    asyncio.run(loader.load_db())
    assert str(calls[0].url) == "http://catalog.test/db.json"
    assert "cache-control" not in calls[0].headers


def test_separate_loaders_do_not_share_cache():
    a_calls, b_calls = [], []
    a = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport(calls=a_calls))
    b = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport({"surveys": []}, calls=b_calls))
    assert asyncio.run(a.load_db()) == CATALOG
    assert asyncio.run(b.load_db()) == {"surveys": []}


def test_non_success_status_is_a_load_error():
    loader = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport(status=404))
    with pytest.raises(CatalogLoadError) as ei:
        asyncio.run(loader.load_db())
    assert ei.value.message == "Failed to load db.json"
    assert loader.cached is None


def test_network_error_is_a_load_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    loader = CatalogLoader("http://catalog.test/db.json", transport=httpx.MockTransport(handler))
    with pytest.raises(CatalogLoadError):
        asyncio.run(loader.load_db())


def test_not_a_catalog_is_a_load_error():
    loader = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport({"surveys": "nope"}))
    with pytest.raises(CatalogLoadError):
        asyncio.run(loader.load_db())


def test_retries_when_configured():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=CATALOG)

    loader = CatalogLoader(
        "http://catalog.test/db.json",
        FetchPolicy(retries=2, backoff=0),
        transport=httpx.MockTransport(handler),
    )
    assert asyncio.run(loader.load_db()) == CATALOG
    assert len(calls) == 2


def test_question_shapes_are_normalized():
    by_items = normalize_entry({"id": "a", "items": ["x", "y", "z"]}, set())
    assert by_items["questionsCount"] == 3 and by_items["questions"] == ["x", "y", "z"]

    by_count = normalize_entry({"id": "b", "questions": 7}, set())
    assert by_count["questionsCount"] == 7 and by_count["questions"] == []

    neither = normalize_entry({"id": "c"}, set())
    assert neither["questionsCount"] == 0 and neither["questions"] == []

    by_list = normalize_entry({"id": "d", "questions": [{"id": "q1"}]}, set())
    assert by_list["questionsCount"] == 1


def test_entry_defaults_and_completion_flags():
    s = normalize_entry({"id": "s1", "name": "Commute", "payout": 50, "currency": "KSH"}, {"s1"})
    assert s["title"] == "Commute" and s["reward"] == 50 and s["currency"] == "ksh"
    assert s["completed"] and s["locked"] and s["status"] == "completed"
    assert s["retakeBlockedReason"] == "Already completed. Retakes are not allowed."

    bare = normalize_entry({"id": 9}, set())
    assert bare["title"] == "Survey" and bare["description"] == "" and bare["currency"] == "ksh"
    assert bare["premium"] is False and bare["status"] == "available" and bare["retakeBlockedReason"] is None


def test_find_survey_matches_ids_as_strings():
    assert find_survey({"surveys": [{"id": 9}]}, "9") == {"id": 9}
    assert find_survey({}, "9") is None


def test_entries_without_id_still_load():
    doc = {"surveys": [{"name": "Anonymous", "questions": 2}, {"id": "s1"}]}
    loader = CatalogLoader("http://catalog.test/db.json", transport=catalog_transport(doc))
    loaded = asyncio.run(loader.load_db())
    entry = normalize_entry(loaded["surveys"][0], set())
    assert entry["id"] is None and entry["title"] == "Anonymous" and entry["questionsCount"] == 2
