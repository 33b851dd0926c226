# tests/test_api.py
from datetime import datetime, timedelta, timezone

from feedlens.models import SettingsOverride

from conftest import USER


def _put(client, headers, scope, scope_id, fields):
    return client.put(f"/settings/{scope}/{scope_id}", json={"fields": fields}, headers=headers)


def test_effective_settings_scenario(client, headers, feed_tree):
    feed_id, cat_id = feed_tree["feeds"][0], feed_tree["category"]
    assert _put(client, headers, "user", USER, {"refresh_interval": 60}).status_code == 200
    assert _put(client, headers, "category", cat_id, {"refresh_interval": 120}).status_code == 200
    r = _put(client, headers, "feed", feed_id, {"refresh_interval": 30})
    assert r.status_code == 200
    body = r.json()
    assert [f["feed_id"] for f in body["affected_feeds"]] == [feed_id]
    assert body["affected_feeds"][0]["settings"]["refresh_interval"] == {"value": 30, "source": "feed"}

    r = client.get(f"/feeds/{feed_id}/effective-settings", headers=headers)
    assert r.status_code == 200
    data = r.json()
    assert data["settings"]["refresh_interval"] == {"value": 30, "source": "feed"}
    assert data["settings"]["extraction_method"] == {"value": "rss", "source": "system"}
    assert data["overrides"] == {
        "feed": {"refresh_interval": 30},
        "category": {"refresh_interval": 120},
        "user": {"refresh_interval": 60},
    }

    _put(client, headers, "feed", feed_id, {"refresh_interval": None})
    r = client.get(f"/feeds/{feed_id}/effective-settings", headers=headers)
    assert r.json()["settings"]["refresh_interval"] == {"value": 120, "source": "category"}


def test_category_write_reports_all_member_feeds(client, headers, feed_tree):
    r = _put(client, headers, "category", feed_tree["category"], {"extraction_method": "playwright"})
    assert r.status_code == 200
    affected = r.json()["affected_feeds"]
    assert [f["feed_id"] for f in affected] == feed_tree["feeds"][:2]
    assert all(f["settings"]["extraction_method"]["source"] == "category" for f in affected)


def test_out_of_bounds_write_rejected_with_details(client, headers, feed_tree):
    feed_id = feed_tree["feeds"][0]
    _put(client, headers, "feed", feed_id, {"max_articles_per_feed": 100})

    r = _put(client, headers, "feed", feed_id, {"max_articles_per_feed": 10})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "OutOfBoundsValue"
    assert detail["field"] == "max_articles_per_feed"
    assert (detail["minimum"], detail["maximum"]) == (50, 5000)

    r = client.get(f"/feeds/{feed_id}/effective-settings", headers=headers)
    assert r.json()["settings"]["max_articles_per_feed"] == {"value": 100, "source": "feed"}


def test_enum_field_rejection_lists_choices(client, headers, feed_tree):
    r = _put(client, headers, "user", USER, {"extraction_method": "wget"})
    assert r.status_code == 422
    assert r.json()["detail"]["choices"] == ["rss", "readability", "playwright"]


def test_unknown_scope_is_404(client, headers, feed_tree):
    assert _put(client, headers, "feed", 424242, {"refresh_interval": 30}).status_code == 404
    assert client.get("/feeds/424242/effective-settings", headers=headers).status_code == 404
    r = _put(client, {"X-User-Id": "intruder"}, "feed", feed_tree["feeds"][0], {"refresh_interval": 30})
    assert r.status_code == 404
    assert r.json()["detail"]["scope"] == "feed"


def test_get_and_delete_scope_override(client, headers, feed_tree):
    _put(client, headers, "user", USER, {"refresh_interval": 45, "max_article_age": 30})
    r = client.get(f"/settings/user/{USER}", headers=headers)
    assert r.json()["overrides"] == {"refresh_interval": 45, "max_article_age": 30}

    assert client.delete(f"/settings/user/{USER}", headers=headers).status_code == 204
    assert client.get(f"/settings/user/{USER}", headers=headers).json()["overrides"] == {}


def test_system_defaults_catalogue(client):
    fields = {f["name"]: f for f in client.get("/settings/system-defaults").json()["fields"]}
    assert fields["refresh_interval"]["minimum"] == 15
    assert fields["max_article_age"]["default"] == 90


def test_corrupt_stored_value_fails_loudly(client, headers, feed_tree, session):
    feed_id = feed_tree["feeds"][0]
    session.add(SettingsOverride(scope="feed", scope_id=str(feed_id), overrides={"refresh_interval": 1}))
    session.commit()
    r = client.get(f"/feeds/{feed_id}/effective-settings", headers=headers)
    assert r.status_code == 500


def test_feedback_to_personalized_rank(client, headers):
    for i in range(9):
        r = client.post("/feedback", json={"article_id": f"a{i}", "kind": "thumbs_up", "keywords": ["rust"]}, headers=headers)
        assert r.status_code == 200
        assert r.json()["accepted"] is True
    assert r.json()["personalization"] == "cold"

    now = datetime.now(timezone.utc).isoformat()
    payload = {
        "candidates": [
            {"id": "a-plain", "base_score": 0.5, "published_at": now, "keywords": ["python"]},
            {"id": "b-rust", "base_score": 0.5, "published_at": now, "keywords": ["rust"]},
        ],
        "recency_weight": 0.0,
        "recency_decay_days": 30,
    }
    r = client.post("/rank", json=payload, headers=headers)
    assert r.json()["personalized"] is False
    assert [x["pattern"] for x in r.json()["results"]] == [0.0, 0.0]

    r = client.post("/feedback", json={"article_id": "a9", "kind": "thumbs_up", "keywords": ["rust"]}, headers=headers)
    assert r.json()["feedback_total"] == 10
    assert r.json()["personalization"] == "warm"

    r = client.post("/rank", json=payload, headers=headers)
    body = r.json()
    assert body["personalized"] is True
    assert [x["id"] for x in body["results"]] == ["b-rust", "a-plain"]
    assert body["results"][0]["matched_patterns"][0]["keyword"] == "rust"

    r = client.get("/patterns", headers=headers)
    (p,) = r.json()["patterns"]
    assert p["keyword"] == "rust" and p["feedback_count"] == 10 and p["weight"] > 0


def test_feedback_keywords_from_content(client, headers):
    r = client.post(
        "/feedback",
        json={"article_id": "x", "kind": "thumbs_down", "content": "<p>Crypto crypto crypto scam</p>"},
        headers=headers,
    )
    assert r.status_code == 200
    assert "crypto" in r.json()["keywords"]


def test_invalid_feedback_kind(client, headers):
    r = client.post("/feedback", json={"article_id": "x", "kind": "meh", "keywords": ["a"]}, headers=headers)
    assert r.status_code == 422


def test_reading_session_classification(client, headers):
    r = client.post(
        "/feedback/reading-session",
        json={"article_id": "r1", "time_spent": 10, "estimated_reading_time": 240, "keywords": ["gossip"]},
        headers=headers,
    )
    assert r.json()["accepted"] is True
    assert r.json()["kind"] == "bounce"

    r = client.post(
        "/feedback/reading-session",
        json={"article_id": "r2", "time_spent": 120, "estimated_reading_time": 240, "keywords": ["gossip"]},
        headers=headers,
    )
    assert r.json() == {"accepted": False, "reason": "no_signal"}

    r = client.post(
        "/feedback/reading-session",
        json={"article_id": "r3", "time_spent": 230, "estimated_reading_time": 240, "keywords": ["rust"]},
        headers=headers,
    )
    assert r.json()["kind"] == "completion"

    stats = client.get("/feedback/stats", headers=headers).json()
    assert stats["bounces"] == 1 and stats["completions"] == 1
    assert stats["average_time_spent"] == 120.0
    assert stats["personalization"] == "cold"


def test_reading_session_uses_user_bounce_threshold(client, headers):
    assert client.put("/prefs", json={"bounce_threshold": 0.6}, headers=headers).status_code == 200
    r = client.post(
        "/feedback/reading-session",
        json={"article_id": "r1", "time_spent": 120, "estimated_reading_time": 240, "keywords": ["x1"]},
        headers=headers,
    )
    assert r.json()["kind"] == "bounce"


def test_explicit_feedback_not_overridden_by_reading_session(client, headers):
    client.post("/feedback", json={"article_id": "r1", "kind": "thumbs_up", "keywords": ["rust"]}, headers=headers)
    r = client.post(
        "/feedback/reading-session",
        json={"article_id": "r1", "time_spent": 1, "estimated_reading_time": 240, "keywords": ["rust"]},
        headers=headers,
    )
    assert r.json() == {"accepted": False, "reason": "explicit_feedback_exists"}


def test_reset_learning_endpoint(client, headers):
    for kw in ("rust", "go"):
        client.post("/feedback", json={"article_id": kw, "kind": "thumbs_up", "keywords": [kw]}, headers=headers)
    stats = client.get("/patterns/stats", headers=headers).json()["stats"]
    assert stats["total_patterns"] == 2 and stats["negative_patterns"] == 0

    r = client.post("/patterns/reset", headers=headers)
    assert r.json() == {"ok": True, "deleted": 2}
    assert client.get("/patterns", headers=headers).json() == {"patterns": []}
    assert client.get("/feedback/stats", headers=headers).json()["learning_feedback_total"] == 0


def test_rank_rejects_bad_recency_parameters(client, headers):
    payload = {"candidates": [{"id": "a", "base_score": 0.1}], "recency_weight": 1.5, "recency_decay_days": 30}
    r = client.post("/rank", json=payload, headers=headers)
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "InvalidRecencyParameters"

    payload.update(recency_weight=0.5, recency_decay_days=0)
    assert client.post("/rank", json=payload, headers=headers).status_code == 422


def test_rank_uses_pref_defaults_and_recency(client, headers):
    client.put("/prefs", json={"recency_weight": 1.0, "recency_decay_days": 7}, headers=headers)
    now = datetime.now(timezone.utc)
    payload = {"candidates": [
        {"id": "old", "base_score": 0.9, "published_at": (now - timedelta(days=60)).isoformat()},
        {"id": "new", "base_score": 0.1, "published_at": now.isoformat()},
    ]}
    body = client.post("/rank", json=payload, headers=headers).json()
    assert body["recency_weight"] == 1.0
    assert [x["id"] for x in body["results"]] == ["new", "old"]


def test_prefs_roundtrip_and_bounds(client, headers):
    assert client.get("/prefs", headers=headers).json() == {
        "bounce_threshold": 0.25, "recency_weight": 0.3, "recency_decay_days": 30,
    }
    r = client.put("/prefs", json={"recency_weight": 0.5}, headers=headers)
    assert r.json()["recency_weight"] == 0.5
    assert client.put("/prefs", json={"bounce_threshold": 1.2}, headers=headers).status_code == 422
    assert client.put("/prefs", json={"recency_decay_days": 0}, headers=headers).status_code == 422


def test_rank_min_score_filters_only_warm_users(client, headers):
    payload = {
        "candidates": [
            {"id": "a-plain", "base_score": 0.5, "keywords": ["python"]},
            {"id": "b-rust", "base_score": 0.5, "keywords": ["rust"]},
        ],
        "recency_weight": 0.0,
        "min_score": 1.0,
    }
    body = client.post("/rank", json=payload, headers=headers).json()
    assert [x["id"] for x in body["results"]] == ["a-plain", "b-rust"]
    assert body["filtered"] == 0

    for i in range(10):
        client.post("/feedback", json={"article_id": f"a{i}", "kind": "thumbs_up", "keywords": ["rust"]}, headers=headers)

    body = client.post("/rank", json=payload, headers=headers).json()
    assert body["personalized"] is True
    assert [x["id"] for x in body["results"]] == ["b-rust"]
    assert body["filtered"] == 1


def test_rejected_settings_write_logged_once(client, headers, feed_tree, mocker):
    from feedlens import exception_handling
    from feedlens.routers import settings as settings_routes

    handler_warn = mocker.patch.object(exception_handling.logger, "warning")
    route_warn = mocker.patch.object(settings_routes.logger, "warning")

    r = _put(client, headers, "feed", feed_tree["feeds"][0], {"refresh_interval": 5})
    assert r.status_code == 422
    handler_warn.assert_called_once()
    assert handler_warn.call_args.args[0] == "DOMAIN_ERROR"
    route_warn.assert_not_called()


def test_settings_write_conflict_is_409(client, headers, feed_tree, mocker):
    mocker.patch("feedlens.settings_store._store_once", return_value=None)
    r = _put(client, headers, "feed", feed_tree["feeds"][0], {"refresh_interval": 30})
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "SettingsWriteConflict"
