# tests/test_store.py
from sqlmodel import select
from feedlens.store import get_session
from feedlens.models import Feed, UserPrefs

def test_db_roundtrip():
    with get_session() as s:
        f = Feed(user_id="u", url="https://x.example/rss", title="t")
        s.add(f); s.commit(); s.refresh(f)
        got = s.exec(select(Feed).where(Feed.id == f.id)).first()
        assert got and got.title == "t"

def test_user_prefs_defaults():
    prefs = UserPrefs(user_id="u")
    assert prefs.bounce_threshold == 0.25
    assert prefs.recency_weight == 0.3
    assert prefs.recency_decay_days == 30
