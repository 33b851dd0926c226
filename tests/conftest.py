# tests/conftest.py
import os, pathlib, tempfile
import pytest
from dotenv import load_dotenv

# Must run before any feedlens import: config and store read the environment at import time
load_dotenv(pathlib.Path(__file__).parent / ".env.test", override=True)
_tmp = pathlib.Path(tempfile.mkdtemp(prefix="feedlens-tests-"))
os.environ["DB_FILE"] = str(_tmp / "test.db")
os.environ.pop("DB_URL", None)
os.environ["LOG_DIR"] = str(_tmp / "logs")

USER = "user-1"

@pytest.fixture(autouse=True)
def _fresh_db():
    from sqlmodel import SQLModel
    from feedlens.store import engine, init_db
    init_db()
    yield
    SQLModel.metadata.drop_all(engine)

@pytest.fixture()
def session():
    from feedlens.store import get_session
    with get_session() as s:
        yield s

@pytest.fixture()
def client():
    from fastapi.testclient import TestClient
    from feedlens.main import app
    return TestClient(app)

@pytest.fixture()
def headers():
    return {"X-User-Id": USER}

@pytest.fixture()
def feed_tree(session):
    """One category with two feeds plus an uncategorized feed, all owned by USER."""
    from feedlens.models import Category, Feed
    cat = Category(user_id=USER, name="Tech")
    session.add(cat); session.commit(); session.refresh(cat)
    feeds = [
        Feed(user_id=USER, category_id=cat.id, url="https://a.example/rss", title="A"),
        Feed(user_id=USER, category_id=cat.id, url="https://b.example/rss", title="B"),
        Feed(user_id=USER, category_id=None, url="https://c.example/rss", title="C"),
    ]
    for f in feeds:
        session.add(f)
    session.commit()
    for f in feeds:
        session.refresh(f)
    return {"category": cat.id, "feeds": [f.id for f in feeds]}
