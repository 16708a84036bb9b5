"""
Unit tests for the API routes: in-memory SQLite database, fetcher mocked.
No network calls. Fast.

Run with: pytest tests/test_routes.py -v
"""
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from knowledge_ingest.database import Base, get_db
from knowledge_ingest.models import Article
from knowledge_ingest.routes.articles import router

# Minimal test app: no lifespan, no background fetcher
_app = FastAPI()
_app.include_router(router)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db):
    _app.dependency_overrides[get_db] = lambda: db
    yield TestClient(_app)
    _app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def insert_article(db, **kwargs) -> Article:
    """Insert an Article directly into the DB, bypassing the fetcher."""
    defaults = {
        "title": "Test Article",
        "url": "https://example.com/1",
        "source": "Hacker News",
        "source_id": "1",
        "score": 100,
        "category": "Technology",
        "published_at": 1700000000000,
        "description": None,
    }
    defaults.update(kwargs)
    article = Article(**defaults)
    db.add(article)
    db.commit()
    return article


# ---------------------------------------------------------------------------
# GET /articles
# ---------------------------------------------------------------------------

class TestListArticles:
    def test_returns_empty_list_when_no_articles(self, client):
        response = client.get("/articles")
        assert response.status_code == 200
        assert response.json() == []

    def test_sorted_most_recently_ingested_first(self, client, db):
        insert_article(db, source_id="first", published_at=3000)
        insert_article(db, source_id="second", published_at=1000)
        insert_article(db, source_id="third", published_at=2000)

        ids = [a["source_id"] for a in client.get("/articles").json()]

        assert ids == ["third", "second", "first"]

    def test_filters_by_category(self, client, db):
        insert_article(db, source_id="t1", category="Technology")
        insert_article(db, source="Reddit Science", source_id="s1", category="Science")

        ids = [a["source_id"] for a in client.get("/articles", params={"category": "Science"}).json()]

        assert ids == ["s1"]

    def test_filters_by_source(self, client, db):
        insert_article(db, source="Hacker News", source_id="h1")
        insert_article(db, source="Reddit Tech", source_id="r1")

        ids = [a["source_id"] for a in client.get("/articles", params={"source": "Reddit Tech"}).json()]

        assert ids == ["r1"]

    def test_limit_caps_results(self, client, db):
        for i in range(5):
            insert_article(db, source_id=f"id-{i}", published_at=i)

        assert len(client.get("/articles", params={"limit": 3}).json()) == 3

    def test_unknown_category_returns_422(self, client):
        assert client.get("/articles", params={"category": "Gardening"}).status_code == 422

    def test_non_positive_limit_returns_422(self, client):
        assert client.get("/articles", params={"limit": 0}).status_code == 422

    def test_response_contains_article_fields(self, client, db):
        insert_article(db, description="short excerpt")
        article = client.get("/articles").json()[0]

        assert article["title"] == "Test Article"
        assert article["url"] == "https://example.com/1"
        assert article["source"] == "Hacker News"
        assert article["category"] == "Technology"
        assert article["published_at"] == 1700000000000
        assert article["description"] == "short excerpt"
        assert "ingested_at" in article


# ---------------------------------------------------------------------------
# GET /categories and GET /sources
# ---------------------------------------------------------------------------

class TestAvailableFilters:
    def test_categories_are_distinct(self, client, db):
        insert_article(db, source_id="1", category="Technology")
        insert_article(db, source_id="2", category="Technology")
        insert_article(db, source="Dev.to", source_id="3", category="Programming")

        assert client.get("/categories").json() == ["Programming", "Technology"]

    def test_sources_are_distinct(self, client, db):
        insert_article(db, source="Hacker News", source_id="1")
        insert_article(db, source="Hacker News", source_id="2")
        insert_article(db, source="Reddit Tech", source_id="3")

        assert client.get("/sources").json() == ["Hacker News", "Reddit Tech"]


# ---------------------------------------------------------------------------
# POST /fetch
# ---------------------------------------------------------------------------

class TestTriggerFetch:
    def test_runs_one_cycle(self, client):
        with patch("knowledge_ingest.routes.articles.FetcherService.run_once") as mock_run:
            response = client.post("/fetch")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        mock_run.assert_called_once()
