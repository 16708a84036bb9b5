import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from knowledge_ingest.database import SessionLocal, get_db
from knowledge_ingest.fetcher import FetcherService
from knowledge_ingest.schemas import ArticleResponse
from knowledge_ingest.store import ArticleStore
from knowledge_ingest.taxonomy import Category, Source

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/articles", response_model=List[ArticleResponse])
def list_articles(
    category: Optional[Category] = None,
    source: Optional[Source] = None,
    limit: Optional[int] = Query(default=None, gt=0),
    db: Session = Depends(get_db),
):
    """
    Return stored articles, newest first.
    Optionally filtered by category and/or source, and capped at `limit`.
    """
    articles = ArticleStore(db).list_articles(
        category=category.value if category else None,
        source=source.value if source else None,
        limit=limit,
    )
    logger.info(f"[/articles] Returning {len(articles)} articles")
    return articles


@router.get("/categories", response_model=List[str])
def available_categories(db: Session = Depends(get_db)):
    """Distinct categories that have at least one stored article."""
    return ArticleStore(db).available_categories()


@router.get("/sources", response_model=List[str])
def available_sources(db: Session = Depends(get_db)):
    """Distinct sources that have at least one stored article."""
    return ArticleStore(db).available_sources()


@router.post("/fetch")
def trigger_fetch():
    """Trigger an immediate ingestion cycle over all sources. Blocks until complete."""
    FetcherService().run_once(SessionLocal)
    return {"status": "ok"}
