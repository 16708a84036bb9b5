import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from knowledge_ingest.models import Article
from knowledge_ingest.schemas import ArticleCandidate

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Persistence failure on lookup or insert."""


class DuplicateArticleError(StoreError):
    """Insert rejected because (source, source_id) already exists, i.e. another run won the race with another run."""


class ArticleStore:
    """
    Insert-only access to the knowledge_articles table.
    The ingestion pipeline only ever looks up by (source, source_id) and inserts;
    rows are never updated or deleted here.
    """

    def __init__(self, db: Session):
        self.db = db

    def lookup_by_composite_key(self, source: str, source_id: str) -> Optional[Article]:
        try:
            return (
                self.db.query(Article)
                .filter(Article.source == source, Article.source_id == source_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Lookup failed for ({source}, {source_id}): {e}") from e

    def insert(self, candidate: ArticleCandidate) -> int:
        """Persist a new row and return its id."""
        article = Article(**candidate.model_dump())
        try:
            self.db.add(article)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateArticleError(
                f"Article ({candidate.source}, {candidate.source_id}) already stored"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Insert failed for ({candidate.source}, {candidate.source_id}): {e}") from e
        return article.id

    # --- Read side, used by the HTTP routes ---

    def list_articles(
        self,
        category: Optional[str] = None,
        source: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Article]:
        """Most recently ingested first."""
        query = self.db.query(Article)
        if category:
            query = query.filter(Article.category == category)
        if source:
            query = query.filter(Article.source == source)
        query = query.order_by(Article.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def available_categories(self) -> List[str]:
        rows = (
            self.db.query(Article.category)
            .filter(Article.category.isnot(None))
            .distinct()
            .order_by(Article.category)
            .all()
        )
        return [row[0] for row in rows]

    def available_sources(self) -> List[str]:
        rows = self.db.query(Article.source).distinct().order_by(Article.source).all()
        return [row[0] for row in rows]
