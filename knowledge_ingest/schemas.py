from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from knowledge_ingest.taxonomy import Category, Source


class ArticleCandidate(BaseModel):
    """
    Canonical article produced by the normalizer, ready for the dedup gate.
    source and category are validated against the closed enums, then stored as plain labels.
    """
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    source: Source
    source_id: str = Field(min_length=1)
    score: Optional[float] = None
    category: Optional[Category] = None
    published_at: Optional[int] = None  # epoch milliseconds
    description: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class ArticleResponse(BaseModel):
    """Shape returned by GET /articles."""
    id: int
    title: str
    url: str
    source: str
    source_id: str
    score: Optional[float] = None
    category: Optional[str] = None
    published_at: Optional[int] = None
    description: Optional[str] = None
    ingested_at: Optional[datetime] = None

    # Allows Pydantic to read data directly from SQLAlchemy model instances
    model_config = ConfigDict(from_attributes=True)
