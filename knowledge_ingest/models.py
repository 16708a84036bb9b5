from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Float, Index, Integer, String, Text, UniqueConstraint

from knowledge_ingest.database import Base


class Article(Base):
    __tablename__ = "knowledge_articles"
    __table_args__ = (
        # Dedup key: a second insert of the same (source, source_id) is rejected
        UniqueConstraint("source", "source_id", name="uq_knowledge_articles_source_source_id"),
        Index("ix_knowledge_articles_category", "category"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    url = Column(String, nullable=False)         # external link, or in-source permalink for self posts
    source = Column(String, nullable=False)      # a Source label, e.g. "Reddit Science"
    source_id = Column(String, nullable=False)   # unique within the source's namespace

    score = Column(Float, nullable=True)             # per-source popularity, not comparable across sources
    category = Column(String, nullable=True)         # a Category label, fixed per source
    published_at = Column(BigInteger, nullable=True)  # epoch milliseconds
    description = Column(Text, nullable=True)

    # --- Metadata ---
    ingested_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))  # when we stored it
