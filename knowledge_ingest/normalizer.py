import logging
import math
from datetime import timezone
from typing import Any, Dict, Optional

from dateutil.parser import isoparse

from knowledge_ingest.schemas import ArticleCandidate
from knowledge_ingest.taxonomy import Category, Source

logger = logging.getLogger(__name__)

RawItem = Dict[str, Any]

REDDIT_BASE_URL = "https://www.reddit.com"
DESCRIPTION_MAX_CHARS = 200


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def truncate_description(text: Optional[str], limit: int = DESCRIPTION_MAX_CHARS) -> Optional[str]:
    """First `limit` characters of a self-post body; None when there is no body."""
    if not text:
        return None
    return text[:limit]


def seconds_to_millis(value) -> Optional[int]:
    """
    Convert an epoch-seconds timestamp (int or float) to epoch milliseconds.
    Non-finite values (JSON 1e999, Infinity, NaN) yield None.
    """
    if value is None:
        return None
    seconds = float(value)
    if not math.isfinite(seconds):
        return None
    return int(round(seconds * 1000))


def iso_to_millis(value: Optional[str]) -> Optional[int]:
    """
    Parse an ISO-8601 timestamp into epoch milliseconds.
    Naive timestamps are treated as UTC. Unparseable values yield None.
    """
    if not value:
        return None
    try:
        parsed = isoparse(value)
    except (ValueError, TypeError, OverflowError):
        logger.warning(f"Unparseable timestamp '{value}'")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def has_title(raw: RawItem) -> bool:
    title = raw.get("title")
    return isinstance(title, str) and bool(title.strip())


def resolve_reddit_url(post: RawItem) -> Optional[str]:
    """
    Self posts link to their permalink on reddit.com; link posts use the external URL.
    Returns None when neither can be resolved.
    """
    if post.get("is_self"):
        permalink = post.get("permalink")
        return f"{REDDIT_BASE_URL}{permalink}" if permalink else None
    return post.get("url") or None


# ---------------------------------------------------------------------------
# Per-shape mappings: pure, no network or store access
# ---------------------------------------------------------------------------

def normalize_hacker_news_story(story: RawItem, source: Source, category: Category) -> ArticleCandidate:
    return ArticleCandidate(
        title=story["title"],
        url=story["url"],
        source=source,
        source_id=str(story["id"]),
        score=story.get("score"),
        category=category,
        published_at=seconds_to_millis(story.get("time")),
    )


def normalize_reddit_post(post: RawItem, source: Source, category: Category) -> ArticleCandidate:
    return ArticleCandidate(
        title=post["title"],
        url=resolve_reddit_url(post),
        source=source,
        source_id=str(post["id"]),
        score=post.get("score"),
        category=category,
        published_at=seconds_to_millis(post.get("created_utc")),
        description=truncate_description(post.get("selftext")),
    )


def normalize_devto_article(article: RawItem, source: Source, category: Category) -> ArticleCandidate:
    # Dev.to ships its own short description, kept as-is
    return ArticleCandidate(
        title=article["title"],
        url=article["url"],
        source=source,
        source_id=str(article["id"]),
        score=article.get("positive_reactions_count"),
        category=category,
        published_at=iso_to_millis(article.get("published_at")),
        description=article.get("description") or None,
    )
