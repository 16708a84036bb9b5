import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from knowledge_ingest.config import (
    FETCH_INTERVAL_SECONDS,
    FETCH_ON_STARTUP,
    REQUEST_TIMEOUT_SECONDS,
    USER_AGENT,
)
from knowledge_ingest.dedup import DeduplicationGate
from knowledge_ingest.normalizer import (
    RawItem,
    has_title,
    normalize_devto_article,
    normalize_hacker_news_story,
    normalize_reddit_post,
    resolve_reddit_url,
)
from knowledge_ingest.schemas import ArticleCandidate
from knowledge_ingest.store import ArticleStore, StoreError
from knowledge_ingest.taxonomy import Category, Source

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fetch results
# ---------------------------------------------------------------------------

class FetchError(Exception):
    """Network failure, non-2xx status, or malformed body from one source."""

    def __init__(self, source: Source, reason: str):
        super().__init__(f"[{source.value}] {reason}")
        self.source = source
        self.reason = reason


@dataclass
class FetchResult:
    """
    Outcome of one adapter call. Adapters return failures here instead of raising,
    so a down source simply contributes nothing to the cycle.
    """
    source: Source
    items: List[RawItem] = field(default_factory=list)
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Base source: subclass this to add a new source
# ---------------------------------------------------------------------------

class BaseSource(ABC):
    """
    Abstract base class for all knowledge sources.
    To add a new source: subclass this, set source and category, and implement
    _fetch_items(), is_valid() and normalize().
    """
    source: Source
    category: Category

    @property
    def source_name(self) -> str:
        return self.source.value

    def fetch(self) -> FetchResult:
        """Fetch raw items, dropping those without a title or a resolvable link. Never raises FetchError."""
        try:
            raw_items = self._fetch_items()
        except FetchError as e:
            return FetchResult(source=self.source, error=e)

        items = [raw for raw in raw_items if self.is_valid(raw)]
        dropped = len(raw_items) - len(items)
        if dropped:
            logger.debug(f"[{self.source_name}] Dropped {dropped} items without title or link")

        logger.info(f"[{self.source_name}] Fetched {len(items)} items")
        return FetchResult(source=self.source, items=items)

    @abstractmethod
    def _fetch_items(self) -> List[RawItem]:
        """Call the upstream endpoint and return its raw items. Raises FetchError."""

    @abstractmethod
    def is_valid(self, raw: RawItem) -> bool:
        pass

    @abstractmethod
    def normalize(self, raw: RawItem) -> ArticleCandidate:
        pass


# ---------------------------------------------------------------------------
# JSON source: shared HTTP logic for all JSON API sources
# ---------------------------------------------------------------------------

class JSONSource(BaseSource):
    """
    Reusable JSON-over-HTTP fetcher. Every call is bounded by REQUEST_TIMEOUT_SECONDS
    and every failure mode is turned into a FetchError.
    """
    headers: Dict[str, str] = {"Accept": "application/json"}

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = requests.get(
                url,
                params=params,
                headers=self.headers,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return response.json()
        except requests.JSONDecodeError as e:
            raise FetchError(self.source, f"Malformed JSON from {url}: {e}") from e
        except requests.RequestException as e:
            raise FetchError(self.source, f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise FetchError(self.source, f"Malformed JSON from {url}: {e}") from e


class HackerNewsSource(JSONSource):
    """
    Top stories index, then one request per story.
    A failed index call aborts this source; a failed story call only skips that story.
    """
    source = Source.HACKER_NEWS
    category = Category.TECHNOLOGY
    feed_url = "https://hacker-news.firebaseio.com/v0/topstories.json"
    item_url = "https://hacker-news.firebaseio.com/v0/item/{story_id}.json"
    top_n = 10

    def _fetch_items(self) -> List[RawItem]:
        story_ids = self._get_json(self.feed_url)
        if not isinstance(story_ids, list):
            raise FetchError(self.source, "Top stories response is not a list")

        stories = []
        for story_id in story_ids[: self.top_n]:
            try:
                story = self._get_json(self.item_url.format(story_id=story_id))
            except FetchError as e:
                logger.warning(f"[{self.source_name}] Failed to fetch story {story_id}: {e.reason}")
                continue
            # Deleted items come back as null
            if isinstance(story, dict):
                stories.append(story)
        return stories

    def is_valid(self, raw: RawItem) -> bool:
        # Ask HN / job posts have no external url and are skipped
        return has_title(raw) and bool(raw.get("url")) and raw.get("id") is not None

    def normalize(self, raw: RawItem) -> ArticleCandidate:
        return normalize_hacker_news_story(raw, self.source, self.category)


class RedditSource(JSONSource):
    """Top posts of one subreddit. Subclasses set subreddit, source, category and optionally limit."""
    subreddit: str
    limit = 8
    base_url = "https://www.reddit.com"
    headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

    @property
    def feed_url(self) -> str:
        return f"{self.base_url}/r/{self.subreddit}/top.json"

    def _fetch_items(self) -> List[RawItem]:
        payload = self._get_json(self.feed_url, params={"limit": self.limit})
        try:
            children = payload["data"]["children"]
        except (KeyError, TypeError) as e:
            raise FetchError(self.source, f"Unexpected listing shape: missing {e}") from e

        posts = [
            child["data"]
            for child in children
            if isinstance(child, dict) and isinstance(child.get("data"), dict)
        ]
        return posts[: self.limit]

    def is_valid(self, raw: RawItem) -> bool:
        return has_title(raw) and bool(raw.get("id")) and resolve_reddit_url(raw) is not None

    def normalize(self, raw: RawItem) -> ArticleCandidate:
        return normalize_reddit_post(raw, self.source, self.category)


class DevToSource(JSONSource):
    source = Source.DEV_TO
    category = Category.PROGRAMMING
    feed_url = "https://dev.to/api/articles"
    params = {"per_page": 10, "top": 1}

    def _fetch_items(self) -> List[RawItem]:
        articles = self._get_json(self.feed_url, params=self.params)
        if not isinstance(articles, list):
            raise FetchError(self.source, "Articles response is not a list")
        return [article for article in articles if isinstance(article, dict)]

    def is_valid(self, raw: RawItem) -> bool:
        return has_title(raw) and bool(raw.get("url")) and raw.get("id") is not None

    def normalize(self, raw: RawItem) -> ArticleCandidate:
        return normalize_devto_article(raw, self.source, self.category)


# ---------------------------------------------------------------------------
# Concrete subreddit sources: add new sources here
# ---------------------------------------------------------------------------

class RedditTechSource(RedditSource):
    source = Source.REDDIT_TECH
    category = Category.TECHNOLOGY
    subreddit = "technology"
    limit = 10


class RedditMotivationSource(RedditSource):
    source = Source.REDDIT_MOTIVATION
    category = Category.PRODUCTIVITY
    subreddit = "GetMotivated"


class RedditMarketingSource(RedditSource):
    source = Source.REDDIT_MARKETING
    category = Category.MARKETING
    subreddit = "marketing"


class RedditProductivitySource(RedditSource):
    source = Source.REDDIT_PRODUCTIVITY
    category = Category.PRODUCTIVITY
    subreddit = "productivity"


class RedditMusicSource(RedditSource):
    source = Source.REDDIT_MUSIC
    category = Category.MUSIC
    subreddit = "Music"


class RedditBusinessSource(RedditSource):
    source = Source.REDDIT_BUSINESS
    category = Category.BUSINESS
    subreddit = "entrepreneur"


class RedditDesignSource(RedditSource):
    source = Source.REDDIT_DESIGN
    category = Category.DESIGN
    subreddit = "design"


class RedditTipsSource(RedditSource):
    source = Source.REDDIT_TIPS
    category = Category.LIFESTYLE
    subreddit = "LifeProTips"


class RedditScienceSource(RedditSource):
    source = Source.REDDIT_SCIENCE
    category = Category.SCIENCE
    subreddit = "science"


class RedditPhotographySource(RedditSource):
    source = Source.REDDIT_PHOTOGRAPHY
    category = Category.PHOTOGRAPHY
    subreddit = "photography"


class RedditFinanceSource(RedditSource):
    source = Source.REDDIT_FINANCE
    category = Category.FINANCE
    subreddit = "personalfinance"


class RedditFitnessSource(RedditSource):
    source = Source.REDDIT_FITNESS
    category = Category.HEALTH
    subreddit = "fitness"


# Registry of active sources: add or remove entries here to enable/disable sources
SOURCES: List[BaseSource] = [
    HackerNewsSource(),
    RedditTechSource(),
    DevToSource(),
    RedditMotivationSource(),
    RedditMarketingSource(),
    RedditProductivitySource(),
    RedditMusicSource(),
    RedditBusinessSource(),
    RedditDesignSource(),
    RedditTipsSource(),
    RedditScienceSource(),
    RedditPhotographySource(),
    RedditFinanceSource(),
    RedditFitnessSource(),
]


# ---------------------------------------------------------------------------
# Fetcher service: ingestion cycle and background loop
# ---------------------------------------------------------------------------

class FetcherService:
    """
    Runs every registered source once per cycle, normalizes what they return,
    and stores articles not seen before. One failing source never stops the others.
    """

    def __init__(self, interval_seconds: int = FETCH_INTERVAL_SECONDS, sources: Optional[List[BaseSource]] = None):
        self.interval_seconds = interval_seconds
        self.sources = SOURCES if sources is None else sources

    async def run(self, db_factory, run_immediately: bool = FETCH_ON_STARTUP):
        """
        Entry point for the background task and the interval scheduler itself.
        db_factory: callable that returns a new SQLAlchemy Session (e.g. SessionLocal)
        """
        logger.info("FetcherService started: fetching every %ds", self.interval_seconds)
        if not run_immediately:
            await asyncio.sleep(self.interval_seconds)

        while True:
            try:
                # Blocking HTTP and DB work stays off the event loop
                await asyncio.to_thread(self.run_once, db_factory)
            except Exception as e:
                logger.exception(f"Fetch cycle aborted: {e}")
            await asyncio.sleep(self.interval_seconds)

    def run_once(self, db_factory) -> None:
        """One cycle over every registered source. Returns nothing; new rows are the only effect."""
        logger.info("Starting fetch cycle")
        inserted = 0

        for source in self.sources:
            name = getattr(source, "source_name", type(source).__name__)
            try:
                inserted += self._ingest_source(source, db_factory)
            except Exception as e:
                # Covers adapters that raise instead of returning a FetchError
                logger.error(f"[{name}] Source failed, skipping this cycle: {e}")

        logger.info(f"Fetch cycle complete: {inserted} new articles")

    def _ingest_source(self, source: BaseSource, db_factory) -> int:
        result = source.fetch()
        if not result.ok:
            logger.error(f"[{source.source_name}] Failed to fetch: {result.error.reason}")
            return 0
        if not result.items:
            return 0

        db = db_factory()
        try:
            gate = DeduplicationGate(ArticleStore(db))
            inserted = 0

            for raw in result.items:
                try:
                    candidate = source.normalize(raw)
                except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                    logger.warning(f"[{source.source_name}] Skipping malformed item: {e}")
                    continue

                try:
                    if gate.admit(candidate):
                        inserted += 1
                except StoreError as e:
                    logger.error(f"[{source.source_name}] Failed to store '{candidate.source_id}': {e}")

            logger.info(f"[{source.source_name}] Stored {inserted} new of {len(result.items)} items")
            return inserted
        finally:
            db.close()
