import logging

from knowledge_ingest.schemas import ArticleCandidate
from knowledge_ingest.store import ArticleStore, DuplicateArticleError

logger = logging.getLogger(__name__)


class DeduplicationGate:
    """
    Lets a candidate through to the store only if its (source, source_id) is new.
    Existing rows are never refreshed. A changed score or description on re-fetch is ignored.
    """

    def __init__(self, store: ArticleStore):
        self.store = store

    def exists(self, source: str, source_id: str) -> bool:
        return self.store.lookup_by_composite_key(source, source_id) is not None

    def admit(self, candidate: ArticleCandidate) -> bool:
        """
        Insert the candidate if novel.

        Returns:
            True if a new row was written, False if the key was already stored.

        Raises:
            StoreError: lookup or insert failed for a reason other than a duplicate key
        """
        if self.exists(candidate.source, candidate.source_id):
            return False

        try:
            self.store.insert(candidate)
        except DuplicateArticleError:
            # An overlapping run inserted the same key between our lookup and insert
            logger.warning(
                f"[{candidate.source}] '{candidate.source_id}' was stored concurrently, skipping"
            )
            return False

        return True
