"""
Tenant-scoped semantic retrieval.

Retriever sits between the answer workflow and a NoteStore. It enforces
the ranking contract regardless of what the store returns: only the
caller's tenant, descending cosine similarity, equal scores in the order
the store produced them, at most k results.
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from notesqa.config import settings
from notesqa.retrieval.models import RetrievalMatch
from notesqa.retrieval.store import NoteStore

logger = logging.getLogger(__name__)


class Retriever:
    """
    Top-k retrieval over one tenant's chunks.

    Example:
        >>> retriever = Retriever(store)
        >>> matches = retriever.retrieve(tenant_key, query_embedding, k=8)
        >>> [m.document_id for m in matches]
    """

    def __init__(
        self,
        store: NoteStore,
        *,
        default_k: Optional[int] = None,
        score_threshold: Optional[float] = None,
    ) -> None:
        """
        Args:
            store: Storage backend exposing ``search``
            default_k: Results per query when k is omitted (default: settings.match_limit)
            score_threshold: Minimum similarity; lower-scoring matches are dropped
        """
        self._store = store
        self.default_k = default_k or settings.match_limit
        self.score_threshold = score_threshold

    def retrieve(
        self,
        tenant_key: str,
        query_embedding: NDArray[np.float32],
        k: Optional[int] = None,
    ) -> list[RetrievalMatch]:
        """
        Return the k most similar chunks of a tenant.

        Args:
            tenant_key: Partition to search
            query_embedding: Query vector
            k: Number of results (defaults to ``self.default_k``)

        Returns:
            Matches ordered by descending score; empty when the tenant has
            no chunks

        Raises:
            ValueError: If tenant_key is empty or k < 1
        """
        if not tenant_key:
            raise ValueError("tenant_key is required")
        k = self.default_k if k is None else k
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")

        raw_matches = self._store.search(tenant_key, query_embedding, k)

        matches: list[RetrievalMatch] = []
        for match in raw_matches:
            if match.tenant_key and match.tenant_key != tenant_key:
                logger.error(
                    "Store returned a chunk of another tenant for document %s; dropping it",
                    match.document_id,
                )
                continue
            if self.score_threshold is not None and match.score < self.score_threshold:
                continue
            matches.append(match)

        # sorted() is stable, so equal scores keep the store's order
        matches = sorted(matches, key=lambda m: m.score, reverse=True)[:k]

        logger.debug("Retrieved %d matches for tenant %s", len(matches), tenant_key)
        return matches
