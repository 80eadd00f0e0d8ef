# infrastructure/knowledge_base.py
import asyncio
import logging
from typing import Any, Dict, List, Sequence

import numpy as np

from core.interfaces import IDocumentStore, IVectorIndex
from core.domain import InconsistencyPolicy, Passage, RetrievedPassage
from core.exceptions import (
    KnowledgeBaseInconsistent, PartialCommitError, PersistenceError, ValidationError
)
from config import settings
from utils.common import l2_normalize

logger = logging.getLogger(settings.LOGGER_NAME)

class KnowledgeBase:
    """
    The passage store and the vector index as one transactional unit.

    A passage's id in the document store is its row in the vector index.
    Every mutation (append + insert + flush of both files) runs under a
    single asyncio.Lock, and searches take the same lock, so no reader ever
    sees a vector without its passage and concurrent ingests cannot
    interleave ids.

    Flush order is passages first, then the index. If the index flush fails
    the passage file is one record ahead; load() detects this by comparing
    counts and applies the configured InconsistencyPolicy.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        vector_index: IVectorIndex,
        policy: InconsistencyPolicy = InconsistencyPolicy.REBUILD,
    ):
        self._documents = document_store
        self._index = vector_index
        self._policy = policy
        self._lock = asyncio.Lock()
        self._consistent = True

    @property
    def consistent(self) -> bool:
        return self._consistent

    @property
    def dimension(self) -> int:
        return self._index.dimension

    # ---------- Startup ----------

    async def load(self) -> None:
        """Load both stores and reconcile them if their sizes disagree."""
        async with self._lock:
            await asyncio.to_thread(self._documents.load)
            await asyncio.to_thread(self._index.load)
            await self._reconcile_locked()

    async def _reconcile_locked(self) -> None:
        passages = self._documents.count()
        vectors = self._index.size
        if passages == vectors:
            self._consistent = True
            logger.info(f"[KB] Ready with {passages} passages.")
            return

        logger.warning(
            f"[KB] Store mismatch: {passages} passages vs {vectors} vectors. "
            f"Applying policy '{self._policy.value}'."
        )

        if self._policy == InconsistencyPolicy.REFUSE:
            self._consistent = False
            logger.error("[KB] Refusing to serve until the stores are re-ingested or repaired.")
            return

        if self._policy == InconsistencyPolicy.TRUNCATE:
            shorter = min(passages, vectors)
            self._documents.truncate(shorter)
            self._index.truncate(shorter)
            await asyncio.to_thread(self._documents.persist)
        else:
            # Passages are flushed first and carry their embeddings
            self._index.rebuild([p.embedding for p in self._documents.all()])

        await asyncio.to_thread(self._index.persist)
        self._consistent = True
        logger.info(f"[KB] Repaired: {self._documents.count()} passages aligned.")

    def _ensure_consistent(self) -> None:
        if not self._consistent:
            raise KnowledgeBaseInconsistent(
                f"Passage store ({self._documents.count()}) and vector index "
                f"({self._index.size}) are misaligned; re-ingest or repair before use"
            )

    # ---------- Write path ----------

    def _rollback_locked(self, count: int) -> None:
        self._documents.truncate(count)
        self._index.truncate(count)

    async def commit(self, text: str, source_url: str, embedding: Sequence[float]) -> Passage:
        """
        Normalize the embedding, append the passage and its vector, then flush both stores.

        Both stores receive the same unit-length vector. Once started, the commit
        runs to completion even if the caller is cancelled, so memory and disk
        never diverge.

        Raises:
            ValidationError: embedding is empty or has zero magnitude
            DimensionMismatch: embedding size differs from the index dimension
            PersistenceError: passage flush failed; nothing was committed
            PartialCommitError: passages flushed but the index flush failed
        """
        try:
            vector = l2_normalize(embedding)
        except ValueError as e:
            raise ValidationError(f"Cannot store embedding for {source_url}: {e}") from e

        task = asyncio.ensure_future(self._commit(text, source_url, vector))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_log_detached_commit)
            raise

    async def _commit(self, text: str, source_url: str, vector: np.ndarray) -> Passage:
        async with self._lock:
            self._ensure_consistent()
            before = self._documents.count()

            try:
                passage = self._documents.append(text, source_url, vector)
                index_id = self._index.insert(vector)
            except Exception:
                self._rollback_locked(before)
                raise

            if index_id != passage.id:
                self._rollback_locked(before)
                self._consistent = False
                raise KnowledgeBaseInconsistent(
                    f"Vector row {index_id} does not match passage id {passage.id}"
                )

            try:
                await asyncio.to_thread(self._documents.persist)
            except Exception as e:
                self._rollback_locked(before)
                logger.error(f"[KB] Failed to save passages, commit rolled back: {e}")
                raise PersistenceError(f"Could not save passage for {source_url}: {e}") from e

            try:
                await asyncio.to_thread(self._index.persist)
            except Exception as e:
                logger.error(
                    f"[KB] Passage {passage.id} saved but vector index was not: {e}. "
                    "Stores will be reconciled on next load."
                )
                raise PartialCommitError(
                    f"Passage {passage.id} from {source_url} saved without its vector: {e}"
                ) from e

            logger.info(f"[KB] Committed passage {passage.id} from {source_url}")
            return passage

    # ---------- Read path ----------

    async def search(self, query_vector: Sequence[float], k: int) -> List[RetrievedPassage]:
        """Top-k passages for a normalized query vector, best first."""
        async with self._lock:
            self._ensure_consistent()
            hits = self._index.search(query_vector, k)
            return [
                RetrievedPassage(passage=self._documents.get(hit.index_id), score=hit.score)
                for hit in hits
            ]

    async def get(self, passage_id: int) -> Passage:
        async with self._lock:
            return self._documents.get(passage_id)

    async def list_passages(self) -> List[Passage]:
        async with self._lock:
            return self._documents.all()

    async def count(self) -> int:
        async with self._lock:
            return self._documents.count()

    async def is_empty(self) -> bool:
        return await self.count() == 0

    async def get_status(self) -> Dict[str, Any]:
        async with self._lock:
            passages = self._documents.count()
            vectors = self._index.size
            return {
                "passages": passages,
                "index_size": vectors,
                "dimension": self._index.dimension,
                "consistent": self._consistent and passages == vectors,
                "ready_for_queries": self._consistent and passages > 0,
            }


def _log_detached_commit(task: "asyncio.Future[Passage]") -> None:
    """Report the outcome of a commit whose caller stopped waiting."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"[KB] Commit finished after its caller was cancelled, with error: {error}")
    else:
        logger.info(f"[KB] Commit of passage {task.result().id} finished after its caller was cancelled")
