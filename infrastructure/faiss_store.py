# infrastructure/faiss_store.py
import logging
import os
from typing import List, Sequence
from pathlib import Path

import faiss
import numpy as np

from core.interfaces import IVectorIndex
from core.domain import SearchHit
from core.exceptions import DimensionMismatch, KnowledgeBaseInconsistent
from config import settings
from utils.common import l2_normalize

logger = logging.getLogger(settings.LOGGER_NAME)

class FAISSVectorIndex(IVectorIndex):
    """
    Exact inner-product index over unit vectors (faiss.IndexFlatIP).

    - Row position in the FAISS index is the passage id (0-based, sequential)
    - Vectors are normalized on insert, so score == cosine similarity
    - Search ranks every stored vector and breaks score ties by lower id,
      which is affordable for single-user corpora of a handful of pages
    - Not thread-safe on its own; the KnowledgeBase serializes access
    """

    def __init__(self, index_path: str, dimension: int):
        if dimension <= 0:
            raise ValueError(f"Index dimension must be positive, got {dimension}")
        self._dimension = dimension
        self._index_path = Path(index_path)
        self._index = faiss.IndexFlatIP(dimension)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def size(self) -> int:
        return int(self._index.ntotal)

    @property
    def path(self) -> Path:
        return self._index_path

    def _as_row(self, vector: Sequence[float], context: str) -> np.ndarray:
        arr = np.asarray(vector, dtype="float32").reshape(-1)
        if arr.shape[0] != self._dimension:
            raise DimensionMismatch(self._dimension, int(arr.shape[0]), context)
        return arr.reshape(1, -1)

    def insert(self, vector: Sequence[float]) -> int:
        row = self._as_row(vector, "inserted vector")
        normalized = l2_normalize(row[0]).reshape(1, -1)
        index_id = self.size
        self._index.add(normalized) # type: ignore
        return index_id

    def search(self, query_vector: Sequence[float], k: int) -> List[SearchHit]:
        query = self._as_row(query_vector, "query vector")
        if k <= 0 or self.size == 0:
            return []

        # Score every row, then order by (score desc, id asc) for determinism
        scores, indices = self._index.search(query, self.size) # type: ignore
        ranked = sorted(
            (
                (float(score), int(row))
                for score, row in zip(scores[0], indices[0])
                if row != -1
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )
        return [SearchHit(index_id=row, score=score) for score, row in ranked[:k]]

    def vector(self, index_id: int) -> List[float]:
        if not 0 <= index_id < self.size:
            raise IndexError(f"Index id {index_id} out of range (size {self.size})")
        return self._index.reconstruct(index_id).tolist() # type: ignore

    def rebuild(self, vectors: Sequence[Sequence[float]]) -> None:
        new_index = faiss.IndexFlatIP(self._dimension)
        if len(vectors) > 0:
            rows = np.vstack([
                l2_normalize(self._as_row(v, "rebuilt vector")[0]) for v in vectors
            ]).astype("float32", copy=False)
            new_index.add(rows) # type: ignore
        self._index = new_index
        logger.info(f"[FAISS] Rebuilt index with {self.size} vectors.")

    def truncate(self, size: int) -> None:
        if size >= self.size:
            return
        keep = [self._index.reconstruct(row) for row in range(max(size, 0))] # type: ignore
        self.rebuild(keep)

    def persist(self) -> None:
        """Write to a temp file and atomically swap it into place."""
        self._index_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_name(self._index_path.name + ".tmp")
        try:
            faiss.write_index(self._index, str(tmp_path))
            os.replace(tmp_path, self._index_path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"[FAISS] Saved {self.size} vectors to {self._index_path}")

    def load(self) -> None:
        if not self._index_path.exists():
            logger.info(f"[FAISS] No index at {self._index_path}. Starting fresh.")
            self._index = faiss.IndexFlatIP(self._dimension)
            return

        try:
            index = faiss.read_index(str(self._index_path))
        except RuntimeError as e:
            raise KnowledgeBaseInconsistent(f"Vector index {self._index_path} is unreadable: {e}") from e
        if index.d != self._dimension:
            raise DimensionMismatch(self._dimension, int(index.d), f"stored index {self._index_path}")
        self._index = index
        logger.info(f"[FAISS] Loaded {self.size} vectors from {self._index_path}")
