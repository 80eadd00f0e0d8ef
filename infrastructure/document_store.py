# infrastructure/document_store.py
import json
import logging
import os
from typing import List, Sequence
from pathlib import Path

from core.interfaces import IDocumentStore
from core.domain import Passage
from core.exceptions import DimensionMismatch, KnowledgeBaseInconsistent, NotFound
from config import settings
from utils.common import to_float_list

logger = logging.getLogger(settings.LOGGER_NAME)

FORMAT_VERSION = 1

class JSONDocumentStore(IDocumentStore):
    """
    Passage records persisted as a single JSON file.

    Layout: {"version": 1, "dimension": d, "passages": [{id, text, source_url,
    embedding, ingested_at}, ...]} in insertion order. The list position is
    the passage id and matches the vector index ordinal.
    """

    def __init__(self, path: str, dimension: int):
        self._path = Path(path)
        self._dimension = dimension
        self._passages: List[Passage] = []

    @property
    def path(self) -> Path:
        return self._path

    def append(self, text: str, source_url: str, embedding: Sequence[float]) -> Passage:
        vector = to_float_list(embedding) # type: ignore
        if len(vector) != self._dimension:
            raise DimensionMismatch(self._dimension, len(vector), "passage embedding")

        passage = Passage(
            id=len(self._passages),
            text=text,
            source_url=source_url,
            embedding=vector,
        )
        self._passages.append(passage)
        return passage

    def get(self, passage_id: int) -> Passage:
        if not 0 <= passage_id < len(self._passages):
            raise NotFound(f"Passage {passage_id} not found ({len(self._passages)} stored)")
        return self._passages[passage_id]

    def all(self) -> List[Passage]:
        return list(self._passages)

    def count(self) -> int:
        return len(self._passages)

    def truncate(self, count: int) -> None:
        del self._passages[max(count, 0):]

    def persist(self) -> None:
        """Write to a temp file and atomically swap it into place."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": FORMAT_VERSION,
            "dimension": self._dimension,
            "passages": [p.to_dict() for p in self._passages],
        }
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"[Passages] Saved {len(self._passages)} passages to {self._path}")

    def load(self) -> None:
        """
        Load passages from disk; a missing file means an empty store.

        Raises:
            DimensionMismatch: the file was written for another embedding size
            KnowledgeBaseInconsistent: the file is unreadable or its ids are out of order
        """
        if not self._path.exists():
            logger.info(f"[Passages] No passage file at {self._path}. Starting fresh.")
            self._passages = []
            return

        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            stored_dimension = data.get("dimension", self._dimension)
            items = data.get("passages", [])
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError) as e:
            raise KnowledgeBaseInconsistent(f"Passage file {self._path} is corrupt: {e}") from e

        if stored_dimension != self._dimension:
            raise DimensionMismatch(self._dimension, stored_dimension, f"passage file {self._path}")

        try:
            passages = [Passage.from_dict(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise KnowledgeBaseInconsistent(
                f"Passage file {self._path} has a malformed record: {e!r}"
            ) from e

        for position, passage in enumerate(passages):
            if passage.id != position:
                raise KnowledgeBaseInconsistent(
                    f"Passage file {self._path} is out of order: id {passage.id} at position {position}"
                )
        self._passages = passages
        logger.info(f"[Passages] Loaded {len(self._passages)} passages from {self._path}")
