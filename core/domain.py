# core/domain.py
"""Domain models and shared enumerations."""
from enum import Enum

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any

# ============= Enums =============

class ErrorCode(str, Enum):
    """Error codes for user-facing error messages."""
    VALIDATION_FAILED = "VALIDATION_FAILED"
    EXTRACTION_TOO_SHORT = "EXTRACTION_TOO_SHORT"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    REMOTE_SERVICE_FAILED = "REMOTE_SERVICE_FAILED"
    NOT_FOUND = "NOT_FOUND"
    PARTIAL_COMMIT = "PARTIAL_COMMIT"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INCONSISTENT_STORE = "INCONSISTENT_STORE"


class InconsistencyPolicy(str, Enum):
    """What to do at load time when passage count and index size disagree."""
    REBUILD = "rebuild"    # Rebuild the index from stored passage embeddings
    TRUNCATE = "truncate"  # Drop the unmatched tail of the longer store
    REFUSE = "refuse"      # Refuse ingests and queries until repaired

    @staticmethod
    def from_string(value: str) -> 'InconsistencyPolicy':
        """Convert string to policy, falling back to REBUILD."""
        try:
            return InconsistencyPolicy(value.lower())
        except ValueError:
            return InconsistencyPolicy.REBUILD


# ============= Domain Models =============

@dataclass
class Passage:
    """One ingested unit of page text with its source URL and unit-length embedding"""
    id: int
    text: str
    source_url: str
    embedding: List[float]
    ingested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "source_url": self.source_url,
            "embedding": self.embedding,
            "ingested_at": self.ingested_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Passage':
        return cls(
            id=int(data["id"]),
            text=data["text"],
            source_url=data["source_url"],
            embedding=[float(x) for x in data["embedding"]],
            ingested_at=datetime.fromisoformat(data["ingested_at"]),
        )


@dataclass(frozen=True)
class SearchHit:
    """A vector index match: ordinal id and inner-product score"""
    index_id: int
    score: float


@dataclass
class RetrievedPassage:
    """A passage returned for a question, with its cosine similarity"""
    passage: Passage
    score: float


@dataclass
class AnswerResult:
    """
    Answer to one question (the ephemeral Q&A exchange).

    cited_sources holds the unique source URLs of the retrieved passages in
    descending-score order. Nothing here is persisted.
    """
    question: str
    text: str
    cited_sources: List[str] = field(default_factory=list)
    passages: List[RetrievedPassage] = field(default_factory=list)
