# core/interfaces.py
"""Core interfaces for the knowledge base"""
from abc import ABC, abstractmethod
from typing import List, Sequence

from core.domain import AnswerResult, Passage, SearchHit

# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """Remote capability mapping text to a fixed-length vector"""

    model_name: str

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed one text. Returns the raw model vector (not normalized).

        Raises:
            RemoteServiceError: network failure, rate limit, invalid key or bad payload
        """
        pass

# ============= Generation Service Interface =============
class ILLMService(ABC):
    """Remote capability producing text from a structured prompt"""

    model_name: str

    @abstractmethod
    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """
        Generate a completion with the configured sampling parameters.
        May return an empty string; callers decide the fallback.

        Raises:
            RemoteServiceError: if the call fails
        """
        pass

# ============= Vector Index Interface =============
class IVectorIndex(ABC):
    """Append-only collection of unit vectors with exact k-NN by inner product"""

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        pass

    @abstractmethod
    def insert(self, vector: Sequence[float]) -> int:
        """Normalize and append a vector. Returns its 0-based ordinal."""
        pass

    @abstractmethod
    def search(self, query_vector: Sequence[float], k: int) -> List[SearchHit]:
        """Up to k hits by descending score, ties resolved to the lower id."""
        pass

    @abstractmethod
    def vector(self, index_id: int) -> List[float]:
        """Stored vector at an ordinal."""
        pass

    @abstractmethod
    def rebuild(self, vectors: Sequence[Sequence[float]]) -> None:
        """Replace the whole index with the given vectors in order."""
        pass

    @abstractmethod
    def truncate(self, size: int) -> None:
        """Drop every vector at ordinal >= size."""
        pass

    @abstractmethod
    def persist(self) -> None:
        pass

    @abstractmethod
    def load(self) -> None:
        """Load from disk; a missing file yields an empty index."""
        pass

# ============= Document Store Interface =============
class IDocumentStore(ABC):
    """
    Durable record of ingested passages keyed by ordinal id.

    Ids are assigned as the current count so they stay aligned with the
    vector index ordinals.
    """

    @abstractmethod
    def append(self, text: str, source_url: str, embedding: Sequence[float]) -> Passage:
        pass

    @abstractmethod
    def get(self, passage_id: int) -> Passage:
        """Raises NotFound if the id is out of range."""
        pass

    @abstractmethod
    def all(self) -> List[Passage]:
        """All passages in insertion order."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def truncate(self, count: int) -> None:
        pass

    @abstractmethod
    def persist(self) -> None:
        pass

    @abstractmethod
    def load(self) -> None:
        """Load from disk; a missing file yields an empty store."""
        pass

# ============= Service Layer Interfaces =============
class IIngestionPipeline(ABC):
    """Write path: cleaned page text -> committed passage"""

    @abstractmethod
    async def ingest(self, cleaned_text: str, source_url: str) -> Passage:
        pass


class IAnswerEngine(ABC):
    """Read path: question -> grounded answer with cited sources"""

    @abstractmethod
    async def answer(self, question: str) -> AnswerResult:
        pass
