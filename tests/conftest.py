# tests/conftest.py
"""
Shared fixtures: deterministic offline doubles for the embedding and
generation capabilities, and a knowledge base rooted in tmp_path.
"""
import hashlib
import re
import sys
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.exceptions import RemoteServiceError
from core.interfaces import IEmbeddingService, ILLMService
from infrastructure.document_store import JSONDocumentStore
from infrastructure.faiss_store import FAISSVectorIndex
from infrastructure.knowledge_base import KnowledgeBase

DIM = 256

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class FakeEmbedding(IEmbeddingService):
    """Bag-of-words hashed into DIM buckets; similar wording gives similar vectors."""

    model_name = "fake-embedding"

    def __init__(self, dimension: int = DIM, fail: bool = False):
        self.dimension = dimension
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise RemoteServiceError("embedding backend unavailable", operation="embed")
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall(text.lower()):
            bucket = int(hashlib.md5(token.encode()).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        if not any(vector):
            vector[0] = 1.0
        # Raw, unnormalized magnitude on purpose
        return [x * 3.0 for x in vector]


class FakeLLM(ILLMService):
    """Answers by citing every source URL found in the prompt, unless a fixed reply is set."""

    model_name = "fake-llm"

    def __init__(self, reply: Optional[str] = None, fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: List[tuple] = []

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.fail:
            raise RemoteServiceError("LLM backend unavailable", operation="generate")
        if self.reply is not None:
            return self.reply
        urls = re.findall(r"Source: (\S+)", user_prompt)
        return "Based on the context: " + " ".join(f"[{u}]" for u in urls)


def make_knowledge_base(storage_dir: Path, dimension: int = DIM, policy=None) -> KnowledgeBase:
    kwargs = {} if policy is None else {"policy": policy}
    return KnowledgeBase(
        document_store=JSONDocumentStore(str(storage_dir / "passages.json"), dimension=dimension),
        vector_index=FAISSVectorIndex(str(storage_dir / "vectors.faiss"), dimension=dimension),
        **kwargs,
    )


@pytest.fixture
def storage_dir(tmp_path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def knowledge_base(storage_dir) -> KnowledgeBase:
    return make_knowledge_base(storage_dir)


@pytest.fixture
def embedder() -> FakeEmbedding:
    return FakeEmbedding()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


def unit(*components: float) -> List[float]:
    """Pad to DIM with zeros."""
    return list(components) + [0.0] * (DIM - len(components))
