# services/factory.py
"""
Process-wide service construction.

init_services() runs once in the FastAPI lifespan; the get_* providers are
used with Depends and can be overridden in tests via app.dependency_overrides.
"""
import logging
from pathlib import Path
from typing import Optional

from config import settings
from core.interfaces import (
    IAnswerEngine, IEmbeddingService, IIngestionPipeline, ILLMService
)
from core.domain import InconsistencyPolicy
from infrastructure.document_store import JSONDocumentStore
from infrastructure.faiss_store import FAISSVectorIndex
from infrastructure.knowledge_base import KnowledgeBase
from services.answer_service import AnswerEngine
from services.ingestion_service import IngestionPipeline

logger = logging.getLogger(settings.LOGGER_NAME)

# Per-provider defaults, used when the model settings are left unset
DEFAULT_EMBEDDING_MODELS = {
    "ollama": ("nomic-embed-text", 768),
    "openai": ("text-embedding-3-small", 1536),
    "sentence_transformers": ("paraphrase-multilingual-mpnet-base-v2", 768),
}
DEFAULT_LLM_MODELS = {
    "ollama": "llama3.1:8b",
    "openai": "gpt-4o-mini",
}

def _embedding_provider() -> str:
    provider = settings.EMBEDDING_PROVIDER.lower()
    if provider not in DEFAULT_EMBEDDING_MODELS:
        raise ValueError(f"Unknown embedding provider: {settings.EMBEDDING_PROVIDER}")
    return provider

def resolve_embedding_model() -> str:
    return settings.EMBEDDING_MODEL_NAME or DEFAULT_EMBEDDING_MODELS[_embedding_provider()][0]

def resolve_embedding_dimension() -> int:
    """Configured dimension, else the provider default (which assumes the default model)."""
    if settings.EMBEDDING_DIMENSION:
        return settings.EMBEDDING_DIMENSION
    return DEFAULT_EMBEDDING_MODELS[_embedding_provider()][1]

def resolve_llm_model() -> str:
    provider = settings.LLM_PROVIDER.lower()
    if provider not in DEFAULT_LLM_MODELS:
        raise ValueError(f"Unknown LLM provider: {settings.LLM_PROVIDER}")
    return settings.LLM_MODEL_NAME or DEFAULT_LLM_MODELS[provider]

# Provider functions for each component
def create_embedding_service() -> IEmbeddingService:
    """Create embedding service based on configuration."""
    provider = _embedding_provider()
    model_name = resolve_embedding_model()
    if provider == "ollama":
        from infrastructure.embedding_services import OllamaEmbedding
        return OllamaEmbedding(model_name=model_name)
    if provider == "openai":
        from infrastructure.embedding_services import OpenAIEmbedding
        return OpenAIEmbedding(api_key=settings.OPENAI_API_KEY, model_name=model_name)
    from infrastructure.local_embedding import SentenceTransformerEmbedding
    return SentenceTransformerEmbedding(model_name)

def create_llm_service() -> ILLMService:
    """Create answer generation service based on configuration."""
    model = resolve_llm_model()
    if settings.LLM_PROVIDER.lower() == "ollama":
        from services.llm_service import OllamaLLMService
        return OllamaLLMService(model=model)
    from services.llm_service import OpenAILLMService
    return OpenAILLMService(api_key=settings.OPENAI_API_KEY, model=model)

def create_knowledge_base(storage_dir: Optional[str] = None) -> KnowledgeBase:
    """Build (but do not load) the passage store + vector index pair."""
    base = Path(storage_dir or settings.STORAGE_DIR)
    dimension = resolve_embedding_dimension()
    return KnowledgeBase(
        document_store=JSONDocumentStore(str(base / settings.PASSAGES_FILENAME), dimension=dimension),
        vector_index=FAISSVectorIndex(str(base / settings.INDEX_FILENAME), dimension=dimension),
        policy=InconsistencyPolicy.from_string(settings.ON_INCONSISTENCY),
    )


class ServiceContainer:
    """Holds the singletons built at startup"""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        embedding_service: IEmbeddingService,
        llm_service: ILLMService,
    ):
        self.knowledge_base = knowledge_base
        self.embedding_service = embedding_service
        self.llm_service = llm_service
        self.ingestion_pipeline = IngestionPipeline(knowledge_base, embedding_service)
        self.answer_engine = AnswerEngine(knowledge_base, embedding_service, llm_service)


_container: Optional[ServiceContainer] = None

async def init_services(
    knowledge_base: Optional[KnowledgeBase] = None,
    embedding_service: Optional[IEmbeddingService] = None,
    llm_service: Optional[ILLMService] = None,
) -> ServiceContainer:
    """Construct and load the process-wide services. Arguments override configured components."""
    global _container
    kb = knowledge_base or create_knowledge_base()
    await kb.load()
    _container = ServiceContainer(
        knowledge_base=kb,
        embedding_service=embedding_service or create_embedding_service(),
        llm_service=llm_service or create_llm_service(),
    )
    logger.info("Services initialized")
    return _container

def reset_services() -> None:
    global _container
    _container = None

def _get_container() -> ServiceContainer:
    if _container is None:
        raise RuntimeError("Services are not initialized; call init_services() at startup")
    return _container

def get_knowledge_base() -> KnowledgeBase:
    return _get_container().knowledge_base

def get_ingestion_pipeline() -> IIngestionPipeline:
    return _get_container().ingestion_pipeline

def get_answer_engine() -> IAnswerEngine:
    return _get_container().answer_engine
