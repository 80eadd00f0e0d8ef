# services/ingestion_service.py
import logging

from core.interfaces import IEmbeddingService, IIngestionPipeline
from core.domain import Passage
from core.exceptions import ExtractionTooShort, RemoteServiceError, ValidationError
from infrastructure.knowledge_base import KnowledgeBase
from config import settings
from utils.common import collapse_whitespace, l2_normalize

logger = logging.getLogger(settings.LOGGER_NAME)

class IngestionPipeline(IIngestionPipeline):
    """
    Turns extracted page text into a committed passage.

    Steps: collapse whitespace -> length guard -> embed -> normalize -> commit.
    Validation happens before any remote call, and nothing is committed
    unless the embedding succeeded.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        embedding_service: IEmbeddingService,
        min_content_length: int = settings.MIN_CONTENT_LENGTH,
    ):
        self.knowledge_base = knowledge_base
        self.embedding_service = embedding_service
        self.min_content_length = min_content_length

    def _validate(self, cleaned_text: str, source_url: str) -> str:
        if not source_url or not source_url.strip():
            raise ValidationError("Source URL is required")

        text = collapse_whitespace(cleaned_text)
        if not text:
            raise ValidationError("No content could be extracted from the URL")
        if len(text) < self.min_content_length:
            raise ExtractionTooShort(len(text), self.min_content_length)
        return text

    async def ingest(self, cleaned_text: str, source_url: str) -> Passage:
        text = self._validate(cleaned_text, source_url)
        source_url = source_url.strip()

        try:
            raw = await self.embedding_service.embed(text)
        except RemoteServiceError as e:
            logger.error(f"Embedding failed while ingesting {source_url}: {e}")
            raise RemoteServiceError(
                f"Embedding failed while ingesting {source_url}: {e.message}",
                operation="ingest",
            ) from e

        try:
            embedding = l2_normalize(raw)
        except ValueError as e:
            raise RemoteServiceError(
                f"Embedding service returned an unusable vector for {source_url}: {e}",
                operation="ingest",
            ) from e

        passage = await self.knowledge_base.commit(text, source_url, embedding.tolist())
        logger.info(f"Ingested {len(text)} characters from {source_url} as passage {passage.id}")
        return passage
