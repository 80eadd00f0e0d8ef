# services/answer_service.py
import logging
from typing import List

from core.interfaces import IAnswerEngine, IEmbeddingService, ILLMService
from core.domain import AnswerResult, RetrievedPassage
from core.exceptions import RemoteServiceError, ValidationError
from infrastructure.knowledge_base import KnowledgeBase
from services.prompts import (
    EMPTY_GENERATION_FALLBACK, NO_INFORMATION_ANSWER,
    build_system_prompt, build_user_prompt
)
from config import settings
from utils.common import l2_normalize, preview

logger = logging.getLogger(settings.LOGGER_NAME)

class AnswerEngine(IAnswerEngine):
    """Embeds a question, retrieves the closest passages and asks the LLM for a cited answer."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        embedding_service: IEmbeddingService,
        llm_service: ILLMService,
        top_k: int = settings.ANSWER_TOP_K,
    ):
        self.knowledge_base = knowledge_base
        self.embedding_service = embedding_service
        self.llm_service = llm_service
        self.top_k = top_k

    @staticmethod
    def _cited_sources(passages: List[RetrievedPassage]) -> List[str]:
        seen: List[str] = []
        for rp in passages:
            if rp.passage.source_url not in seen:
                seen.append(rp.passage.source_url)
        return seen

    async def retrieve(self, question: str) -> List[RetrievedPassage]:
        """Top-k passages for a question, best first."""
        try:
            raw = await self.embedding_service.embed(question)
        except RemoteServiceError as e:
            logger.error(f"Embedding failed for question '{preview(question)}': {e}")
            raise RemoteServiceError(
                f"Embedding failed for question '{preview(question)}': {e.message}",
                operation="answer",
            ) from e

        try:
            query_vector = l2_normalize(raw)
        except ValueError as e:
            raise RemoteServiceError(
                f"Embedding service returned an unusable vector for the question: {e}",
                operation="answer",
            ) from e

        return await self.knowledge_base.search(query_vector.tolist(), self.top_k)

    async def answer(self, question: str) -> AnswerResult:
        question = (question or "").strip()
        if not question:
            raise ValidationError("Question is required")

        # Skip remote calls entirely when there is nothing to ground an answer on
        if await self.knowledge_base.is_empty():
            logger.info("Knowledge base is empty; returning the no-information answer.")
            return AnswerResult(question=question, text=NO_INFORMATION_ANSWER)

        passages = await self.retrieve(question)
        if not passages:
            return AnswerResult(question=question, text=NO_INFORMATION_ANSWER)

        logger.info(
            f"Retrieved {len(passages)} passages for '{preview(question)}' "
            f"(best score {passages[0].score:.3f})"
        )

        try:
            text = await self.llm_service.generate(
                build_system_prompt(), build_user_prompt(question, passages)
            )
        except RemoteServiceError as e:
            logger.error(f"Generation failed for question '{preview(question)}': {e}")
            raise RemoteServiceError(
                f"Answer generation failed for question '{preview(question)}': {e.message}",
                operation="answer",
            ) from e

        if not text or not text.strip():
            logger.warning("LLM returned an empty answer; using fallback.")
            text = EMPTY_GENERATION_FALLBACK

        return AnswerResult(
            question=question,
            text=text,
            cited_sources=self._cited_sources(passages),
            passages=passages,
        )
