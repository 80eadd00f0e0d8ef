"""
Test cases for AnswerEngine and prompt assembly.
"""
import pytest

from core.exceptions import RemoteServiceError, ValidationError
from services.answer_service import AnswerEngine
from services.ingestion_service import IngestionPipeline
from services.prompts import (
    EMPTY_GENERATION_FALLBACK, NO_INFORMATION_ANSWER, build_system_prompt
)
from tests.conftest import FakeEmbedding, FakeLLM

SKY_TEXT = "The sky is blue because of Rayleigh scattering."
SKY_URL = "https://example.com/sky"


@pytest.fixture
def pipeline(knowledge_base, embedder):
    # The sky sentence is 48 characters; lower the guard for these scenarios
    return IngestionPipeline(knowledge_base, embedder, min_content_length=20)


@pytest.fixture
def engine(knowledge_base, embedder, llm):
    return AnswerEngine(knowledge_base, embedder, llm, top_k=3)


@pytest.mark.asyncio
async def test_empty_store_short_circuits(engine, knowledge_base, embedder, llm):
    await knowledge_base.load()
    result = await engine.answer("Why is the sky blue?")

    assert result.text == NO_INFORMATION_ANSWER
    assert result.cited_sources == []
    assert result.passages == []
    assert llm.calls == []
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_end_to_end_answer_cites_source(engine, pipeline, knowledge_base, llm):
    await knowledge_base.load()
    await pipeline.ingest(SKY_TEXT, SKY_URL)

    result = await engine.answer("Why is the sky blue?")

    assert [rp.passage.source_url for rp in result.passages] == [SKY_URL]
    assert SKY_URL in result.text
    assert result.cited_sources == [SKY_URL]
    assert len(llm.calls) == 1

    system_prompt, user_prompt = llm.calls[0]
    assert system_prompt == build_system_prompt()
    assert SKY_TEXT in user_prompt
    assert "Why is the sky blue?" in user_prompt


@pytest.mark.asyncio
async def test_context_is_ordered_by_score(engine, pipeline, knowledge_base, llm):
    await knowledge_base.load()
    await pipeline.ingest("Bananas are yellow tropical fruits rich in potassium.", "https://example.com/banana")
    await pipeline.ingest(SKY_TEXT, SKY_URL)
    await pipeline.ingest("Mount Everest is the highest mountain above sea level.", "https://example.com/everest")

    result = await engine.answer("Why is the sky blue?")

    scores = [rp.score for rp in result.passages]
    assert scores == sorted(scores, reverse=True)
    assert result.passages[0].passage.source_url == SKY_URL

    _, user_prompt = llm.calls[0]
    positions = [user_prompt.index(rp.passage.source_url) for rp in result.passages]
    assert positions == sorted(positions)
    assert "similarity:" in user_prompt


@pytest.mark.asyncio
async def test_retrieves_at_most_top_k(knowledge_base, embedder, llm, pipeline):
    await knowledge_base.load()
    for i in range(5):
        await pipeline.ingest(f"Passage number {i} talks about the colour of the sky.", f"https://example.com/{i}")

    engine = AnswerEngine(knowledge_base, embedder, llm, top_k=3)
    result = await engine.answer("What colour is the sky?")
    assert len(result.passages) == 3


@pytest.mark.asyncio
async def test_cited_sources_are_unique(engine, pipeline, knowledge_base):
    await knowledge_base.load()
    await pipeline.ingest(SKY_TEXT, SKY_URL)
    await pipeline.ingest("Rayleigh scattering makes the sky blue during the day.", SKY_URL)

    result = await engine.answer("Why is the sky blue?")
    assert result.cited_sources == [SKY_URL]
    assert len(result.passages) == 2


@pytest.mark.asyncio
async def test_empty_generation_uses_fallback(knowledge_base, embedder, pipeline):
    await knowledge_base.load()
    await pipeline.ingest(SKY_TEXT, SKY_URL)
    engine = AnswerEngine(knowledge_base, embedder, FakeLLM(reply="   "))

    result = await engine.answer("Why is the sky blue?")
    assert result.text == EMPTY_GENERATION_FALLBACK
    assert result.cited_sources == [SKY_URL]


@pytest.mark.asyncio
async def test_generation_failure_surfaces_remote_error(knowledge_base, embedder, pipeline):
    await knowledge_base.load()
    await pipeline.ingest(SKY_TEXT, SKY_URL)
    engine = AnswerEngine(knowledge_base, embedder, FakeLLM(fail=True))

    with pytest.raises(RemoteServiceError) as exc_info:
        await engine.answer("Why is the sky blue?")
    assert exc_info.value.operation == "answer"


@pytest.mark.asyncio
async def test_embedding_failure_surfaces_remote_error(knowledge_base, pipeline, llm):
    await knowledge_base.load()
    await pipeline.ingest(SKY_TEXT, SKY_URL)
    engine = AnswerEngine(knowledge_base, FakeEmbedding(fail=True), llm)

    with pytest.raises(RemoteServiceError):
        await engine.answer("Why is the sky blue?")
    assert llm.calls == []


@pytest.mark.asyncio
async def test_blank_question_is_rejected(engine, knowledge_base, embedder):
    await knowledge_base.load()
    with pytest.raises(ValidationError):
        await engine.answer("   ")
    assert embedder.calls == []
