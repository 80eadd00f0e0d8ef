# api/endpoints.py
"""
API endpoints for the web page Q&A service.

This layer only maps transport to the core: it accepts text that an
external extractor already pulled from a page, and never fetches URLs.
No authentication; single-user deployment.
"""
import logging
import traceback

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from config import settings
from core.domain import ErrorCode
from core.exceptions import KnowledgeBaseError, ValidationError
from core.interfaces import IAnswerEngine, IIngestionPipeline
from infrastructure.knowledge_base import KnowledgeBase
from services.factory import get_answer_engine, get_ingestion_pipeline, get_knowledge_base
from api.schemas import (
    IngestRequest,
    IngestResponse,
    QueryRequest,
    QueryResponse,
    SourceItem,
    ErrorResponse,
    StatusResponse,
    PassageListItem,
    PassagesListResponse,
)

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()

_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.EXTRACTION_TOO_SHORT: 422,
    ErrorCode.REMOTE_SERVICE_FAILED: 502,
    ErrorCode.NOT_FOUND: 500,
    ErrorCode.DIMENSION_MISMATCH: 500,
    ErrorCode.PARTIAL_COMMIT: 500,
    ErrorCode.PERSISTENCE_FAILED: 500,
    ErrorCode.INCONSISTENT_STORE: 503,
}

_MESSAGE_BY_PATH = {
    "/ingest": "Failed to ingest URL content",
    "/query": "Failed to process question",
}


async def knowledge_base_error_handler(request: Request, exc: KnowledgeBaseError) -> JSONResponse:
    """Map core errors to JSON bodies; stack traces only in DEBUG mode."""
    status_code = _STATUS_BY_CODE.get(exc.error_code, 500)
    if status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.url.path} rejected: {exc}")

    body = ErrorResponse(
        message=_MESSAGE_BY_PATH.get(request.url.path, "Request failed"),
        error_code=exc.error_code,
        error=exc.message,
        stack=(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            if settings.DEBUG else None
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# ---------- Ingest ----------
@router.post("/ingest", response_model=IngestResponse)
async def ingest_endpoint(
    ingest_request: IngestRequest,
    pipeline: IIngestionPipeline = Depends(get_ingestion_pipeline),
) -> IngestResponse:
    logger.info(f"Attempting to ingest URL: {ingest_request.url}")
    passage = await pipeline.ingest(ingest_request.text, ingest_request.url)
    return IngestResponse(
        success=True,
        message="URL content ingested and vectorized successfully",
        passage_id=passage.id,
        content_length=len(passage.text),
    )


# ---------- Query ----------
@router.post("/query", response_model=QueryResponse)
async def query_endpoint(
    query_request: QueryRequest,
    engine: IAnswerEngine = Depends(get_answer_engine),
) -> QueryResponse:
    question = query_request.question.strip()
    if not settings.MIN_QUESTION_LENGTH <= len(question) <= settings.MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"Question must be between {settings.MIN_QUESTION_LENGTH} "
            f"and {settings.MAX_QUESTION_LENGTH} characters"
        )

    result = await engine.answer(question)
    return QueryResponse(
        success=True,
        answer=result.text,
        sources=[
            SourceItem(url=rp.passage.source_url, score=rp.score) for rp in result.passages
        ],
    )


# ---------- Status ----------
@router.get("/status", response_model=StatusResponse)
async def get_status(
    knowledge_base: KnowledgeBase = Depends(get_knowledge_base),
) -> StatusResponse:
    status = await knowledge_base.get_status()
    return StatusResponse(**status)


# ---------- Passages (debug listing) ----------
@router.get("/passages", response_model=PassagesListResponse)
async def list_passages(
    knowledge_base: KnowledgeBase = Depends(get_knowledge_base),
) -> PassagesListResponse:
    passages = await knowledge_base.list_passages()
    return PassagesListResponse(
        passages=[
            PassageListItem(
                id=p.id,
                source_url=p.source_url,
                ingested_at=p.ingested_at.isoformat(),
                content_length=len(p.text),
            )
            for p in passages
        ]
    )
