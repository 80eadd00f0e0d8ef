from pydantic import BaseModel, Field
from typing import Optional, List

from core.domain import ErrorCode

class IngestRequest(BaseModel):
    url: str = Field(..., min_length=1)
    text: str

class IngestResponse(BaseModel):
    success: bool
    message: str
    passage_id: int
    content_length: int

class QueryRequest(BaseModel):
    question: str

class SourceItem(BaseModel):
    url: str
    score: float

class QueryResponse(BaseModel):
    success: bool
    answer: str
    sources: List[SourceItem] = []

class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error_code: ErrorCode
    error: Optional[str] = None
    stack: Optional[str] = None  # Only populated in DEBUG mode

class StatusResponse(BaseModel):
    passages: int = 0
    index_size: int = 0
    dimension: int
    consistent: bool = True
    ready_for_queries: bool = False

class PassageListItem(BaseModel):
    id: int
    source_url: str
    ingested_at: str
    content_length: int

class PassagesListResponse(BaseModel):
    passages: List[PassageListItem]
