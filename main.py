# main.py
"""Main application: loads the knowledge base once and serves ingest/query routes"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from core.exceptions import KnowledgeBaseError
from services.logger_config import setup_logging
from services.factory import init_services, reset_services
from api.endpoints import router, knowledge_base_error_handler

setup_logging()
logger = logging.getLogger(settings.LOGGER_NAME)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting application...")

    container = await init_services()
    status = await container.knowledge_base.get_status()
    logger.info(
        f"Knowledge base loaded: {status['passages']} passages, "
        f"consistent={status['consistent']}"
    )

    yield

    reset_services()
    logger.info("Application shutdown complete")

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(KnowledgeBaseError, knowledge_base_error_handler) # type: ignore
app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
