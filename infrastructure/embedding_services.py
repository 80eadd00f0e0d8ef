# infrastructure/embedding_services.py
"""Remote embedding clients (Ollama HTTP API, OpenAI)"""
import asyncio
import logging
from typing import List, Optional

import requests
from openai import OpenAI, OpenAIError

from core.interfaces import IEmbeddingService
from core.exceptions import RemoteServiceError
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class OllamaEmbedding(IEmbeddingService):
    """
    Embeddings from an Ollama server (POST /api/embeddings).

    Returns the raw model vector; normalization is the caller's concern.
    No retries: failures surface as RemoteServiceError for the caller to handle.
    """

    def __init__(
        self,
        base_url: str = settings.OLLAMA_BASE_URL,
        model_name: str = "nomic-embed-text",
        timeout: int = settings.REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip('/')
        self.model_name = model_name
        self.timeout = timeout

    def _embed_sync(self, text: str) -> List[float]:
        try:
            response = requests.post(
                f'{self.base_url}/api/embeddings',
                json={'model': self.model_name, 'prompt': text},
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Embedding request timed out after {self.timeout} seconds.")
            raise RemoteServiceError("Embedding request timed out", operation="embed") from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Cannot connect to embedding service at {self.base_url}. Is it running?")
            raise RemoteServiceError("Cannot connect to embedding service", operation="embed") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"Embedding service returned an error: {status}")
            raise RemoteServiceError(f"Embedding service error: {status}", operation="embed") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Embedding request failed: {e}")
            raise RemoteServiceError(f"Embedding request failed: {e}", operation="embed") from e

        embedding = result.get('embedding') if isinstance(result, dict) else None
        if not embedding:
            logger.error("Embedding response was empty or malformed.")
            raise RemoteServiceError("Empty embedding from embedding service", operation="embed")
        return [float(x) for x in embedding]

    async def embed(self, text: str) -> List[float]:
        return await asyncio.to_thread(self._embed_sync, text)


class OpenAIEmbedding(IEmbeddingService):
    """Embeddings from the OpenAI API (default text-embedding-3-small, 1536 dims)."""

    def __init__(
        self,
        api_key: str = settings.OPENAI_API_KEY,
        model_name: str = "text-embedding-3-small",
        timeout: int = settings.REQUEST_TIMEOUT,
        client: Optional[OpenAI] = None,
    ):
        if client is None and not api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        self.model_name = model_name
        # max_retries=0: retry policy belongs to the caller
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def _embed_sync(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(model=self.model_name, input=text)
        except OpenAIError as e:
            logger.error(f"OpenAI embedding call failed: {type(e).__name__}")
            raise RemoteServiceError(f"OpenAI embedding failed: {type(e).__name__}", operation="embed") from e

        if not response.data or not response.data[0].embedding:
            raise RemoteServiceError("Empty embedding from OpenAI", operation="embed")
        return [float(x) for x in response.data[0].embedding]

    async def embed(self, text: str) -> List[float]:
        return await asyncio.to_thread(self._embed_sync, text)
