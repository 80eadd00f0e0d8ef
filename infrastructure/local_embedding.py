# infrastructure/local_embedding.py
"""In-process embeddings with sentence-transformers (offline use)"""
import asyncio
import logging
from typing import List, Optional
from sentence_transformers import SentenceTransformer

from core.interfaces import IEmbeddingService
from core.exceptions import RemoteServiceError
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Sentence transformer behind the same contract as the remote clients.

    The model is loaded once per process and cached on the class.
    Encoding failures are reported as RemoteServiceError so callers treat
    every embedding backend the same way.
    """

    _model: Optional[SentenceTransformer] = None  # Singleton cache
    _model_name: Optional[str] = None

    def __init__(self, model_name: str = "paraphrase-multilingual-mpnet-base-v2"):
        """Initializes the service, loading the heavy model only once."""
        self.model_name = model_name

        if SentenceTransformerEmbedding._model is None or SentenceTransformerEmbedding._model_name != model_name:
            try:
                logger.info(f"Attempting to load model {model_name} from local cache...")
                SentenceTransformerEmbedding._model = SentenceTransformer(
                    model_name,
                    local_files_only=True
                )
                logger.info(f"Successfully loaded {model_name} from local cache.")

            except Exception as e:
                logger.warning(
                    f"Model {model_name} not found in cache. Attempting online download. "
                    f"This may take a few minutes. Error: {e}"
                )
                SentenceTransformerEmbedding._model = SentenceTransformer(model_name)
                logger.info(f"Successfully downloaded and loaded {model_name}.")
            SentenceTransformerEmbedding._model_name = model_name

        self.model = SentenceTransformerEmbedding._model

    async def embed(self, text: str) -> List[float]:
        try:
            raw = await asyncio.to_thread(
                self.model.encode,
                text,
                convert_to_tensor=False
            )
        except Exception as e:
            logger.error(f"Local embedding failed: {e}")
            raise RemoteServiceError(f"Local embedding failed: {e}", operation="embed") from e
        return [float(x) for x in raw]
