import asyncio
import requests
import logging
from typing import List, Dict, Optional

from openai import OpenAI, OpenAIError

from core.interfaces import ILLMService
from core.exceptions import RemoteServiceError
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class OllamaLLMService(ILLMService):
    """A service to interact with a local LLM API (e.g., Ollama)."""

    def __init__(
        self,
        base_url: str = settings.OLLAMA_BASE_URL,
        model: str = "llama3.1:8b",
        temperature: float = settings.LLM_TEMPERATURE,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        timeout: int = settings.REQUEST_TIMEOUT,
    ):
        """
        Initializes the OllamaLLMService.

        Args:
            base_url: The base URL of the LLM API.
            model: The name of the model to use.
            temperature: Fixed sampling temperature.
            max_tokens: Maximum number of tokens to generate.
            timeout: The request timeout in seconds.
        """
        self.base_url = base_url.rstrip('/')
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _chat_sync(self, messages: List[Dict[str, str]]) -> str:
        try:
            logger.info(f"Sending prompt to LLM model '{self.model_name}'...")
            response = requests.post(
                f'{self.base_url}/api/chat',
                json={
                    'model': self.model_name,
                    'messages': messages,
                    'stream': False,
                    'options': {
                        'temperature': self.temperature,
                        'num_predict': self.max_tokens,
                    },
                },
                timeout=self.timeout
            )

            response.raise_for_status()  # Raises an HTTPError for bad responses (4xx or 5xx)
            result = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f"LLM request timed out after {self.timeout} seconds.")
            raise RemoteServiceError("LLM request timed out", operation="generate") from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Cannot connect to LLM at {self.base_url}. Is the service running?")
            raise RemoteServiceError("Cannot connect to LLM service", operation="generate") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"LLM service returned an error: {status}")
            raise RemoteServiceError(f"LLM error: {status}", operation="generate") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"LLM request failed: {e}")
            raise RemoteServiceError(f"LLM request failed: {e}", operation="generate") from e

        message = result.get('message') if isinstance(result, dict) else None
        content = (message or {}).get('content') or ''
        if content:
            logger.info("Successfully received response from LLM.")
        else:
            logger.warning("LLM response was empty.")
        return content.strip()

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages = [
            {'role': 'system', 'content': system_prompt},
            {'role': 'user', 'content': user_prompt},
        ]
        return await asyncio.to_thread(self._chat_sync, messages)


class OpenAILLMService(ILLMService):
    """Chat completions from the OpenAI API."""

    def __init__(
        self,
        api_key: str = settings.OPENAI_API_KEY,
        model: str = "gpt-4o-mini",
        temperature: float = settings.LLM_TEMPERATURE,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        timeout: int = settings.REQUEST_TIMEOUT,
        client: Optional[OpenAI] = None,
    ):
        if client is None and not api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def _chat_sync(self, messages: List[Dict[str, str]]) -> str:
        try:
            logger.info(f"Sending prompt to LLM model '{self.model_name}'...")
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages, # type: ignore
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI chat call failed: {type(e).__name__}")
            raise RemoteServiceError(f"OpenAI chat failed: {type(e).__name__}", operation="generate") from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages = [
            {'role': 'system', 'content': system_prompt},
            {'role': 'user', 'content': user_prompt},
        ]
        return await asyncio.to_thread(self._chat_sync, messages)
