"""
Test cases for the embedding and generation clients with the network mocked out.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests
from openai import OpenAIError

from core.exceptions import RemoteServiceError
from infrastructure.embedding_services import OllamaEmbedding, OpenAIEmbedding
from services.llm_service import OllamaLLMService, OpenAILLMService


def _response(payload=None, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            response=MagicMock(status_code=status_code)
        )
    return response


# ---------- Ollama embeddings ----------

@pytest.mark.asyncio
async def test_ollama_embedding_success():
    client = OllamaEmbedding(base_url="http://ollama:11434/", model_name="nomic-embed-text", timeout=5)
    with patch("infrastructure.embedding_services.requests.post",
               return_value=_response({"embedding": [0.1, 0.2, 0.3]})) as mock_post:
        vector = await client.embed("hello world")

    assert vector == [0.1, 0.2, 0.3]
    args, kwargs = mock_post.call_args
    assert args[0] == "http://ollama:11434/api/embeddings"
    assert kwargs["json"] == {"model": "nomic-embed-text", "prompt": "hello world"}
    assert kwargs["timeout"] == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("side_effect", [
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.Timeout("slow"),
])
async def test_ollama_embedding_network_errors(side_effect):
    client = OllamaEmbedding(base_url="http://ollama:11434")
    with patch("infrastructure.embedding_services.requests.post", side_effect=side_effect):
        with pytest.raises(RemoteServiceError) as exc_info:
            await client.embed("hello")
    assert exc_info.value.operation == "embed"


@pytest.mark.asyncio
async def test_ollama_embedding_http_error():
    client = OllamaEmbedding(base_url="http://ollama:11434")
    with patch("infrastructure.embedding_services.requests.post", return_value=_response(status_code=429)):
        with pytest.raises(RemoteServiceError, match="429"):
            await client.embed("hello")


@pytest.mark.asyncio
async def test_ollama_embedding_malformed_payload():
    client = OllamaEmbedding(base_url="http://ollama:11434")
    with patch("infrastructure.embedding_services.requests.post", return_value=_response({"error": "model not found"})):
        with pytest.raises(RemoteServiceError):
            await client.embed("hello")


# ---------- OpenAI embeddings ----------

@pytest.mark.asyncio
async def test_openai_embedding_success():
    sdk = MagicMock()
    sdk.embeddings.create.return_value = SimpleNamespace(data=[SimpleNamespace(embedding=[0.5, 0.5])])
    client = OpenAIEmbedding(client=sdk, model_name="text-embedding-3-small")

    assert await client.embed("hello") == [0.5, 0.5]
    sdk.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input="hello")


@pytest.mark.asyncio
async def test_openai_embedding_error_is_wrapped():
    sdk = MagicMock()
    sdk.embeddings.create.side_effect = OpenAIError("invalid api key")
    client = OpenAIEmbedding(client=sdk)

    with pytest.raises(RemoteServiceError):
        await client.embed("hello")


def test_openai_embedding_requires_key():
    with pytest.raises(RuntimeError):
        OpenAIEmbedding(api_key="")


# ---------- Ollama generation ----------

@pytest.mark.asyncio
async def test_ollama_generate_sends_fixed_sampling_parameters():
    service = OllamaLLMService(base_url="http://ollama:11434", model="llama3.1:8b",
                               temperature=0.7, max_tokens=500)
    payload = {"message": {"role": "assistant", "content": "  The sky is blue [https://example.com/sky]  "}}
    with patch("services.llm_service.requests.post", return_value=_response(payload)) as mock_post:
        text = await service.generate("system rules", "user question")

    assert text == "The sky is blue [https://example.com/sky]"
    args, kwargs = mock_post.call_args
    assert args[0] == "http://ollama:11434/api/chat"
    body = kwargs["json"]
    assert body["stream"] is False
    assert body["options"] == {"temperature": 0.7, "num_predict": 500}
    assert body["messages"] == [
        {"role": "system", "content": "system rules"},
        {"role": "user", "content": "user question"},
    ]


@pytest.mark.asyncio
async def test_ollama_generate_empty_content_returns_empty_string():
    service = OllamaLLMService(base_url="http://ollama:11434")
    with patch("services.llm_service.requests.post", return_value=_response({"message": {"content": ""}})):
        assert await service.generate("s", "u") == ""


@pytest.mark.asyncio
async def test_ollama_generate_connection_error():
    service = OllamaLLMService(base_url="http://ollama:11434")
    with patch("services.llm_service.requests.post", side_effect=requests.exceptions.ConnectionError()):
        with pytest.raises(RemoteServiceError) as exc_info:
            await service.generate("s", "u")
    assert exc_info.value.operation == "generate"


# ---------- OpenAI generation ----------

@pytest.mark.asyncio
async def test_openai_generate_success():
    sdk = MagicMock()
    sdk.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Answer [https://a.example]"))]
    )
    service = OpenAILLMService(client=sdk, model="gpt-4o-mini", temperature=0.7, max_tokens=500)

    assert await service.generate("s", "u") == "Answer [https://a.example]"
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 500


@pytest.mark.asyncio
async def test_openai_generate_error_is_wrapped():
    sdk = MagicMock()
    sdk.chat.completions.create.side_effect = OpenAIError("rate limited")
    service = OpenAILLMService(client=sdk)

    with pytest.raises(RemoteServiceError):
        await service.generate("s", "u")
