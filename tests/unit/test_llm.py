"""Unit tests for the llm package."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from notesqa.llm import ChatCompletionLLM, GenerationError, create_llm
from notesqa.llm.chat_endpoint import DEFAULT_SYSTEM_PROMPT, create_chat_llm

ENDPOINT = "https://chat.test/v1/chat/completions"


def _completion(content):
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def llm():
    return ChatCompletionLLM(
        endpoint_url=ENDPOINT,
        model="test-model",
        api_key="test-key",
        max_retries=3,
        retry_delay=0,
    )


@pytest.mark.unit
class TestChatCompletionLLM:
    """Tests for ChatCompletionLLM.ainvoke()."""

    @pytest.mark.asyncio
    async def test_returns_content(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("Buy milk."))

        assert await llm.ainvoke("prompt") == "Buy milk."

    @pytest.mark.asyncio
    async def test_request_payload(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("ok"))

        await llm.ainvoke("What do I need?", system="Be brief.")

        request = httpx_mock.get_request()
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "What do I need?"},
        ]
        assert body["temperature"] == 0.2
        assert request.headers["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_default_system_prompt(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("ok"))

        await llm.ainvoke("prompt")

        body = json.loads(httpx_mock.get_request().content)
        assert body["messages"][0]["content"] == DEFAULT_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("ok"))
        llm = ChatCompletionLLM(endpoint_url=ENDPOINT, model="m", api_key=None)

        await llm.ainvoke("prompt")

        assert "Authorization" not in httpx_mock.get_request().headers

    @pytest.mark.asyncio
    async def test_missing_content_returns_empty_string(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", json={"choices": []})

        assert await llm.ainvoke("prompt") == ""

    @pytest.mark.asyncio
    async def test_retries_on_503(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", status_code=503)
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("recovered"))

        assert await llm.ainvoke("prompt") == "recovered"
        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.asyncio
    async def test_retries_on_timeout(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=ENDPOINT)
        httpx_mock.add_response(url=ENDPOINT, method="POST", json=_completion("recovered"))

        assert await llm.ainvoke("prompt") == "recovered"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, llm, httpx_mock: HTTPXMock):
        for _ in range(3):
            httpx_mock.add_response(url=ENDPOINT, method="POST", status_code=502)

        with pytest.raises(GenerationError) as exc_info:
            await llm.ainvoke("prompt")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, llm, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=ENDPOINT, method="POST", status_code=400, text="bad request")

        with pytest.raises(GenerationError, match="400"):
            await llm.ainvoke("prompt")

        assert len(httpx_mock.get_requests()) == 1


@pytest.mark.unit
class TestFactories:
    """Tests for the client factories."""

    def test_create_chat_llm_from_settings(self):
        from notesqa.config import settings

        llm = create_chat_llm()

        assert llm.endpoint_url == settings.chat_completions_url
        assert llm.model == settings.llm_model
        assert llm.temperature == settings.llm_temperature

    def test_create_llm_temperature_override(self):
        llm = create_llm(temperature=0.0)

        assert isinstance(llm, ChatCompletionLLM)
        assert llm.temperature == 0.0
