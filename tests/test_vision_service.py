"""Tests for the vision prompt and multimodal clients."""

import base64
import json
from unittest.mock import MagicMock

import httpx
import pytest

from services.exceptions import AnalysisServiceError, ConfigurationError
from services.vision_service import (
    AzureOpenAIVisionClient,
    GeminiVisionClient,
    build_extraction_prompt,
    build_vision_client,
)
from utils.image_preprocessing import PageImage

CHAT_URL = "https://aoai.example.test/openai/deployments/gpt-4o/chat/completions?api-version=2025-01-01-preview"


@pytest.fixture
def pages():
    return [
        PageImage(page_number=1, data=b"\xff\xd8page-one"),
        PageImage(page_number=2, data=b"\x89PNGpage-two", mime_type="image/png"),
    ]


class TestPrompt:
    """Tests for the extraction instruction."""

    def test_mentions_page_count(self) -> None:
        assert "Analyze all 3 page(s)" in build_extraction_prompt(3)

    def test_selection_rules(self) -> None:
        prompt = build_extraction_prompt(1)
        assert "VISIBLE MARK" in prompt
        assert "BOLD, UNDERLINED or HIGHLIGHTED TEXT IS NEVER EVIDENCE OF SELECTION" in prompt
        assert "(unclear if selected)" in prompt

    def test_digit_transcription_rules(self) -> None:
        prompt = build_extraction_prompt(1)
        assert "character by character" in prompt
        assert '"?"' in prompt
        assert "(unclear)" in prompt
        assert "(illegible)" in prompt

    def test_embeds_response_format(self) -> None:
        prompt = build_extraction_prompt(1)
        for key in ('"summary"', '"sections"', '"fields"', '"notes"'):
            assert key in prompt


class TestAzureOpenAIVisionClient:
    """Tests for the chat-completions back-end."""

    def test_payload_shape(self, pages) -> None:
        client = AzureOpenAIVisionClient(chat_url=CHAT_URL, api_key="k", temperature=0.1, max_tokens=4096)
        payload = client.build_payload("instruction", pages)

        content = payload["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "instruction"}
        assert len(content) == 3
        first = content[1]["image_url"]
        assert first["detail"] == "high"
        assert first["url"] == "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8page-one").decode()
        assert content[2]["image_url"]["url"].startswith("data:image/png;base64,")
        assert payload["max_tokens"] == 4096
        assert payload["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_returns_message_content(self, pages) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["api-key"] == "k"
            body = json.loads(request.content)
            assert body["messages"][0]["role"] == "user"
            return httpx.Response(200, json={"choices": [{"message": {"content": '{"summary": "ok"}'}}]})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = AzureOpenAIVisionClient(chat_url=CHAT_URL, api_key="k", http_client=http_client)

        assert await client.analyze("prompt", pages) == '{"summary": "ok"}'

    @pytest.mark.asyncio
    async def test_error_status(self, pages) -> None:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(429, text="Rate limit exceeded"))
        )
        client = AzureOpenAIVisionClient(chat_url=CHAT_URL, api_key="k", http_client=http_client)

        with pytest.raises(AnalysisServiceError) as exc_info:
            await client.analyze("prompt", pages)

        assert exc_info.value.status_code == 429
        assert "Rate limit exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_key(self, pages) -> None:
        client = AzureOpenAIVisionClient(chat_url=CHAT_URL, api_key="")

        with pytest.raises(ConfigurationError, match="AZURE_OPENAI_API_KEY"):
            await client.analyze("prompt", pages)


class TestGeminiVisionClient:
    """Tests for the Gemini back-end with a mocked SDK client."""

    @pytest.mark.asyncio
    async def test_sends_prompt_and_images(self, pages) -> None:
        sdk = MagicMock()
        sdk.models.generate_content.return_value = MagicMock(text='{"summary": "gemini"}')
        client = GeminiVisionClient(client=sdk, model_name="gemini-test", temperature=0.1, max_output_tokens=4096)

        assert await client.analyze("prompt", pages) == '{"summary": "gemini"}'

        kwargs = sdk.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"][0] == "prompt"
        assert len(kwargs["contents"]) == 3
        assert kwargs["config"].temperature == 0.1
        assert kwargs["config"].max_output_tokens == 4096

    @pytest.mark.asyncio
    async def test_empty_text(self, pages) -> None:
        sdk = MagicMock()
        sdk.models.generate_content.return_value = MagicMock(text=None)
        client = GeminiVisionClient(client=sdk)

        assert await client.analyze("prompt", pages) == ""

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, pages) -> None:
        sdk = MagicMock()
        sdk.models.generate_content.side_effect = httpx.ReadTimeout("timed out")
        client = GeminiVisionClient(client=sdk)

        with pytest.raises(AnalysisServiceError) as exc_info:
            await client.analyze("prompt", pages)

        assert exc_info.value.status_code is None
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, pages) -> None:
        client = GeminiVisionClient(api_key="")

        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            await client.analyze("prompt", pages)


class TestBuildVisionClient:
    """Tests for provider selection."""

    def test_gemini(self) -> None:
        assert isinstance(build_vision_client("gemini"), GeminiVisionClient)

    def test_azure_openai(self) -> None:
        assert isinstance(build_vision_client("azure_openai"), AzureOpenAIVisionClient)

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError):
            build_vision_client("llava")
