"""
Vision Service - Multimodal Form Reading
========================================
Builds the extraction instruction and sends it, together with every
page image, to a multimodal language model in one synchronous call.
The model answers with free text that should embed a JSON payload
(see schemas/vision.py); parsing happens in services/vision_parser.py.

Back-ends:
- GeminiVisionClient      Google Gen AI SDK (google-genai)
- AzureOpenAIVisionClient Azure OpenAI chat completions over httpx

Based on Google Gen AI Python SDK:
    https://googleapis.github.io/python-genai/
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from google import genai
from google.genai import errors, types

from config import settings
from services.exceptions import AnalysisServiceError, ConfigurationError
from utils.image_preprocessing import PageImage

logger = logging.getLogger(__name__)


# =============================================================================
# PROMPT
# =============================================================================

RESPONSE_FORMAT = """{
  "summary": "Description of the form type (e.g., 'Clinical Laboratory Order Form')",
  "sections": [
    {
      "title": "Section Name (e.g., Patient Information)",
      "fields": [
        {
          "name": "Field Label",
          "value": "Extracted Value",
          "type": "text|checkbox|radio|dropdown",
          "note": "Optional note if unclear or partially visible"
        }
      ]
    }
  ],
  "notes": [
    "Any additional observations about the form",
    "Notes about unclear or distorted text"
  ]
}"""

EXTRACTION_INSTRUCTION = """You are an expert document analyzer. Analyze the attached form image(s) and extract ALL data that has been filled in.

WHAT TO LOOK FOR:

1. TEXT FIELDS - any handwritten or typed text in form fields: names, addresses, phone numbers, email addresses, dates, ID numbers and any other filled text.

2. NUMBERS AND IDENTIFIERS - phone numbers, dates, ID / NPI / group / policy / member / lot numbers, zip codes, codes:
   - Transcribe EXACTLY as written, character by character
   - Do NOT round, reformat, complete or guess any digit (write 1-11-1982, not 01-11-1982, unless that is what is written)
   - If a character is illegible, replace it with "?" (e.g., 521-5?6-9134) or mark the value "(unclear)" instead of inventing it

3. CHECKBOXES AND RADIO BUTTONS - a selection counts ONLY if there is a VISIBLE MARK:
   - a checkmark, an X, a filled/shaded box or circle, or a dot inside the box/circle
   - BOLD, UNDERLINED or HIGHLIGHTED TEXT IS NEVER EVIDENCE OF SELECTION
   - an empty box or empty circle is NOT selected
   - use true/false as the value; if you cannot tell, use false and add the note "(unclear if selected)"

4. SIGNATURES - note any signed fields.

HANDWRITTEN TEXT:
- Read each character carefully and compare unclear letters with the same writer's letters elsewhere
- Use the field's context (a name field holds a name)
- If truly unreadable, write "(illegible)" rather than guessing

Organize fields by the form's own sections when it has them (e.g., Patient Information, Insurance Information, Physician Information, Specimen Information, Test Selections, Other Information).

Return ONLY a valid JSON object with this exact structure:
"""


def build_extraction_prompt(page_count: int) -> str:
    """The full instruction sent with the page images."""
    parts = [
        EXTRACTION_INSTRUCTION,
        RESPONSE_FORMAT,
        "",
        f"Analyze all {page_count} page(s) thoroughly. Extract EVERYTHING you can see that has been filled in."
    ]
    return "\n".join(parts)


# =============================================================================
# CLIENTS
# =============================================================================

class VisionClient(ABC):
    """One synchronous multimodal call: instruction + images -> free text."""

    service_name = "Vision service"

    @abstractmethod
    async def analyze(self, prompt: str, pages: List[PageImage]) -> str:
        ...

    async def close(self) -> None:
        return None


class GeminiVisionClient(VisionClient):
    """
    Gemini multimodal client.

    The SDK client is created lazily on first use; a pre-built client
    can be injected.
    """

    service_name = "Gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        client: Optional[Any] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None
    ):
        self._api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._model_name = model_name or settings.GEMINI_MODEL
        self._client = client
        self._client_lock = threading.Lock()
        self._temperature = settings.VISION_TEMPERATURE if temperature is None else temperature
        self._max_output_tokens = max_output_tokens or settings.VISION_MAX_OUTPUT_TOKENS

    def _ensure_client(self) -> None:
        """Lazy-load the Gemini client."""
        if self._client is not None:
            return

        with self._client_lock:
            if self._client is not None:
                return

            if not self._api_key:
                raise ConfigurationError(
                    "GEMINI_API_KEY not configured. "
                    "Set GEMINI_API_KEY in your .env file."
                )

            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"Gemini client initialized (model: {self._model_name})")

    def _generate(self, prompt: str, pages: List[PageImage]) -> str:
        contents: List[Any] = [prompt]
        contents.extend(
            types.Part.from_bytes(data=page.data, mime_type=page.mime_type)
            for page in pages
        )

        config = types.GenerateContentConfig(
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens
        )

        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=contents,
                config=config
            )
        except errors.APIError as e:
            logger.error(f"Gemini API Error ({e.code}): {e.message}")
            raise AnalysisServiceError(e.code, e.message or str(e), self.service_name) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e}")
            raise AnalysisServiceError(None, str(e), self.service_name) from e

        return response.text or ""

    async def analyze(self, prompt: str, pages: List[PageImage]) -> str:
        self._ensure_client()
        logger.info(f"Sending {len(pages)} page image(s) to Gemini for analysis")
        text = await asyncio.to_thread(self._generate, prompt, pages)
        logger.info(f"Gemini response received ({len(text)} chars)")
        return text


class AzureOpenAIVisionClient(VisionClient):
    """Azure OpenAI chat-completions client with image_url content parts."""

    service_name = "Azure OpenAI"

    def __init__(
        self,
        chat_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ):
        self._has_endpoint = bool(chat_url or (settings.AZURE_OPENAI_ENDPOINT and settings.AZURE_OPENAI_DEPLOYMENT))
        self.chat_url = chat_url or settings.azure_openai_chat_url
        self.api_key = api_key if api_key is not None else settings.AZURE_OPENAI_API_KEY
        self._client = http_client
        self._owns_client = http_client is None
        self._temperature = settings.VISION_TEMPERATURE if temperature is None else temperature
        self._max_tokens = max_tokens or settings.VISION_MAX_OUTPUT_TOKENS

    def _ensure_configured(self) -> None:
        if not self._has_endpoint:
            raise ConfigurationError(
                "AZURE_OPENAI_ENDPOINT / AZURE_OPENAI_DEPLOYMENT not configured. Set them in your .env file."
            )
        if not self.api_key:
            raise ConfigurationError(
                "AZURE_OPENAI_API_KEY not configured. Set it in your .env file."
            )

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS * 3, connect=10.0)
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_payload(self, prompt: str, pages: List[PageImage]) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(
            {"type": "image_url", "image_url": {"url": page.to_data_url(), "detail": "high"}}
            for page in pages
        )
        return {
            "messages": [{"role": "user", "content": content}],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    async def analyze(self, prompt: str, pages: List[PageImage]) -> str:
        self._ensure_configured()
        logger.info(f"Sending {len(pages)} page image(s) to Azure OpenAI for analysis")

        try:
            response = await self._http().post(
                self.chat_url,
                json=self.build_payload(prompt, pages),
                headers={"api-key": self.api_key}
            )
        except httpx.HTTPError as e:
            logger.error(f"Azure OpenAI request failed: {e}")
            raise AnalysisServiceError(None, str(e), self.service_name) from e

        if not response.is_success:
            logger.error(f"Azure OpenAI API Error ({response.status_code}): {response.text}")
            raise AnalysisServiceError(response.status_code, response.text, self.service_name)

        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisServiceError(response.status_code, f"Invalid JSON: {e}", self.service_name) from e

        choices = data.get("choices") or [{}]
        text = ((choices[0] or {}).get("message") or {}).get("content") or ""
        logger.info(f"Azure OpenAI response received ({len(text)} chars)")
        return text


def build_vision_client(provider: Optional[str] = None) -> VisionClient:
    """Vision back-end selected by VISION_PROVIDER."""
    provider = provider or settings.VISION_PROVIDER
    if provider == "gemini":
        return GeminiVisionClient()
    if provider == "azure_openai":
        return AzureOpenAIVisionClient()
    raise ConfigurationError(f"Unknown VISION_PROVIDER: {provider}")
