"""
AI Scoring Providers
One strategy class per vendor. Each turns a prompt into a validated
ScoringResult or raises ProviderError; retries and fallback live in the
orchestrator, not here.

Chain order: Gemini (primary) -> OpenAI (secondary) -> Anthropic (tertiary).
"""
import base64
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import OpenAI

from screening.core.config import Settings
from screening.core.exceptions import ProviderError
from screening.models.scoring import ScoringResult, decode_scoring_payload

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert, unbiased recruiter. Respond with a single valid JSON "
    "object and nothing else."
)

PDF_EXTRACTION_PROMPT = (
    "Extract all text from this resume/CV. Return only the extracted text, no commentary."
)

# HTTP statuses where retrying the same request cannot help
NON_RETRYABLE_STATUSES = {400, 401, 403, 404}


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token count: one token per four characters"""
    return math.ceil(len(text or "") / 4)


@dataclass
class ScoringRequest:
    prompt: str
    system_prompt: str = SYSTEM_PROMPT


def _http_client(timeout: float, http_client: Optional[httpx.Client]) -> httpx.Client:
    return http_client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return f"HTTP {response.status_code}: {error.get('message', error)}"
    return f"HTTP {response.status_code}: {error or data}"


class ScoringProvider:
    """Base strategy: subclasses implement `complete` and set their rates"""

    name: str = "provider"
    llm_tag: str = ""
    input_rate: float = 0.0    # USD per input token
    output_rate: float = 0.0   # USD per output token

    def complete(self, request: ScoringRequest) -> str:
        raise NotImplementedError

    def estimate_cost(self, prompt: str, response_text: str) -> float:
        return (
            estimate_tokens(prompt) * self.input_rate
            + estimate_tokens(response_text) * self.output_rate
        )

    def score_with_provider(self, request: ScoringRequest) -> ScoringResult:
        raw = self.complete(request)
        if not isinstance(raw, str):
            raise ProviderError(f"expected text, got {type(raw).__name__}", self.name)
        try:
            payload = decode_scoring_payload(raw)
        except ValueError as e:
            raise ProviderError(f"unparsable response ({e})", self.name) from e

        cost = self.estimate_cost(request.prompt, raw)
        return ScoringResult.from_payload(payload, llm_used=self.llm_tag, api_cost=cost)

    def _post_json(self, client: httpx.Client, url: str, headers: Dict[str, str],
                   body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = client.post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise ProviderError(f"transport error: {e}", self.name) from e

        if response.status_code >= 400:
            raise ProviderError(
                _error_message(response),
                self.name,
                retryable=response.status_code not in NON_RETRYABLE_STATUSES,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("response body is not JSON", self.name) from e
        if not isinstance(data, dict):
            raise ProviderError(f"unexpected response body ({type(data).__name__})", self.name)
        if data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ProviderError(f"error payload: {message}", self.name)
        return data


# ===== GEMINI =====

class GeminiProvider(ScoringProvider):
    name = "gemini"
    llm_tag = "gemini-2.0-flash"
    input_rate = 0.075 / 4_000_000
    output_rate = 0.30 / 4_000_000

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash",
                 base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 temperature: float = 0.3, max_tokens: int = 2000, timeout: float = 60.0,
                 http_client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = _http_client(timeout, http_client)

    def complete(self, request: ScoringRequest) -> str:
        body = {
            "systemInstruction": {"parts": [{"text": request.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
                "responseMimeType": "application/json",
            },
        }
        data = self._post_json(
            self.client,
            f"{self.base_url}/models/{self.model}:generateContent",
            {"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            body,
        )
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("response has no candidate text", self.name) from e


# ===== OPENAI =====

class OpenAIProvider(ScoringProvider):
    name = "openai"
    llm_tag = "gpt-4o-mini"
    input_rate = 0.15 / 1_000_000
    output_rate = 0.60 / 1_000_000

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", temperature: float = 0.3,
                 max_tokens: int = 2000, timeout: float = 60.0,
                 http_client: Optional[httpx.Client] = None):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Retries are owned by the orchestrator
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0, http_client=http_client)

    def complete(self, request: ScoringRequest) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"HTTP {e.status_code}: {e.message}",
                self.name,
                retryable=e.status_code not in NON_RETRYABLE_STATUSES,
            ) from e
        except openai.OpenAIError as e:
            raise ProviderError(f"request failed: {e}", self.name) from e

        if not response.choices or not response.choices[0].message.content:
            raise ProviderError("empty completion", self.name)
        return response.choices[0].message.content


# ===== ANTHROPIC =====

class ClaudeProvider(ScoringProvider):
    name = "anthropic"
    llm_tag = "claude-sonnet-4"
    input_rate = 3.0 / 1_000_000
    output_rate = 15.0 / 1_000_000

    API_VERSION = "2023-06-01"

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514",
                 base_url: str = "https://api.anthropic.com/v1", temperature: float = 0.3,
                 max_tokens: int = 2000, timeout: float = 60.0,
                 http_client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = _http_client(timeout, http_client)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def _messages(self, content: Any, max_tokens: int, system: Optional[str] = None) -> str:
        body: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if system:
            body["system"] = system
        data = self._post_json(self.client, f"{self.base_url}/messages", self.headers, body)
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ProviderError("response has no content blocks", self.name)
        text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text")
        if not text:
            raise ProviderError("response has no text content", self.name)
        return text

    def complete(self, request: ScoringRequest) -> str:
        return self._messages(request.prompt, self.max_tokens, system=request.system_prompt)

    def extract_pdf_text(self, pdf_bytes: bytes) -> Optional[str]:
        """Vision extraction for scanned PDFs; None when the call fails"""
        content = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": base64.b64encode(pdf_bytes).decode("ascii"),
                },
            },
            {"type": "text", "text": PDF_EXTRACTION_PROMPT},
        ]
        try:
            text = self._messages(content, max_tokens=4000)
        except ProviderError as e:
            logger.warning(f"⚠️ Claude PDF extraction failed: {e}")
            return None
        logger.info(f"📄 Claude vision extracted {len(text)} chars")
        return text


# ===== FACTORY =====

def build_providers(settings: Settings, http_client: Optional[httpx.Client] = None) -> List[ScoringProvider]:
    """Ordered provider chain; providers without an API key are left out"""
    providers: List[ScoringProvider] = []
    common = dict(
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.provider_timeout,
        http_client=http_client,
    )

    if settings.gemini_api_key:
        providers.append(GeminiProvider(
            settings.gemini_api_key, settings.gemini_model, settings.gemini_base_url, **common
        ))
    else:
        logger.warning("⚠️ GEMINI_API_KEY not set, Gemini provider disabled")

    if settings.openai_api_key:
        providers.append(OpenAIProvider(settings.openai_api_key, settings.openai_model, **common))
    else:
        logger.warning("⚠️ OPENAI_API_KEY not set, OpenAI provider disabled")

    if settings.anthropic_api_key:
        providers.append(ClaudeProvider(
            settings.anthropic_api_key, settings.anthropic_model, settings.anthropic_base_url, **common
        ))
    else:
        logger.warning("⚠️ ANTHROPIC_API_KEY not set, Claude provider disabled")

    logger.info(f"✅ Scoring providers: {', '.join(p.name for p in providers) or 'none'}")
    return providers


def build_vision_extractor(settings: Settings, http_client: Optional[httpx.Client] = None):
    if not settings.anthropic_api_key:
        return None
    provider = ClaudeProvider(
        settings.anthropic_api_key, settings.anthropic_model, settings.anthropic_base_url,
        timeout=settings.provider_timeout, http_client=http_client,
    )
    return provider.extract_pdf_text
