from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_SETTINGS: List[Dict[str, str]] = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]

CONNECTION_TEST_PROMPT = "Reply with a short confirmation that you are reachable."


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.3
    max_output_tokens: int = 2000
    top_k: int = 40
    top_p: float = 0.95
    safety_settings: List[Dict[str, str]] = field(default_factory=lambda: list(DEFAULT_SAFETY_SETTINGS))

    def as_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
            "topK": self.top_k,
            "topP": self.top_p,
        }


class TextGenerator(Protocol):
    async def generate(self, prompt: str, config: GenerationConfig) -> Optional[str]:
        """Return the completion text, or None when no text came back."""


class GeminiClient:
    """
    Text generation over the Gemini REST API:
      - POST {base_url}/models/{model}:generateContent?key=...
      - Reply text is read from candidates[0].content.parts[0].text
    Every failure (status, transport, envelope) is logged and reported as None.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise UpstreamUnavailable("text generation", "GEMINI_API_KEY is not configured")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str, config: GenerationConfig) -> Optional[str]:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": config.as_payload(),
            "safetySettings": config.safety_settings,
        }
        logger.debug("Gemini request: %d prompt characters, %s", len(prompt), config.as_payload())

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(self.endpoint, params={"key": self.api_key}, json=payload)
                r.raise_for_status()
                js = r.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Gemini API error %s: %s", exc.response.status_code, exc.response.text[:500])
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Gemini request failed: %s", exc)
            return None

        text = extract_candidate_text(js)
        if text is None:
            logger.error("Invalid response structure from Gemini API: %s", str(js)[:500])
        return text


def extract_candidate_text(envelope: Any) -> Optional[str]:
    """`candidates[0].content.parts[0].text`, or None when the envelope is malformed."""
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


async def check_connection(generator: TextGenerator) -> str:
    """Send a short fixed prompt and return up to 1000 characters of the reply."""
    text = await generator.generate(CONNECTION_TEST_PROMPT, GenerationConfig(temperature=0.1, max_output_tokens=100))
    if not text:
        raise UpstreamUnavailable("text generation", "no text returned by the connection test")
    return text[:1000]
