"""
Simple Gemini client for generative text.

Provides an async interface to the Gemini ``generateContent`` REST API.
Every failure is raised as GenerationError so callers can log the cause
before falling back to heuristics.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar
import httpx

from cinechronic.core.config import settings

GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationError(Exception):
    """The generative call failed or its output could not be used."""

    def __init__(self, stage: str, reason: str):
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    """Outcome of one generative stage: a value or the error that prevented it."""
    value: Optional[T] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "GenerationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, stage: str, reason: str) -> "GenerationResult[T]":
        return cls(error=GenerationError(stage, reason))


class GeminiClient:
    """Async client for the Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = GEMINI_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Call Gemini generateContent.

        Args:
            prompt: Text prompt
            options: generationConfig overrides (temperature, maxOutputTokens, ...)

        Returns:
            The concatenated text of the first candidate

        Raises:
            GenerationError: on transport errors, non-2xx answers or empty output
        """
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if options:
            body["generationConfig"] = options

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/models/{self.model}:generateContent",
                    params={"key": self.api_key},
                    json=body,
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.TimeoutException as e:
                logger.error(f"Gemini request timeout for model {self.model}: {e}")
                raise GenerationError("request", "timeout") from e
            except httpx.HTTPError as e:
                logger.error(f"Gemini HTTP error for model {self.model}: {e}")
                raise GenerationError("request", str(e)) from e
            except ValueError as e:
                raise GenerationError("request", "response was not JSON") from e

        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise GenerationError("response", "no candidates in response")
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
        if not text:
            raise GenerationError("response", "empty text")
        return text


# Global client instance
_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> Optional[GeminiClient]:
    """Get or create the Gemini client; None when GEMINI_API_KEY is not configured."""
    global _gemini_client

    if not settings.gemini_api_key:
        return None
    if _gemini_client is None:
        _gemini_client = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.gemini_timeout_seconds,
        )

    return _gemini_client
