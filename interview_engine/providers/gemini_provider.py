"""Gemini provider implementation for the Interview Session Engine."""

import json
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from ..services.ai_gateway import LLMProvider
from ..utils.exceptions import (
    AuthenticationError,
    ConfigurationError,
    LLMProviderError,
    RateLimitError,
    ServiceUnavailableError,
)
from ..utils.logging import get_logger


class GeminiProvider(LLMProvider):
    """Google Gemini REST API provider."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.api_key = config.get("api_key")
        self.base_url = config.get("base_url", "https://generativelanguage.googleapis.com/v1beta").rstrip("/")
        self.model = config.get("model", "gemini-2.0-flash")
        self.timeout = config.get("request_timeout", 30)
        self.temperature = config.get("temperature", 0.7)

        self.logger = get_logger("gemini_provider")
        self._session: Optional[aiohttp.ClientSession] = None

    def initialize(self) -> None:
        """Initialize the Gemini provider."""
        if not self.api_key:
            raise ConfigurationError("Gemini API key is required", config_key="gemini.api_key")
        self.logger.info(f"Gemini provider initialized with model: {self.model}")

    async def cleanup(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.api_key or "",
                    "User-Agent": "InterviewSessionEngine/1.0.0",
                },
            )
        return self._session

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if response.status == 200:
            return
        body = await response.text()
        if response.status == 503:
            raise ServiceUnavailableError("Gemini model is overloaded", provider_name=self.provider_name)
        if response.status == 429:
            raise RateLimitError("Gemini rate limit exceeded", provider_name=self.provider_name)
        if response.status in (401, 403):
            raise AuthenticationError("Invalid Gemini API key", auth_method="api_key")
        raise LLMProviderError(
            f"Gemini API returned status {response.status}",
            provider_name=self.provider_name,
            status_code=response.status,
            details={"body": body[:500]},
        )

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def generate_text(self, prompt: str) -> str:
        """Generate text with a single request/response call."""
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with self._get_session().post(url, json=self._build_payload(prompt)) as response:
                await self._raise_for_status(response)
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise LLMProviderError(f"Gemini request failed: {e}", provider_name=self.provider_name) from e

        text = self._extract_text(data)
        if not text:
            raise LLMProviderError("Empty response from Gemini", provider_name=self.provider_name)
        return text

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """Yield text fragments from a server-sent-events stream as they arrive."""
        url = f"{self.base_url}/models/{self.model}:streamGenerateContent"
        try:
            async with self._get_session().post(url, params={"alt": "sse"}, json=self._build_payload(prompt)) as response:
                await self._raise_for_status(response)
                async for raw_line in response.content:
                    line = raw_line.decode("utf-8").strip()
                    if not line.startswith("data:"):
                        continue
                    payload = line[len("data:"):].strip()
                    if not payload:
                        continue
                    try:
                        chunk = self._extract_text(json.loads(payload))
                    except json.JSONDecodeError as e:
                        raise LLMProviderError("Malformed stream event from Gemini", provider_name=self.provider_name) from e
                    if chunk:
                        yield chunk
        except aiohttp.ClientError as e:
            raise LLMProviderError(f"Gemini stream failed: {e}", provider_name=self.provider_name) from e
