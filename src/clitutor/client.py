"""Chat-completions client that turns prompts into curricula or free text."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import DEFAULT_TIMEOUT_SECONDS, Settings
from .content import extract_json, parse_curriculum
from .errors import ContentError, ProviderError, TransportError
from .models import Curriculum

logger = logging.getLogger(__name__)

CURRICULUM_TEMPERATURE = 0.0
TEXT_TEMPERATURE = 0.1


class ContentClient:
    """Blocking client for an OpenAI-compatible chat-completions endpoint.

    Each call is a single POST; there are no retries and no response caching.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._session = session if session is not None else requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> ContentClient:
        return cls(
            api_url=settings.api_url,
            api_key=settings.api_key,
            model=settings.model,
            timeout_seconds=settings.timeout_seconds,
        )

    def generate_curriculum(self, prompt: str, max_tokens: int) -> Curriculum:
        """Request a curriculum with deterministic sampling and parse it."""
        logger.info("Generating curriculum with max tokens: %d", max_tokens)
        raw = self._complete(prompt, max_tokens, CURRICULUM_TEMPERATURE)
        return parse_curriculum(extract_json(raw))

    def generate_text(self, prompt: str, max_tokens: int) -> str:
        """Request free text; a little temperature keeps the phrasing natural."""
        logger.debug("Generating text with max tokens: %d", max_tokens)
        return self._complete(prompt, max_tokens, TEXT_TEMPERATURE)

    def build_payload(self, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    def close(self) -> None:
        self._session.close()

    def _complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """POST one completion request and return `choices[0].message.content`."""
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = self._session.post(
                self.api_url,
                json=self.build_payload(prompt, max_tokens, temperature),
                headers=headers,
                # (connect, read); the read timeout bounds every socket operation after connecting.
                timeout=(self.timeout_seconds, self.timeout_seconds),
            )
            body = response.text
        except requests.RequestException as exc:
            logger.error("Network or I/O error during completion request: %s", exc)
            raise TransportError(f"Could not get a response from the provider: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.error("Provider error. Code: %s, Body: %s", response.status_code, body)
            raise ProviderError(response.status_code, body)

        return _message_content(response, body)


def _message_content(response: requests.Response, body: str) -> str:
    try:
        data = response.json()
    except ValueError as exc:
        raise ContentError("response body is not JSON", body) from exc

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ContentError("response has no choices[0].message.content", body) from exc
    if not isinstance(content, str):
        raise ContentError("response has no choices[0].message.content", body)
    return content
