"""LLM client: HTTP connection to a chat-completion backend.

The responder injects an LLM callable matching the protocol:

    async def __call__(self, persona: str, messages: list[dict]) -> str: ...

`persona` identifies who is being asked to speak; implementations may use it
for logging and the simplest one ignores it. `messages` is the ordered list
of role-tagged chat entries (system first). The return value is the raw
content string of the first choice.

Two implementations are provided:

    HttpLLM   real HTTP client for OpenAI-compatible chat backends,
                 including text.pollinations.ai. Selected by provider_format.
    EchoLLM   returns the content of the last entry. Useful for driving a
                 session offline without a running model.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx

from happy_elevator.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, persona: str, messages: list[dict]) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["openai", "pollinations"]


class HttpLLM:
    """Async HTTP client for chat-completion backends.

    Supported formats:
      "openai"        POST /v1/chat/completions
      "pollinations"  POST /openai
    Both take {"messages": [...], "model": ...} and answer with
    {"choices": [{"message": {"content": "..."}}]}.

    Args:
        provider_url:    Base URL of the backend, e.g. "https://text.pollinations.ai".
        api_key:         Bearer token, or empty string if not required.
        provider_format: Wire format to use. Defaults to "pollinations".
        model:           Model identifier; omitted from the body when empty.
        timeout:         HTTP timeout in seconds. Defaults to 120.
        json_mode:       Ask the backend for a JSON object response.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "pollinations",
        model: str = "",
        timeout: float = 120.0,
        json_mode: bool = True,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._json_mode = json_mode

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, messages: list[dict]) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        body: dict = {"messages": messages}
        if self._model:
            body["model"] = self._model
        if self._json_mode:
            body["response_format"] = {"type": "json_object"}

        if self._format == "openai":
            return f"{self._base_url}/v1/chat/completions", body

        # pollinations (default)
        return f"{self._base_url}/openai", body

    def _parse_response(self, data: dict) -> str:
        """Extract choices[0].message.content from the response body."""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Unexpected response format from {self._format} backend") from e
        if not isinstance(content, str):
            raise LLMError(f"Unexpected response format from {self._format} backend")
        return content

    async def __call__(self, persona: str, messages: list[dict]) -> str:
        url, body = self._build_request(messages)
        logger.debug("llm call persona=%s url=%s entries=%d", persona, url, len(messages))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("llm response persona=%s len=%d", persona, len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM: repeats the last entry; useful for offline sessions
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the content of the last chat entry. No network calls.

    Because prior turns are serialised as {"message", "action"} objects, the
    echoed content parses cleanly, so a persona simply repeats the previous
    speaker's line and action.
    """

    async def __call__(self, persona: str, messages: list[dict]) -> str:
        logger.debug("EchoLLM persona=%s entries=%d", persona, len(messages))
        return messages[-1]["content"] if messages else ""


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""


def build_llm(settings: Settings) -> LLM:
    """Construct the HTTP client from Settings, or an EchoLLM for "echo"."""
    if settings.provider_format == "echo":
        return EchoLLM()
    return HttpLLM(
        provider_url=settings.provider_url,
        api_key=settings.api_key,
        provider_format=settings.provider_format,
        model=settings.model,
        timeout=settings.timeout,
    )
