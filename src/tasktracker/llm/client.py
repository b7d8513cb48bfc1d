# src/tasktracker/llm/client.py

"""
Inference providers behind one capability: `await provider.ask(prompt) -> str`.

- LocalInferenceClient: Ollama-style server, POST /api/generate (non-streaming).
- CloudInferenceClient: OpenAI-compatible chat completions with a bearer key.

Both fail with NetworkError (unreachable, timeout, non-2xx, unreadable body) or
ConfigurationError (missing key/model). No automatic retries: the user re-sends.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..core.errors import ConfigurationError, NetworkError
from ..core.ports import InferenceProvider
from ..core.preferences import AssistantPreferences

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_BASE_URL = "http://localhost:11434"
DEFAULT_CLOUD_BASE_URL = "https://api.openai.com/v1"


def _make_timeout(total_s: float) -> httpx.Timeout:
    """Connect fails fast; read/write get the full budget (no streaming, one long read)."""
    total_s = max(1.0, float(total_s))
    return httpx.Timeout(total_s, connect=min(5.0, total_s))


class LocalInferenceClient:
    """Client for a locally running Ollama-compatible server."""

    def __init__(
        self,
        *,
        model: str,
        base_url: str = DEFAULT_LOCAL_BASE_URL,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = (model or "").strip()
        self.base_url = (base_url or DEFAULT_LOCAL_BASE_URL).rstrip("/")
        self.temperature = float(temperature)
        self.max_tokens = int(max_tokens)
        self.timeout_seconds = float(timeout_seconds)
        self._transport = transport

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

    async def ask(self, prompt: str) -> str:
        if not self.model:
            raise ConfigurationError("Local model name is not set. Use /model local <name>.")

        logger.info("LLM(local): model=%s prompt_chars=%d", self.model, len(prompt))
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=_make_timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                resp = await client.post("/api/generate", json=self.build_payload(prompt))
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Local model server timed out after {self.timeout_seconds:.0f}s."
            ) from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Local model server returned HTTP {e.response.status_code}."
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Cannot reach local model server at {self.base_url}. Is it running?"
            ) from e
        except httpx.InvalidURL as e:
            raise NetworkError(f"Invalid local model server URL: {self.base_url!r}.") from e
        except ValueError as e:
            raise NetworkError("Local model server returned invalid JSON.") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise NetworkError("Local model server response has no 'response' text.")

        logger.info("LLM(local): answered in %.2fs", time.monotonic() - t0)
        return text.strip()


class CloudInferenceClient:
    """
    OpenAI-compatible cloud client.

    The SDK client is created per question and closed when the answer (or the
    error) is in, the same lifetime as the local client's httpx.AsyncClient.
    Selecting "cloud" without a key only fails when a question is actually asked.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = DEFAULT_CLOUD_BASE_URL,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.model = (model or "").strip()
        self.base_url = (base_url or DEFAULT_CLOUD_BASE_URL).rstrip("/")
        self.temperature = float(temperature)
        self.max_tokens = int(max_tokens)
        self.timeout_seconds = float(timeout_seconds)
        # Closed together with the SDK client after the call.
        self._http_client = http_client

    def _make_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ConfigurationError(
                "Cloud provider selected but no API key is set. Use /apikey <key> or switch to /provider local."
            )
        if not self.model:
            raise ConfigurationError("Cloud model name is not set. Use /model cloud <name>.")

        # Automatic retries are disabled: every failure is reported once.
        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=_make_timeout(self.timeout_seconds),
            max_retries=0,
            http_client=self._http_client,
        )

    async def ask(self, prompt: str) -> str:
        client = self._make_client()

        logger.info("LLM(cloud): model=%s prompt_chars=%d", self.model, len(prompt))
        t0 = time.monotonic()

        try:
            async with client:
                completion = await client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
        except openai.APITimeoutError as e:
            raise NetworkError(f"Cloud API timed out after {self.timeout_seconds:.0f}s.") from e
        except openai.APIConnectionError as e:
            raise NetworkError(f"Cannot reach cloud API at {self.base_url}.") from e
        except openai.AuthenticationError as e:
            raise NetworkError("Cloud API rejected the API key (HTTP 401). Check /apikey.") from e
        except openai.RateLimitError as e:
            raise NetworkError("Cloud API is rate-limited (HTTP 429). Try again later.") from e
        except openai.APIStatusError as e:
            raise NetworkError(f"Cloud API returned HTTP {e.status_code}.") from e
        except openai.APIError as e:
            raise NetworkError(f"Cloud API error: {e}") from e
        except httpx.InvalidURL as e:
            raise NetworkError(f"Invalid cloud API URL: {self.base_url!r}.") from e

        choices = getattr(completion, "choices", None)
        if not choices:
            raise NetworkError("Cloud API response has no choices.")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)

        if not isinstance(content, str) or not content.strip():
            raise NetworkError(f"Cloud model returned no content: {self.model}")

        logger.info("LLM(cloud): answered in %.2fs", time.monotonic() - t0)
        return content.strip()


def build_provider(prefs: AssistantPreferences, settings: Any) -> InferenceProvider:
    """Pick the provider variant from the current preferences (called per question)."""
    timeout_s = float(getattr(settings, "assistant_timeout_seconds", 30.0))
    temperature = float(getattr(settings, "assistant_temperature", 0.3))
    max_tokens = int(getattr(settings, "assistant_max_tokens", 1000))

    if prefs.provider == "cloud":
        return CloudInferenceClient(
            api_key=prefs.api_key,
            model=prefs.cloud_model,
            base_url=str(getattr(settings, "cloud_base_url", DEFAULT_CLOUD_BASE_URL)),
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=timeout_s,
        )

    return LocalInferenceClient(
        model=prefs.local_model,
        base_url=str(getattr(settings, "ollama_base_url", DEFAULT_LOCAL_BASE_URL)),
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_seconds=timeout_s,
    )
