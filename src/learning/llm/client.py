"""LLM client for LM Studio / Cloud providers.

Provides a unified interface for chat completions and embeddings,
compatible with the LM Studio local server and cloud providers that
expose an OpenAI-compatible API.

Supported providers:
- lmstudio: Local LM Studio server
- openai: OpenAI API
- anthropic: Anthropic API (via OpenAI-compatible endpoint)
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from openai import OpenAI

from learning.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Provider = Literal["lmstudio", "openai", "anthropic"]

# Providers that accept response_format={"type": "json_object"}
JSON_OBJECT_PROVIDERS: frozenset[str] = frozenset({"openai"})

JSON_REPAIR_PROMPT = """Fix the following text and return ONLY valid JSON:
<<<
{invalid_output}
>>>

Reply with the corrected JSON only, no explanations and no markdown."""

# Some models emit <think>...</think> blocks that break JSON extraction
SANITIZE_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]


def _sanitize_for_json(text: str) -> str:
    """Remove thinking/reasoning tags before JSON parsing."""
    result = text
    for pattern in SANITIZE_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: Provider = "lmstudio"
    base_url: str = "http://localhost:1234/v1"
    model: str = "default"
    embedding_model: str = "text-embedding-3-small"
    temperature: float = 0.3
    max_tokens: int = 2048
    timeout: int = 120
    api_key: str | None = None
    supports_json_object: bool | None = None

    @classmethod
    def from_app_config(cls, provider: str | None = None) -> LLMConfig:
        """Build configuration from the application config.

        Args:
            provider: Provider name; defaults to tutor.default_provider.
        """
        app_config = load_app_config()
        provider = provider or app_config.tutor.default_provider
        pconfig = app_config.providers.get(provider)

        if pconfig is None:
            logger.warning("provider_not_configured", provider=provider)
            return cls()

        api_key = pconfig.get_api_key()
        if api_key is None and provider == "lmstudio":
            api_key = "lm-studio"

        return cls(
            provider=provider,  # type: ignore[arg-type]
            base_url=pconfig.base_url or "",
            model=pconfig.default_model,
            embedding_model=pconfig.embedding_model,
            api_key=api_key,
        )


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: Provider
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Error connecting to LLM server."""

    pass


class LLMResponseError(LLMError):
    """Error in LLM response."""

    pass


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Unified client for chat and embedding calls."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: Provider | None = None,
        model: str | None = None,
    ):
        """Initialize LLM client.

        Args:
            config: LLM configuration (built from app config if not provided)
            provider: Override provider from config
            model: Override chat model from config
        """
        if config is None:
            config = LLMConfig.from_app_config(provider)

        self.config = config
        if model is not None:
            self.config.model = model

        self._client = OpenAI(
            base_url=self.config.base_url or None,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
        )

    def _supports_json_object(self) -> bool:
        if self.config.supports_json_object is not None:
            return self.config.supports_json_object
        return self.config.provider in JSON_OBJECT_PROVIDERS

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Send chat completion request.

        Args:
            messages: List of messages in conversation
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Request JSON response format (only if provider supports it)

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMConnectionError: If cannot connect to server
            LLMResponseError: If response is empty
        """
        request_kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": self.config.max_tokens if max_tokens is None else max_tokens,
        }

        if json_mode and self._supports_json_object():
            request_kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except Exception as e:
            raise self._wrap_error(e) from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError("Empty response from LLM")

        content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=latency_ms,
        )

    def _wrap_error(self, error: Exception) -> LLMError:
        error_msg = str(error)
        if "Connection" in error_msg or "connect" in error_msg.lower():
            return LLMConnectionError(
                f"Could not connect to {self.config.provider} at {self.config.base_url}: {error}"
            )
        return LLMError(f"LLM call failed: {error}")

    def _try_parse_json(self, content: str) -> dict[str, Any] | None:
        """Try to parse a JSON object from content.

        Tries a direct parse, then a ```json fenced block, then the
        outermost {...} span. Returns None if all strategies fail.
        """
        content = _sanitize_for_json(content)

        try:
            parsed = json.loads(content)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", content)
        if json_match:
            try:
                parsed = json.loads(json_match.group(1).strip())
                if isinstance(parsed, dict):
                    return parsed
            except json.JSONDecodeError:
                pass

        start = content.find("{")
        end = content.rfind("}") + 1
        if start >= 0 and end > start:
            try:
                parsed = json.loads(content[start:end])
                if isinstance(parsed, dict):
                    return parsed
            except json.JSONDecodeError:
                pass

        return None

    def chat_json(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
    ) -> dict[str, Any]:
        """Send chat request expecting a JSON object back.

        On a parse failure the invalid output is sent back with a repair
        prompt, up to ``max_retries`` times.

        Raises:
            LLMResponseError: If response is not valid JSON after retries
        """
        response = self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )

        parsed = self._try_parse_json(response.content)
        if parsed is not None:
            return parsed

        last_content = response.content
        for _ in range(max_retries):
            logger.warning(
                "json_parse_failed_retrying",
                content=last_content[:100],
                provider=self.config.provider,
            )
            repair_prompt = JSON_REPAIR_PROMPT.format(invalid_output=last_content[:1000])
            retry_response = self.chat(
                messages + [Message(role="user", content=repair_prompt)],
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
            )
            parsed = self._try_parse_json(retry_response.content)
            if parsed is not None:
                logger.info("json_parse_recovered_after_retry")
                return parsed
            last_content = retry_response.content

        raise LLMResponseError(f"Could not obtain valid JSON: {response.content[:200]}...")

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Single-turn chat with system prompt and user message."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.chat(messages, temperature=temperature, max_tokens=max_tokens).content

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
    ) -> dict[str, Any]:
        """Single-turn chat expecting a JSON object."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.chat_json(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            max_retries=max_retries,
        )

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts with the configured embedding model.

        Returns:
            One vector per input text, in input order.

        Raises:
            LLMConnectionError: If cannot connect to server
            LLMResponseError: If the vector count does not match the inputs
        """
        if not texts:
            return []

        try:
            response = self._client.embeddings.create(
                model=self.config.embedding_model,
                input=texts,
            )
        except Exception as e:
            raise self._wrap_error(e) from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise LLMResponseError(
                f"Expected {len(texts)} embeddings, got {len(data)}"
            )

        return [list(item.embedding) for item in data]

    def is_available(self) -> bool:
        """Check if LLM server is available."""
        try:
            self._client.models.list()
            return True
        except Exception:
            return False
