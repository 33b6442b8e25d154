"""
DWM Platform
LLM Gateway.

Provider-agnostic LLM router with:
    - Multi-provider support (Anthropic Claude, OpenAI, Gemini, local stub)
    - Auto-retry with exponential backoff
    - Typed provider errors (rate limit 429, usage limit 402, other)
    - Token and latency logging

Usage:
    from dwm.ai.gateway import LLMGateway
    gw = LLMGateway()
    result = gw.chat([{"role": "user", "content": "Summarize this SOP"}])
"""

import json
import logging
import os
import re
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


# ── Errors ────────────────────────────────────────────────────────────────────

class AIServiceError(RuntimeError):
    """An AI provider call failed. status_code carries the HTTP status to surface."""

    status_code = 500

    def __init__(self, message: str = "AI analysis failed", *, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class RateLimitError(AIServiceError):
    """Provider throttled the request (HTTP 429). Retried with backoff."""

    status_code = 429


class UsageLimitError(AIServiceError):
    """Provider quota or credits exhausted (HTTP 402). Never retried."""

    status_code = 402


def classify_provider_error(exc: Exception, provider: str) -> AIServiceError:
    """Map an SDK exception onto the typed error hierarchy by its HTTP status.

    anthropic / openai expose ``status_code``; google-genai exposes ``code``.
    Quota exhaustion reported as RESOURCE_EXHAUSTED with a billing message is
    treated as a usage limit.
    """
    if isinstance(exc, AIServiceError):
        return exc
    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    message = str(exc)
    if status == 402 or re.search(r"insufficient[_ ]quota|credit balance|billing", message, re.IGNORECASE):
        return UsageLimitError(message, provider=provider)
    if status == 429:
        return RateLimitError(message, provider=provider)
    return AIServiceError(message, provider=provider)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens, etc.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── Anthropic Provider ────────────────────────────────────────────────────────

class AnthropicProvider(LLMProvider):
    """Claude API (Anthropic) provider."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else os.getenv("ANTHROPIC_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = "claude-3-5-haiku-20241022", **kwargs) -> dict:
        client = self._get_client()

        system_msg = ""
        chat_messages = []
        for m in messages:
            if m["role"] == "system":
                system_msg = m["content"]
            else:
                chat_messages.append(m)

        params = {
            "model": model,
            "messages": chat_messages,
            "max_tokens": kwargs.get("max_tokens", 4096),
            "temperature": kwargs.get("temperature", 0.3),
        }
        if system_msg:
            params["system"] = system_msg

        response = client.messages.create(**params)

        return {
            "content": response.content[0].text,
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": model,
        }


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """OpenAI GPT provider."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            import openai
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 4096),
            temperature=kwargs.get("temperature", 0.3),
        )
        choice = response.choices[0]
        return {
            "content": choice.message.content or "",
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "model": model,
        }


# ── Google Gemini Provider ────────────────────────────────────────────────────

class GeminiProvider(LLMProvider):
    """
    Google Gemini API provider (AI Studio).

    Models:
        - gemini-2.5-flash  (default, fast document analysis)
        - gemini-2.5-pro    (longer documents)

    Environment:
        GEMINI_API_KEY
    """

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = "gemini-2.5-flash", **kwargs) -> dict:
        client = self._get_client()
        from google.genai import types

        system_parts = []
        contents = []
        for m in messages:
            if m["role"] == "system":
                system_parts.append(m["content"])
            else:
                role = "model" if m["role"] == "assistant" else "user"
                contents.append(
                    types.Content(role=role, parts=[types.Part(text=m["content"])])
                )

        config = types.GenerateContentConfig(
            temperature=kwargs.get("temperature", 0.3),
            max_output_tokens=kwargs.get("max_tokens", 4096),
        )
        if system_parts:
            config.system_instruction = "\n\n".join(system_parts)

        response = client.models.generate_content(model=model, contents=contents, config=config)

        prompt_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
        completion_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0

        return {
            "content": response.text or "",
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "model": model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

_STEP_LINE_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s+(.*\S)\s*$")


class LocalStubProvider(LLMProvider):
    """
    Local stub that returns deterministic responses for dev/testing.
    No API key required.

    Reads the document out of the last user message: numbered or bulleted
    lines become steps. A system prompt asking for JSON gets a
    ``{"steps": [...]}`` object; anything else gets a markdown analysis.
    """

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        system_msg = " ".join(m["content"] for m in messages if m["role"] == "system")
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        lines = self._document_lines(user_msg)
        if '"steps"' in system_msg:
            content = json.dumps({"steps": [self._stub_step(line) for line in lines]})
        else:
            content = self._stub_analysis(lines)

        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _document_lines(user_msg: str) -> list[str]:
        _, _, body = user_msg.partition("\n\n")
        steps = []
        for raw in body.splitlines():
            match = _STEP_LINE_RE.match(raw)
            if match:
                steps.append(match.group(1))
        return steps

    @staticmethod
    def _stub_step(line: str) -> dict:
        lower = line.lower()
        return {
            "instruction": line,
            "requirePhoto": "photo" in lower,
            "requireEvidenceFile": any(k in lower for k in ("record", "log", "document", "certificate")),
        }

    @staticmethod
    def _stub_analysis(lines: list[str]) -> str:
        numbered = "\n".join(f"{i}. {line}" for i, line in enumerate(lines, 1)) or "_No discrete steps found._"
        risk = "High" if len(lines) > 8 else "Medium" if lines else "Low"
        return (
            "## Summary\n"
            f"The document describes a procedure with {len(lines)} identifiable step(s).\n\n"
            "## Extracted Steps\n"
            f"{numbered}\n\n"
            "## Compliance Flags\n"
            "- Responsibilities per step are not stated.\n\n"
            "## Recommendations\n"
            "- Add evidence requirements to steps that change equipment state.\n\n"
            "## Risk Level\n"
            f"{risk}\n"
        )


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Features:
        - Provider routing based on model name
        - Auto-retry with exponential backoff (usage-limit errors fail fast)
        - Typed errors: RateLimitError, UsageLimitError, AIServiceError

    Usage:
        gw = LLMGateway()
        result = gw.chat(
            messages=[{"role": "user", "content": "Analyze..."}],
            purpose="sop_analysis",
        )
    """

    # Model → provider mapping
    PROVIDER_MAP = {
        # Anthropic
        "claude-3-5-haiku-20241022": "anthropic",
        "claude-3-5-sonnet-20241022": "anthropic",
        # OpenAI
        "gpt-4o-mini": "openai",
        "gpt-4o": "openai",
        # Google Gemini
        "gemini-2.5-flash": "gemini",
        "gemini-2.5-pro": "gemini",
        "gemini-2.0-flash": "gemini",
        # Local stub (dev/test)
        "local-stub": "local",
    }

    DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "gemini-2.5-flash")

    def __init__(self, app=None, *, backoff_base: float = 1.0):
        self._providers = {}
        self._app = app
        self.backoff_base = backoff_base
        if app is not None:
            self.DEFAULT_CHAT_MODEL = app.config.get("LLM_DEFAULT_CHAT_MODEL", self.DEFAULT_CHAT_MODEL)
        self._init_providers()

    def _api_key(self, name: str) -> str:
        """App config wins over the environment when the gateway is bound to an app."""
        if self._app is not None and name in self._app.config:
            return self._app.config.get(name) or ""
        return os.getenv(name, "")

    def _init_providers(self):
        """Initialize available providers based on configured API keys."""
        self._providers["local"] = LocalStubProvider()

        gemini_key = self._api_key("GEMINI_API_KEY")
        if gemini_key:
            self._providers["gemini"] = GeminiProvider(gemini_key)
        anthropic_key = self._api_key("ANTHROPIC_API_KEY")
        if anthropic_key:
            self._providers["anthropic"] = AnthropicProvider(anthropic_key)
        openai_key = self._api_key("OPENAI_API_KEY")
        if openai_key:
            self._providers["openai"] = OpenAIProvider(openai_key)

    def _get_provider(self, model: str) -> tuple[LLMProvider, str]:
        """
        Resolve model to provider. Falls back to local stub if real provider unavailable.
        Returns (provider, provider_name).
        """
        provider_name = self.PROVIDER_MAP.get(model, "local")

        if provider_name in self._providers:
            return self._providers[provider_name], provider_name

        logger.warning(
            "Provider '%s' not available (no API key?). Falling back to local stub for model '%s'.",
            provider_name, model,
        )
        return self._providers["local"], "local"

    def chat(
        self,
        messages: list,
        model: str | None = None,
        *,
        purpose: str = "",
        max_retries: int = 3,
        **kwargs,
    ) -> dict:
        """
        Send a chat completion request with retry.

        Args:
            messages: Chat messages.
            model: Model identifier (defaults to DEFAULT_CHAT_MODEL).
            purpose: What the call is for (e.g. "sop_analysis"), for logs.
            max_retries: Attempts before giving up. UsageLimitError is raised
                on the first occurrence.
            **kwargs: temperature, max_tokens passed to provider.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, latency_ms, provider}

        Raises:
            UsageLimitError: Provider reported exhausted credits (402).
            RateLimitError: Still throttled after the last retry (429).
            AIServiceError: Any other provider failure.
        """
        if model is None:
            model = self.DEFAULT_CHAT_MODEL

        provider, provider_name = self._get_provider(model)
        last_error: AIServiceError | None = None

        max_retries = max(max_retries, 1)
        for attempt in range(1, max_retries + 1):
            start_time = time.time()
            try:
                result = provider.chat(messages, model, **kwargs)
            except Exception as e:
                last_error = classify_provider_error(e, provider_name)
                logger.warning(
                    "LLM call attempt %d/%d failed (%s): %s",
                    attempt, max_retries, type(last_error).__name__, e,
                )
                if isinstance(last_error, UsageLimitError):
                    break
                if attempt < max_retries and self.backoff_base > 0:
                    time.sleep(min(self.backoff_base * 2 ** (attempt - 1), 4))
                continue

            latency_ms = int((time.time() - start_time) * 1000)
            result["latency_ms"] = latency_ms
            result["provider"] = provider_name
            logger.info(
                "LLM call ok provider=%s model=%s purpose=%s tokens=%d latency_ms=%d",
                provider_name, result.get("model", model), purpose,
                result.get("prompt_tokens", 0) + result.get("completion_tokens", 0),
                latency_ms,
            )
            return result

        logger.error(
            "LLM call failed provider=%s model=%s purpose=%s: %s",
            provider_name, model, purpose, last_error,
        )
        raise last_error
