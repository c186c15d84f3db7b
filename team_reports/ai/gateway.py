"""
Team Diagnostics Report Service
LLM Gateway.

Provider-agnostic LLM router with:
    - Multi-provider support (OpenAI, Anthropic Claude, local stub)
    - Token tracking & cost logging (AIUsageLog)
    - Request timeout per provider client
    - Single attempt per call: failures surface as GenerationFailedError

Usage:
    from team_reports.ai.gateway import LLMGateway
    gw = LLMGateway()
    result = gw.complete(prompt, purpose="team_report", team_id="team-42")
"""

import logging
import os
import re
import time
from abc import ABC, abstractmethod

from team_reports.core.exceptions import GenerationFailedError
from team_reports.models import db
from team_reports.models.ai import AIUsageLog, calculate_cost

logger = logging.getLogger(__name__)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    def __init__(self, timeout: float | None = None):
        super().__init__(timeout)
        self.api_key = os.getenv("OPENAI_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise RuntimeError("openai package not installed. Run: pip install openai")
            # Retries are disabled at the client level; one attempt per report.
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 4096),
            temperature=kwargs.get("temperature", 0.4),
        )
        choice = response.choices[0]
        usage = response.usage
        return {
            "content": choice.message.content or "",
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "model": model,
        }


# ── Anthropic Provider ────────────────────────────────────────────────────────

class AnthropicProvider(LLMProvider):
    """Claude API (Anthropic) provider."""

    def __init__(self, timeout: float | None = None):
        super().__init__(timeout)
        self.api_key = os.getenv("ANTHROPIC_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise RuntimeError("anthropic package not installed. Run: pip install anthropic")
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def chat(self, messages: list, model: str = "claude-3-5-haiku-20241022", **kwargs) -> dict:
        client = self._get_client()

        # Separate system message
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
            "temperature": kwargs.get("temperature", 0.4),
        }
        if system_msg:
            params["system"] = system_msg

        response = client.messages.create(**params)

        return {
            "content": "".join(getattr(block, "text", "") for block in response.content),
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

_MANIFEST_LINE_RE = re.compile(r"^(?P<n>\d+)\. (?P<title>.+) \(id: (?P<id>[^)]+)\)$", re.MULTILINE)
_TEAM_NAME_RE = re.compile(r"^Team name: (?P<name>.*)$", re.MULTILINE)


class LocalStubProvider(LLMProvider):
    """
    Local stub that returns a deterministic Markdown report for dev/testing.
    No API key required.

    The stub reads the manifest back out of the prompt and emits one
    "### MODULE n: TITLE" section per entry, so the end-to-end flow (order,
    numbering, persistence) can be exercised without a real model.
    """

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        content = self._generate_stub_report(user_msg)

        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _generate_stub_report(prompt: str) -> str:
        team_match = _TEAM_NAME_RE.search(prompt)
        team_name = team_match.group("name").strip() if team_match else "Team"

        # The manifest is the last numbered "(id: ...)" list in the prompt.
        entries = {}
        for match in _MANIFEST_LINE_RE.finditer(prompt):
            entries[int(match.group("n"))] = match.group("title")

        parts = [f"# Team Report: {team_name}", ""]
        for n in sorted(entries):
            title = entries[n]
            parts.extend([
                f"### MODULE {n}: {title.upper()}",
                "",
                f"_Draft content for {title}, generated offline from aggregated team data._",
                "",
                "---",
                "",
            ])
        return "\n".join(parts).rstrip() + "\n"


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Features:
        - Provider routing based on model name
        - Token/cost tracking (persisted to DB)
        - One attempt per call, no fallback chain

    Usage:
        gw = LLMGateway(app=flask_app)
        result = gw.complete(prompt, purpose="team_report", team_id="team-42")
    """

    # Model → provider mapping
    PROVIDER_MAP = {
        # OpenAI
        "gpt-4o-mini": "openai",
        "gpt-4o": "openai",
        "gpt-4.1-mini": "openai",
        # Anthropic
        "claude-3-5-haiku-20241022": "anthropic",
        "claude-3-5-sonnet-20241022": "anthropic",
        # Local stub (dev/test)
        "local-stub": "local",
    }

    DEFAULT_CHAT_MODEL = os.getenv("LLM_DEFAULT_CHAT_MODEL", "gpt-4o-mini")

    def __init__(self, app=None):
        self._providers = {}
        self._app = app
        config = app.config if app is not None else {}
        self.default_model = config.get("LLM_DEFAULT_CHAT_MODEL") or self.DEFAULT_CHAT_MODEL
        self.timeout = float(config.get("LLM_TIMEOUT_SECONDS", 120))
        self.max_tokens = int(config.get("LLM_MAX_TOKENS", 4096))
        self.temperature = float(config.get("LLM_TEMPERATURE", 0.4))
        self.stub_fallback = bool(config.get("LLM_STUB_FALLBACK", False))
        self._init_providers()

    def _init_providers(self):
        """Initialize available providers based on environment."""
        # Always register local stub
        self._providers["local"] = LocalStubProvider()

        # Register real providers if API keys present
        if os.getenv("OPENAI_API_KEY"):
            self._providers["openai"] = OpenAIProvider(timeout=self.timeout)
        if os.getenv("ANTHROPIC_API_KEY"):
            self._providers["anthropic"] = AnthropicProvider(timeout=self.timeout)

    @property
    def available_providers(self) -> list[str]:
        return sorted(self._providers)

    def _get_provider(self, model: str) -> tuple[LLMProvider, str]:
        """
        Resolve model to provider. Returns (provider, provider_name).

        The local stub is used when it is asked for by name. A model whose
        provider has no API key, or that is not in PROVIDER_MAP, only falls
        back to the stub when ``stub_fallback`` is on (development).

        Raises:
            GenerationFailedError: Provider not configured and no fallback.
        """
        provider_name = self.PROVIDER_MAP.get(model)

        if provider_name in self._providers:
            return self._providers[provider_name], provider_name

        reason = (f"provider '{provider_name}' not configured" if provider_name
                  else f"no provider for model '{model}'")
        if not self.stub_fallback:
            logger.error("LLM call refused model=%s: %s", model, reason)
            raise GenerationFailedError(upstream=reason)

        logger.warning("%s. Falling back to local stub for model '%s'.", reason, model)
        return self._providers["local"], "local"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        purpose: str = "",
        team_id: str | None = None,
    ) -> dict:
        """
        Send one prompt as a single user message.

        Args:
            prompt: Fully compiled prompt text.
            model: Model identifier (defaults to the configured chat model).
            purpose: What the call is for (e.g. "team_report").
            team_id: Team the call is made for; recorded on the usage log.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, cost_usd,
                   latency_ms, provider}

        Raises:
            GenerationFailedError: The provider raised or returned no content.
                ``details`` carries the upstream error message.
        """
        model = model or self.default_model
        provider, provider_name = self._get_provider(model)
        messages = [{"role": "user", "content": prompt}]

        start_time = time.time()
        try:
            result = provider.chat(
                messages, model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.warning(
                "LLM call failed provider=%s model=%s latency_ms=%d: %s",
                provider_name, model, latency_ms, e,
            )
            self._log_usage(
                provider=provider_name, model=model,
                prompt_tokens=0, completion_tokens=0,
                cost_usd=0.0, latency_ms=latency_ms,
                purpose=purpose, team_id=team_id,
                success=False, error_message=str(e),
            )
            raise GenerationFailedError(upstream=str(e)) from e

        latency_ms = int((time.time() - start_time) * 1000)
        if not result.get("content"):
            self._log_usage(
                provider=provider_name, model=model,
                prompt_tokens=result.get("prompt_tokens", 0),
                completion_tokens=result.get("completion_tokens", 0),
                cost_usd=0.0, latency_ms=latency_ms,
                purpose=purpose, team_id=team_id,
                success=False, error_message="empty completion",
            )
            raise GenerationFailedError(upstream="LLM returned an empty completion")

        used_model = result.get("model") or model
        cost = calculate_cost(used_model, result["prompt_tokens"], result["completion_tokens"])
        result["cost_usd"] = cost
        result["latency_ms"] = latency_ms
        result["provider"] = provider_name

        logger.info(
            "LLM call ok provider=%s model=%s tokens=%d latency_ms=%d",
            provider_name, used_model,
            result["prompt_tokens"] + result["completion_tokens"], latency_ms,
        )
        self._log_usage(
            provider=provider_name, model=used_model,
            prompt_tokens=result["prompt_tokens"],
            completion_tokens=result["completion_tokens"],
            cost_usd=cost, latency_ms=latency_ms,
            purpose=purpose, team_id=team_id,
            success=True,
        )
        return result

    # ── Internal Logging ──────────────────────────────────────────────────

    @staticmethod
    def _log_usage(*, provider, model, prompt_tokens, completion_tokens,
                   cost_usd, latency_ms, purpose, team_id,
                   success, error_message=None):
        """Persist a usage log record with flush so the caller's transaction stays open."""
        try:
            log = AIUsageLog(
                provider=provider, model=model,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
                cost_usd=cost_usd, latency_ms=latency_ms,
                purpose=purpose, team_id=team_id,
                success=success, error_message=error_message,
            )
            db.session.add(log)
            db.session.flush()
        except Exception as e:
            logger.error("Failed to log AI usage: %s", e)
            db.session.rollback()
