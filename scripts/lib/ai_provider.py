"""
Financeiro — Unified AI Provider
==================================

Thin abstraction over the Groq and Claude chat APIs.
The backend comes from FINANCE_AI_PROVIDER (then AI_PROVIDER, then groq);
the model can be pinned per backend with GROQ_MODEL / CLAUDE_MODEL.

Usage:
    from scripts.lib.ai_provider import ai_complete
    response = await ai_complete(
        task="financeiro_insights",
        system_prompt="You are a financial analyst...",
        user_prompt=conversion_data.model_dump_json(),
        json_mode=True,
    )
    print(response.content)
"""
from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from scripts.lib.errors import APIError, APITimeoutError, ConfigError
from scripts.lib.logger import setup_logger

logger = setup_logger("ai_provider")


@dataclass
class AIResponse:
    """What any backend hands back."""
    content: str
    provider: str          # "groq" | "claude"
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: int


DEFAULT_MODELS = {
    "groq": "llama-3.3-70b-versatile",
    "claude": "claude-sonnet-4-5-20250929",
}
API_KEY_VARS = {
    "groq": "GROQ_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.3
DEFAULT_TIMEOUT = 30.0


def resolve_provider(provider: str | None = None) -> str:
    """Backend name from the argument, then the environment."""
    chosen = provider or os.getenv("FINANCE_AI_PROVIDER") or os.getenv("AI_PROVIDER") or "groq"
    return chosen.lower()


def _model_for(provider: str, model: str | None) -> str:
    return model or os.getenv(f"{provider.upper()}_MODEL") or DEFAULT_MODELS[provider]


def _api_key(provider: str) -> str:
    var = API_KEY_VARS[provider]
    key = os.getenv(var)
    if not key:
        raise ConfigError(f"{var} not set", setting=var)
    return key


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


# ─── Backends ───────────────────────────────────────────────

async def _call_groq(system_prompt: str, user_prompt: str, *, model: str,
                     max_tokens: int, temperature: float, json_mode: bool) -> AIResponse:
    from groq import AsyncGroq

    client = AsyncGroq(api_key=_api_key("groq"))
    request = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if json_mode:
        request["response_format"] = {"type": "json_object"}

    started = time.perf_counter()
    reply = await client.chat.completions.create(**request)
    usage = reply.usage
    return AIResponse(
        content=reply.choices[0].message.content or "",
        provider="groq",
        model=model,
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        latency_ms=_elapsed_ms(started),
    )


async def _call_claude(system_prompt: str, user_prompt: str, *, model: str,
                       max_tokens: int, temperature: float, json_mode: bool) -> AIResponse:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=_api_key("claude"))
    if json_mode:
        # No native JSON mode; ask for it in the system prompt instead
        system_prompt = f"{system_prompt}\n\nRespond with a single JSON document and nothing else."

    started = time.perf_counter()
    reply = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    text = "".join(getattr(block, "text", "") for block in reply.content)
    return AIResponse(
        content=text,
        provider="claude",
        model=model,
        input_tokens=reply.usage.input_tokens,
        output_tokens=reply.usage.output_tokens,
        latency_ms=_elapsed_ms(started),
    )


BACKENDS: Dict[str, Callable[..., Awaitable[AIResponse]]] = {
    "groq": _call_groq,
    "claude": _call_claude,
}


# ─── Core Completion ────────────────────────────────────────

async def ai_complete(
    task: str,
    system_prompt: str,
    user_prompt: str,
    *,
    provider: str | None = None,
    model: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    temperature: float = DEFAULT_TEMPERATURE,
    timeout: float = DEFAULT_TIMEOUT,
    json_mode: bool = False,
) -> AIResponse:
    """
    Run one completion against the configured backend.

    Args:
        task: What this call is for (logged only).
        system_prompt: System-level instructions.
        user_prompt: The user-facing prompt content.
        provider: Force a backend ("groq" or "claude").
        model: Force a model; otherwise <PROVIDER>_MODEL or the default.
        max_tokens: Max output tokens.
        temperature: Sampling temperature.
        timeout: Seconds before the call is abandoned.
        json_mode: Ask the backend for a JSON document.

    Returns:
        AIResponse with content and token usage.

    Raises:
        ConfigError: Unknown backend or missing API key.
        APITimeoutError: No answer within ``timeout``.
        APIError: Any other backend failure.
    """
    name = resolve_provider(provider)
    backend = BACKENDS.get(name)
    if backend is None:
        raise ConfigError(f"Unknown AI provider: {name}", setting="FINANCE_AI_PROVIDER")

    call = backend(
        system_prompt, user_prompt,
        model=_model_for(name, model),
        max_tokens=max_tokens,
        temperature=temperature,
        json_mode=json_mode,
    )
    try:
        response = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        raise APITimeoutError(name, timeout)
    except (ConfigError, APIError):
        raise
    except Exception as e:
        raise APIError(f"{name} completion failed: {e}", provider=name)

    logger.info(
        "AI [%s/%s] task=%s tokens=%d+%d latency=%dms",
        response.provider, response.model, task,
        response.input_tokens, response.output_tokens, response.latency_ms,
    )
    return response
