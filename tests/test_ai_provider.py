"""Tests for the AI provider wrapper."""

import asyncio
from unittest.mock import patch

import pytest

from scripts.lib import ai_provider
from scripts.lib.ai_provider import AIResponse, ai_complete, resolve_provider
from scripts.lib.errors import APIError, APITimeoutError, ConfigError


def canned(provider="groq"):
    return AIResponse(content="{}", provider=provider, model="m",
                      input_tokens=1, output_tokens=2, latency_ms=3)


class TestResolveProvider:
    def test_explicit_argument_wins(self):
        with patch.dict("os.environ", {"FINANCE_AI_PROVIDER": "groq"}, clear=False):
            assert resolve_provider("Claude") == "claude"

    def test_finance_setting_before_global(self):
        with patch.dict("os.environ", {"FINANCE_AI_PROVIDER": "claude", "AI_PROVIDER": "groq"}, clear=False):
            assert resolve_provider() == "claude"

    def test_defaults_to_groq(self):
        with patch.dict("os.environ", {"FINANCE_AI_PROVIDER": "", "AI_PROVIDER": "groq"}, clear=False):
            assert resolve_provider() == "groq"


class TestAiComplete:
    @pytest.mark.asyncio
    async def test_routes_to_claude(self):
        async def fake_claude(*args, **kwargs):
            return canned("claude")

        with patch.dict(ai_provider.BACKENDS, {"claude": fake_claude}):
            response = await ai_complete("t", "sys", "user", provider="claude")
        assert response.provider == "claude"

    @pytest.mark.asyncio
    async def test_missing_key_raises_config_error(self):
        with patch.dict("os.environ", {"GROQ_API_KEY": ""}, clear=False):
            with pytest.raises(ConfigError):
                await ai_complete("t", "sys", "user", provider="groq")

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return canned()

        with patch.dict(ai_provider.BACKENDS, {"groq": slow}):
            with pytest.raises(APITimeoutError):
                await ai_complete("t", "sys", "user", provider="groq", timeout=0.01)

    @pytest.mark.asyncio
    async def test_provider_failure_wrapped(self):
        async def broken(*args, **kwargs):
            raise RuntimeError("502 Bad Gateway")

        with patch.dict(ai_provider.BACKENDS, {"groq": broken}):
            with pytest.raises(APIError) as exc:
                await ai_complete("t", "sys", "user", provider="groq")
        assert exc.value.provider == "groq"

    @pytest.mark.asyncio
    async def test_unknown_provider(self):
        with pytest.raises(ConfigError):
            await ai_complete("t", "sys", "user", provider="llama-local")

    @pytest.mark.asyncio
    async def test_model_override_from_env(self):
        seen = {}

        async def capture(system_prompt, user_prompt, **kwargs):
            seen.update(kwargs)
            return canned()

        with patch.dict("os.environ", {"GROQ_MODEL": "llama-small"}, clear=False):
            with patch.dict(ai_provider.BACKENDS, {"groq": capture}):
                await ai_complete("t", "sys", "user", provider="groq")
        assert seen["model"] == "llama-small"
