"""Tests for ouroboros/llm/client.py and ouroboros/llm/providers.py."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ouroboros.exceptions import (
    ConfigurationError, MissingCredentialError, MissingModelError, ProviderError,
)
from ouroboros.llm.client import ProviderRouter, is_retryable, with_retry
from ouroboros.llm.providers import GoogleAdapter, OllamaAdapter, is_local_model
from ouroboros.settings import AppSettings
from ouroboros.types import Provider

from tests.helpers import rate_limited

ACOMPLETION = "ouroboros.llm.providers.litellm.acompletion"


# ── Helpers ──────────────────────────────────────────────────────────────────

class ApiStatusError(Exception):
    """Shaped like litellm's exceptions: ``message`` plus ``status_code``."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _reply(text) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _acompletion(*results) -> AsyncMock:
    """Stand-in for ``litellm.acompletion`` replaying *results*; the last one repeats."""
    queue = list(results)

    async def fake(**kwargs):
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    return AsyncMock(side_effect=fake)


# ── Classification ───────────────────────────────────────────────────────────

class TestIsRetryable:

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_transient_statuses(self, status):
        assert is_retryable(ProviderError("x", status_code=status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_fatal_statuses(self, status):
        assert not is_retryable(ProviderError("bad request", status_code=status))

    def test_quota_marker_in_code(self):
        assert is_retryable(ProviderError("limit", code="RESOURCE_EXHAUSTED"))

    def test_quota_marker_in_message(self):
        assert is_retryable(ProviderError("You exceeded your current quota"))

    def test_non_provider_errors_are_not_retryable(self):
        assert not is_retryable(ValueError("429"))


# ── Retry policy ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestWithRetry:

    async def test_success_first_try(self):
        op = AsyncMock(return_value="ok")
        assert await with_retry(op, retries=3, base_delay=0, max_jitter=0) == "ok"
        assert op.await_count == 1

    async def test_recovers_after_transient_errors(self):
        op = AsyncMock(side_effect=[rate_limited(), rate_limited(), "ok"])
        assert await with_retry(op, retries=3, base_delay=0, max_jitter=0) == "ok"
        assert op.await_count == 3

    async def test_exhausted_retries_propagate_last_error(self):
        errors = [ProviderError(f"busy {i}", status_code=503) for i in range(4)]
        op = AsyncMock(side_effect=errors)
        with pytest.raises(ProviderError, match="busy 3"):
            await with_retry(op, retries=3, base_delay=0, max_jitter=0)
        assert op.await_count == 4

    async def test_non_retryable_propagates_immediately(self):
        op = AsyncMock(side_effect=ProviderError("invalid key", status_code=401))
        with pytest.raises(ProviderError, match="invalid key"):
            await with_retry(op, retries=3, base_delay=0, max_jitter=0)
        assert op.await_count == 1

    async def test_backoff_is_exponential_plus_jitter(self):
        op = AsyncMock(side_effect=[rate_limited()] * 3 + ["ok"])
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        with patch("ouroboros.llm.client.asyncio.sleep", fake_sleep), \
                patch("ouroboros.llm.client.random.uniform", return_value=0.5):
            await with_retry(op, retries=3, base_delay=1.0, max_jitter=1.0)
        assert sleeps == [1.5, 2.5, 4.5]

    async def test_retry_logs_warning(self, caplog):
        op = AsyncMock(side_effect=[rate_limited(), "ok"])
        with caplog.at_level("WARNING", logger="ouroboros.llm.client"):
            await with_retry(op, retries=3, base_delay=0, max_jitter=0)
        assert any("Retrying" in r.getMessage() for r in caplog.records)


# ── Credential resolution ────────────────────────────────────────────────────

class TestResolveCredentials:

    def test_configured_google(self, config, settings):
        provider, key, model = ProviderRouter(config=config).resolve_credentials(settings)
        assert provider == Provider.GOOGLE
        assert key == "test-google-key"
        assert model == settings.models.google

    def test_missing_key(self, config, unconfigured_settings):
        with pytest.raises(MissingCredentialError, match="Missing API Key for google"):
            ProviderRouter(config=config).resolve_credentials(unconfigured_settings)

    def test_missing_model(self, config, settings):
        no_model = settings.with_model(Provider.GOOGLE, "")
        with pytest.raises(MissingModelError, match="Missing Model selection for google"):
            ProviderRouter(config=config).resolve_credentials(no_model)

    def test_ollama_needs_no_key(self, config):
        local = AppSettings().merged({"provider": "ollama"})
        provider, key, model = ProviderRouter(config=config).resolve_credentials(local)
        assert provider == Provider.OLLAMA
        assert key == ""

    def test_unknown_provider_without_adapter(self, config, settings):
        router = ProviderRouter(config=config, adapters={Provider.OPENAI: MagicMock()})
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            router.resolve_credentials(settings)




# ── Router over litellm ──────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestRouterCalls:

    async def test_google_call_shape(self, config, settings):
        with patch(ACOMPLETION, _acompletion(_reply('{"a": 1}'))) as mock:
            text = await ProviderRouter(config=config).call_model(settings, "hi", "sys", True)
        assert text == '{"a": 1}'
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == f"gemini/{settings.models.google}"
        assert kwargs["api_key"] == "test-google-key"
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == config.llm_temperature
        assert kwargs["max_tokens"] == config.llm_max_tokens

    async def test_openai_json_mode(self, config, settings):
        openai = settings.merged({"provider": "openai", "keys": {"openai": "sk-test"}})
        with patch(ACOMPLETION, _acompletion(_reply("done"))) as mock:
            assert await ProviderRouter(config=config).call_model(openai, "hi", "sys", True) == "done"
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == f"openai/{openai.models.openai}"
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["response_format"] == {"type": "json_object"}

    async def test_anthropic_has_no_json_flag(self, config, settings):
        anthropic = settings.merged({"provider": "anthropic", "keys": {"anthropic": "ak"}})
        with patch(ACOMPLETION, _acompletion(_reply("one two"))) as mock:
            assert await ProviderRouter(config=config).call_model(anthropic, "hi", "sys", True) == "one two"
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == f"anthropic/{anthropic.models.anthropic}"
        assert kwargs["api_key"] == "ak"
        assert "response_format" not in kwargs

    async def test_retries_429_exactly_up_to_bound(self, config, settings):
        error = ApiStatusError("Resource has been exhausted", 429)
        with patch(ACOMPLETION, _acompletion(error)) as mock:
            with pytest.raises(ProviderError) as exc_info:
                await ProviderRouter(config=config).call_model(settings, "hi", "sys")
        assert mock.await_count == config.llm_max_retries + 1
        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "google"
        assert exc_info.value.code == "ApiStatusError"

    async def test_recovers_after_503(self, config, settings):
        with patch(ACOMPLETION, _acompletion(ApiStatusError("overloaded", 503), _reply("fine"))) as mock:
            assert await ProviderRouter(config=config).call_model(settings, "hi", "sys") == "fine"
        assert mock.await_count == 2

    async def test_fatal_error_has_zero_retries(self, config, settings):
        with patch(ACOMPLETION, _acompletion(ApiStatusError("API key not valid", 400))) as mock:
            with pytest.raises(ProviderError, match="google returned 400: API key not valid"):
                await ProviderRouter(config=config).call_model(settings, "hi", "sys")
        assert mock.await_count == 1

    async def test_configuration_error_before_network(self, config, unconfigured_settings):
        with patch(ACOMPLETION, _acompletion(_reply("never"))) as mock:
            with pytest.raises(MissingCredentialError):
                await ProviderRouter(config=config).call_model(unconfigured_settings, "hi", "sys")
        mock.assert_not_awaited()

    async def test_failure_without_status_becomes_provider_error(self, config, settings):
        cause = RuntimeError("connection refused")
        with patch(ACOMPLETION, _acompletion(cause)) as mock:
            with pytest.raises(ProviderError, match="call failed: connection refused") as exc_info:
                await ProviderRouter(config=config).call_model(settings, "hi", "sys")
        assert exc_info.value.status_code is None
        assert exc_info.value.__cause__ is cause
        assert mock.await_count == 1

    async def test_timeout(self, config, settings):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        quick = config.model_copy(update={"llm_timeout_seconds": 0.01})
        with patch(ACOMPLETION, AsyncMock(side_effect=slow)):
            with pytest.raises(ProviderError, match="timed out"):
                await ProviderRouter(config=quick).call_model(settings, "hi", "sys")

    @pytest.mark.parametrize("response", [
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=["text"]),
        SimpleNamespace(choices=[SimpleNamespace(message=None)]),
        {"choices": [{"message": {"content": "dict, not an object"}}]},
    ])
    async def test_unexpected_shape(self, config, settings, response):
        with patch(ACOMPLETION, _acompletion(response)):
            with pytest.raises(ProviderError, match="unexpected response shape"):
                await ProviderRouter(config=config).call_model(settings, "hi", "sys")

    async def test_empty_content_is_empty_string(self, config, settings):
        with patch(ACOMPLETION, _acompletion(_reply(None))):
            assert await ProviderRouter(config=config).call_model(settings, "hi", "sys") == ""


class TestModelNames:

    def test_prefix_added_once(self, config):
        adapter = GoogleAdapter(config)
        assert adapter.model_name("gemini-2.5-flash") == "gemini/gemini-2.5-flash"
        assert adapter.model_name("gemini/gemini-2.5-flash") == "gemini/gemini-2.5-flash"


# ── Local models ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestOllamaAdapter:

    def test_is_local_model(self):
        assert is_local_model("ollama/llama3")
        assert is_local_model("ollama_chat/qwen")
        assert not is_local_model("gpt-4o")

    async def test_prefixes_model_and_sets_api_base(self, config):
        with patch(ACOMPLETION, _acompletion(_reply("local reply"))) as mock:
            text = await OllamaAdapter(config).complete("", "qwen2.5-coder:7b", "hi", "sys", True)
        assert text == "local reply"
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "ollama/qwen2.5-coder:7b"
        assert kwargs["api_base"] == config.ollama_base_url
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "api_key" not in kwargs

    async def test_chat_prefix_kept(self, config):
        with patch(ACOMPLETION, _acompletion(_reply("ok"))) as mock:
            await OllamaAdapter(config).complete("", "ollama_chat/qwen", "hi", "sys")
        assert mock.call_args.kwargs["model"] == "ollama_chat/qwen"

    async def test_litellm_failure_wrapped(self, config):
        with patch(ACOMPLETION, _acompletion(RuntimeError("model not pulled"))):
            with pytest.raises(ProviderError, match="ollama call failed: model not pulled"):
                await OllamaAdapter(config).complete("", "ollama/x", "hi", "sys")
