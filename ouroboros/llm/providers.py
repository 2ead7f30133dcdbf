"""Backend adapters: one call contract per language-model provider.

Every backend is reached through ``litellm.acompletion``. An adapter only
knows how its provider's model ids are spelled for litellm, whether a
credential or an ``api_base`` goes with the call and whether the provider
accepts a JSON response format. Failures are raised as ``ProviderError``
carrying the HTTP status litellm reports so the router can classify them.
"""

import asyncio
import logging
from typing import Any

import litellm

from ouroboros.config import OuroborosConfig
from ouroboros.exceptions import ProviderError
from ouroboros.types import Provider

logger = logging.getLogger(__name__)


def is_local_model(model: str) -> bool:
    """Return True if the model runs locally via Ollama (no API key required)."""
    return model.startswith("ollama/") or model.startswith("ollama_chat/")


def _error_from_exception(provider: Provider, exc: Exception) -> ProviderError:
    status = getattr(exc, "status_code", None)
    status = status if isinstance(status, int) else None
    message = getattr(exc, "message", None) or str(exc)
    return ProviderError(
        f"{provider.value} returned {status}: {message}" if status else f"{provider.value} call failed: {message}",
        status_code=status,
        provider=provider.value,
        code=type(exc).__name__,
    )


class LiteLLMAdapter:
    """Shared litellm call. Subclasses set the provider and its model prefix."""

    provider: Provider
    prefix: str = ""
    json_format: bool = True

    def __init__(self, config: OuroborosConfig) -> None:
        self._config = config
        litellm.drop_params = True  # ignore unsupported params per provider

    def model_name(self, model: str) -> str:
        """litellm spelling of *model*, e.g. ``gemini/gemini-2.5-flash``."""
        return model if model.startswith(self.prefix) else f"{self.prefix}{model}"

    def build_kwargs(self, api_key: str, model: str, prompt: str, system: str, json_mode: bool) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model_name(model),
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self._config.llm_temperature,
            "max_tokens": self._config.llm_max_tokens,
        }
        if api_key:
            kwargs["api_key"] = api_key
        if json_mode and self.json_format:
            kwargs["response_format"] = {"type": "json_object"}
        return kwargs

    async def complete(self, api_key: str, model: str, prompt: str, system: str, json_mode: bool = False) -> str:
        kwargs = self.build_kwargs(api_key, model, prompt, system, json_mode)
        try:
            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs), timeout=self._config.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                f"{self.provider.value} call timed out for {kwargs['model']}", provider=self.provider.value,
            ) from exc
        except Exception as exc:
            logger.debug("litellm call to %s failed", kwargs["model"], exc_info=True)
            raise _error_from_exception(self.provider, exc) from exc

        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise ProviderError(
                f"{self.provider.value} returned an unexpected response shape",
                provider=self.provider.value,
            ) from exc


class GoogleAdapter(LiteLLMAdapter):
    provider = Provider.GOOGLE
    prefix = "gemini/"


class OpenAIAdapter(LiteLLMAdapter):
    provider = Provider.OPENAI
    prefix = "openai/"


class AnthropicAdapter(LiteLLMAdapter):
    """Messages API has no JSON flag; structured output relies on the system prompt."""

    provider = Provider.ANTHROPIC
    prefix = "anthropic/"
    json_format = False


class OllamaAdapter(LiteLLMAdapter):
    """Local models. No credential; ``api_base`` comes from config."""

    provider = Provider.OLLAMA
    prefix = "ollama/"

    def model_name(self, model: str) -> str:
        return model if is_local_model(model) else f"{self.prefix}{model}"

    def build_kwargs(self, api_key, model, prompt, system, json_mode):
        kwargs = super().build_kwargs("", model, prompt, system, json_mode)
        kwargs["api_base"] = self._config.ollama_base_url
        return kwargs


def build_adapters(config: OuroborosConfig) -> dict:
    """Provider -> adapter map."""
    return {
        Provider.GOOGLE: GoogleAdapter(config),
        Provider.OPENAI: OpenAIAdapter(config),
        Provider.ANTHROPIC: AnthropicAdapter(config),
        Provider.OLLAMA: OllamaAdapter(config),
    }
