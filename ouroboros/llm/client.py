"""Provider router: one call interface over every configured backend.

The active backend, its credential and its model id all come from the
``AppSettings`` snapshot passed in. Rate-limit and transient server failures
are retried with exponential backoff plus jitter; everything else propagates
on the first failure.

Usage:
    router = ProviderRouter()
    text = await router.call_model(settings, prompt, system, wants_structured_output=True)
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from ouroboros.config import OuroborosConfig
from ouroboros.config import config as _default_config
from ouroboros.exceptions import (
    ConfigurationError, MissingCredentialError, MissingModelError, ProviderError,
)
from ouroboros.llm.providers import build_adapters
from ouroboros.settings import AppSettings
from ouroboros.types import Provider

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = {429, 500, 503}
_QUOTA_MARKERS = ("RESOURCE_EXHAUSTED", "quota", "429")


def is_retryable(error: BaseException) -> bool:
    """Rate limits (429 / quota exhausted) and transient 500/503 are retryable."""
    if not isinstance(error, ProviderError):
        return False
    if error.status_code in RETRYABLE_STATUS:
        return True
    code = error.code or ""
    message = str(error)
    return any(marker in code or marker in message for marker in _QUOTA_MARKERS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    base_delay: float = 1.0,
    max_jitter: float = 1.0,
) -> T:
    """Run *operation*, retrying retryable failures up to *retries* times.

    The wait before retry ``n`` (0-based) is ``base_delay * 2**n`` plus up to
    ``max_jitter`` seconds of jitter. The last error propagates unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except ProviderError as exc:
            if attempt >= retries or not is_retryable(exc):
                raise
            wait = base_delay * 2 ** attempt + random.uniform(0, max_jitter)
            logger.warning(
                "%s error (%s). Retrying in %.2fs (%d/%d)",
                exc.provider or "LLM", exc.status_code or exc.code or "unknown",
                wait, attempt + 1, retries,
            )
            await asyncio.sleep(wait)
            attempt += 1


class ProviderRouter:
    """Dispatches calls to the backend selected by the settings snapshot."""

    def __init__(
        self,
        config: Optional[OuroborosConfig] = None,
        adapters: Optional[dict] = None,
    ) -> None:
        self._config = config or _default_config
        self._adapters = adapters or build_adapters(self._config)

    def resolve_credentials(self, settings: AppSettings) -> tuple[Provider, str, str]:
        """Return ``(provider, api_key, model)`` or fail before any network call.

        Raises:
            ConfigurationError: unknown backend.
            MissingCredentialError: no key for a backend that needs one.
            MissingModelError: no model selected.
        """
        try:
            provider = Provider(settings.provider)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown provider: {settings.provider}") from exc
        if provider not in self._adapters:
            raise ConfigurationError(f"Unknown provider: {provider.value}", provider=provider.value)

        key = settings.credential(provider)
        if provider != Provider.OLLAMA and not key:
            raise MissingCredentialError(f"Missing API Key for {provider.value}", provider=provider.value)
        model = settings.model_id(provider)
        if not model:
            raise MissingModelError(f"Missing Model selection for {provider.value}", provider=provider.value)
        return provider, key, model

    async def call_model(
        self,
        settings: AppSettings,
        prompt: str,
        system_instruction: str,
        wants_structured_output: bool = False,
    ) -> str:
        """Call the active backend and return its text reply.

        Raises:
            ConfigurationError: settings incomplete (never retried).
            ProviderError: backend failure, after retries where retryable.
        """
        provider, key, model = self.resolve_credentials(settings)
        adapter = self._adapters[provider]

        async def _operation() -> str:
            return await adapter.complete(key, model, prompt, system_instruction, wants_structured_output)

        return await with_retry(
            _operation,
            retries=self._config.llm_max_retries,
            base_delay=self._config.llm_retry_base_delay,
            max_jitter=self._config.llm_retry_max_jitter,
        )


_default_router: Optional[ProviderRouter] = None


def get_router() -> ProviderRouter:
    global _default_router
    if _default_router is None:
        _default_router = ProviderRouter()
    return _default_router


async def call_model(
    settings: AppSettings,
    prompt: str,
    system_instruction: str,
    wants_structured_output: bool = False,
) -> str:
    """Module-level convenience over the default router."""
    return await get_router().call_model(settings, prompt, system_instruction, wants_structured_output)
