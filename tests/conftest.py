"""Test fixtures: zero-delay config, configured settings, scripted LLM backend.

All tests should use these fixtures for consistency. The scripted backend
sits behind a real ``ProviderRouter`` so retry and credential checks run
exactly as in production.
"""

import pytest

from ouroboros.config import OuroborosConfig
from ouroboros.core.store import WidgetStore
from ouroboros.core.workspace import Workspace
from ouroboros.llm.client import ProviderRouter
from ouroboros.settings import AppSettings, SettingsHandle
from ouroboros.types import Provider

from tests.helpers import ScriptedAdapter


@pytest.fixture
def config(tmp_path):
    """Test configuration: no pacing, no retry waits, settings under tmp_path."""
    return OuroborosConfig(
        settings_path=tmp_path / "settings.json",
        action_pacing_seconds=0,
        delete_settle_seconds=0,
        failure_pause_seconds=0,
        regenerate_pause_seconds=0,
        llm_retry_base_delay=0,
        llm_retry_max_jitter=0,
        viewport_width=1920,
    )


@pytest.fixture
def settings():
    """Settings with a Google key configured."""
    return AppSettings().with_key(Provider.GOOGLE, "test-google-key")


@pytest.fixture
def unconfigured_settings():
    return AppSettings()


@pytest.fixture
def settings_handle(settings):
    return SettingsHandle(settings)


@pytest.fixture
def adapter():
    return ScriptedAdapter()


@pytest.fixture
def router(config, adapter):
    """Real router whose every backend is the scripted adapter."""
    return ProviderRouter(config=config, adapters={provider: adapter for provider in Provider})


@pytest.fixture
def store():
    return WidgetStore()


@pytest.fixture
def workspace(settings_handle, router, config):
    """Empty canvas wired to the scripted backend."""
    return Workspace.create(settings=settings_handle, router=router, config=config, preset=None)
