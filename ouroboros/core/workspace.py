"""Wires one canvas: settings, store, bus, bridge, renderer and engine.

The API lifespan and the CLI both build a ``Workspace``; tests build one
with a scripted router and zero pacing.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ouroboros.config import OuroborosConfig
from ouroboros.config import config as _default_config
from ouroboros.core.engine import ExecutionEngine
from ouroboros.core.presets import ONBOARDING_PRESET, load_preset
from ouroboros.core.store import WidgetStore
from ouroboros.llm.client import ProviderRouter
from ouroboros.runtime.bridge import HostBridge
from ouroboros.runtime.event_bus import EVENT_WIDGET_DELETED, EventBus
from ouroboros.runtime.render import WidgetRenderer
from ouroboros.settings import SettingsHandle, SettingsStore

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    settings: SettingsHandle
    store: WidgetStore
    bus: EventBus
    bridge: HostBridge
    renderer: WidgetRenderer
    engine: ExecutionEngine
    config: OuroborosConfig

    @classmethod
    def create(
        cls,
        settings: Optional[SettingsHandle] = None,
        router: Optional[ProviderRouter] = None,
        config: Optional[OuroborosConfig] = None,
        callbacks: Optional[list] = None,
        preset: Optional[str] = ONBOARDING_PRESET,
    ) -> "Workspace":
        """Build a workspace. *preset* seeds the canvas (None for an empty one).

        Settings default to the JSON record at ``config.settings_path``.
        """
        config = config or _default_config
        if settings is None:
            settings = SettingsHandle.from_store(SettingsStore(config.settings_path))
        router = router or ProviderRouter(config=config)

        store = WidgetStore(load_preset(preset, config=config) if preset else None)
        bus = EventBus()
        bridge = HostBridge(settings, bus=bus, router=router, store=store)
        renderer = WidgetRenderer(settings, bridge, time_limit=config.sandbox_max_execution_seconds)
        engine = ExecutionEngine(store, settings, router=router, config=config, callbacks=callbacks, bus=bus)
        bridge.attach_engine(engine)
        bus.subscribe(EVENT_WIDGET_DELETED, lambda data: renderer.forget(data["widget_id"]))

        logger.info("Workspace ready with %d widget(s)", len(store))
        return cls(
            settings=settings,
            store=store,
            bus=bus,
            bridge=bridge,
            renderer=renderer,
            engine=engine,
            config=config,
        )
