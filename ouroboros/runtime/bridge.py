"""Host bridge: the ``ouroboros`` module widgets import.

Gives widget code cross-widget messaging (``use_agent``), a chat session
backed by the provider router (``use_chat``), ``resize_widget`` and a
read-only view of the user's preferences. Everything a widget touches is a
plain object without private state it could reach.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Iterator, Optional

from ouroboros.exceptions import OuroborosError
from ouroboros.llm import prompts
from ouroboros.llm.client import get_router
from ouroboros.runtime.event_bus import EventBus
from ouroboros.settings import AppSettings, SettingsHandle
from ouroboros.types import Provider

if TYPE_CHECKING:
    from ouroboros.core.engine import ExecutionEngine
    from ouroboros.core.store import WidgetStore
    from ouroboros.llm.client import ProviderRouter

logger = logging.getLogger(__name__)

CHAT_MODES = ("standard", "fast", "thinking")

# "standard" uses the model chosen in settings; local models ignore the mode.
CHAT_MODE_MODELS = {
    "fast": {
        Provider.GOOGLE: "gemini-2.5-flash-lite",
        Provider.OPENAI: "gpt-4o-mini",
        Provider.ANTHROPIC: "claude-3-5-haiku-20241022",
    },
    "thinking": {
        Provider.GOOGLE: "gemini-2.5-pro",
        Provider.OPENAI: "gpt-4.1",
        Provider.ANTHROPIC: "claude-3-7-sonnet-20250219",
    },
}


class _TaskRunner:
    """Runs coroutines from synchronous widget code.

    Inside an event loop the coroutine becomes a task (kept referenced until
    done); without one it runs to completion on a fresh loop.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def run(self, coro: Coroutine) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled task. Used by tests and shutdown."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class Preferences(Mapping):
    """Live, read-only view: ``language``, ``theme``, ``suggestion_mode``, ``suggestion_model``."""

    def __init__(self, settings: SettingsHandle) -> None:
        self._settings = settings

    def _snapshot(self) -> dict[str, str]:
        current = self._settings.get()
        return {
            "language": current.language.value,
            "theme": current.theme.value,
            "suggestion_mode": current.suggestions.mode,
            "suggestion_model": current.suggestions.model,
        }

    def __getitem__(self, key: str) -> str:
        return self._snapshot()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._snapshot())

    def __len__(self) -> int:
        return len(self._snapshot())


class AgentHandle:
    """What ``use_agent()`` returns."""

    def __init__(self, bridge: "HostBridge") -> None:
        self._bridge = bridge

    def broadcast(self, event: str, data: Any = None) -> None:
        self._bridge.bus.broadcast(event, data)

    def subscribe(self, event: str, handler: Callable) -> Callable[[], None]:
        return self._bridge.bus.subscribe(event, handler)

    def trigger(self, prompt: str) -> None:
        """Submit *prompt* to the engine as a new top-level request."""
        self._bridge.trigger(prompt)


class ChatSession:
    """Conversation with the active backend, driven from widget event handlers."""

    def __init__(
        self,
        router: "ProviderRouter",
        settings: SettingsHandle,
        runner: _TaskRunner,
        mode: str = "standard",
        system_instruction: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        self._router = router
        self._settings = settings
        self._runner = runner
        self.mode = mode if mode in CHAT_MODES else "standard"
        self.system_instruction = system_instruction
        self.model = model
        self.messages: list[dict[str, str]] = []
        self.loading = False
        self.error: Optional[str] = None

    def _transcript(self) -> str:
        return "\n".join(
            prompts.CHAT_TRANSCRIPT_LINE.format(role=m["role"], content=m["content"]) for m in self.messages
        )

    def _call_settings(self) -> AppSettings:
        """Current snapshot with the model swapped for the one this mode calls."""
        settings = self._settings.get()
        model = self.model or CHAT_MODE_MODELS.get(self.mode, {}).get(settings.provider)
        return settings.with_model(settings.provider, model) if model else settings

    def _system(self, settings: AppSettings) -> str:
        system = self.system_instruction or prompts.CHAT_SYSTEM.format(language=settings.language_name)
        if self.mode == "thinking":
            system = f"{system}\n\n{prompts.CHAT_THINKING_NOTE}"
        return system

    async def asend(self, text: str) -> str:
        """Append *text*, ask the backend, append and return the reply ("" on failure)."""
        settings = self._call_settings()
        self.messages.append({"role": "user", "content": text})
        self.loading = True
        self.error = None
        system = self._system(settings)
        try:
            reply = await self._router.call_model(settings, self._transcript(), system, False)
        except OuroborosError as exc:
            logger.warning("Widget chat call failed: %s", exc)
            self.error = str(exc)
            return ""
        finally:
            self.loading = False
        self.messages.append({"role": "assistant", "content": reply})
        return reply

    def send_message(self, text: str) -> None:
        self._runner.run(self.asend(text))

    def clear(self) -> None:
        self.messages = []
        self.error = None


class HostBridge:
    """Host capabilities shared by every widget on one canvas."""

    def __init__(
        self,
        settings: SettingsHandle,
        bus: Optional[EventBus] = None,
        router: Optional["ProviderRouter"] = None,
        store: Optional["WidgetStore"] = None,
        engine: Optional["ExecutionEngine"] = None,
    ) -> None:
        self.settings = settings
        self.bus = bus or EventBus()
        self._router = router
        self.store = store
        self.engine = engine
        self.runner = _TaskRunner()
        self.preferences = Preferences(settings)

    def attach_engine(self, engine: "ExecutionEngine") -> None:
        self.engine = engine

    def _get_router(self) -> "ProviderRouter":
        if self._router is None:
            self._router = get_router()
        return self._router

    # ── Capabilities ──────────────────────────────────────────────────────────

    def use_agent(self) -> AgentHandle:
        return AgentHandle(self)

    def use_chat(
        self, mode: str = "standard", system_instruction: Optional[str] = None, model: Optional[str] = None,
    ) -> ChatSession:
        return ChatSession(self._get_router(), self.settings, self.runner, mode, system_instruction, model)

    def resize_widget(self, widget_id: str, width: float, height: float) -> None:
        if self.store is None:
            logger.warning("resize_widget(%s) ignored: no widget store attached", widget_id)
            return
        self.store.resize(widget_id, width, height)

    def trigger(self, prompt: str) -> None:
        if self.engine is None:
            logger.warning("Agent trigger ignored: no engine attached (%.80r)", prompt)
            return
        self.runner.run(self.engine.submit_request(prompt))

    # ── Module view ───────────────────────────────────────────────────────────

    def as_module(self, widget_id: Optional[str] = None) -> ModuleType:
        """The ``ouroboros`` module object handed to the compiler's host scope."""
        module = ModuleType("ouroboros")
        exports = {
            "use_agent": self.use_agent,
            "use_chat": self.use_chat,
            "resize_widget": self.resize_widget,
            "preferences": self.preferences,
            "widget_id": widget_id,
            # camel-case spellings generated code tends to reach for
            "useAgent": self.use_agent,
            "useChat": self.use_chat,
            "resizeWidget": self.resize_widget,
        }
        for name, value in exports.items():
            setattr(module, name, value)
        return module
