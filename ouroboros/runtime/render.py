"""Render-level error boundary around compiled widgets.

Compilation is lazy and cached per widget by a hash of its source, so an
UPDATE that replaces the source triggers a fresh compile on the next render.
Each widget keeps a private mutable ``state`` dict across renders. Compile
and runtime failures turn into an inline error panel for that widget only.
"""

import hashlib
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from ouroboros.config import config
from ouroboros.runtime.bridge import HostBridge
from ouroboros.runtime.compiler import ExecutionBudgetExceeded, compile_component, execution_budget
from ouroboros.runtime.elements import Element, error_panel, h
from ouroboros.settings import SettingsHandle
from ouroboros.types import CompilationResult, RenderPhase, Widget

logger = logging.getLogger(__name__)

COMPILE_FAILED = "Compilation Failed"
RUNTIME_ERROR = "Runtime Error"


class RenderResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    element: Element
    error: Optional[str] = None
    phase: RenderPhase = RenderPhase.OK

    def to_dict(self) -> dict:
        return {"element": self.element.to_dict(), "error": self.error, "phase": self.phase.value}


def source_hash(source: str) -> str:
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


class WidgetRenderer:
    """Compiles, caches and renders widgets for one canvas."""

    def __init__(
        self,
        settings: SettingsHandle,
        bridge: Optional[HostBridge] = None,
        time_limit: Optional[float] = None,
    ) -> None:
        self._settings = settings
        self._bridge = bridge
        self._time_limit = config.sandbox_max_execution_seconds if time_limit is None else time_limit
        self._compiled: dict[str, tuple[str, CompilationResult]] = {}
        self._state: dict[str, dict] = {}
        self._handlers: dict[str, dict[str, Callable]] = {}

    def _host_scope(self, widget_id: str) -> dict[str, Any]:
        if self._bridge is None:
            return {}
        return {"ouroboros": self._bridge.as_module(widget_id)}

    def compile(self, widget: Widget) -> CompilationResult:
        """Cached compile; re-runs only when the widget's source changed."""
        digest = source_hash(widget.source_code)
        cached = self._compiled.get(widget.id)
        if cached is not None and cached[0] == digest:
            return cached[1]
        result = compile_component(widget.source_code, self._host_scope(widget.id), time_limit=self._time_limit)
        if result.error:
            logger.info("Widget %s failed to compile: %s", widget.id, result.error)
        self._compiled[widget.id] = (digest, result)
        return result

    def state_for(self, widget_id: str) -> dict:
        return self._state.setdefault(widget_id, {})

    def _props(self, widget: Widget, extra: Optional[dict]) -> dict:
        settings = self._settings.get()
        props = {
            "theme": settings.theme.value,
            "language": settings.language.value,
            "state": self.state_for(widget.id),
            "width": widget.width,
            "height": widget.height,
            "widget_id": widget.id,
        }
        props.update(extra or {})
        return props

    def render(self, widget: Widget, props: Optional[dict] = None) -> RenderResult:
        """Render *widget*; never raises for failures inside widget code."""
        compiled = self.compile(widget)
        if compiled.error:
            return RenderResult(
                element=error_panel(COMPILE_FAILED, compiled.error),
                error=compiled.error,
                phase=RenderPhase.COMPILE,
            )

        try:
            with execution_budget(self._time_limit):
                output = compiled.component(self._props(widget, props))
            element = _as_element(output)
        except (Exception, ExecutionBudgetExceeded) as exc:
            message = f"{type(exc).__name__}: {exc}"
            logger.info("Widget %s raised while rendering: %s", widget.id, message)
            self._handlers.pop(widget.id, None)
            return RenderResult(
                element=error_panel(RUNTIME_ERROR, message),
                error=message,
                phase=RenderPhase.RUNTIME,
            )

        self._handlers[widget.id] = dict(element.handlers())
        return RenderResult(element=element)

    def dispatch(self, widget: Widget, handler_id: str, *args: Any) -> RenderResult:
        """Invoke an event handler from the last render, then render again.

        Raises:
            KeyError: *handler_id* was not present in the last successful render.
        """
        handler = self._handlers.get(widget.id, {})[handler_id]
        try:
            with execution_budget(self._time_limit):
                handler(*args)
        except (Exception, ExecutionBudgetExceeded) as exc:
            message = f"{type(exc).__name__}: {exc}"
            logger.info("Widget %s handler %s raised: %s", widget.id, handler_id, message)
            return RenderResult(
                element=error_panel(RUNTIME_ERROR, message),
                error=message,
                phase=RenderPhase.RUNTIME,
            )
        return self.render(widget)

    def forget(self, widget_id: str) -> None:
        """Drop cached compile output, state and handlers for a removed widget."""
        self._compiled.pop(widget_id, None)
        self._state.pop(widget_id, None)
        self._handlers.pop(widget_id, None)


def _as_element(output: Any) -> Element:
    if isinstance(output, Element):
        return output
    if isinstance(output, (str, int, float)):
        return h("Text", {}, output)
    raise TypeError(f"Component returned {type(output).__name__}, expected an element")
