"""Base callback protocol for Ouroboros lifecycle hooks.

Callbacks are called at key points while the engine works through a request.
Implement this protocol to observe or instrument the engine without modifying
core logic.

Usage:
    class MyCallback(BaseCallback):
        async def on_widget_change(self, event, widget_id, **kw):
            print(f"{event}: {widget_id}")

    engine = ExecutionEngine(..., callbacks=[MyCallback()])
"""

from typing import Any, Protocol, runtime_checkable

# Event names the engine emits, in rough lifecycle order.
REQUEST_STARTED = "request_started"
PLAN_CREATED = "plan_created"
ACTION_STARTED = "action_started"
WIDGET_CREATED = "widget_created"
WIDGET_UPDATED = "widget_updated"
WIDGET_DELETED = "widget_deleted"
ACTION_FAILED = "action_failed"
REQUEST_COMPLETED = "request_completed"
CONFIGURATION_REQUIRED = "configuration_required"
ERROR = "error"

ENGINE_EVENTS = (
    REQUEST_STARTED, PLAN_CREATED, ACTION_STARTED, WIDGET_CREATED, WIDGET_UPDATED,
    WIDGET_DELETED, ACTION_FAILED, REQUEST_COMPLETED, CONFIGURATION_REQUIRED, ERROR,
)


@runtime_checkable
class OuroborosCallback(Protocol):
    """Protocol defining hooks for engine lifecycle events.

    All methods are async; the engine awaits each registered callback in order.
    """

    async def on_request_start(self, prompt_text: str, **kwargs: Any) -> None:
        """Called when a top-level request (or regeneration) begins."""
        ...

    async def on_plan(self, thought: str, actions: list[dict], **kwargs: Any) -> None:
        """Called once the orchestrator has produced a plan."""
        ...

    async def on_widget_change(self, event: str, widget_id: str, **kwargs: Any) -> None:
        """Called after a widget is created, updated or deleted."""
        ...

    async def on_request_complete(self, outcome: str, **kwargs: Any) -> None:
        """Called when the batch finishes."""
        ...

    async def on_error(self, error: str, context: dict[str, Any], **kwargs: Any) -> None:
        """Called when an action fails or the batch aborts."""
        ...


class BaseCallback:
    """Concrete base with no-op implementations of all hooks.

    Subclass this instead of implementing the Protocol directly. ``__call__``
    routes the engine's ``(event, data)`` calls to the named hooks, so an
    instance can be passed straight to ``ExecutionEngine(callbacks=[...])``.
    """

    async def __call__(self, event: str, data: dict) -> None:
        if event == REQUEST_STARTED:
            await self.on_request_start(data.get("prompt_text", ""), **_rest(data, "prompt_text"))
        elif event == PLAN_CREATED:
            await self.on_plan(data.get("thought", ""), data.get("actions", []), **_rest(data, "thought", "actions"))
        elif event in (WIDGET_CREATED, WIDGET_UPDATED, WIDGET_DELETED):
            await self.on_widget_change(event, data.get("widget_id", ""), **_rest(data, "widget_id"))
        elif event == REQUEST_COMPLETED:
            await self.on_request_complete(data.get("outcome", ""), **_rest(data, "outcome"))
        elif event in (ACTION_FAILED, ERROR):
            await self.on_error(data.get("error", ""), _rest(data, "error"), event=event)

    async def on_request_start(self, prompt_text: str, **kwargs: Any) -> None:
        pass

    async def on_plan(self, thought: str, actions: list[dict], **kwargs: Any) -> None:
        pass

    async def on_widget_change(self, event: str, widget_id: str, **kwargs: Any) -> None:
        pass

    async def on_request_complete(self, outcome: str, **kwargs: Any) -> None:
        pass

    async def on_error(self, error: str, context: dict[str, Any], **kwargs: Any) -> None:
        pass


def _rest(data: dict, *skip: str) -> dict:
    return {k: v for k, v in data.items() if k not in skip}
