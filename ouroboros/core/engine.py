"""Execution engine. Turns a request into canvas changes, one action at a time.

Flow for ``submit_request``:
  1. Reject if a batch is already running or the active backend is not configured.
  2. Clear the activity log, drop the onboarding widgets.
  3. Plan with the orchestrator (``core.planner``), using the remaining widgets as context.
  4. Execute actions strictly in plan order with a pacing delay before each:
       DELETE  remove the target (unknown id: no-op), settle
       CREATE  reserve a cell, generate, commit with the next z-index
       UPDATE  regenerate the target's source with a full-rewrite instruction
     A failed action is logged and skipped; the batch continues.
  5. Return a RunReport. Only an unexpected error aborts the batch (BatchAborted).
"""

import asyncio
import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

from ouroboros.callbacks import base as events
from ouroboros.config import OuroborosConfig
from ouroboros.config import config as _default_config
from ouroboros.core import presets
from ouroboros.core.generator import WidgetGenerator
from ouroboros.core.planner import plan_actions
from ouroboros.core.store import WidgetStore
from ouroboros.exceptions import BatchAborted, ConfigurationError, GenerationError
from ouroboros.llm import prompts
from ouroboros.llm.client import ProviderRouter, get_router
from ouroboros.runtime import event_bus as bus_events
from ouroboros.runtime.event_bus import EventBus
from ouroboros.settings import AppSettings, SettingsHandle
from ouroboros.types import (
    Action, ActionType, Actor, EngineState, EngineStatus, LogEntry, RunOutcome, RunReport,
    Widget, WidgetSummary,
)

logger = logging.getLogger(__name__)

STATUS_ANALYZING = "Orchestrator: Analyzing request..."
STATUS_DELETING = "Orchestrator: Deleting widget..."
STATUS_REGENERATING = "Engineer: Regenerating widget..."
STATUS_CREATE_FAILED = "Error: Creation failed"

DEFAULT_WIDGET_PROMPT = "New Widget"
DEFAULT_UPDATE_INSTRUCTION = "Update"
EXCERPT_LENGTH = 150


class ExecutionEngine:
    """Single-flight orchestrator over one widget store.

    Constructor dependencies (all injectable):
        - store: WidgetStore the engine mutates
        - settings: SettingsHandle read once at the start of each batch
        - router: ProviderRouter used by planner and generator
        - config: OuroborosConfig (pacing delays)
        - callbacks: async callables ``cb(event, data)``
        - bus: EventBus notified of widget changes
    """

    def __init__(
        self,
        store: WidgetStore,
        settings: SettingsHandle,
        router: Optional[ProviderRouter] = None,
        config: Optional[OuroborosConfig] = None,
        callbacks: Optional[list] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.router = router or get_router()
        self.config = config or _default_config
        self.callbacks = callbacks or []
        self.bus = bus
        self.state = EngineState.IDLE
        self.status_message = ""
        self._logs: list[LogEntry] = []
        self.generator = WidgetGenerator(self.router, on_status=self._set_status, on_log=self._log)

    # ── Status ────────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self.state == EngineState.RUNNING

    @property
    def logs(self) -> list[LogEntry]:
        return list(self._logs)

    def status(self) -> EngineStatus:
        return EngineStatus(loading=self.running, status_message=self.status_message, log_entries=self.logs)

    def _set_status(self, message: str) -> None:
        self.status_message = message

    def _log(self, actor: Actor, message: str, data: Any = None) -> None:
        self._logs.append(LogEntry(actor=actor, message=message, data=data))
        logger.debug("[%s] %s", actor.value, message)

    async def _fire_callbacks(self, event: str, data: dict) -> None:
        """Invoke all registered callbacks for a lifecycle event."""
        for cb in self.callbacks:
            try:
                result = cb(event, data)
                if inspect.isawaitable(result):
                    await result
            except Exception as cb_exc:
                logger.warning("[Engine] Callback error on '%s': %s", event, cb_exc)

    def _broadcast(self, event: str, data: dict) -> None:
        if self.bus is not None:
            self.bus.broadcast(event, data)

    # ── Batch plumbing ────────────────────────────────────────────────────────

    async def _preflight(self, settings: AppSettings) -> Optional[RunReport]:
        """Busy / not-configured short circuits. Returns None when the batch may start."""
        if self.running:
            logger.info("Request rejected: a batch is already running")
            return RunReport(outcome=RunOutcome.BUSY)
        try:
            self.router.resolve_credentials(settings)
        except ConfigurationError as exc:
            logger.info("Request rejected: %s", exc)
            await self._fire_callbacks(events.CONFIGURATION_REQUIRED, {
                "provider": settings.provider.value,
                "error": str(exc),
            })
            return RunReport(outcome=RunOutcome.NOT_CONFIGURED, error=str(exc))
        return None

    async def _run_batch(
        self,
        prompt_text: str,
        body: Callable[[AppSettings, RunReport], Awaitable[None]],
        settings: AppSettings,
    ) -> RunReport:
        # No await between the busy check in _preflight and this point.
        self.state = EngineState.RUNNING
        self._logs = []
        self.status_message = STATUS_ANALYZING
        report = RunReport(outcome=RunOutcome.COMPLETED)
        await self._fire_callbacks(events.REQUEST_STARTED, {"prompt_text": prompt_text})
        try:
            await body(settings, report)
        except Exception as exc:
            self._log(Actor.SYSTEM, f"Agent Process Crashed: {exc}")
            logger.exception("Batch aborted")
            await self._fire_callbacks(events.ERROR, {"error": str(exc), "prompt_text": prompt_text})
            done = len(report.created) + len(report.updated) + len(report.deleted) + len(report.failed)
            raise BatchAborted(
                f"Agent process crashed: {exc}",
                completed_actions=done,
                total_actions=len(report.plan.actions) if report.plan else 0,
            ) from exc
        finally:
            self.state = EngineState.IDLE
            self.status_message = ""

        await self._fire_callbacks(events.REQUEST_COMPLETED, {
            "outcome": report.outcome.value,
            "created": report.created,
            "updated": report.updated,
            "deleted": report.deleted,
            "failed": report.failed,
        })
        return report

    # ── Top-level request ─────────────────────────────────────────────────────

    async def submit_request(self, prompt_text: str) -> RunReport:
        """Plan and execute *prompt_text* against the canvas."""
        settings = self.settings.get()
        rejected = await self._preflight(settings)
        if rejected is not None:
            return rejected

        async def body(settings: AppSettings, report: RunReport) -> None:
            self._log(Actor.SYSTEM, f'New user request received: "{prompt_text}"')
            self._clear_onboarding()

            summaries = [WidgetSummary(id=w.id, prompt_text=w.prompt_text) for w in self.store.widgets]
            self._log(Actor.ORCHESTRATOR, "Analyzing system state and formulating plan...")
            plan = await plan_actions(prompt_text, summaries, settings, self.router)
            report.plan = plan
            actions = [a.model_dump(mode="json") for a in plan.actions]
            self._log(Actor.ORCHESTRATOR, f"Plan formulated: {plan.thought}", actions)
            await self._fire_callbacks(events.PLAN_CREATED, {"thought": plan.thought, "actions": actions})

            for action in plan.actions:
                await asyncio.sleep(self.config.action_pacing_seconds)
                await self._execute(action, settings, report)

        return await self._run_batch(prompt_text, body, settings)

    def _clear_onboarding(self) -> None:
        present = [wid for wid in presets.ONBOARDING_IDS if wid in self.store]
        if not present:
            return
        self._log(Actor.SYSTEM, "Clearing onboarding widgets to prepare workspace.")
        for widget_id in present:
            self.store.remove(widget_id)
            self._broadcast(bus_events.EVENT_WIDGET_DELETED, {"widget_id": widget_id})

    async def _execute(self, action: Action, settings: AppSettings, report: RunReport) -> None:
        await self._fire_callbacks(events.ACTION_STARTED, {
            "type": action.type.value, "id": action.id, "prompt_text": action.prompt_text,
        })
        if action.type == ActionType.CREATE:
            prompt_text = action.prompt_text or DEFAULT_WIDGET_PROMPT
            self._log(Actor.ORCHESTRATOR, f'Executing Action: CREATE "{prompt_text}"')
            await self._create(prompt_text, action.id, settings, report)
            return

        if not action.id:
            self._log(Actor.SYSTEM, f"Skipping {action.type.value} action without a widget id.")
            return

        if action.type == ActionType.DELETE:
            self.status_message = STATUS_DELETING
            self._log(Actor.ORCHESTRATOR, f"Executing Action: DELETE [{action.id}]")
            if self.store.remove(action.id):
                report.deleted.append(action.id)
                self._broadcast(bus_events.EVENT_WIDGET_DELETED, {"widget_id": action.id})
                await self._fire_callbacks(events.WIDGET_DELETED, {"widget_id": action.id})
            await asyncio.sleep(self.config.delete_settle_seconds)
            return

        self._log(Actor.ORCHESTRATOR, f"Executing Action: UPDATE [{action.id}]")
        widget = self.store.find(action.id)
        if widget is None:
            self._log(Actor.SYSTEM, f"Update target [{action.id}] no longer exists; skipping.")
            return
        await self._update(widget, action.prompt_text or DEFAULT_UPDATE_INSTRUCTION, settings, report, keep_prompt=False)

    async def _create(self, prompt_text: str, requested_id: Optional[str], settings: AppSettings, report: RunReport) -> None:
        widget_id = requested_id if requested_id and requested_id not in self.store else str(uuid.uuid4())
        spot = self.store.reserve_spot(widget_id)
        self._log(Actor.SYSTEM, f'Initiating creation sequence for: "{prompt_text}"')
        try:
            source = await self.generator.generate(prompt_text, settings, settings.theme, settings.accessibility)
        except GenerationError as exc:
            self._log(Actor.SYSTEM, f"Critical Error: {exc}")
            self.status_message = STATUS_CREATE_FAILED
            report.failed.append(prompt_text)
            await self._fire_callbacks(events.ACTION_FAILED, {
                "type": ActionType.CREATE.value, "prompt_text": prompt_text, "error": str(exc),
            })
            await asyncio.sleep(self.config.failure_pause_seconds)
            return

        self._log(Actor.ENGINEER, "Compiling component...", source[:EXCERPT_LENGTH] + "...")
        self.store.add(Widget(
            id=widget_id,
            source_code=source,
            prompt_text=prompt_text,
            x=spot.x,
            y=spot.y,
            z_index=self.store.next_z(),
        ))
        self._log(Actor.SYSTEM, "Widget mounted successfully.")
        report.created.append(widget_id)
        self._broadcast(bus_events.EVENT_WIDGET_CREATED, {"widget_id": widget_id})
        await self._fire_callbacks(events.WIDGET_CREATED, {"widget_id": widget_id, "prompt_text": prompt_text})

    async def _update(
        self,
        widget: Widget,
        instruction: str,
        settings: AppSettings,
        report: RunReport,
        keep_prompt: bool,
    ) -> None:
        self._log(Actor.SYSTEM, f'Initiating update for widget [{widget.id}]: "{instruction}"')
        full_prompt = prompts.UPDATE_INSTRUCTION.format(prompt=widget.prompt_text, instruction=instruction)
        try:
            source = await self.generator.generate(full_prompt, settings, settings.theme, settings.accessibility)
        except GenerationError as exc:
            self._log(Actor.SYSTEM, f"Update Error: {exc}")
            report.failed.append(widget.id)
            await self._fire_callbacks(events.ACTION_FAILED, {
                "type": ActionType.UPDATE.value, "widget_id": widget.id, "error": str(exc),
            })
            return

        if widget.id not in self.store:
            self._log(Actor.SYSTEM, f"Widget [{widget.id}] was removed during the update; discarding result.")
            return
        self._log(Actor.ENGINEER, "Refactoring component code...", source[:EXCERPT_LENGTH] + "...")
        self.store.update_source(widget.id, source, widget.prompt_text if keep_prompt else instruction)
        self._log(Actor.SYSTEM, "Widget updated successfully.")
        report.updated.append(widget.id)
        self._broadcast(bus_events.EVENT_WIDGET_UPDATED, {"widget_id": widget.id})
        await self._fire_callbacks(events.WIDGET_UPDATED, {"widget_id": widget.id})

    # ── Regeneration ──────────────────────────────────────────────────────────

    async def regenerate_one(self, widget_id: str) -> RunReport:
        """Rewrite one widget with a fresh design, keeping its prompt.

        Raises:
            WidgetNotFound: no widget with *widget_id*.
        """
        widget = self.store.get(widget_id)
        settings = self.settings.get()
        rejected = await self._preflight(settings)
        if rejected is not None:
            return rejected

        async def body(settings: AppSettings, report: RunReport) -> None:
            self.status_message = STATUS_REGENERATING
            await self._update(widget, prompts.REGENERATE_ONE_INSTRUCTION, settings, report, keep_prompt=True)

        return await self._run_batch(f"regenerate {widget_id}", body, settings)

    async def regenerate_all(self) -> RunReport:
        """Rewrite every widget in turn, pausing between widgets. No-op on an empty canvas."""
        targets = self.store.widgets
        if not targets:
            return RunReport(outcome=RunOutcome.EMPTY)
        settings = self.settings.get()
        rejected = await self._preflight(settings)
        if rejected is not None:
            return rejected

        async def body(settings: AppSettings, report: RunReport) -> None:
            self.status_message = STATUS_REGENERATING
            for index, widget in enumerate(targets):
                if index:
                    await asyncio.sleep(self.config.regenerate_pause_seconds)
                current = self.store.find(widget.id)
                if current is None:
                    continue
                await self._update(current, prompts.REGENERATE_ALL_INSTRUCTION, settings, report, keep_prompt=True)

        return await self._run_batch("regenerate all", body, settings)

    # ── Direct canvas operations ──────────────────────────────────────────────

    def remove_widget(self, widget_id: str) -> None:
        """Raises WidgetNotFound for unknown ids."""
        self.store.get(widget_id)
        self.store.remove(widget_id)
        self._broadcast(bus_events.EVENT_WIDGET_DELETED, {"widget_id": widget_id})

    def resize_widget(self, widget_id: str, width: float, height: float) -> Widget:
        return self.store.resize(widget_id, width, height)

    def move_widget(self, widget_id: str, x: float, y: float) -> Widget:
        return self.store.move(widget_id, x, y)

    def reorder_widgets(self, order: list[str]) -> list[Widget]:
        return self.store.reorder(order)

    def auto_layout(self, viewport_width: Optional[float] = None) -> list[Widget]:
        return self.store.auto_layout(viewport_width or self.config.viewport_width)

    def bring_to_front(self, widget_id: str) -> Widget:
        return self.store.bring_to_front(widget_id)

    def toggle_expand(self, widget_id: str) -> Widget:
        return self.store.toggle_expand(widget_id)

    def load_preset(self, name: str) -> list[Widget]:
        """Replace the canvas with a preset. Raises PresetNotFound."""
        widgets = presets.load_preset(name, config=self.config)
        for widget in self.store.widgets:
            self._broadcast(bus_events.EVENT_WIDGET_DELETED, {"widget_id": widget.id})
        return self.store.replace_all(widgets)
