"""Tests for ouroboros/core/engine.py: batch execution against a scripted backend."""

import asyncio
from unittest.mock import patch

import pytest

from ouroboros.callbacks import base as events
from ouroboros.core.presets import ONBOARDING_IDS
from ouroboros.core.workspace import Workspace
from ouroboros.exceptions import BatchAborted, PresetNotFound, ProviderError, WidgetNotFound
from ouroboros.llm import prompts
from ouroboros.runtime.event_bus import EVENT_WIDGET_CREATED, EVENT_WIDGET_DELETED
from ouroboros.settings import SettingsHandle
from ouroboros.types import Actor, EngineState, RunOutcome, Widget

from tests.helpers import CLOCK_SOURCE, plan_json


def _messages(engine) -> list[str]:
    return [entry.message for entry in engine.logs]


def _seed(workspace, wid="w1", prompt="Weather", x=300, y=400) -> Widget:
    return workspace.store.add(Widget(
        id=wid, source_code=CLOCK_SOURCE, prompt_text=prompt, x=x, y=y, z_index=workspace.store.next_z(),
    ))


class Recorder:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def __call__(self, event, data):
        self.events.append((event, data))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def recorded_workspace(settings_handle, router, config, recorder):
    return Workspace.create(settings=settings_handle, router=router, config=config, callbacks=[recorder], preset=None)


@pytest.mark.asyncio
class TestCreate:

    async def test_add_a_clock(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "a clock"}, thought="one clock"))
        report = await workspace.engine.submit_request("add a clock")

        assert report.outcome == RunOutcome.COMPLETED
        assert report.plan.thought == "one clock"
        assert len(report.created) == 1
        widget = workspace.store.get(report.created[0])
        assert (widget.x, widget.y) == (100, 100)
        assert widget.prompt_text == "a clock"
        assert widget.source_code == CLOCK_SOURCE.strip() + "\n"
        assert widget.z_index == workspace.store.max_z
        assert not workspace.engine.running
        assert workspace.engine.status_message == ""

    async def test_log_narrates_the_batch(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "a clock"}, thought="one clock"))
        await workspace.engine.submit_request("add a clock")
        messages = _messages(workspace.engine)
        assert messages[0] == 'New user request received: "add a clock"'
        assert "Plan formulated: one clock" in messages
        assert 'Executing Action: CREATE "a clock"' in messages
        assert "Blueprint created." in messages
        assert messages[-1] == "Widget mounted successfully."
        plan_entry = next(e for e in workspace.engine.logs if e.message.startswith("Plan formulated"))
        assert plan_entry.actor == Actor.ORCHESTRATOR
        assert plan_entry.data == [{"type": "CREATE", "id": None, "prompt_text": "a clock"}]

    async def test_two_creates_take_adjacent_cells(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "clock"}, {"type": "CREATE", "prompt": "notes"}))
        report = await workspace.engine.submit_request("clock and notes")
        first, second = (workspace.store.get(wid) for wid in report.created)
        assert (first.x, first.y) == (100, 100)
        assert (second.x, second.y) == (570, 100)
        assert second.z_index > first.z_index
        assert [w.prompt_text for w in workspace.store.widgets] == ["clock", "notes"]

    async def test_requested_id_is_used(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "id": "timer-1", "prompt": "timer"}))
        report = await workspace.engine.submit_request("timer")
        assert report.created == ["timer-1"]

    async def test_requested_id_collision_gets_fresh_id(self, workspace, adapter):
        _seed(workspace, "timer-1")
        adapter.plans.append(plan_json({"type": "CREATE", "id": "timer-1", "prompt": "timer"}))
        report = await workspace.engine.submit_request("timer")
        assert report.created[0] != "timer-1"
        assert len(workspace.store) == 2

    async def test_missing_prompt_uses_default(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE"}))
        report = await workspace.engine.submit_request("something")
        assert workspace.store.get(report.created[0]).prompt_text == "New Widget"

    async def test_failed_create_is_skipped(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "broken"}, {"type": "CREATE", "prompt": "fine"}))
        adapter.sources.append(ProviderError("invalid key", status_code=401))
        report = await workspace.engine.submit_request("two widgets")

        assert report.outcome == RunOutcome.COMPLETED
        assert report.failed == ["broken"]
        assert len(report.created) == 1
        assert [w.prompt_text for w in workspace.store.widgets] == ["fine"]
        assert any(m.startswith("Critical Error: Failed to generate widget code") for m in _messages(workspace.engine))

    async def test_planner_fallback_creates_from_request(self, workspace, adapter):
        adapter.plans.append("not json at all")
        report = await workspace.engine.submit_request("a pomodoro timer")
        assert report.plan.thought == "fallback"
        assert workspace.store.get(report.created[0]).prompt_text == "a pomodoro timer"

    async def test_create_broadcasts_on_bus(self, workspace, adapter):
        seen = []
        workspace.bus.subscribe(EVENT_WIDGET_CREATED, seen.append)
        report = await workspace.engine.submit_request("a clock")
        assert seen == [{"widget_id": report.created[0]}]


@pytest.mark.asyncio
class TestDeleteAndUpdate:

    async def test_delete_existing(self, workspace, adapter):
        _seed(workspace)
        workspace.renderer.render(workspace.store.get("w1"))
        adapter.plans.append(plan_json({"type": "DELETE", "id": "w1"}))
        report = await workspace.engine.submit_request("remove the weather")
        assert report.deleted == ["w1"]
        assert "w1" not in workspace.store
        assert workspace.renderer.state_for("w1") == {}

    async def test_delete_missing_id_is_noop(self, workspace, adapter):
        _seed(workspace)
        adapter.plans.append(plan_json({"type": "DELETE", "id": "ghost"}))
        report = await workspace.engine.submit_request("remove the ghost")
        assert report.outcome == RunOutcome.COMPLETED
        assert report.deleted == []
        assert [w.id for w in workspace.store.widgets] == ["w1"]

    async def test_update_keeps_geometry_and_rewrites_source(self, workspace, adapter):
        _seed(workspace, x=300, y=400)
        before = workspace.store.get("w1")
        adapter.plans.append(plan_json({"type": "UPDATE", "id": "w1", "prompt": "show celsius"}))
        adapter.sources.append("from ui import Text\n\nexport default def W(props):\n    return Text('21C')\n")
        report = await workspace.engine.submit_request("use celsius")

        assert report.updated == ["w1"]
        after = workspace.store.get("w1")
        assert (after.x, after.y, after.z_index) == (before.x, before.y, before.z_index)
        assert "21C" in after.source_code
        assert after.prompt_text == "show celsius"
        brief_prompt = adapter.calls_for("brief")[0]["prompt"]
        assert 'Original Prompt: "Weather"' in brief_prompt
        assert "Instruction: show celsius." in brief_prompt

    async def test_update_missing_target_is_skipped(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "UPDATE", "id": "ghost", "prompt": "x"}))
        report = await workspace.engine.submit_request("change the ghost")
        assert report.updated == [] and report.failed == []
        assert "Update target [ghost] no longer exists; skipping." in _messages(workspace.engine)
        assert adapter.calls_for("brief") == []

    async def test_update_without_id_is_skipped(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "UPDATE", "prompt": "x"}))
        await workspace.engine.submit_request("change something")
        assert "Skipping UPDATE action without a widget id." in _messages(workspace.engine)

    async def test_failed_update_leaves_widget(self, workspace, adapter):
        _seed(workspace)
        adapter.plans.append(plan_json({"type": "UPDATE", "id": "w1", "prompt": "x"}))
        adapter.briefs.append(ProviderError("bad request", status_code=400))
        report = await workspace.engine.submit_request("change it")
        assert report.failed == ["w1"]
        assert workspace.store.get("w1").prompt_text == "Weather"

    async def test_actions_run_in_plan_order(self, workspace, adapter):
        _seed(workspace, "a")
        adapter.plans.append(plan_json(
            {"type": "DELETE", "id": "a"},
            {"type": "CREATE", "prompt": "replacement"},
        ))
        report = await workspace.engine.submit_request("replace a")
        assert report.deleted == ["a"]
        assert (workspace.store.get(report.created[0]).x, workspace.store.get(report.created[0]).y) == (100, 100)


@pytest.mark.asyncio
class TestPreflight:

    async def test_busy_rejected_without_backend_calls(self, workspace, adapter):
        workspace.engine.state = EngineState.RUNNING
        report = await workspace.engine.submit_request("add a clock")
        assert report.outcome == RunOutcome.BUSY
        assert adapter.calls == []

    async def test_concurrent_request_is_busy(self, workspace, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "clock"}))
        first, second = await asyncio.gather(
            workspace.engine.submit_request("clock"),
            workspace.engine.submit_request("another clock"),
        )
        assert first.outcome == RunOutcome.COMPLETED
        assert second.outcome == RunOutcome.BUSY
        assert len(workspace.store) == 1

    async def test_not_configured(self, unconfigured_settings, router, config, adapter, recorder):
        workspace = Workspace.create(
            SettingsHandle(unconfigured_settings), router, config, callbacks=[recorder], preset=None,
        )
        report = await workspace.engine.submit_request("add a clock")
        assert report.outcome == RunOutcome.NOT_CONFIGURED
        assert "Missing API Key for google" in report.error
        assert adapter.calls == []
        assert recorder.names == [events.CONFIGURATION_REQUIRED]
        assert workspace.engine.logs == []

    async def test_settings_change_applies_to_next_batch(self, workspace, adapter):
        workspace.settings.update({"keys": {"google": ""}})
        assert (await workspace.engine.submit_request("x")).outcome == RunOutcome.NOT_CONFIGURED
        workspace.settings.update({"keys": {"google": "new-key"}})
        assert (await workspace.engine.submit_request("x")).outcome == RunOutcome.COMPLETED


@pytest.mark.asyncio
class TestOnboarding:

    async def test_first_request_clears_onboarding(self, settings_handle, router, config, adapter):
        workspace = Workspace.create(settings_handle, router, config)
        assert set(ONBOARDING_IDS) <= {w.id for w in workspace.store.widgets}
        deleted = []
        workspace.bus.subscribe(EVENT_WIDGET_DELETED, deleted.append)

        report = await workspace.engine.submit_request("add a clock")

        assert not any(wid in workspace.store for wid in ONBOARDING_IDS)
        assert [d["widget_id"] for d in deleted] == list(ONBOARDING_IDS)
        assert len(workspace.store) == 1
        assert prompts.EMPTY_DASHBOARD in adapter.calls_for("plan")[0]["prompt"]
        assert "Clearing onboarding widgets to prepare workspace." in _messages(workspace.engine)
        assert workspace.store.get(report.created[0]).x == 100

    async def test_other_widgets_are_planner_context(self, workspace, adapter):
        _seed(workspace, "w1", "Weather")
        await workspace.engine.submit_request("add a clock")
        assert "- [w1] Weather" in adapter.calls_for("plan")[0]["prompt"]


@pytest.mark.asyncio
class TestRegenerate:

    async def test_regenerate_one_keeps_prompt(self, workspace, adapter):
        _seed(workspace)
        report = await workspace.engine.regenerate_one("w1")
        assert report.updated == ["w1"]
        assert workspace.store.get("w1").prompt_text == "Weather"
        assert prompts.REGENERATE_ONE_INSTRUCTION in adapter.calls_for("brief")[0]["prompt"]
        assert adapter.calls_for("plan") == []

    async def test_regenerate_one_unknown(self, workspace):
        with pytest.raises(WidgetNotFound):
            await workspace.engine.regenerate_one("ghost")

    async def test_regenerate_all(self, workspace, adapter):
        _seed(workspace, "a", "Alpha")
        _seed(workspace, "b", "Beta", x=900)
        report = await workspace.engine.regenerate_all()
        assert report.updated == ["a", "b"]
        assert [w.prompt_text for w in workspace.store.widgets] == ["Alpha", "Beta"]
        briefs = adapter.calls_for("brief")
        assert all(prompts.REGENERATE_ALL_INSTRUCTION in call["prompt"] for call in briefs)

    async def test_regenerate_all_empty_canvas(self, workspace, adapter):
        report = await workspace.engine.regenerate_all()
        assert report.outcome == RunOutcome.EMPTY
        assert adapter.calls == []

    async def test_regenerate_not_configured(self, workspace):
        _seed(workspace)
        workspace.settings.update({"keys": {"google": ""}})
        assert (await workspace.engine.regenerate_one("w1")).outcome == RunOutcome.NOT_CONFIGURED


@pytest.mark.asyncio
class TestAbort:

    async def test_unexpected_error_aborts_batch(self, recorded_workspace, recorder, adapter):
        engine = recorded_workspace.engine
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "clock"}))
        with patch.object(recorded_workspace.store, "reserve_spot", side_effect=RuntimeError("disk on fire")):
            with pytest.raises(BatchAborted) as exc_info:
                await engine.submit_request("clock")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.total_actions == 1
        assert exc_info.value.completed_actions == 0
        assert not engine.running
        assert "Agent Process Crashed: disk on fire" in _messages(engine)
        assert events.ERROR in recorder.names
        assert events.REQUEST_COMPLETED not in recorder.names

    async def test_engine_usable_after_abort(self, workspace, adapter):
        with patch.object(workspace.store, "reserve_spot", side_effect=RuntimeError("boom")):
            with pytest.raises(BatchAborted):
                await workspace.engine.submit_request("clock")
        report = await workspace.engine.submit_request("clock")
        assert report.outcome == RunOutcome.COMPLETED


@pytest.mark.asyncio
class TestCallbacks:

    async def test_lifecycle_order(self, recorded_workspace, recorder, adapter):
        adapter.plans.append(plan_json({"type": "CREATE", "prompt": "clock"}))
        await recorded_workspace.engine.submit_request("clock")
        assert recorder.names == [
            events.REQUEST_STARTED,
            events.PLAN_CREATED,
            events.ACTION_STARTED,
            events.WIDGET_CREATED,
            events.REQUEST_COMPLETED,
        ]
        completed = recorder.events[-1][1]
        assert completed["outcome"] == "completed"
        assert len(completed["created"]) == 1

    async def test_failing_callback_does_not_break_batch(self, settings_handle, router, config, caplog):
        def broken(event, data):
            raise ValueError("callback bug")

        workspace = Workspace.create(settings_handle, router, config, callbacks=[broken], preset=None)
        with caplog.at_level("WARNING", logger="ouroboros.core.engine"):
            report = await workspace.engine.submit_request("clock")
        assert report.outcome == RunOutcome.COMPLETED
        assert any("Callback error" in r.getMessage() for r in caplog.records)

    async def test_action_failed_event(self, recorded_workspace, recorder, adapter):
        adapter.sources.append(ProviderError("invalid key", status_code=401))
        await recorded_workspace.engine.submit_request("clock")
        failed = [data for name, data in recorder.events if name == events.ACTION_FAILED]
        assert failed[0]["type"] == "CREATE"
        assert "invalid key" in failed[0]["error"]


class TestDirectOperations:

    def test_remove_widget(self, workspace):
        _seed(workspace)
        workspace.engine.remove_widget("w1")
        assert len(workspace.store) == 0
        with pytest.raises(WidgetNotFound):
            workspace.engine.remove_widget("w1")

    def test_auto_layout_uses_configured_viewport(self, workspace):
        for i in range(4):
            _seed(workspace, f"w{i}", x=i * 10, y=900)
        laid = workspace.engine.auto_layout()
        assert [(w.x, w.y) for w in laid] == [(50, 100), (520, 100), (990, 100), (50, 620)]

    def test_geometry_delegates(self, workspace):
        _seed(workspace)
        workspace.engine.resize_widget("w1", 640, 480)
        workspace.engine.move_widget("w1", 1, 2)
        widget = workspace.store.get("w1")
        assert (widget.x, widget.y, widget.width, widget.height) == (1, 2, 640, 480)

    def test_load_preset_replaces_canvas(self, workspace):
        _seed(workspace)
        widgets = workspace.engine.load_preset("analyst")
        assert [w.id for w in widgets] == ["preset-analyst-ticker", "preset-analyst-finance"]
        assert "w1" not in workspace.store

    def test_load_unknown_preset(self, workspace):
        _seed(workspace)
        with pytest.raises(PresetNotFound):
            workspace.engine.load_preset("does-not-exist")
        assert "w1" in workspace.store
