"""Ouroboros: a canvas of UI widgets written by language models.

Usage:
    from ouroboros import Workspace

    ws = Workspace.create()
    report = await ws.engine.submit_request("Add a pomodoro timer")
    for widget in ws.store.widgets:
        print(ws.renderer.render(widget).to_dict())
"""

from ouroboros.types import (
    Widget, WidgetSummary, ReservedSpot, Action, ActionPlan, DesignBrief,
    LogEntry, EngineStatus, RunReport, CompilationResult, AccessibilitySettings,
    ActionType, Actor, Provider, Language, Theme, TemplateId, EngineState,
    GenerationStage, RunOutcome, RenderPhase,
)
from ouroboros.exceptions import (
    OuroborosError, ConfigurationError, MissingCredentialError, MissingModelError,
    ProviderError, PlanningError, GenerationError, SandboxError, BatchAborted,
    WidgetNotFound, PresetNotFound,
)
from ouroboros.settings import AppSettings, SettingsHandle, SettingsStore
from ouroboros.core.workspace import Workspace
from ouroboros.version import __version__

__all__ = [
    "Widget", "WidgetSummary", "ReservedSpot", "Action", "ActionPlan", "DesignBrief",
    "LogEntry", "EngineStatus", "RunReport", "CompilationResult", "AccessibilitySettings",
    "ActionType", "Actor", "Provider", "Language", "Theme", "TemplateId", "EngineState",
    "GenerationStage", "RunOutcome", "RenderPhase",
    "OuroborosError", "ConfigurationError", "MissingCredentialError", "MissingModelError",
    "ProviderError", "PlanningError", "GenerationError", "SandboxError", "BatchAborted",
    "WidgetNotFound", "PresetNotFound",
    "AppSettings", "SettingsHandle", "SettingsStore",
    "Workspace",
    "__version__",
]
