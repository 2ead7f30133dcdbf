"""All shared types, enums, and type aliases. Everything imports from here."""

import time
import uuid
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator,
)


# ── Enums ──────────────────────────────────────────────────────────────

class ActionType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

class Actor(str, Enum):
    ORCHESTRATOR = "Orchestrator"
    ARCHITECT = "Architect"
    ENGINEER = "Engineer"
    SYSTEM = "System"

class Provider(str, Enum):
    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"       # local models, no credential

class Language(str, Enum):
    EN = "en"
    ES = "es"

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

class TemplateId(str, Enum):
    DASHBOARD = "dashboard"   # analytics, charts, stat grids
    CHAT = "chat"             # conversational interfaces
    LIST = "list"             # task lists, kanban, feeds
    TOOL = "tool"             # calculators, forms
    BLANK = "blank"           # nothing fits

class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"

class GenerationStage(str, Enum):
    DRAFTING = "drafting"         # Architect is writing the brief
    ENGINEERING = "engineering"   # Engineer is writing the source
    DONE = "done"
    FAILED = "failed"

class RunOutcome(str, Enum):
    COMPLETED = "completed"
    BUSY = "busy"                       # another batch is in flight
    NOT_CONFIGURED = "not_configured"   # no credential for the active backend
    EMPTY = "empty"                     # nothing to do (empty canvas)


# ── Canvas ─────────────────────────────────────────────────────────────

class Widget(BaseModel):
    """A generated UI component placed on the shared canvas."""
    id: str
    source_code: str
    prompt_text: str
    x: float = 0.0
    y: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None
    expanded: bool = False          # full-viewport overlay; x/y/size ignored
    z_index: int = Field(default=0, ge=0)

class WidgetSummary(BaseModel):
    """What the orchestrator sees of a live widget."""
    id: str
    prompt_text: str

class ReservedSpot(BaseModel):
    """Batch-scoped claim on a layout cell, dropped when the widget list changes."""
    x: float
    y: float
    widget_id: Optional[str] = None


# ── Planning ───────────────────────────────────────────────────────────

class Action(BaseModel):
    """One planned CREATE / UPDATE / DELETE."""
    type: ActionType
    id: Optional[str] = None
    prompt_text: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("prompt_text", "promptText", "prompt"),
    )

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value or None
        return str(value)

class ActionPlan(BaseModel):
    """Orchestrator output: rationale plus ordered actions."""
    thought: str = ""
    actions: list[Action]


# ── Generation ─────────────────────────────────────────────────────────

class AccessibilitySettings(BaseModel):
    reduce_motion: bool = False
    high_contrast: bool = False
    large_text: bool = False
    screen_reader: bool = False

class DesignBrief(BaseModel):
    """Architect output handed to the Engineer."""
    text: str
    template_id: TemplateId = TemplateId.BLANK
    language: Language = Language.EN


# ── Activity log / status ──────────────────────────────────────────────

class LogEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = Field(default_factory=time.time)
    actor: Actor
    message: str
    data: Any = None                # plan actions, brief text, source excerpt

class EngineStatus(BaseModel):
    """Live status snapshot for the UI shell."""
    loading: bool
    status_message: str
    log_entries: list[LogEntry]

class RunReport(BaseModel):
    """What a top-level request or regeneration did to the canvas."""
    outcome: RunOutcome
    plan: Optional[ActionPlan] = None
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)   # prompt or widget id
    error: Optional[str] = None


# ── Compilation ────────────────────────────────────────────────────────

class CompilationResult(BaseModel):
    """Exactly one of component / error is set."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    component: Optional[Callable[..., Any]] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "CompilationResult":
        if (self.component is None) == (self.error is None):
            raise ValueError("CompilationResult needs exactly one of component or error")
        return self

    @classmethod
    def ok(cls, component: Callable[..., Any]) -> "CompilationResult":
        return cls(component=component)

    @classmethod
    def failed(cls, error: str) -> "CompilationResult":
        return cls(error=error or "Unknown compilation error")


class RenderPhase(str, Enum):
    OK = "ok"
    COMPILE = "compile"     # source never produced a component
    RUNTIME = "runtime"     # component raised while rendering or handling an event
