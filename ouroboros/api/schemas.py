"""Pydantic models for API request/response. Mirrors types.py for API I/O."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ouroboros.types import Provider


# ── Requests ──

class SubmitRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=10000)   # "Add a pomodoro timer"


class ResizeRequest(BaseModel):
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class MoveRequest(BaseModel):
    x: float
    y: float


class ReorderRequest(BaseModel):
    order: list[str]


class LayoutRequest(BaseModel):
    viewport_width: Optional[float] = Field(default=None, gt=0)


class HandlerRequest(BaseModel):
    args: list[Any] = []


class SettingsPatch(BaseModel):
    """Deep-merged over the current settings; any subset of sections is allowed."""
    patch: dict[str, Any]


# ── Responses ──

class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict[str, bool]


class WidgetResponse(BaseModel):
    id: str
    prompt_text: str
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    expanded: bool
    z_index: int
    source_code: Optional[str] = None


class WidgetListResponse(BaseModel):
    widgets: list[WidgetResponse]
    reserved_spots: int


class LogEntryResponse(BaseModel):
    id: str
    timestamp: float
    actor: str
    message: str
    data: Any = None


class StatusResponse(BaseModel):
    loading: bool
    status_message: str
    log_entries: list[LogEntryResponse]
    provider: Provider
    configured: bool


class ActionResponse(BaseModel):
    type: str
    id: Optional[str] = None
    prompt_text: Optional[str] = None


class RunResponse(BaseModel):
    outcome: str
    thought: Optional[str] = None
    actions: list[ActionResponse] = []
    created: list[str]
    updated: list[str]
    deleted: list[str]
    failed: list[str]
    widgets: list[WidgetResponse]
    duration_ms: int


class RenderResponse(BaseModel):
    widget_id: str
    element: dict
    error: Optional[str] = None
    phase: str
