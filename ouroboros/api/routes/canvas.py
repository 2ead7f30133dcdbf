"""Canvas-wide endpoints: auto-layout and preset loading."""

import logging
from typing import Optional

from fastapi import APIRouter, Request

from ouroboros.api.routes.requests import widget_to_response
from ouroboros.api.schemas import LayoutRequest, WidgetListResponse
from ouroboros.core.presets import list_presets

logger = logging.getLogger(__name__)
router = APIRouter(tags=["canvas"])


@router.post("/layout", response_model=WidgetListResponse)
async def auto_layout(request: Request, body: Optional[LayoutRequest] = None):
    """Re-flow every widget into a row-major grid for the given viewport width."""
    engine = request.app.state.workspace.engine
    widgets = engine.auto_layout(body.viewport_width if body else None)
    return WidgetListResponse(widgets=[widget_to_response(w) for w in widgets], reserved_spots=0)


@router.get("/presets", response_model=list[str])
async def presets(request: Request):
    return list_presets(request.app.state.workspace.config)


@router.post("/presets/{name}", response_model=WidgetListResponse)
async def load_preset(request: Request, name: str):
    """Replace the canvas with a preset's widgets."""
    engine = request.app.state.workspace.engine
    widgets = engine.load_preset(name)
    logger.info(f"[presets] Loaded '{name}' ({len(widgets)} widgets)")
    return WidgetListResponse(widgets=[widget_to_response(w) for w in widgets], reserved_spots=0)
