"""Widget endpoints: list, render, event dispatch, remove, resize, move, reorder, regenerate."""

import logging
import time

from fastapi import APIRouter, HTTPException, Request

from ouroboros.api.routes.requests import report_to_response, widget_to_response
from ouroboros.api.schemas import (
    HandlerRequest, MoveRequest, RenderResponse, ReorderRequest, ResizeRequest,
    RunResponse, WidgetListResponse, WidgetResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/widgets", tags=["widgets"])


@router.get("", response_model=WidgetListResponse)
async def list_widgets(request: Request, include_source: bool = False):
    store = request.app.state.workspace.store
    return WidgetListResponse(
        widgets=[widget_to_response(w, include_source) for w in store.widgets],
        reserved_spots=len(store.reserved_spots),
    )


@router.put("/order", response_model=WidgetListResponse)
async def reorder_widgets(request: Request, body: ReorderRequest):
    engine = request.app.state.workspace.engine
    widgets = engine.reorder_widgets(body.order)
    return WidgetListResponse(widgets=[widget_to_response(w) for w in widgets], reserved_spots=0)


@router.post("/regenerate", response_model=RunResponse)
async def regenerate_all(request: Request):
    start = time.time()
    workspace = request.app.state.workspace
    report = await workspace.engine.regenerate_all()
    return report_to_response(report, workspace.store.widgets, start)


@router.get("/{widget_id}", response_model=WidgetResponse)
async def get_widget(request: Request, widget_id: str):
    widget = request.app.state.workspace.store.get(widget_id)
    return widget_to_response(widget, include_source=True)


@router.get("/{widget_id}/render", response_model=RenderResponse)
async def render_widget(request: Request, widget_id: str):
    """Compile (cached) and render a widget to an element tree."""
    workspace = request.app.state.workspace
    widget = workspace.store.get(widget_id)
    result = workspace.renderer.render(widget)
    return RenderResponse(widget_id=widget_id, **result.to_dict())


@router.post("/{widget_id}/handlers/{handler_id}", response_model=RenderResponse)
async def dispatch_handler(request: Request, widget_id: str, handler_id: str, body: HandlerRequest):
    """Invoke an event handler from the widget's last render and re-render it."""
    workspace = request.app.state.workspace
    widget = workspace.store.get(widget_id)
    try:
        result = workspace.renderer.dispatch(widget, handler_id, *body.args)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Handler '{handler_id}' not found on widget '{widget_id}'")
    return RenderResponse(widget_id=widget_id, **result.to_dict())


@router.delete("/{widget_id}", status_code=204)
async def remove_widget(request: Request, widget_id: str):
    request.app.state.workspace.engine.remove_widget(widget_id)


@router.patch("/{widget_id}/size", response_model=WidgetResponse)
async def resize_widget(request: Request, widget_id: str, body: ResizeRequest):
    engine = request.app.state.workspace.engine
    return widget_to_response(engine.resize_widget(widget_id, body.width, body.height))


@router.patch("/{widget_id}/position", response_model=WidgetResponse)
async def move_widget(request: Request, widget_id: str, body: MoveRequest):
    engine = request.app.state.workspace.engine
    return widget_to_response(engine.move_widget(widget_id, body.x, body.y))


@router.post("/{widget_id}/front", response_model=WidgetResponse)
async def bring_to_front(request: Request, widget_id: str):
    engine = request.app.state.workspace.engine
    return widget_to_response(engine.bring_to_front(widget_id))


@router.post("/{widget_id}/expand", response_model=WidgetResponse)
async def toggle_expand(request: Request, widget_id: str):
    engine = request.app.state.workspace.engine
    return widget_to_response(engine.toggle_expand(widget_id))


@router.post("/{widget_id}/regenerate", response_model=RunResponse)
async def regenerate_one(request: Request, widget_id: str):
    start = time.time()
    workspace = request.app.state.workspace
    report = await workspace.engine.regenerate_one(widget_id)
    return report_to_response(report, workspace.store.widgets, start)
