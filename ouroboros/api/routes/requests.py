"""POST /v1/requests — Primary Ouroboros endpoint. GET /v1/status — live engine status."""

import logging
import time

from fastapi import APIRouter, HTTPException, Request

from ouroboros.api.schemas import (
    ActionResponse, LogEntryResponse, RunResponse, StatusResponse, SubmitRequest, WidgetResponse,
)
from ouroboros.types import RunOutcome, RunReport, Widget

logger = logging.getLogger(__name__)
router = APIRouter(tags=["requests"])


def widget_to_response(widget: Widget, include_source: bool = False) -> WidgetResponse:
    return WidgetResponse(
        id=widget.id,
        prompt_text=widget.prompt_text,
        x=widget.x,
        y=widget.y,
        width=widget.width,
        height=widget.height,
        expanded=widget.expanded,
        z_index=widget.z_index,
        source_code=widget.source_code if include_source else None,
    )


def report_to_response(report: RunReport, widgets: list[Widget], start: float) -> RunResponse:
    """Convert a RunReport to the API shape, raising for rejected runs."""
    if report.outcome == RunOutcome.BUSY:
        raise HTTPException(status_code=409, detail="A request is already running")
    if report.outcome == RunOutcome.NOT_CONFIGURED:
        raise HTTPException(status_code=412, detail=report.error or "Backend not configured")

    plan = report.plan
    return RunResponse(
        outcome=report.outcome.value,
        thought=plan.thought if plan else None,
        actions=[
            ActionResponse(type=a.type.value, id=a.id, prompt_text=a.prompt_text)
            for a in (plan.actions if plan else [])
        ],
        created=report.created,
        updated=report.updated,
        deleted=report.deleted,
        failed=report.failed,
        widgets=[widget_to_response(w) for w in widgets],
        duration_ms=int((time.time() - start) * 1000),
    )


@router.post("/requests", response_model=RunResponse)
async def submit_request(request: Request, body: SubmitRequest):
    """Plan and execute a natural-language request against the canvas."""
    start = time.time()
    workspace = request.app.state.workspace
    report = await workspace.engine.submit_request(body.prompt)
    return report_to_response(report, workspace.store.widgets, start)


@router.get("/status", response_model=StatusResponse)
async def engine_status(request: Request):
    workspace = request.app.state.workspace
    status = workspace.engine.status()
    settings = workspace.settings.get()
    return StatusResponse(
        loading=status.loading,
        status_message=status.status_message,
        log_entries=[
            LogEntryResponse(
                id=entry.id,
                timestamp=entry.timestamp,
                actor=entry.actor.value,
                message=entry.message,
                data=entry.data,
            )
            for entry in status.log_entries
        ],
        provider=settings.provider,
        configured=settings.has_credential,
    )
