"""GET/PUT /v1/settings — user settings with credentials masked on the way out."""

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from ouroboros.api.schemas import SettingsPatch

logger = logging.getLogger(__name__)
router = APIRouter(tags=["settings"])


@router.get("/settings")
async def get_settings(request: Request) -> dict:
    return request.app.state.workspace.settings.get().masked()


@router.put("/settings")
async def update_settings(request: Request, body: SettingsPatch) -> dict:
    """Deep-merge *patch* over the current settings and persist the result."""
    handle = request.app.state.workspace.settings
    try:
        updated = handle.update(body.patch)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False))
    logger.info(f"[settings] Updated sections: {', '.join(sorted(body.patch)) or 'none'}")
    return updated.masked()
