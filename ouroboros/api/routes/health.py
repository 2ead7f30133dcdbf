"""GET /v1/health — Health check with real component checks."""

import logging

from fastapi import APIRouter, Request

from ouroboros.api.schemas import HealthResponse
from ouroboros.runtime.compiler import compile_component
from ouroboros.version import __version__

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

_SANDBOX_CHECK_SOURCE = "from ui import Text\n\nexport default def Ping(props):\n    return Text('ok')\n"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Check the engine, the sandbox and backend configuration."""
    services: dict[str, bool] = {"api": True, "engine": False, "sandbox": False, "llm": False}
    workspace = getattr(request.app.state, "workspace", None)

    services["engine"] = workspace is not None

    check = compile_component(_SANDBOX_CHECK_SOURCE)
    services["sandbox"] = check.error is None
    if check.error:
        logger.warning(f"[health] Sandbox check failed: {check.error}")

    # A configured credential is as far as we go; calling the model here would be too slow
    if workspace is not None:
        services["llm"] = workspace.settings.get().has_credential

    overall = "ok" if all(services.values()) else "degraded"
    return HealthResponse(status=overall, version=__version__, services=services)
