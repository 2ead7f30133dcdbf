"""Orchestrator stage: user request + live widget summaries -> ActionPlan.

One structured-output call through the provider router. The reply is parsed
leniently (fences and surrounding prose are tolerated). Any failure, whether
network, parse or validation, degrades to a single CREATE of the user's own
prompt so a first request always makes progress.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from ouroboros.exceptions import ConfigurationError, OuroborosError, PlanningError
from ouroboros.llm import prompts
from ouroboros.llm.client import ProviderRouter, get_router
from ouroboros.settings import AppSettings
from ouroboros.types import Action, ActionPlan, ActionType, WidgetSummary

logger = logging.getLogger(__name__)

FALLBACK_THOUGHT = "fallback"


def parse_json_object(raw: str) -> dict[str, Any]:
    """Extract the JSON object from an LLM response string.

    Tries four strategies in order:
      1. Direct json.loads on the stripped string.
      2. Extract content from ```json ... ``` fences.
      3. Extract content from ``` ... ``` fences (no language tag).
      4. Find the first {...} block in free-form prose.

    Raises:
        PlanningError: if no JSON object is found.
    """
    text = (raw or "").strip()
    if not text:
        raise PlanningError("LLM returned an empty response.")

    candidates = [text]
    m = re.search(r"```json\s*([\s\S]+?)\s*```", text)
    if m:
        candidates.append(m.group(1))
    m = re.search(r"```\s*([\s\S]+?)\s*```", text)
    if m:
        candidates.append(m.group(1))
    m = re.search(r"\{[\s\S]*\}", text)
    if m:
        candidates.append(m.group(0))

    for candidate in candidates:
        try:
            obj = json.loads(candidate.strip())
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(obj, dict):
            return obj
    raise PlanningError(
        "Could not extract a JSON object from the planner response.",
        details={"raw": text[:500]},
    )


def parse_plan(raw: str) -> ActionPlan:
    """Parse and validate a planner response.

    Raises:
        PlanningError: not JSON, no ``actions`` list, or invalid actions.
    """
    data = parse_json_object(raw)
    if not isinstance(data.get("actions"), list):
        raise PlanningError("Planner response has no 'actions' list.", details={"keys": sorted(data)})
    try:
        return ActionPlan.model_validate(data)
    except ValidationError as exc:
        raise PlanningError(f"Planner response failed validation: {exc}") from exc


def fallback_plan(user_prompt: str) -> ActionPlan:
    return ActionPlan(
        thought=FALLBACK_THOUGHT,
        actions=[Action(type=ActionType.CREATE, prompt_text=user_prompt)],
    )


def build_plan_prompt(user_prompt: str, widgets: list[WidgetSummary], settings: AppSettings) -> str:
    if widgets:
        lines = "\n".join(prompts.WIDGET_LINE.format(id=w.id, prompt_text=w.prompt_text) for w in widgets)
        context = prompts.DASHBOARD_STATE.format(widget_lines=lines)
    else:
        context = prompts.EMPTY_DASHBOARD
    language = "Spanish" if settings.language == "es" else "English"
    return prompts.PLAN_REQUEST.format(user_prompt=user_prompt, language=language, context=context)


async def plan_actions(
    user_prompt: str,
    widget_summaries: list[WidgetSummary],
    settings: AppSettings,
    router: Optional[ProviderRouter] = None,
) -> ActionPlan:
    """Ask the orchestrator what to create, update or delete.

    Never raises for backend or parse failures; returns ``fallback_plan`` instead.
    Configuration errors still propagate, since no plan can run without a backend.
    """
    router = router or get_router()
    prompt = build_plan_prompt(user_prompt, widget_summaries, settings)
    raw = ""
    try:
        raw = await router.call_model(settings, prompt, prompts.ORCHESTRATOR_SYSTEM, wants_structured_output=True)
        plan = parse_plan(raw)
    except ConfigurationError:
        raise
    except OuroborosError as exc:
        logger.warning("Planning failed, using fallback plan: %s (response: %.200r)", exc, raw)
        return fallback_plan(user_prompt)

    logger.info("Plan created: %d action(s)", len(plan.actions))
    return plan
