"""Two-stage widget generation: Architect (design brief) then Engineer (source).

    DRAFTING --DesignBrief--> ENGINEERING --source--> DONE
        \\                          \\
         +------------------------> FAILED  (GenerationError, chained to the cause)

The Architect writes free-text guidance ending in ``RECOMMENDED_TEMPLATE: <id>``.
The Engineer receives that brief plus the localized skeleton for the chosen
template and returns the final widget module.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional

from ouroboros.exceptions import ConfigurationError, GenerationError, OuroborosError
from ouroboros.llm import prompts
from ouroboros.llm.client import ProviderRouter, get_router
from ouroboros.runtime.compiler import strip_fences
from ouroboros.settings import LANGUAGE_NAMES, AppSettings
from ouroboros.types import (
    AccessibilitySettings, Actor, DesignBrief, GenerationStage, Language, TemplateId, Theme,
)
from ouroboros.core.templates import get_template

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
LogCallback = Callable[[Actor, str, Any], None]

FALLBACK_TEMPLATE = TemplateId.BLANK

_TEMPLATE_SELECTOR = re.compile(r"RECOMMENDED_TEMPLATE:\s*\[?(\w+)\]?", re.IGNORECASE)

# Coarse progress strings for the UI shell.
STATUS_DESIGNING = "Architect: Designing technical specification..."
STATUS_ENGINEERING = "Engineer: Adapting {template} template..."
STATUS_COMPILING = "Engineer: Compiling component..."


def extract_template_id(brief_text: str) -> TemplateId:
    """Read the trailing selector line; ``blank`` when absent or unrecognized."""
    matches = _TEMPLATE_SELECTOR.findall(brief_text or "")
    if not matches:
        return FALLBACK_TEMPLATE
    try:
        return TemplateId(matches[-1].lower())
    except ValueError:
        return FALLBACK_TEMPLATE


def _accessibility_needs(a11y: AccessibilitySettings) -> str:
    needs = [name.replace("_", " ") for name, enabled in a11y.model_dump().items() if enabled]
    return prompts.ACCESSIBILITY_NOTE.format(needs=", ".join(needs)) if needs else ""


class WidgetGenerator:
    """Runs the Architect -> Engineer pipeline for one widget prompt."""

    def __init__(
        self,
        router: Optional[ProviderRouter] = None,
        on_status: Optional[StatusCallback] = None,
        on_log: Optional[LogCallback] = None,
    ) -> None:
        self._router = router or get_router()
        self._on_status = on_status
        self._on_log = on_log
        self.stage: Optional[GenerationStage] = None

    def _status(self, message: str) -> None:
        if self._on_status:
            self._on_status(message)

    def _log(self, actor: Actor, message: str, data: Any = None) -> None:
        logger.info("[%s] %s", actor.value, message)
        if self._on_log:
            self._on_log(actor, message, data)

    # ── Stage A ───────────────────────────────────────────────────────────────

    async def design_brief(
        self,
        prompt_text: str,
        settings: AppSettings,
        theme: Theme = Theme.LIGHT,
        a11y: Optional[AccessibilitySettings] = None,
    ) -> DesignBrief:
        a11y = a11y or AccessibilitySettings()
        self.stage = GenerationStage.DRAFTING
        self._status(STATUS_DESIGNING)
        self._log(Actor.ARCHITECT, "Designing technical specification...", prompt_text)

        request = prompts.ARCHITECT_REQUEST.format(
            prompt_text=prompt_text,
            language=settings.language_name,
            theme=Theme(theme).value.upper(),
            accessibility=_accessibility_needs(a11y),
        )
        text = await self._router.call_model(settings, request, prompts.ARCHITECT_SYSTEM, False)
        if not text.strip():
            raise GenerationError("Architect returned an empty blueprint.", stage=GenerationStage.DRAFTING.value)

        brief = DesignBrief(text=text, template_id=extract_template_id(text), language=settings.language)
        self._log(Actor.ARCHITECT, "Blueprint created.", text)
        return brief

    # ── Stage B ───────────────────────────────────────────────────────────────

    async def write_component(
        self,
        brief: DesignBrief,
        template_skeleton: str,
        settings: AppSettings,
        theme: Theme = Theme.LIGHT,
        language: Optional[Language] = None,
        a11y: Optional[AccessibilitySettings] = None,
    ) -> str:
        a11y = a11y or AccessibilitySettings()
        self.stage = GenerationStage.ENGINEERING
        template = brief.template_id.value.upper()
        self._status(STATUS_ENGINEERING.format(template=template))
        self._log(Actor.ENGINEER, f"Selected Template: {template}")

        requirements = ""
        if a11y.screen_reader:
            requirements += prompts.SCREEN_READER_REQUIREMENTS
        if a11y.reduce_motion:
            requirements += prompts.REDUCED_MOTION_REQUIREMENTS

        language_name = LANGUAGE_NAMES[Language(language or settings.language)]
        request = prompts.ENGINEER_REQUEST.format(
            brief=brief.text,
            theme=Theme(theme).value.upper(),
            language=language_name,
            requirements=requirements,
            skeleton=template_skeleton,
        )
        raw = await self._router.call_model(settings, request, prompts.ENGINEER_SYSTEM, False)
        source = strip_fences(raw).strip()
        if not source:
            raise GenerationError("Engineer returned empty source.", stage=GenerationStage.ENGINEERING.value)

        self._status(STATUS_COMPILING)
        self._log(Actor.ENGINEER, "Component source written.", source[:150] + "...")
        return source + "\n"

    # ── Full pipeline ─────────────────────────────────────────────────────────

    async def generate(
        self,
        prompt_text: str,
        settings: AppSettings,
        theme: Theme = Theme.LIGHT,
        a11y: Optional[AccessibilitySettings] = None,
    ) -> str:
        """Produce widget source for *prompt_text*.

        Raises:
            GenerationError: either stage failed; ``__cause__`` holds the original error.
        """
        a11y = a11y or settings.accessibility
        try:
            brief = await self.design_brief(prompt_text, settings, theme, a11y)
            skeleton = get_template(brief.template_id, settings.language)
            source = await self.write_component(brief, skeleton, settings, theme, settings.language, a11y)
        except (GenerationError, ConfigurationError):
            self.stage = GenerationStage.FAILED
            raise
        except OuroborosError as exc:
            failed_stage = self.stage
            self.stage = GenerationStage.FAILED
            raise GenerationError(
                f"Failed to generate widget code: {exc}",
                stage=failed_stage.value if failed_stage else "",
            ) from exc
        self.stage = GenerationStage.DONE
        return source
