"""Typed exception hierarchy. Every error Ouroboros can raise."""


class OuroborosError(Exception):
    """Base exception for all Ouroboros errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


# ── Configuration ─────────────────────────────────────────────────────────────


class ConfigurationError(OuroborosError):
    """Settings are incomplete for the active backend. Never retried."""
    def __init__(self, message: str, provider: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.provider = provider


class MissingCredentialError(ConfigurationError):
    """No API key configured for the active backend."""
    pass


class MissingModelError(ConfigurationError):
    """No model selected for the active backend."""
    pass


# ── Backends ──────────────────────────────────────────────────────────────────


class ProviderError(OuroborosError):
    """A language-model backend rejected or failed a request.

    ``status_code`` is the HTTP status when one was received; ``code`` is the
    provider's own error code (e.g. ``RESOURCE_EXHAUSTED``) when present.
    """
    def __init__(
        self,
        message: str,
        status_code: int = None,
        provider: str = "",
        code: str = "",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.provider = provider
        self.code = code


# ── Pipeline stages ───────────────────────────────────────────────────────────


class PlanningError(OuroborosError):
    """The orchestrator response could not be turned into an ActionPlan."""
    pass


class GenerationError(OuroborosError):
    """The Architect or Engineer stage failed to produce widget source."""
    def __init__(self, message: str, stage: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.stage = stage


class SandboxError(OuroborosError):
    """Widget source violated the sandbox contract (forbidden import, dunder access)."""
    pass


class BatchAborted(OuroborosError):
    """An unexpected error stopped a batch of planned actions midway."""
    def __init__(self, message: str, completed_actions: int = 0, total_actions: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.completed_actions = completed_actions
        self.total_actions = total_actions


# ── Canvas ────────────────────────────────────────────────────────────────────


class WidgetNotFound(OuroborosError):
    """No widget with the requested id lives on the canvas."""
    def __init__(self, message: str, widget_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.widget_id = widget_id


class PresetNotFound(OuroborosError):
    """Requested preset does not exist in any preset directory."""
    pass
