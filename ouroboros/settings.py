"""User settings: backend credentials, model choices, language, preferences.

``AppSettings`` is an immutable snapshot. ``SettingsStore`` persists it as a
single JSON record (the local-storage analogue); ``SettingsHandle`` is the
read-through, atomically swappable reference long-lived components hold.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from ouroboros.types import AccessibilitySettings, Language, Provider, Theme

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    Language.EN: "English",
    Language.ES: "Spanish (Español)",
}

# Environment variables consulted when the record has no key for a provider.
ENV_KEYS = {
    Provider.GOOGLE: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    Provider.OPENAI: ("OPENAI_API_KEY",),
    Provider.ANTHROPIC: ("ANTHROPIC_API_KEY",),
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class GridVisuals(_Frozen):
    style: Literal["dots", "lines"] = "dots"
    opacity: float = 0.4


class ProviderKeys(_Frozen):
    google: str = ""
    openai: str = ""
    anthropic: str = ""


class ModelChoices(_Frozen):
    google: str = "gemini-2.5-pro"
    openai: str = "gpt-4o"
    anthropic: str = "claude-3-5-sonnet-20240620"
    ollama: str = "ollama/qwen2.5-coder:7b"


class SuggestionPreferences(_Frozen):
    mode: Literal["generative", "preselected"] = "generative"
    model: str = "gemini-2.5-flash-lite"


class Shortcuts(_Frozen):
    agent_focus: str = "Mod+k"
    auto_layout: str = "Shift+l"
    reset_view: str = "r"
    zoom_in: str = "Mod+="
    zoom_out: str = "Mod+-"
    toggle_theme: str = "Mod+Shift+t"
    help: str = "Shift+?"
    delete_widget: str = "Delete"
    emergency: str = "Mod+Shift+e"


class AppSettings(_Frozen):
    language: Language = Language.EN
    provider: Provider = Provider.GOOGLE
    theme: Theme = Theme.LIGHT
    snap_to_grid: bool = True
    grid_visuals: GridVisuals = GridVisuals()
    keys: ProviderKeys = ProviderKeys()
    models: ModelChoices = ModelChoices()
    suggestions: SuggestionPreferences = SuggestionPreferences()
    shortcuts: Shortcuts = Shortcuts()
    accessibility: AccessibilitySettings = AccessibilitySettings()

    def credential(self, provider: Optional[Provider] = None) -> str:
        provider = Provider(provider or self.provider)
        if provider == Provider.OLLAMA:
            return ""
        return getattr(self.keys, provider.value)

    def model_id(self, provider: Optional[Provider] = None) -> str:
        provider = Provider(provider or self.provider)
        return getattr(self.models, provider.value)

    @property
    def has_credential(self) -> bool:
        """True when the active backend can be called. Local models need no key."""
        return self.provider == Provider.OLLAMA or bool(self.credential())

    @property
    def language_name(self) -> str:
        return LANGUAGE_NAMES[self.language]

    def merged(self, patch: dict) -> "AppSettings":
        """New snapshot with *patch* deep-merged over this one."""
        return AppSettings.model_validate(_deep_merge(self.model_dump(mode="json"), patch))

    def with_key(self, provider: Provider, key: str) -> "AppSettings":
        return self.merged({"keys": {Provider(provider).value: key}})

    def with_model(self, provider: Provider, model: str) -> "AppSettings":
        return self.merged({"models": {Provider(provider).value: model}})

    def masked(self) -> dict:
        """JSON-ready dump with credentials reduced to a hint."""
        data = self.model_dump(mode="json")
        data["keys"] = {name: mask_secret(value) for name, value in data["keys"].items()}
        return data


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def _deep_merge(base: dict, patch: dict) -> dict:
    merged = dict(base)
    for key, value in (patch or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_keys(settings: AppSettings, environ: Optional[dict] = None) -> dict[str, str]:
    """Keys the environment supplies for providers the record has none for."""
    environ = os.environ if environ is None else environ
    found: dict[str, str] = {}
    for provider, names in ENV_KEYS.items():
        if settings.credential(provider):
            continue
        for name in names:
            if environ.get(name):
                found[provider.value] = environ[name]
                break
    return found


def seed_from_env(settings: AppSettings, environ: Optional[dict] = None) -> AppSettings:
    """Fill empty provider keys from the usual environment variables."""
    patch = env_keys(settings, environ)
    return settings.merged({"keys": patch}) if patch else settings


class SettingsStore:
    """JSON-file persistence for ``AppSettings``.

    Keys that ``load`` filled in from the environment stay out of the file:
    ``save`` blanks any key still equal to the value the environment supplied.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._env_keys: dict[str, str] = {}

    def load(self, seed_env: bool = True) -> AppSettings:
        """Read the record, merging nested sections over defaults.

        A missing file yields defaults; a corrupt one is logged and also
        yields defaults.
        """
        settings = AppSettings()
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, dict):
                    raise ValueError("settings record must be a JSON object")
                settings = AppSettings.model_validate(raw)
            except (ValueError, ValidationError) as exc:
                logger.error("Failed to load settings from %s: %s", self.path, exc)
                settings = AppSettings()
        if not seed_env:
            return settings
        self._env_keys = env_keys(settings)
        return settings.merged({"keys": self._env_keys}) if self._env_keys else settings

    def save(self, settings: AppSettings) -> None:
        data = settings.model_dump(mode="json")
        for provider, value in self._env_keys.items():
            if data["keys"].get(provider) == value:
                data["keys"][provider] = ""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug("Settings saved to %s", self.path)


class SettingsHandle:
    """Read-through reference to the current settings snapshot.

    Components call ``get()`` when they need settings; ``set()`` swaps the
    snapshot in one assignment and persists it when a store is attached.
    """

    def __init__(self, settings: Optional[AppSettings] = None, store: Optional[SettingsStore] = None) -> None:
        self._current = settings or AppSettings()
        self._store = store

    @classmethod
    def from_store(cls, store: SettingsStore) -> "SettingsHandle":
        return cls(store.load(), store=store)

    def get(self) -> AppSettings:
        return self._current

    def set(self, settings: AppSettings) -> AppSettings:
        self._current = settings
        if self._store is not None:
            self._store.save(settings)
        return settings

    def update(self, patch: dict[str, Any]) -> AppSettings:
        return self.set(self._current.merged(patch))
