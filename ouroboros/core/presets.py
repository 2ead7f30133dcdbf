"""Load preset canvases (bulk widget sets) from YAML.

Resolution order for a preset named ``NAME``:
  1. Path passed explicitly by caller
  2. ./presets/NAME.yaml in current working directory
  3. ``OuroborosConfig.presets_dir``/NAME.yaml when configured
  4. Built-in defaults (ouroboros/core/defaults/NAME.yaml)
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ouroboros.config import OuroborosConfig
from ouroboros.config import config as _default_config
from ouroboros.exceptions import PresetNotFound
from ouroboros.types import Widget

_DEFAULTS_DIR = Path(__file__).parent / "defaults"

ONBOARDING_PRESET = "onboarding"
ONBOARDING_IDS = ("welcome-1", "idea-board-1")


class PresetWidgetYAML(BaseModel):
    id: str
    prompt_text: str
    source_code: str
    x: float = 0.0
    y: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None
    z_index: int = Field(default=0, ge=0)


class PresetYAML(BaseModel):
    name: str = ""
    description: str = ""
    widgets: list[PresetWidgetYAML] = Field(default_factory=list)


def _search_dirs(config: OuroborosConfig) -> list[Path]:
    dirs = [Path.cwd() / "presets"]
    if config.presets_dir is not None:
        dirs.append(Path(config.presets_dir))
    dirs.append(_DEFAULTS_DIR)
    return dirs


def _find_file(name: str, explicit: Optional[Path], config: OuroborosConfig) -> Path:
    """Locate preset file: explicit > cwd > configured dir > defaults."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise PresetNotFound(f"Preset file not found: {p}")
        return p

    for directory in _search_dirs(config):
        candidate = directory / f"{name}.yaml"
        if candidate.exists():
            return candidate

    raise PresetNotFound(
        f"No preset named '{name}'. Available: {', '.join(list_presets(config)) or 'none'}"
    )


def read_preset(name: str, path: Optional[Path] = None, config: Optional[OuroborosConfig] = None) -> PresetYAML:
    config = config or _default_config
    resolved = _find_file(name, path, config)
    try:
        raw = yaml.safe_load(resolved.read_text(encoding="utf-8"))
        return PresetYAML.model_validate(raw or {"widgets": []})
    except (yaml.YAMLError, ValidationError) as exc:
        raise PresetNotFound(f"Preset '{name}' at {resolved} is invalid: {exc}") from exc


def load_preset(name: str, path: Optional[Path] = None, config: Optional[OuroborosConfig] = None) -> list[Widget]:
    """Load a preset → list of Widget records ready for ``WidgetStore.replace_all``."""
    preset = read_preset(name, path, config)
    return [Widget(**entry.model_dump()) for entry in preset.widgets]


def list_presets(config: Optional[OuroborosConfig] = None) -> list[str]:
    """Names of every preset reachable through the search path, first hit wins."""
    config = config or _default_config
    names: dict[str, None] = {}
    for directory in _search_dirs(config):
        if directory.is_dir():
            for file in sorted(directory.glob("*.yaml")):
                names.setdefault(file.stem, None)
    return sorted(names)
