"""Application configuration. All env vars defined here with defaults."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class OuroborosConfig(BaseSettings):
    # ── App ──
    app_name: str = "ouroboros"
    debug: bool = False
    log_level: str = "INFO"

    # ── Persisted user settings (local-storage analogue) ──
    settings_path: Path = Path.home() / ".ouroboros" / "settings.json"
    presets_dir: Optional[Path] = None          # extra preset YAML directory

    # ── LLM backends ──
    llm_timeout_seconds: float = 60.0
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.7
    ollama_base_url: str = "http://localhost:11434"

    # ── Retry policy ──
    llm_max_retries: int = 3
    llm_retry_base_delay: float = 1.0           # seconds, doubled per attempt
    llm_retry_max_jitter: float = 1.0           # seconds of random jitter on top

    # ── Execution pacing ──
    action_pacing_seconds: float = 0.5          # before every planned action
    delete_settle_seconds: float = 0.3          # after a DELETE
    failure_pause_seconds: float = 1.0          # after a failed CREATE
    regenerate_pause_seconds: float = 0.8       # between widgets in regenerate-all

    # ── Sandbox ──
    sandbox_max_execution_seconds: float = 2.0  # per module body, render or handler; 0 disables

    # ── Canvas ──
    viewport_width: int = 1920                  # default width for auto-layout

    # ── Server ──
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server

    model_config = {"env_prefix": "OUROBOROS_", "env_file": ".env", "extra": "ignore"}


config = OuroborosConfig()
