"""Callback/hook system for engine lifecycle events."""

from ouroboros.callbacks.base import BaseCallback, OuroborosCallback
from ouroboros.callbacks.logging import LoggingCallback

__all__ = ["BaseCallback", "OuroborosCallback", "LoggingCallback"]
