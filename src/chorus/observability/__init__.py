"""Observability: callbacks, message statistics and the JSONL event log."""

from .callbacks import (
    CallbackManager,
    OnErrorCallback,
    OnMessageCallback,
    OnStopCallback,
    create_logging_callbacks,
)
from .logging import EventLogger
from .stats import MessageRecord, StatsTracker

__all__ = [
    # Callbacks
    "CallbackManager",
    "OnMessageCallback",
    "OnErrorCallback",
    "OnStopCallback",
    "create_logging_callbacks",
    # Logging
    "EventLogger",
    # Stats
    "StatsTracker",
    "MessageRecord",
]
