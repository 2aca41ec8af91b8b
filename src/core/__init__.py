"""Core module - focus arbitration and interaction recording"""

from .clock import ms_to_datetime, now_ms, seconds_to_ms
from .event_recorder import (
    AppendResult,
    CsvFileSink,
    EventRecorder,
    PersistenceError,
    RecorderResult,
)
from .focus_arbiter import FocusArbiter

__all__ = [
    "AppendResult",
    "CsvFileSink",
    "EventRecorder",
    "FocusArbiter",
    "PersistenceError",
    "RecorderResult",
    "ms_to_datetime",
    "now_ms",
    "seconds_to_ms",
]
