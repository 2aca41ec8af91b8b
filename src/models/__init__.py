"""
Data models for VR pointer focus and interaction recording
"""

from .enums import ControllerButton, ControllerNode, TransitionKind
from .focus import FocusSnapshot, FocusTransition

# Interaction log records (durable CSV format)
from .interaction_record import LOG_FIELDS, LOG_HEADER, EventRecord
from .targets import SourceId, Target, TargetId

__all__ = [
    "ControllerButton",
    "ControllerNode",
    "TransitionKind",
    "FocusSnapshot",
    "FocusTransition",
    "Target",
    "TargetId",
    "SourceId",
    # Interaction log
    "EventRecord",
    "LOG_HEADER",
    "LOG_FIELDS",
]
