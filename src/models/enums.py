"""
Enumerations for focus transitions and controller input
"""

from enum import Enum


class TransitionKind(str, Enum):
    """Focus transition kind"""

    OPENED = "opened"
    CLOSED = "closed"


class ControllerButton(str, Enum):
    """Controller buttons whose press/release edges are tracked"""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    TRIGGER = "trigger"
    GRIP = "grip"

    @property
    def label(self) -> str:
        """Human readable name used in log lines ('Primary Button')."""
        return f"{self.value.capitalize()} Button"


class ControllerNode(str, Enum):
    """Tracked XR nodes"""

    LEFT_HAND = "LeftHand"
    RIGHT_HAND = "RightHand"
    HEAD = "Head"
