"""
Controller Input Tracker

Turns sampled controller button states into press/release edges and
keeps per-controller press counts.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from models import ControllerButton

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ButtonEdge:
    """A button changed state on one controller"""

    controller: str
    button: ControllerButton
    pressed: bool
    count: int  # presses so far, including this one when pressed

    @property
    def released(self) -> bool:
        return not self.pressed


class ControllerInputTracker:
    """
    Edge detector for controller buttons.

    Usage:
        tracker = ControllerInputTracker()
        tracker.update("Right Controller", ControllerButton.TRIGGER, True)   # press, count 1
        tracker.update("Right Controller", ControllerButton.TRIGGER, True)   # None (no change)
        tracker.update("Right Controller", ControllerButton.TRIGGER, False)  # release
    """

    def __init__(self):
        self._states: dict[tuple[str, ControllerButton], bool] = {}
        self._counts: dict[str, dict[ControllerButton, int]] = defaultdict(dict)
        self._lock = threading.Lock()

        # Callback
        self.on_edge: Callable[[ButtonEdge], None] | None = None

    def update(self, controller: str, button: ControllerButton | str, pressed: bool) -> ButtonEdge | None:
        """
        Feed one sampled button state.

        Args:
            controller: Controller display name (e.g. "Left Controller")
            button: Which button was sampled
            pressed: Current state

        Returns:
            ButtonEdge when the state changed since the previous sample, else None
        """
        button = ControllerButton(button)
        pressed = bool(pressed)
        key = (controller, button)

        with self._lock:
            previous = self._states.get(key, False)
            if pressed == previous:
                return None
            self._states[key] = pressed

            counts = self._counts[controller]
            if pressed:
                counts[button] = counts.get(button, 0) + 1
            edge = ButtonEdge(
                controller=controller,
                button=button,
                pressed=pressed,
                count=counts.get(button, 0),
            )

        if pressed:
            logger.info(f"{controller}: {button.label} Pressed (Count: {edge.count})")
        else:
            logger.info(f"{controller}: {button.label} Released")

        if self.on_edge:
            self.on_edge(edge)
        return edge

    def count(self, controller: str, button: ControllerButton | str) -> int:
        with self._lock:
            return self._counts.get(controller, {}).get(ControllerButton(button), 0)

    def counts(self) -> dict[str, dict[str, int]]:
        """Press counts per controller, keyed by button value."""
        with self._lock:
            return {
                controller: {button.value: n for button, n in per_button.items()}
                for controller, per_button in self._counts.items()
            }

    def is_pressed(self, controller: str, button: ControllerButton | str) -> bool:
        with self._lock:
            return self._states.get((controller, ControllerButton(button)), False)

    def reset(self) -> None:
        with self._lock:
            self._states.clear()
            self._counts.clear()
