"""
Motion Tracker - logs controller positions when they move significantly
"""

import logging
import threading
from collections.abc import Sequence

import numpy as np

logger = logging.getLogger(__name__)


class MotionTracker:
    """
    Threshold-based position change detector, one entry per XR node.

    The last reported position starts at the origin, so the first valid
    sample farther than the threshold from (0, 0, 0) is reported.
    """

    def __init__(self, threshold: float = 0.5):
        if threshold < 0:
            raise ValueError("threshold cannot be negative")
        self.threshold = float(threshold)
        self._last_positions: dict[str, np.ndarray] = {}
        self._lock = threading.Lock()

    def update(self, node: str, position: Sequence[float] | None) -> bool:
        """
        Feed one position sample.

        Args:
            node: XR node name (e.g. "LeftHand")
            position: (x, y, z), or None when the controller is not detected

        Returns:
            True when the movement exceeded the threshold and was reported
        """
        if position is None:
            logger.warning(f"{node} Controller not detected.")
            return False

        current = np.asarray(position, dtype=float)
        if current.shape != (3,):
            raise ValueError(f"position must have 3 components, got shape {current.shape}")

        with self._lock:
            last = self._last_positions.get(node, np.zeros(3))
            if float(np.linalg.norm(current - last)) <= self.threshold:
                return False
            self._last_positions[node] = current

        logger.info(f"{node} Controller Position: ({current[0]:.2f}, {current[1]:.2f}, {current[2]:.2f})")
        return True

    def last_position(self, node: str) -> tuple[float, float, float] | None:
        with self._lock:
            last = self._last_positions.get(node)
        return tuple(float(v) for v in last) if last is not None else None

    def reset(self, node: str | None = None) -> None:
        with self._lock:
            if node is None:
                self._last_positions.clear()
            else:
                self._last_positions.pop(node, None)
