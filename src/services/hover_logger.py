"""
Hover Logger - records every newly hit button per pointer source

A source's ray usually rests on the same element for many ticks; only
the first tick on a new element is recorded. Sub-buttons are recorded
under their main button (primary = parent, secondary = hit).
"""

import logging
import threading
from collections.abc import Callable

from core.event_recorder import AppendResult, EventRecorder
from models import SourceId, TargetId

logger = logging.getLogger(__name__)


class HoverLogger:
    """
    Per-source "new hit" detection feeding the EventRecorder.

    Args:
        recorder: Destination log
        parent_of: Resolves a sub-button id to its main button id (None if top level)
        is_button: Filters hits that are not buttons (default: everything is a button)
        clock: Millisecond clock
        max_distance: Hits farther than this count as misses (None = no limit)
    """

    def __init__(
        self,
        recorder: EventRecorder,
        parent_of: Callable[[TargetId], TargetId | None] | None = None,
        is_button: Callable[[TargetId], bool] | None = None,
        clock: Callable[[], int] | None = None,
        max_distance: float | None = None,
    ):
        self.recorder = recorder
        self.max_distance = max_distance
        self._parent_of = parent_of
        self._is_button = is_button
        self._clock = clock
        self._last_hit: dict[SourceId, TargetId] = {}
        self._lock = threading.Lock()

    def observe(
        self, source: SourceId, hit: TargetId | None, distance: float | None = None
    ) -> AppendResult | None:
        """
        Observe one tick of a source's ray.

        Args:
            source: Pointer source id
            hit: Object the ray hit, None/"" on a miss
            distance: Ray length to the hit, when the engine reports it

        Returns:
            The AppendResult when a new button hit was recorded, else None
        """
        if hit and distance is not None and self.max_distance is not None:
            if distance > self.max_distance:
                hit = None

        with self._lock:
            if not hit:
                self._last_hit.pop(source, None)
                return None

            if self._last_hit.get(source) == hit:
                return None
            self._last_hit[source] = hit

        if self._is_button is not None and not self._is_button(hit):
            logger.debug(f"Hit object: {hit} (not a button)")
            return None

        primary, secondary = self.resolve(hit)
        logger.info(f"Main: {primary}, Sub: {secondary}")

        if self._clock is not None:
            return self.recorder.append(primary, self._clock(), secondary)
        return self.recorder.record(primary, secondary)

    def resolve(self, hit: TargetId) -> tuple[TargetId, str]:
        """Split a hit into (main button, sub-button)."""
        parent = self._parent_of(hit) if self._parent_of else None
        if parent:
            return parent, hit
        return hit, ""

    def last_hit(self, source: SourceId) -> TargetId | None:
        with self._lock:
            return self._last_hit.get(source)

    def forget(self, source: SourceId) -> None:
        """Drop tracking for a source (e.g. controller disconnected)."""
        with self._lock:
            self._last_hit.pop(source, None)
