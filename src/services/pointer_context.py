"""
Pointer Context - explicit, injected replacement for scene-wide singletons

One PointerContext is built at startup and passed to every pointer-source
loop. It owns the FocusArbiter and EventRecorder and turns focus
transitions into log records.

Signals consumed from the engine layer:
    on_tick(source, candidate)              -> FocusArbiter.evaluate
    on_interact(primary, secondary, ts)     -> EventRecorder.append
    on_hover(source, hit, distance)         -> HoverLogger.observe
    on_button(controller, button, pressed)  -> ControllerInputTracker.update
    on_motion(node, position)               -> MotionTracker.update
"""

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from config import config
from core.clock import now_ms
from core.event_recorder import AppendResult, EventRecorder, PersistenceError
from core.focus_arbiter import FocusArbiter
from models import (
    ControllerButton,
    ControllerNode,
    FocusTransition,
    SourceId,
    Target,
    TargetId,
)

from .hover_logger import HoverLogger
from .input_tracker import ButtonEdge, ControllerInputTracker
from .motion_tracker import MotionTracker

logger = logging.getLogger(__name__)


def _node_name(node: ControllerNode | str) -> str:
    return node.value if isinstance(node, ControllerNode) else node


class PointerContext:
    """
    Wires pointer signals to focus arbitration and the interaction log.

    Usage:
        with PointerContext.create(log_path=Path("ButtonClicks.csv")) as ctx:
            ctx.register(Target("View", children=("ActionLog",)))
            ctx.on_tick("right_ray", "View")      # OPENED(View) -> record 1
            ctx.on_interact("View", "ActionLog")  # record 2
    """

    def __init__(
        self,
        arbiter: FocusArbiter,
        recorder: EventRecorder,
        clock: Callable[[], int] = now_ms,
        record_closed: bool = False,
        motion_threshold: float = 0.5,
        ray_distance: float | None = None,
        controller_names: dict[str, str] | None = None,
    ):
        self.arbiter = arbiter
        self.recorder = recorder
        self.record_closed = record_closed
        self.controller_names = dict(controller_names or {})
        self._clock = clock
        self._shutdown = False
        self._error_lock = threading.Lock()
        self._last_error: PersistenceError | None = None

        self.hover_logger = HoverLogger(
            recorder, parent_of=arbiter.parent_of, clock=clock, max_distance=ray_distance
        )
        self.input_tracker = ControllerInputTracker()
        self.motion_tracker = MotionTracker(threshold=motion_threshold)

        # Focus-driven appends run on the evaluating source thread after the
        # arbiter lock is released; state queries never wait on log I/O
        # Subscribers notified after logging (e.g. the renderer toggling children)
        self.on_transition: Callable[[FocusTransition], None] | None = None

        self.arbiter.on_transition = self._handle_transition

    @classmethod
    def create(
        cls,
        log_path: Path | str | None = None,
        targets: Iterable[Target] | None = None,
    ) -> "PointerContext":
        """
        Build a context from the global configuration.

        Every call builds a new arbiter and a new (truncated) log; callers
        own the single-initialization contract.
        """
        if log_path is None:
            log_path = config.FILES["log_path"]

        recorder = EventRecorder(
            log_path,
            fsync=config.get("recorder", "fsync", True),
            encoding=config.get("recorder", "encoding", "utf-8"),
        )
        arbiter = FocusArbiter(targets)
        return cls(
            arbiter,
            recorder,
            record_closed=config.get("pointer", "record_focus_closed", False),
            motion_threshold=config.get("pointer", "position_change_threshold", 0.5),
            ray_distance=config.get("pointer", "ray_distance"),
            controller_names=config.get("pointer", "controller_names"),
        )

    # ========== Registry ==========

    def register(self, target: Target) -> None:
        self.arbiter.register(target)

    def unregister(self, target_id: TargetId) -> list[FocusTransition]:
        return self.arbiter.unregister(target_id)

    def visible_children(self) -> tuple[TargetId, ...]:
        """Sub-elements that should currently be shown."""
        return self.arbiter.children_of(self.arbiter.current_holder)

    # ========== Engine Signals ==========

    def on_tick(self, source: SourceId, candidate: TargetId | None) -> list[FocusTransition]:
        """Feed one source's ray target for this tick."""
        return self.arbiter.evaluate(source, candidate)

    def on_interact(
        self, primary: str, secondary: str = "", timestamp: int | None = None
    ) -> AppendResult:
        """Record a one-shot interaction (e.g. a sub-button activation)."""
        if timestamp is None:
            timestamp = self._clock()
        logger.info(f"Interaction: {primary}, SubButton: {secondary}")
        result = self.recorder.append(primary, timestamp, secondary)
        self._note_result(result)
        return result

    def on_hover(
        self, source: SourceId, hit: TargetId | None, distance: float | None = None
    ) -> AppendResult | None:
        result = self.hover_logger.observe(source, hit, distance)
        if result is not None:
            self._note_result(result)
        return result

    def on_button(
        self, controller: ControllerNode | str, button: ControllerButton | str, pressed: bool
    ) -> ButtonEdge | None:
        """Feed a button sample; XR node names are shown as controller names."""
        node = _node_name(controller)
        return self.input_tracker.update(self.controller_names.get(node, node), button, pressed)

    def on_motion(self, node: ControllerNode | str, position: Sequence[float] | None) -> bool:
        return self.motion_tracker.update(_node_name(node), position)

    def open_log(self):
        """Hand the log to the system viewer."""
        return self.recorder.open_for_inspection()

    # ========== Errors ==========

    @property
    def last_error(self) -> PersistenceError | None:
        """Most recent persistence failure seen through this context."""
        with self._error_lock:
            return self._last_error

    def _note_result(self, result: AppendResult) -> None:
        if result.error is not None:
            with self._error_lock:
                self._last_error = result.error

    # ========== Lifecycle ==========

    def shutdown(self) -> None:
        """Release focus and close the log. Idempotent."""
        if self._shutdown:
            return
        self._shutdown = True

        holder = self.arbiter.current_holder
        if holder is not None:
            self.arbiter.force_close(holder)
        self.arbiter.on_transition = None
        self.recorder.close()
        logger.info(f"PointerContext shut down ({self.recorder.count()} records)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    # ========== Internals ==========

    def _handle_transition(self, transition: FocusTransition) -> None:
        if transition.is_opened:
            logger.info(f"Button pointed at: {transition.target} (source={transition.source})")
            self._note_result(self.recorder.append(transition.target, self._clock()))
        else:
            logger.info(f"Button no longer pointed at: {transition.target}")
            if self.record_closed:
                self._note_result(self.recorder.append(transition.target, self._clock()))

        if self.on_transition:
            self.on_transition(transition)
