"""
Focus Arbiter - scene-wide single ownership of expanded UI focus

At most one expandable target (dropdown, main button with sub-buttons)
holds focus at any time, no matter how many pointer sources compete.

Per-tick contract for evaluate(source, candidate):
    candidate empty, source owns holder   -> [CLOSED(holder)]
    candidate empty, source not owner     -> []
    candidate == holder                   -> []
    candidate != holder, holder present   -> [CLOSED(holder), OPENED(candidate)]
    candidate present, no holder          -> [OPENED(candidate)]

Concurrent evaluate() calls are linearized by one lock; the last claim
to enter the lock wins. on_transition runs after the lock is released,
in the order the transitions were produced. Callers that need a
deterministic order across sources must serialize their per-tick calls.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable

from models import FocusSnapshot, FocusTransition, SourceId, Target, TargetId, TransitionKind

logger = logging.getLogger(__name__)


def _is_empty(candidate: TargetId | None) -> bool:
    return candidate is None or candidate == ""


class FocusArbiter:
    """
    Thread-safe focus arbiter with an explicit target registry.

    Usage:
        arbiter = FocusArbiter()
        arbiter.register(Target("View", children=("ActionLog", "Settings")))
        arbiter.on_transition = lambda t: print(t.kind.value, t.target)

        arbiter.evaluate("right_ray", "View")   # [OPENED(View)]
        arbiter.evaluate("right_ray", None)     # [CLOSED(View)]
    """

    def __init__(self, targets: Iterable[Target] | None = None):
        self._holder: TargetId | None = None
        self._owner: SourceId | None = None
        self._targets: dict[TargetId, Target] = {}

        self._lock = threading.RLock()

        # Transitions waiting for on_transition, in state order
        self._pending: deque[FocusTransition] = deque()
        # Reentrant so a subscriber may call evaluate() itself
        self._dispatch_lock = threading.RLock()

        self._stats = {
            "opened": 0,
            "closed": 0,
            "callback_errors": 0,
        }

        # Callback
        self.on_transition: Callable[[FocusTransition], None] | None = None

        for target in targets or ():
            self.register(target)

        logger.info(f"FocusArbiter initialized with {len(self._targets)} targets")

    # ========== State Access ==========

    @property
    def current_holder(self) -> TargetId | None:
        """Target currently holding focus (None when idle)."""
        with self._lock:
            return self._holder

    @property
    def owner(self) -> SourceId | None:
        """Source that acquired the current holder."""
        with self._lock:
            return self._owner

    def snapshot(self) -> FocusSnapshot:
        with self._lock:
            return FocusSnapshot(holder=self._holder, owner=self._owner)

    def stats(self) -> dict:
        with self._lock:
            return self._stats.copy()

    # ========== Registry ==========

    def register(self, target: Target) -> None:
        """Register an expandable target; re-registering replaces its children."""
        with self._lock:
            if target.id in self._targets:
                logger.debug(f"Re-registering target {target.id}")
            self._targets[target.id] = target

    def unregister(self, target_id: TargetId) -> list[FocusTransition]:
        """
        Remove a target from the registry.

        If it holds focus, focus is released first (the CLOSED transition
        still carries the children so the caller can hide them).
        """
        with self._lock:
            transitions = self._release_if_holder(target_id, source=None)
            self._targets.pop(target_id, None)
            self._pending.extend(transitions)
        self._dispatch()
        return transitions

    def is_registered(self, target_id: TargetId) -> bool:
        with self._lock:
            return target_id in self._targets

    def registered_targets(self) -> tuple[Target, ...]:
        with self._lock:
            return tuple(self._targets.values())

    def children_of(self, target_id: TargetId | None) -> tuple[TargetId, ...]:
        """Children of a registered target; empty for unknown ids."""
        if _is_empty(target_id):
            return ()
        with self._lock:
            target = self._targets.get(target_id)
            return target.children if target else ()

    def parent_of(self, child_id: TargetId) -> TargetId | None:
        """First registered target listing child_id among its children."""
        with self._lock:
            for target in self._targets.values():
                if target.has_child(child_id):
                    return target.id
        return None

    # ========== Focus Operations ==========

    def evaluate(self, source: SourceId, candidate: TargetId | None) -> list[FocusTransition]:
        """
        Evaluate one pointer source's candidate for this tick.

        Args:
            source: Pointer source id (e.g. one controller ray)
            candidate: Target the ray points at, None/"" when nothing is hit

        Returns:
            Transitions in emission order; empty when focus did not change
        """
        with self._lock:
            transitions: list[FocusTransition] = []

            if _is_empty(candidate):
                if self._holder is not None and self._owner == source:
                    transitions.append(self._close_locked(source))
            elif candidate != self._holder:
                if self._holder is not None:
                    transitions.append(self._close_locked(source))
                transitions.append(self._open_locked(source, candidate))

            self._pending.extend(transitions)
        self._dispatch()
        return transitions

    def force_close(self, target: TargetId) -> list[FocusTransition]:
        """Clear focus if target is the current holder; no-op otherwise."""
        with self._lock:
            transitions = self._release_if_holder(target, source=None)
            self._pending.extend(transitions)
        self._dispatch()
        return transitions

    # ========== Internals (lock held) ==========

    def _release_if_holder(
        self, target: TargetId, source: SourceId | None
    ) -> list[FocusTransition]:
        if _is_empty(target) or target != self._holder:
            return []
        return [self._close_locked(source)]

    def _open_locked(self, source: SourceId, target: TargetId) -> FocusTransition:
        self._holder = target
        self._owner = source
        self._stats["opened"] += 1
        logger.debug(f"Focus opened: {target} (source={source})")
        return FocusTransition(
            kind=TransitionKind.OPENED,
            target=target,
            source=source,
            children=self._children_locked(target),
        )

    def _close_locked(self, source: SourceId | None) -> FocusTransition:
        target = self._holder
        self._holder = None
        self._owner = None
        self._stats["closed"] += 1
        logger.debug(f"Focus closed: {target} (source={source})")
        return FocusTransition(
            kind=TransitionKind.CLOSED,
            target=target,
            source=source,
            children=self._children_locked(target),
        )

    def _children_locked(self, target_id: TargetId) -> tuple[TargetId, ...]:
        target = self._targets.get(target_id)
        return target.children if target else ()

    # ========== Dispatch ==========

    def _dispatch(self) -> None:
        # One dispatcher at a time drains the queue, so subscribers see
        # transitions in state order without the state lock held
        with self._dispatch_lock:
            while True:
                with self._lock:
                    if not self._pending:
                        return
                    transition = self._pending.popleft()
                    callback = self.on_transition

                if callback is None:
                    continue
                try:
                    callback(transition)
                except Exception as e:
                    with self._lock:
                        self._stats["callback_errors"] += 1
                    logger.error(f"on_transition callback failed for {transition.target}: {e}")
