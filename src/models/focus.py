"""
Focus transition models emitted by the FocusArbiter
"""

from dataclasses import dataclass, field

from .enums import TransitionKind
from .targets import SourceId, TargetId


@dataclass(frozen=True)
class FocusTransition:
    """
    One change of scene-wide focus.

    source is the pointer source whose evaluate() call produced the
    transition; it is None for force_close() and unregister().
    children lists the sub-elements the caller should show (OPENED) or
    hide (CLOSED); empty when the target is not registered.
    """

    kind: TransitionKind
    target: TargetId
    source: SourceId | None = None
    children: tuple[TargetId, ...] = field(default_factory=tuple)

    @property
    def is_opened(self) -> bool:
        return self.kind == TransitionKind.OPENED

    @property
    def is_closed(self) -> bool:
        return self.kind == TransitionKind.CLOSED

    def to_dict(self) -> dict:
        """Serialize for logging."""
        return {
            "kind": self.kind.value,
            "target": self.target,
            "source": self.source,
            "children": list(self.children),
        }


@dataclass(frozen=True)
class FocusSnapshot:
    """Consistent read of arbiter state"""

    holder: TargetId | None = None
    owner: SourceId | None = None

    @property
    def is_idle(self) -> bool:
        return self.holder is None
