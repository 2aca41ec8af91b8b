"""
Target model - interactive UI elements referenced by stable id
"""

from dataclasses import dataclass, field

# Opaque identifiers handed over by the UI / input layer
TargetId = str
SourceId = str


@dataclass(frozen=True)
class Target:
    """
    An interactive element (main button, dropdown) that can hold focus.

    children are the sub-elements that become visible only while this
    target holds focus, in display order.
    """

    id: TargetId
    children: tuple[TargetId, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Target id must be a non-empty string")
        # Accept any iterable from callers, store as an immutable tuple
        object.__setattr__(self, "children", tuple(self.children))

    def has_child(self, target_id: TargetId) -> bool:
        return target_id in self.children
