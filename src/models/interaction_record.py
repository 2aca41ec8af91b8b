"""
Interaction Record Model

One immutable, sequence-numbered entry of the interaction log.

Durable format (one line per record, comma separated, no escaping):
    Index,Timestamp,ObjectName,SubButtonName
    1,1718000000123,View,ActionLog
"""

from dataclasses import dataclass

LOG_HEADER = "Index,Timestamp,ObjectName,SubButtonName"
LOG_FIELDS = ("sequence_index", "timestamp", "primary_target", "secondary_target")


@dataclass(frozen=True)
class EventRecord:
    """
    Single interaction event.

    timestamp is unix epoch milliseconds. secondary_target is the
    sub-button name, empty when the interaction hit a main button.
    """

    sequence_index: int
    timestamp: int
    primary_target: str
    secondary_target: str = ""

    def to_csv_line(self) -> str:
        """Format as a durable log line (without trailing newline)."""
        return (
            f"{self.sequence_index},{self.timestamp},"
            f"{self.primary_target},{self.secondary_target}"
        )

    def to_dict(self) -> dict:
        """Serialize for JSON logging."""
        return {name: getattr(self, name) for name in LOG_FIELDS}
