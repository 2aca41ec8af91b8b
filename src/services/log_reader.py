"""
Interaction Log Reader

Reads the durable interaction log back and validates every line against
the InteractionRow schema.

Features:
- Header check (Index,Timestamp,ObjectName,SubButtonName)
- Per-line validation errors with line number context
- Sequence continuity check (1..N without gaps or repeats)
- Embedded commas in the last field are kept (the writer does not escape)
"""

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from config import config
from models import LOG_HEADER
from models.events import InteractionRow


@dataclass
class LogRowError:
    """A single problem found in the log file."""

    line_number: int
    error_type: str  # 'header', 'format', 'validation', 'sequence', 'io'
    error_message: str
    raw_line: str = ""

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


@dataclass
class LogReadResult:
    """Result of reading one interaction log."""

    file_path: str
    header_ok: bool = False
    rows: list[InteractionRow] = field(default_factory=list)
    errors: list[LogRowError] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.header_ok and not self.errors

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "header_ok": self.header_ok,
            "row_count": self.row_count,
            "is_success": self.is_success,
            "errors": [e.to_dict() for e in self.errors],
        }


class LogReader:
    """
    Parses ButtonClicks.csv style logs.

    Usage:
        result = LogReader().read(Path("ButtonClicks.csv"))
        if not result.is_success:
            for error in result.errors:
                print(f"line {error.line_number}: {error.error_message}")
    """

    def __init__(self, max_errors: int | None = None, include_raw_line: bool = False):
        """
        Args:
            max_errors: Stop after this many errors (None = no limit)
            include_raw_line: Keep the offending line in error reports
        """
        self.max_errors = max_errors
        self.include_raw_line = include_raw_line

    @classmethod
    def from_config(cls, include_raw_line: bool = False) -> "LogReader":
        """Reader with the error limit from RECORDER['max_reader_errors']."""
        return cls(
            max_errors=config.get("recorder", "max_reader_errors"),
            include_raw_line=include_raw_line,
        )

    def parse_line(self, line: str, line_number: int = 0) -> InteractionRow | LogRowError:
        """Parse one data line (without trailing newline)."""
        fields = line.split(",", 3)
        if len(fields) != 4:
            return self._error(
                line_number, "format", f"Expected 4 fields, got {len(fields)}", line
            )

        try:
            return InteractionRow.from_fields(fields)
        except ValidationError as e:
            details = []
            for err in e.errors():
                loc = ".".join(str(x) for x in err["loc"])
                details.append(f"{loc}: {err['msg']}")
            return self._error(line_number, "validation", "; ".join(details), line)

    def read(self, file_path: Path | str) -> LogReadResult:
        """Read and validate a whole log file."""
        file_path = Path(file_path)
        result = LogReadResult(file_path=str(file_path))

        try:
            with open(file_path, encoding="utf-8", newline="") as f:
                lines = f.read().split("\n")
        except OSError as e:
            result.errors.append(LogRowError(0, "io", f"Cannot read log: {e}"))
            return result

        header = lines[0].rstrip("\r") if lines else ""
        result.header_ok = header == LOG_HEADER
        if not result.header_ok:
            result.errors.append(
                self._error(1, "header", f"Unexpected header: {header!r}", header)
            )

        expected_index = 1
        for line_number, line in enumerate(lines[1:], 2):
            if not line.strip():
                continue
            if self.max_errors and len(result.errors) >= self.max_errors:
                break

            parsed = self.parse_line(line, line_number)
            if isinstance(parsed, LogRowError):
                result.errors.append(parsed)
                continue

            if parsed.index != expected_index:
                result.errors.append(
                    self._error(
                        line_number,
                        "sequence",
                        f"Expected index {expected_index}, got {parsed.index}",
                        line,
                    )
                )
            expected_index = parsed.index + 1
            result.rows.append(parsed)

        return result

    def _error(self, line_number: int, error_type: str, message: str, line: str) -> LogRowError:
        return LogRowError(
            line_number=line_number,
            error_type=error_type,
            error_message=message,
            raw_line=line if self.include_raw_line else "",
        )
