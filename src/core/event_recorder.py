"""
EventRecorder - durable, ordered, append-only interaction log
Writes interaction events to a CSV file with thread-safe sequence numbering

Failures of the durable sink never propagate to the caller as exceptions:
the in-memory record is kept (it is the source of truth for count()) and
the failure is returned as a PersistenceError inside the result.
"""

import atexit
import logging
import os
import platform
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from models import LOG_HEADER, EventRecord

from .clock import now_ms

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Durable write, reset or open of the interaction log failed"""

    def __init__(self, message: str, operation: str, path: Path | None = None):
        super().__init__(message)
        self.operation = operation
        self.path = path


@dataclass(frozen=True)
class RecorderResult:
    """Outcome of reset/open operations"""

    operation: str
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AppendResult:
    """
    Outcome of an append.

    record is always present: the event is kept in memory even when
    persisting it failed.
    """

    record: EventRecord
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CsvFileSink:
    """
    Line-oriented durable sink backed by a single file handle.

    Not thread-safe on its own; EventRecorder serializes access.
    """

    def __init__(self, path: Path | str, encoding: str = "utf-8", fsync: bool = True):
        self.path = Path(path)
        self.encoding = encoding
        self.fsync = fsync
        self._handle = None

    def truncate(self, header: str) -> None:
        """Replace the file contents with just the header line."""
        self._drop_handle()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Use temp handle so a failed header write never leaks the handle
        temp_handle = open(self.path, "w", encoding=self.encoding, newline="")
        try:
            temp_handle.write(header + "\n")
            self._sync(temp_handle)
        except (OSError, ValueError):
            temp_handle.close()
            raise
        self._handle = temp_handle

    def write_line(self, line: str) -> None:
        """Append one newline-terminated line and push it to disk."""
        if self._handle is None:
            self._handle = open(self.path, "a", encoding=self.encoding, newline="")
        try:
            self._handle.write(line + "\n")
            self._sync(self._handle)
        except (OSError, ValueError):
            # Reopen on the next write
            self._drop_handle()
            raise

    def close(self) -> None:
        if self._handle is not None:
            handle = self._handle
            self._handle = None
            handle.close()

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def _sync(self, handle) -> None:
        handle.flush()
        if self.fsync:
            os.fsync(handle.fileno())

    def _drop_handle(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            try:
                handle.close()
            except OSError as e:
                logger.warning(f"Error closing {self.path}: {e}")


class EventRecorder:
    """
    Append-only interaction log with:
    - Sequence indices 1..N, restarted by reset()
    - Mutually exclusive append/reset (one lock, released on every path)
    - Durable CSV mirror that tolerates I/O failure
    - Cleanup of open sinks at interpreter exit

    Usage:
        recorder = EventRecorder(Path("ButtonClicks.csv"))
        result = recorder.append("View", 1718000000123, "ActionLog")
        if not result.ok:
            print(result.error)
        recorder.count()  # 1
    """

    # Class-level registry for exit cleanup
    _instances_lock = threading.Lock()
    _active_instances = []

    def __init__(
        self,
        log_path: Path | str | None = None,
        *,
        sink=None,
        fsync: bool = True,
        encoding: str = "utf-8",
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the recorder and truncate the durable log to its header.

        Args:
            log_path: Location of the CSV log (caller supplied)
            sink: Alternative sink object (truncate/write_line/close/path)
            fsync: fsync after every write
            encoding: File encoding for the default sink
            clock: Millisecond clock used by record()

        Raises:
            ValueError: If neither log_path nor sink is given
        """
        if sink is None:
            if log_path is None:
                raise ValueError("EventRecorder needs a log_path or a sink")
            sink = CsvFileSink(log_path, encoding=encoding, fsync=fsync)

        self.sink = sink
        self._clock = clock
        self._records: list[EventRecord] = []
        self._closed = False
        # Set when the durable log still holds rows from before the last reset
        self._truncate_pending = False
        self.last_error: PersistenceError | None = None

        self._stats = {
            "appends": 0,
            "persist_failures": 0,
            "resets": 0,
        }

        # Thread safety
        self._lock = threading.Lock()

        self._register_instance()

        self.reset()
        logger.info(f"EventRecorder initialized: {self.path}")

    @property
    def path(self) -> Path | None:
        return getattr(self.sink, "path", None)

    @property
    def closed(self) -> bool:
        return self._closed

    def _register_instance(self):
        """Register this instance for cleanup on exit"""
        with self._instances_lock:
            self._active_instances.append(self)
            if len(self._active_instances) == 1:
                atexit.register(EventRecorder._cleanup_all_instances)

    @classmethod
    def _cleanup_all_instances(cls):
        """Close all recorders still open at interpreter exit"""
        with cls._instances_lock:
            instances = list(cls._active_instances)
            cls._active_instances.clear()

        for instance in instances:
            instance.close()

    # ========== Write Operations ==========

    def append(self, primary_target: str, timestamp: int, secondary_target: str = "") -> AppendResult:
        """
        Append one interaction event.

        Args:
            primary_target: Main button / object name
            timestamp: Unix epoch milliseconds
            secondary_target: Sub-button name, empty for main-button events

        Returns:
            AppendResult with the created record and an optional PersistenceError
        """
        secondary_target = secondary_target or ""
        with self._lock:
            record = EventRecord(
                sequence_index=len(self._records) + 1,
                timestamp=int(timestamp),
                primary_target=primary_target,
                secondary_target=secondary_target,
            )
            self._records.append(record)
            self._stats["appends"] += 1

            error = self._persist_locked(record)

        if error is None:
            logger.debug(f"Appended to {self.path}: {record.to_csv_line()}")
        return AppendResult(record=record, error=error)

    def record(self, primary_target: str, secondary_target: str = "") -> AppendResult:
        """Append an event stamped with the recorder clock."""
        return self.append(primary_target, self._clock(), secondary_target)

    def reset(self) -> RecorderResult:
        """
        Clear all records and truncate the durable log to its header.

        The in-memory sequence is cleared even when truncation fails; the
        next append then retries the truncation before writing its line.
        """
        with self._lock:
            self._records.clear()
            self._stats["resets"] += 1

            if self._closed:
                error = self._fail_locked("reset", "recorder is closed")
            else:
                error = self._truncate_locked("reset")

        if error is None:
            logger.info(f"Cleared file: {self.path}")
        return RecorderResult(operation="reset", error=error)

    def close(self) -> None:
        """Close the durable sink. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.sink.close()
            except OSError as e:
                logger.warning(f"Error closing interaction log: {e}")

        with self._instances_lock:
            if self in self._active_instances:
                self._active_instances.remove(self)

        logger.info(f"EventRecorder closed: {self.path} ({len(self._records)} records)")

    # ========== Read Operations ==========

    def count(self) -> int:
        """Number of records since the last reset."""
        # len() of a list is a single atomic read
        return len(self._records)

    def records(self) -> tuple[EventRecord, ...]:
        """Consistent snapshot of all records."""
        with self._lock:
            return tuple(self._records)

    def stats(self) -> dict:
        with self._lock:
            stats = self._stats.copy()
        stats["count"] = self.count()
        return stats

    def open_for_inspection(self) -> RecorderResult:
        """Open the log with the system's default viewer (best effort)."""
        path = self.path
        try:
            if path is None or not Path(path).exists():
                raise OSError(f"Log file does not exist: {path}")

            system = platform.system()
            if system == "Linux":
                command = ["xdg-open", str(path)]
            elif system == "Darwin":  # macOS
                command = ["open", str(path)]
            elif system == "Windows":
                command = ["explorer", str(path)]
            else:
                raise OSError(f"Unsupported platform: {system}")

            subprocess.run(command, check=True)
            logger.info(f"Opening file: {path}")
            return RecorderResult(operation="open")
        except (OSError, subprocess.CalledProcessError) as e:
            with self._lock:
                error = self._fail_locked("open", f"Error opening file: {e}")
            return RecorderResult(operation="open", error=error)

    # ========== Internals (lock held) ==========

    def _persist_locked(self, record: EventRecord) -> PersistenceError | None:
        if self._closed:
            return self._fail_locked("append", "recorder is closed")
        if self._truncate_pending:
            error = self._truncate_locked("append")
            if error is not None:
                return error
        try:
            self.sink.write_line(record.to_csv_line())
            return None
        except (OSError, ValueError) as e:
            return self._fail_locked("append", f"Error writing to file: {e}")

    def _truncate_locked(self, operation: str) -> PersistenceError | None:
        try:
            self.sink.truncate(LOG_HEADER)
        except (OSError, ValueError) as e:
            self._truncate_pending = True
            return self._fail_locked(operation, f"Error clearing file: {e}")
        self._truncate_pending = False
        return None

    def _fail_locked(self, operation: str, message: str) -> PersistenceError:
        error = PersistenceError(message, operation=operation, path=self.path)
        self.last_error = error
        if operation == "append":
            self._stats["persist_failures"] += 1
        logger.error(message)
        return error
