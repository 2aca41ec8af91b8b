"""
Shared test fixtures for pytest
"""

import pytest

from core import EventRecorder, FocusArbiter
from models import Target
from services import cleanup_logging, setup_logging
from services.pointer_context import PointerContext


@pytest.fixture(autouse=True, scope="session")
def setup_test_logging(tmp_path_factory):
    """Setup logging for all tests (console only, logs under a temp dir)"""
    setup_logging(
        {
            "log_dir": str(tmp_path_factory.mktemp("logs")),
            "file_output": False,
            "colored_output": False,
            "console_level": "WARNING",
        }
    )
    yield
    cleanup_logging()


class FakeClock:
    """Deterministic millisecond clock: 1000, 2000, 3000, ..."""

    def __init__(self, start: int = 1000, step: int = 1000):
        self.now = start - step
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


class FlakySink:
    """Sink that fails the writes whose 1-based call number is in fail_on"""

    def __init__(self, path, fail_on=(), fail_truncate=False):
        from core import CsvFileSink

        self._inner = CsvFileSink(path, fsync=False)
        self.path = self._inner.path
        self.fail_on = set(fail_on)
        self.fail_truncate = fail_truncate
        self.writes = 0

    def truncate(self, header):
        if self.fail_truncate:
            raise OSError("disk full")
        self._inner.truncate(header)

    def write_line(self, line):
        self.writes += 1
        if self.writes in self.fail_on:
            raise OSError("disk full")
        self._inner.write_line(line)

    def close(self):
        self._inner.close()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_flaky_sink(log_path):
    """Factory for sinks that fail selected writes"""

    def _make(fail_on=(), fail_truncate=False):
        return FlakySink(log_path, fail_on=fail_on, fail_truncate=fail_truncate)

    return _make


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "ButtonClicks.csv"


@pytest.fixture
def recorder(log_path, fake_clock):
    """EventRecorder writing to a temp file (no fsync for speed)"""
    rec = EventRecorder(log_path, fsync=False, clock=fake_clock)
    yield rec
    rec.close()


@pytest.fixture
def arbiter():
    """FocusArbiter with two main buttons and their sub-buttons"""
    return FocusArbiter(
        [
            Target("View", children=("ActionLog", "Settings")),
            Target("Home", children=("Profile",)),
        ]
    )


@pytest.fixture
def context(arbiter, recorder, fake_clock):
    ctx = PointerContext(arbiter, recorder, clock=fake_clock)
    yield ctx
    ctx.shutdown()


@pytest.fixture
def read_lines():
    """Return the durable log as a list of lines"""

    def _read(path):
        return path.read_text(encoding="utf-8").splitlines()

    return _read
