"""
Tests for EventRecorder

Tests cover:
- Initialization truncates the durable log to its header
- Sequence numbering 1..N and restart after reset()
- Durable CSV format
- Persistence failures: in-memory record kept, error returned, later appends recover
- close() and open_for_inspection()
"""

import subprocess
from unittest.mock import patch

import pytest

from core.event_recorder import CsvFileSink, EventRecorder, PersistenceError
from models import LOG_HEADER, EventRecord


class TestEventRecorderInit:
    """Tests for EventRecorder initialization"""

    def test_init_writes_header(self, recorder, log_path, read_lines):
        assert read_lines(log_path) == [LOG_HEADER]
        assert recorder.count() == 0

    def test_init_truncates_existing_file(self, log_path, read_lines):
        log_path.write_text("old,data\n1,2,3,4\n", encoding="utf-8")

        rec = EventRecorder(log_path, fsync=False)
        try:
            assert read_lines(log_path) == [LOG_HEADER]
        finally:
            rec.close()

    def test_init_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "ButtonClicks.csv"
        rec = EventRecorder(path, fsync=False)
        try:
            assert path.exists()
        finally:
            rec.close()

    def test_init_requires_path_or_sink(self):
        with pytest.raises(ValueError):
            EventRecorder()

    def test_init_survives_unwritable_location(self, make_flaky_sink):
        rec = EventRecorder(sink=make_flaky_sink(fail_truncate=True))
        try:
            assert rec.count() == 0
            assert isinstance(rec.last_error, PersistenceError)
            assert rec.last_error.operation == "reset"
        finally:
            rec.close()


class TestEventRecorderAppend:
    """Tests for append()"""

    def test_append_scenario(self, recorder):
        """append, count, reset, append restarts at 1"""
        result = recorder.append("View", 1000, "ActionLog")

        assert result.ok
        assert result.record == EventRecord(1, 1000, "View", "ActionLog")
        assert recorder.count() == 1

        assert recorder.reset().ok
        assert recorder.count() == 0

        result = recorder.append("Home", 2000)
        assert result.record == EventRecord(1, 2000, "Home", "")

    def test_sequence_indices_are_contiguous(self, recorder):
        indices = [recorder.append(f"B{i}", i).record.sequence_index for i in range(25)]
        assert indices == list(range(1, 26))

    def test_append_writes_csv_lines(self, recorder, log_path, read_lines):
        recorder.append("View", 1000, "ActionLog")
        recorder.append("Home", 2000)

        assert read_lines(log_path) == [
            LOG_HEADER,
            "1,1000,View,ActionLog",
            "2,2000,Home,",
        ]

    def test_round_trip_matches_memory(self, recorder, log_path, read_lines):
        for i in range(10):
            recorder.append(f"Button{i}", 1000 + i, "Sub" if i % 2 else "")

        lines = read_lines(log_path)
        assert len(lines) == 11
        for line, record in zip(lines[1:], recorder.records()):
            assert line == record.to_csv_line()

    def test_none_secondary_becomes_empty(self, recorder):
        assert recorder.append("View", 1, None).record.secondary_target == ""

    def test_record_uses_clock(self, recorder):
        first = recorder.record("View")
        second = recorder.record("View", "ActionLog")
        assert first.record.timestamp == 1000
        assert second.record.timestamp == 2000

    def test_records_snapshot_is_immutable_copy(self, recorder):
        recorder.append("View", 1)
        snapshot = recorder.records()
        recorder.append("Home", 2)
        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)

    def test_stats(self, recorder):
        recorder.append("View", 1)
        recorder.append("Home", 2)
        stats = recorder.stats()
        assert stats["appends"] == 2
        assert stats["count"] == 2
        assert stats["persist_failures"] == 0


class TestEventRecorderPersistenceFailure:
    """Durable sink failures must not lose records or crash the caller"""

    def test_failure_on_third_append(self, make_flaky_sink, log_path, read_lines):
        rec = EventRecorder(sink=make_flaky_sink(fail_on={3}))
        try:
            results = [rec.append(f"B{i}", i * 1000) for i in range(1, 4)]

            assert [r.ok for r in results] == [True, True, False]
            assert isinstance(results[2].error, PersistenceError)
            assert results[2].error.operation == "append"
            assert results[2].record.sequence_index == 3
            assert rec.count() == 3
            assert read_lines(log_path) == [LOG_HEADER, "1,1000,B1,", "2,2000,B2,"]
        finally:
            rec.close()

    def test_append_recovers_after_failure(self, make_flaky_sink, log_path, read_lines):
        rec = EventRecorder(sink=make_flaky_sink(fail_on={1}))
        try:
            assert not rec.append("A", 1).ok
            assert rec.append("B", 2).ok
            assert rec.count() == 2
            assert read_lines(log_path) == [LOG_HEADER, "2,2,B,"]
            assert rec.stats()["persist_failures"] == 1
        finally:
            rec.close()

    def test_reset_failure_still_clears_memory(self, make_flaky_sink):
        sink = make_flaky_sink()
        rec = EventRecorder(sink=sink)
        try:
            rec.append("A", 1)
            sink.fail_truncate = True

            result = rec.reset()

            assert not result.ok
            assert result.error.operation == "reset"
            assert rec.count() == 0
            assert rec.append("B", 2).record.sequence_index == 1
        finally:
            rec.close()

    def test_unencodable_name_is_reported(self, log_path, read_lines):
        rec = EventRecorder(log_path, fsync=False)
        try:
            result = rec.append("bad\ud800", 1000)

            assert not result.ok
            assert result.error.operation == "append"
            assert rec.count() == 1

            assert rec.append("View", 2000).ok
            assert read_lines(log_path) == [LOG_HEADER, "2,2000,View,"]
        finally:
            rec.close()

    def test_name_outside_configured_encoding(self, log_path):
        rec = EventRecorder(log_path, fsync=False, encoding="ascii")
        try:
            assert not rec.append("Men\u00fc", 1).ok
            assert rec.append("Menu", 2).ok
        finally:
            rec.close()

    def test_failed_reset_truncates_before_next_append(self, make_flaky_sink, log_path, read_lines):
        sink = make_flaky_sink()
        rec = EventRecorder(sink=sink)
        try:
            rec.append("A", 1)
            sink.fail_truncate = True
            assert not rec.reset().ok
            sink.fail_truncate = False

            assert rec.append("B", 2).ok
            assert read_lines(log_path) == [LOG_HEADER, "1,2,B,"]
        finally:
            rec.close()

    def test_truncate_retried_until_it_succeeds(self, make_flaky_sink, log_path, read_lines):
        sink = make_flaky_sink()
        rec = EventRecorder(sink=sink)
        try:
            rec.append("A", 1)
            sink.fail_truncate = True
            rec.reset()

            result = rec.append("B", 2)
            assert not result.ok
            assert "clearing" in str(result.error)
            assert read_lines(log_path) == [LOG_HEADER, "1,1,A,"]

            sink.fail_truncate = False
            assert rec.append("C", 3).ok
            assert read_lines(log_path) == [LOG_HEADER, "2,3,C,"]
        finally:
            rec.close()


class TestEventRecorderClose:
    """Tests for close()"""

    def test_close_is_idempotent(self, log_path):
        rec = EventRecorder(log_path, fsync=False)
        rec.close()
        rec.close()
        assert rec.closed

    def test_append_after_close_keeps_record(self, log_path, read_lines):
        rec = EventRecorder(log_path, fsync=False)
        rec.close()

        result = rec.append("View", 1)

        assert not result.ok
        assert "closed" in str(result.error)
        assert rec.count() == 1
        assert read_lines(log_path) == [LOG_HEADER]

    def test_close_removes_exit_registration(self, log_path):
        rec = EventRecorder(log_path, fsync=False)
        assert rec in EventRecorder._active_instances
        rec.close()
        assert rec not in EventRecorder._active_instances


class TestEventRecorderOpenForInspection:
    """Tests for open_for_inspection()"""

    def test_open_uses_platform_viewer(self, recorder, log_path):
        with patch("core.event_recorder.platform.system", return_value="Linux"), patch(
            "core.event_recorder.subprocess.run"
        ) as run:
            result = recorder.open_for_inspection()

        assert result.ok
        run.assert_called_once_with(["xdg-open", str(log_path)], check=True)

    @pytest.mark.parametrize("system,command", [("Darwin", "open"), ("Windows", "explorer")])
    def test_open_other_platforms(self, recorder, system, command):
        with patch("core.event_recorder.platform.system", return_value=system), patch(
            "core.event_recorder.subprocess.run"
        ) as run:
            assert recorder.open_for_inspection().ok
        assert run.call_args[0][0][0] == command

    def test_open_failure_is_reported(self, recorder):
        with patch("core.event_recorder.platform.system", return_value="Linux"), patch(
            "core.event_recorder.subprocess.run", side_effect=FileNotFoundError("xdg-open")
        ):
            result = recorder.open_for_inspection()

        assert not result.ok
        assert result.error.operation == "open"

    def test_open_reports_viewer_exit_status(self, recorder):
        with patch("core.event_recorder.platform.system", return_value="Linux"), patch(
            "core.event_recorder.subprocess.run",
            side_effect=subprocess.CalledProcessError(4, ["xdg-open"]),
        ):
            result = recorder.open_for_inspection()

        assert not result.ok
        assert result.error.operation == "open"

    def test_open_unsupported_platform(self, recorder):
        with patch("core.event_recorder.platform.system", return_value="Plan9"):
            result = recorder.open_for_inspection()
        assert not result.ok

    def test_open_missing_file(self, recorder, log_path):
        log_path.unlink()
        assert not recorder.open_for_inspection().ok


class TestCsvFileSink:
    """Tests for the default sink"""

    def test_write_reopens_after_close(self, tmp_path):
        sink = CsvFileSink(tmp_path / "log.csv", fsync=False)
        sink.truncate("H")
        sink.close()
        assert not sink.is_open

        sink.write_line("x")
        sink.close()

        assert (tmp_path / "log.csv").read_text(encoding="utf-8") == "H\nx\n"
