"""
Unit tests for the batch orchestrator (structparity/orchestration/batch.py)

Tests covering:
- Fetch order and explicit format per call
- Fail-fast abort on the first mismatch
- Collect mode with continue_on_mismatch
- Fetch errors always terminate the batch
- Last attempted entry is always reported
"""

from io import StringIO
from unittest.mock import MagicMock, call

import pytest

from conftest import make_record
from structparity.domain.record import FileFormat, RecordIdentifier
from structparity.engine.equivalence import EquivalenceEngine
from structparity.engine.outcome import ComparisonOutcome, WaivedRule
from structparity.exceptions import ComparisonMismatch, FetchError
from structparity.orchestration.batch import BatchOrchestrator, BatchReport
from structparity.reporting.console import ConsoleReporter


def _corpus(*codes):
    return [RecordIdentifier(code) for code in codes]


class FakeSource:
    """Record source returning consistent records, with per-entry overrides."""

    def __init__(self, failing_fetch=None, resolution_b=None):
        self.calls = []
        self.failing_fetch = failing_fetch or set()
        self.resolution_b = resolution_b or {}
        self.storage_root = "/data/pdb"

    def fetch(self, identifier, file_format):
        self.calls.append((str(identifier), file_format))
        if (str(identifier), file_format) in self.failing_fetch:
            raise FetchError(str(identifier), file_format, "404 Not Found")
        code = identifier.upper
        if file_format == FileFormat.PDB:
            return make_record(FileFormat.PDB, pdb_code=code, resolution=2.0)
        return make_record(
            FileFormat.MMCIF, pdb_code=code, resolution=self.resolution_b.get(str(identifier), 2.0)
        )


@pytest.fixture
def stream():
    return StringIO()


@pytest.fixture
def reporter(stream):
    return ConsoleReporter(stream=stream)


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator.run."""

    def test_all_entries_pass(self, reporter, stream):
        source = FakeSource()
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        report = orchestrator.run(_corpus("1abc", "2abc", "3abc"))

        assert report.total == 3
        assert report.tested == 3
        assert report.passed == 3
        assert report.failures == []
        assert report.all_passed is True
        assert report.last_attempted == "3abc"
        assert report.elapsed_minutes >= 0
        assert report.ended_at >= report.started_at
        output = stream.getvalue()
        assert "..." in output
        assert "Last PDB id tested: 3abc" in output
        assert "Elapsed time:" in output

    def test_fetches_pdb_then_mmcif_per_entry(self, reporter):
        source = FakeSource()
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        orchestrator.run(_corpus("1abc", "2abc"))

        assert source.calls == [
            ("1abc", FileFormat.PDB),
            ("1abc", FileFormat.MMCIF),
            ("2abc", FileFormat.PDB),
            ("2abc", FileFormat.MMCIF),
        ]

    def test_format_passed_as_keyword(self, reporter):
        source = MagicMock()
        source.fetch.side_effect = lambda identifier, file_format: make_record(file_format)
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        orchestrator.run(_corpus("1abc"))

        assert source.fetch.call_args_list == [
            call(identifier=RecordIdentifier("1abc"), file_format=FileFormat.PDB),
            call(identifier=RecordIdentifier("1abc"), file_format=FileFormat.MMCIF),
        ]

    def test_first_mismatch_aborts_batch(self, reporter, stream):
        source = FakeSource(resolution_b={"2abc": 2.5})
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        with pytest.raises(ComparisonMismatch) as exc_info:
            orchestrator.run(_corpus("1abc", "2abc", "3abc"))

        assert exc_info.value.identifier == "2abc"
        assert exc_info.value.outcome.field == "resolution"
        # 3abc is never fetched
        assert ("3abc", FileFormat.PDB) not in source.calls

        report = orchestrator.last_report
        assert report.aborted is True
        assert report.passed == 1
        assert report.last_attempted == "2abc"
        assert [f.identifier for f in report.failures] == ["2abc"]

        output = stream.getvalue()
        assert "Mismatch for 2abc on field 'resolution'" in output
        assert "Representation A (PDB):   2.0" in output
        assert "Representation B (mmCIF): 2.5" in output
        assert "Last PDB id tested: 2abc" in output
        assert "Elapsed time" not in output

    def test_continue_on_mismatch_collects_failures(self, reporter):
        source = FakeSource(resolution_b={"1abc": 3.0, "3abc": 2.5})
        orchestrator = BatchOrchestrator(
            source, EquivalenceEngine(), reporter, continue_on_mismatch=True
        )

        report = orchestrator.run(_corpus("1abc", "2abc", "3abc"))

        assert report.tested == 3
        assert report.passed == 1
        assert [f.identifier for f in report.failures] == ["1abc", "3abc"]
        assert report.aborted is False
        assert report.all_passed is False
        assert report.pass_percentage == pytest.approx(100 / 3)

    def test_fetch_error_is_fatal(self, reporter, stream):
        source = FakeSource(failing_fetch={("2abc", FileFormat.MMCIF)})
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        with pytest.raises(FetchError):
            orchestrator.run(_corpus("1abc", "2abc", "3abc"))

        assert orchestrator.last_report.aborted is True
        assert orchestrator.last_report.last_attempted == "2abc"
        assert "Last PDB id tested: 2abc" in stream.getvalue()

    def test_failing_entry_gets_progress_marker(self, reporter, stream):
        """Test the marker for an entry is printed before it is compared."""
        source = FakeSource(resolution_b={"2abc": 2.5})
        orchestrator = BatchOrchestrator(source, EquivalenceEngine(), reporter)

        with pytest.raises(ComparisonMismatch):
            orchestrator.run(_corpus("1abc", "2abc"))

        lines = stream.getvalue().splitlines()
        assert lines[1] == ".."
        assert lines[2] == "Mismatch for 2abc on field 'resolution'"

    def test_unexpected_error_marks_report_aborted(self, reporter, stream):
        source = MagicMock()
        source.storage_root = "/data/pdb"
        source.fetch.side_effect = RuntimeError("reader bug")
        comparison_logger = MagicMock()
        orchestrator = BatchOrchestrator(
            source, EquivalenceEngine(), reporter, comparison_logger=comparison_logger
        )

        with pytest.raises(RuntimeError):
            orchestrator.run(_corpus("1abc", "2abc"))

        assert orchestrator.last_report.aborted is True
        assert orchestrator.last_report.last_attempted == "1abc"
        assert comparison_logger.log_summary.call_args[0][0].aborted is True
        assert "Last PDB id tested: 1abc" in stream.getvalue()

    def test_fetch_error_is_fatal_in_collect_mode(self, reporter):
        source = FakeSource(failing_fetch={("1abc", FileFormat.PDB)})
        orchestrator = BatchOrchestrator(
            source, EquivalenceEngine(), reporter, continue_on_mismatch=True
        )

        with pytest.raises(FetchError):
            orchestrator.run(_corpus("1abc", "2abc"))

        assert source.calls == [("1abc", FileFormat.PDB)]

    def test_empty_corpus(self, reporter, stream):
        report = BatchOrchestrator(FakeSource(), EquivalenceEngine(), reporter).run([])

        assert report.total == 0
        assert report.last_attempted is None
        assert report.all_passed is True
        assert "No PDB entry was attempted" in stream.getvalue()

    def test_accepts_plain_string_ids(self, reporter):
        report = BatchOrchestrator(FakeSource(), EquivalenceEngine(), reporter).run(["1abc"])

        assert report.passed == 1

    def test_comparison_logger_receives_events(self, reporter):
        comparison_logger = MagicMock()
        orchestrator = BatchOrchestrator(
            FakeSource(), EquivalenceEngine(), reporter, comparison_logger=comparison_logger
        )

        orchestrator.run(_corpus("1abc", "2abc"))

        assert comparison_logger.log_entry_comparison.call_count == 2
        comparison_logger.log_summary.assert_called_once()

    def test_waivers_recorded_on_report(self, reporter):
        engine = MagicMock()
        engine.compare.return_value = ComparisonOutcome.success(
            [WaivedRule(field="compound", reason="water chain", chain_id="F")]
        )
        orchestrator = BatchOrchestrator(FakeSource(), engine, reporter)

        report = orchestrator.run(_corpus("4A10"))

        assert engine.compare.call_args[1]["pdb_id"] == "4a10"
        assert report.passed == 1
        assert report.waived == [
            {"identifier": "4A10", "field": "compound", "chain_id": "F", "reason": "water chain"}
        ]


class TestBatchReport:
    def test_to_dict(self):
        report = BatchReport(total=2, tested=2, passed=2, last_attempted="2abc")

        data = report.to_dict()

        assert data["failed"] == 0
        assert data["pass_percentage"] == 100.0
        assert data["last_attempted"] == "2abc"
        assert data["started_at"] is None

    def test_pass_percentage_without_entries(self):
        assert BatchReport().pass_percentage == 100.0
