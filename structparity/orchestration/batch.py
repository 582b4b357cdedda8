"""
Batch orchestrator.

Works through a corpus strictly in order: fetch the PDB and the mmCIF
representation of one entry, compare them, report, move on. The progress
marker for an entry is printed before it is tested. Fetch errors
always end the batch. A failed comparison ends it too unless
continue_on_mismatch is set, in which case every failure is collected
into the BatchReport.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from structparity.domain.record import FileFormat, RecordIdentifier
from structparity.engine.equivalence import EquivalenceEngine
from structparity.engine.outcome import ComparisonOutcome
from structparity.exceptions import ComparisonMismatch
from structparity.monitoring.comparison import ComparisonLogger
from structparity.reporting.console import ConsoleReporter
from structparity.sources.record_source import RecordSource
from structparity.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EntryFailure:
    """A failed comparison of one corpus entry."""

    identifier: str
    outcome: ComparisonOutcome

    def to_dict(self) -> Dict[str, Any]:
        return {"identifier": self.identifier, **self.outcome.to_dict()}


@dataclass
class BatchReport:
    """Counters and failures of one batch run."""

    total: int = 0
    tested: int = 0
    passed: int = 0
    failures: List[EntryFailure] = field(default_factory=list)
    waived: List[Dict[str, Any]] = field(default_factory=list)
    last_attempted: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    elapsed_minutes: float = 0.0
    aborted: bool = False

    @property
    def all_passed(self) -> bool:
        return not self.aborted and not self.failures and self.passed == self.total

    @property
    def pass_percentage(self) -> float:
        if self.tested == 0:
            return 100.0
        return self.passed / self.tested * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "tested": self.tested,
            "passed": self.passed,
            "failed": len(self.failures),
            "pass_percentage": round(self.pass_percentage, 2),
            "last_attempted": self.last_attempted,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "elapsed_minutes": round(self.elapsed_minutes, 3),
            "aborted": self.aborted,
            "failures": [failure.to_dict() for failure in self.failures],
            "waived": list(self.waived),
        }


class BatchOrchestrator:
    """
    Drives a corpus through the record source and the equivalence engine.

    The latest BatchReport stays available as last_report after run()
    returns or raises, so callers can write reports for aborted runs.
    """

    def __init__(
        self,
        source: RecordSource,
        engine: EquivalenceEngine,
        reporter: Optional[ConsoleReporter] = None,
        continue_on_mismatch: bool = False,
        comparison_logger: Optional[ComparisonLogger] = None,
    ):
        self.source = source
        self.engine = engine
        self.reporter = reporter or ConsoleReporter()
        self.continue_on_mismatch = continue_on_mismatch
        self.comparison_logger = comparison_logger
        self.last_report: Optional[BatchReport] = None

    def run(self, corpus: Iterable[RecordIdentifier]) -> BatchReport:
        """
        Compare every entry of the corpus.

        Args:
            corpus: Ordered identifiers, as returned by the corpus loader

        Returns:
            BatchReport of the completed run

        Raises:
            FetchError: If any representation cannot be fetched or parsed
            ComparisonMismatch: On the first failed comparison, unless
                continue_on_mismatch is set
        """
        identifiers = [
            identifier if isinstance(identifier, RecordIdentifier) else RecordIdentifier(identifier)
            for identifier in corpus
        ]
        report = BatchReport(total=len(identifiers), started_at=datetime.now(timezone.utc))
        self.last_report = report

        self.reporter.report_start(report.total, getattr(self.source, "storage_root", None))
        logger.info(
            "Batch started",
            operation="run_batch",
            context={"total": report.total, "continue_on_mismatch": self.continue_on_mismatch},
        )

        start = time.monotonic()
        try:
            for identifier in identifiers:
                report.last_attempted = str(identifier)
                self.reporter.report_progress()
                self._run_entry(identifier, report)
        except Exception:
            report.aborted = True
            raise
        finally:
            report.ended_at = datetime.now(timezone.utc)
            report.elapsed_minutes = (time.monotonic() - start) / 60.0
            self.reporter.report_last_attempted(report.last_attempted)
            if self.comparison_logger is not None:
                self.comparison_logger.log_summary(report)

        self.reporter.report_done(report.elapsed_minutes)
        return report

    def _run_entry(self, identifier: RecordIdentifier, report: BatchReport) -> None:
        entry_start = time.monotonic()

        record_a = self.source.fetch(identifier=identifier, file_format=FileFormat.PDB)
        record_b = self.source.fetch(identifier=identifier, file_format=FileFormat.MMCIF)
        outcome = self.engine.compare(record_a, record_b, pdb_id=identifier.lower)
        report.tested += 1
        for rule in outcome.waived:
            report.waived.append(
                {
                    "identifier": str(identifier),
                    "field": rule.field,
                    "chain_id": rule.chain_id,
                    "reason": rule.reason,
                }
            )

        if self.comparison_logger is not None:
            self.comparison_logger.log_entry_comparison(
                str(identifier), outcome, duration_ms=(time.monotonic() - entry_start) * 1000
            )

        if not outcome.passed:
            report.failures.append(EntryFailure(str(identifier), outcome))
            self.reporter.report_mismatch(outcome, identifier=str(identifier))
            if not self.continue_on_mismatch:
                raise ComparisonMismatch(str(identifier), outcome)
        else:
            report.passed += 1
