"""
Command line entry point for batch parity runs.

Usage examples:
    PDB_DIR=/data/pdb structparity large
    structparity very-large --continue-on-mismatch --report-dir reports/
    structparity large --corpus my_ids.list --exceptions my_exceptions.yaml -v

Exit codes:
    0 every entry passed
    1 one or more comparisons failed
    2 configuration or corpus error, nothing was compared
    3 an entry could not be fetched or parsed
"""

from __future__ import annotations

import argparse
import sys
import uuid
from typing import Optional, Sequence

from structparity.config.settings import Settings
from structparity.corpus.loader import NAMED_CORPORA, load_corpus, load_named_corpus
from structparity.engine.equivalence import EquivalenceEngine
from structparity.engine.exception_table import ExceptionTable
from structparity.exceptions import (
    ComparisonMismatch,
    ConfigurationError,
    CorpusFormatError,
    FetchError,
)
from structparity.monitoring.comparison import ComparisonLogger, ComparisonMetricsPublisher
from structparity.orchestration.batch import BatchOrchestrator, BatchReport
from structparity.reporting.console import ConsoleReporter
from structparity.reporting.report_writer import BatchReportWriter
from structparity.sources.record_source import CachedRecordSource
from structparity.utils.logger import get_logger, set_level

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_CONFIGURATION = 2
EXIT_FETCH = 3


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="structparity",
        description="Check that PDB and mmCIF files of the same entries parse to equivalent structures.",
    )
    parser.add_argument(
        "mode",
        choices=sorted(NAMED_CORPORA),
        help="Run mode; selects the packaged seed corpus unless --corpus is given.",
    )
    parser.add_argument(
        "--corpus",
        help="Corpus list file (one PDB id per line), e.g. a random archive sample for a full run.",
    )
    parser.add_argument(
        "--pdb-dir",
        help="Storage root of the local archive copy (default: $PDB_DIR).",
    )
    parser.add_argument(
        "--continue-on-mismatch",
        action="store_true",
        default=None,
        help="Collect every failing entry instead of stopping at the first one.",
    )
    parser.add_argument(
        "--report-dir",
        help="Write JSON and Markdown reports of the run into this directory.",
    )
    parser.add_argument(
        "--exceptions",
        help="Known-exception YAML file (default: packaged table).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def _publish_results(settings: Settings, mode: str, report: Optional[BatchReport]) -> None:
    if report is None:
        return

    if settings.report_dir is not None:
        writer = BatchReportWriter(settings.report_dir)
        json_path, md_path = writer.write_reports(mode, report, settings.to_dict())
        print(f"Reports written to {json_path} and {md_path}")

    if settings.metrics_enabled:
        ComparisonMetricsPublisher(region_name=settings.aws_region).publish_batch_report(report, mode)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        set_level("DEBUG")

    settings = Settings(
        storage_root=args.pdb_dir,
        continue_on_mismatch=args.continue_on_mismatch,
        exceptions_file=args.exceptions,
        report_dir=args.report_dir,
    )

    try:
        settings.validate()
        exception_entries = settings.load_exception_table()
        corpus = load_corpus(args.corpus) if args.corpus else load_named_corpus(args.mode)
    except (ConfigurationError, CorpusFormatError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except OSError as exc:
        print(f"[ERROR] Cannot read corpus: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION

    logger.info("Starting parity run", operation="main", context=settings.to_dict())

    source = CachedRecordSource(
        settings.storage_root,
        fetch_remote=settings.fetch_remote,
        base_url=settings.download_url,
    )
    engine = EquivalenceEngine(ExceptionTable.from_entries(exception_entries))
    orchestrator = BatchOrchestrator(
        source,
        engine,
        reporter=ConsoleReporter(),
        continue_on_mismatch=settings.continue_on_mismatch,
        comparison_logger=ComparisonLogger(run_id=f"{args.mode}-{uuid.uuid4().hex[:8]}"),
    )

    try:
        report = orchestrator.run(corpus)
        exit_code = EXIT_MISMATCH if report.failures else EXIT_OK
    except ComparisonMismatch:
        exit_code = EXIT_MISMATCH
    except FetchError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        exit_code = EXIT_FETCH

    _publish_results(settings, args.mode, orchestrator.last_report)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
