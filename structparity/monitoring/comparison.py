"""
Batch telemetry.

Structured per-entry and per-batch log events, and CloudWatch metrics for
a finished batch run (entries tested, passed and failed, pass percentage,
elapsed time and failures per rule).
"""

from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import boto3

from structparity.config.settings import DEFAULT_AWS_REGION
from structparity.engine.outcome import ComparisonOutcome
from structparity.utils.logger import StructuredLogger, get_logger

if TYPE_CHECKING:
    from structparity.orchestration.batch import BatchReport

# CloudWatch accepts at most 20 metric datums per PutMetricData call
_METRICS_PER_REQUEST = 20


def _get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ComparisonMetricsPublisher:
    """
    Publishes batch metrics to CloudWatch.

    Publishing problems are logged and swallowed: a metrics outage must
    never turn a passing parity run into a failing one.
    """

    NAMESPACE = "structparity/batch"

    def __init__(self, region_name: str = DEFAULT_AWS_REGION, cloudwatch_client=None):
        """
        Initialize metrics publisher.

        Args:
            region_name: AWS region for CloudWatch
            cloudwatch_client: Optional pre-built client (useful for testing)
        """
        self.region_name = region_name
        self.cloudwatch_client = cloudwatch_client or boto3.client(
            "cloudwatch", region_name=region_name
        )
        self.logger = get_logger(__name__)

    def build_metric_data(self, report: "BatchReport", run_mode: str) -> List[Dict[str, Any]]:
        timestamp = datetime.now(timezone.utc)
        dimensions = [{"Name": "RunMode", "Value": run_mode}]

        metric_data = [
            {
                "MetricName": "entries_tested",
                "Value": report.tested,
                "Unit": "Count",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            },
            {
                "MetricName": "entries_passed",
                "Value": report.passed,
                "Unit": "Count",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            },
            {
                "MetricName": "entries_failed",
                "Value": len(report.failures),
                "Unit": "Count",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            },
            {
                "MetricName": "pass_percentage",
                "Value": report.pass_percentage,
                "Unit": "Percent",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            },
            {
                "MetricName": "elapsed_minutes",
                "Value": report.elapsed_minutes,
                "Unit": "None",
                "Timestamp": timestamp,
                "Dimensions": dimensions,
            },
        ]

        failures_by_field = Counter(failure.outcome.field for failure in report.failures)
        for field_name, count in sorted(failures_by_field.items()):
            metric_data.append(
                {
                    "MetricName": "mismatches_by_field",
                    "Value": count,
                    "Unit": "Count",
                    "Timestamp": timestamp,
                    "Dimensions": dimensions + [{"Name": "Field", "Value": field_name}],
                }
            )

        return metric_data

    def publish_batch_report(self, report: "BatchReport", run_mode: str) -> None:
        """
        Publish metrics for a finished (or aborted) batch.

        Args:
            report: BatchReport from the orchestrator
            run_mode: Corpus run mode, used as the RunMode dimension
        """
        try:
            metric_data = self.build_metric_data(report, run_mode)

            for i in range(0, len(metric_data), _METRICS_PER_REQUEST):
                batch = metric_data[i : i + _METRICS_PER_REQUEST]
                self.cloudwatch_client.put_metric_data(Namespace=self.NAMESPACE, MetricData=batch)
                self.logger.debug(f"Published {len(batch)} metrics to CloudWatch")

            self.logger.info(
                "Batch metrics published",
                operation="publish_metrics",
                context={
                    "run_mode": run_mode,
                    "pass_percentage": round(report.pass_percentage, 2),
                    "failures": len(report.failures),
                },
            )

        except Exception as e:
            self.logger.error(
                "Failed to publish batch metrics",
                operation="publish_metrics",
                context={"run_mode": run_mode},
                error=str(e),
            )


class ComparisonLogger:
    """
    Structured events for compared entries and batch summaries.

    Events are queryable by run_id and event_type once shipped to a log
    store.
    """

    def __init__(self, run_id: str, logger: Optional[StructuredLogger] = None):
        self.run_id = run_id
        self.logger = logger or get_logger(__name__)

    def log_entry_comparison(
        self,
        identifier: str,
        outcome: ComparisonOutcome,
        duration_ms: Optional[float] = None,
    ) -> None:
        context: Dict[str, Any] = {
            "run_id": self.run_id,
            "event_type": "entry_comparison",
            "pdb_id": str(identifier),
            "match": outcome.passed,
            "waived": [rule.field for rule in outcome.waived],
        }
        if not outcome.passed:
            context.update(
                {
                    "field": outcome.field,
                    "chain_id": outcome.chain_id,
                    "value_a": outcome.value_a,
                    "value_b": outcome.value_b,
                    "requirement": outcome.requirement,
                }
            )
        self.logger.info(
            "Entry compared", operation="compare_entry", context=context, duration_ms=duration_ms
        )

    def log_summary(self, report: "BatchReport") -> None:
        self.logger.info(
            "Batch finished" if not report.aborted else "Batch aborted",
            operation="batch_summary",
            context={
                "run_id": self.run_id,
                "event_type": "batch_summary",
                "total": report.total,
                "tested": report.tested,
                "passed": report.passed,
                "failed": len(report.failures),
                "pass_percentage": round(report.pass_percentage, 2),
                "last_attempted": report.last_attempted,
                "aborted": report.aborted,
                "finished_at": _get_iso_timestamp(),
            },
            duration_ms=report.elapsed_minutes * 60000,
        )
