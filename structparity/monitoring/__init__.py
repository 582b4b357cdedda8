"""Monitoring and telemetry module for batch parity runs."""

from structparity.monitoring.comparison import ComparisonLogger, ComparisonMetricsPublisher

__all__ = ["ComparisonLogger", "ComparisonMetricsPublisher"]
