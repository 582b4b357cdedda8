"""Reporting - operator console output and batch report artifacts."""

from .console import DOTS_PER_LINE, ConsoleReporter
from .report_writer import BatchReportWriter

__all__ = ["DOTS_PER_LINE", "ConsoleReporter", "BatchReportWriter"]
