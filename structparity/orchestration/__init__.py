"""Batch orchestration - sequential fetch, compare and report over a corpus."""

from .batch import BatchOrchestrator, BatchReport, EntryFailure

__all__ = ["BatchOrchestrator", "BatchReport", "EntryFailure"]
