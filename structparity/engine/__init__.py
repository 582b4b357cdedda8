"""Equivalence engine - staged PDB vs mmCIF comparison rules."""

from .equivalence import DELTA, DELTA_RESOLUTION, EquivalenceEngine, normalize_title
from .exception_table import ExceptionTable, KnownException
from .outcome import ComparisonOutcome, ComparisonStage, WaivedRule

__all__ = [
    "DELTA",
    "DELTA_RESOLUTION",
    "EquivalenceEngine",
    "normalize_title",
    "ExceptionTable",
    "KnownException",
    "ComparisonOutcome",
    "ComparisonStage",
    "WaivedRule",
]
