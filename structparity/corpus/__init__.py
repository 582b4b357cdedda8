"""Corpus module - PDB id lists driving batch runs."""

from .loader import (
    LARGE_CORPUS,
    NAMED_CORPORA,
    VERY_LARGE_CORPUS,
    load_corpus,
    load_named_corpus,
)

__all__ = [
    "LARGE_CORPUS",
    "NAMED_CORPORA",
    "VERY_LARGE_CORPUS",
    "load_corpus",
    "load_named_corpus",
]
