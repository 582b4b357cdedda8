"""Record sources - cached wwPDB archive access and the two format readers."""

from .mmcif_reader import MmcifReader
from .pdb_reader import PdbReader
from .record_source import CachedRecordSource, RecordSource

__all__ = ["RecordSource", "CachedRecordSource", "PdbReader", "MmcifReader"]
