"""Domain module - structure record model shared by both file formats."""

from .record import (
    DEFAULT_RESOLUTION,
    Chain,
    CrystalCell,
    CrystallographicInfo,
    ExperimentalTechnique,
    FileFormat,
    Group,
    GroupType,
    RecordHeader,
    RecordIdentifier,
    StructuredRecord,
    parse_techniques,
)

__all__ = [
    "DEFAULT_RESOLUTION",
    "Chain",
    "CrystalCell",
    "CrystallographicInfo",
    "ExperimentalTechnique",
    "FileFormat",
    "Group",
    "GroupType",
    "RecordHeader",
    "RecordIdentifier",
    "StructuredRecord",
    "parse_techniques",
]
