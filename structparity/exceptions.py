"""
Exception hierarchy for parity runs.

Every error raised by the corpus loader, the record source, the settings
layer and the batch orchestrator derives from ParityError so operators and
the CLI can tell configuration problems apart from per-entry failures.
"""

from typing import Any, Optional


class ParityError(Exception):
    """Base exception for all structparity errors."""

    pass


class ConfigurationError(ParityError):
    """
    Raised when the run configuration is unusable.

    Covers an unset or temp-dir storage root, an invalid known-exception
    table and malformed settings. Always raised before any fetch happens.
    """

    pass


class CorpusFormatError(ParityError):
    """Raised when a corpus resource contains an invalid PDB id line."""

    def __init__(self, line: str, resource: Any):
        super().__init__(
            f"The input test set {resource} contains an invalid PDB code: {line!r}"
        )
        self.line = line
        self.resource = resource


class FetchError(ParityError):
    """
    Raised when an entry cannot be retrieved or parsed in a given format.

    Fatal to the whole batch: the orchestrator does not isolate fetch
    failures per entry.
    """

    def __init__(self, identifier: str, file_format: Any, reason: str):
        fmt = getattr(file_format, "value", file_format)
        super().__init__(f"Could not fetch {identifier} as {fmt}: {reason}")
        self.identifier = identifier
        self.file_format = file_format
        self.reason = reason


class ComparisonMismatch(ParityError):
    """Raised by the orchestrator after a failed comparison has been reported."""

    def __init__(self, identifier: str, outcome: Optional[Any] = None):
        field = getattr(outcome, "field", None)
        super().__init__(f"Comparison failure for {identifier} on field {field}")
        self.identifier = identifier
        self.outcome = outcome
