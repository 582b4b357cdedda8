"""
Console reporter for batch runs.

Writes the operator-facing stream: a run banner, one progress dot per
entry in rows of 100, full mismatch diagnostics and the last attempted
entry. Structured logs go to stderr through the logger instead.
"""

import sys
from typing import Optional, TextIO

from structparity.engine.outcome import ComparisonOutcome

DOTS_PER_LINE = 100


class ConsoleReporter:
    """Plain-text reporter writing to a stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None, dots_per_line: int = DOTS_PER_LINE):
        self.stream = stream or sys.stdout
        self.dots_per_line = dots_per_line
        self._dots = 0

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def report_start(self, total: int, storage_root: Optional[str] = None) -> None:
        root = f" using files from {storage_root}" if storage_root else ""
        self._write(f"Testing PDB vs mmCIF parsing of {total} PDB entries{root}\n")
        self._dots = 0

    def report_progress(self) -> None:
        """One marker per compared entry, with a line break every dots_per_line markers."""
        self._write(".")
        self._dots += 1
        if self._dots % self.dots_per_line == 0:
            self._write("\n")

    def report_mismatch(self, outcome: ComparisonOutcome, identifier: Optional[str] = None) -> None:
        """
        Print a failed comparison with both values shown separately.

        Values are printed with repr() so 2.0 and "2.0", or a trailing
        space, are distinguishable when diagnosing near misses.
        """
        self._end_progress_line()
        entry = f" for {identifier}" if identifier else ""
        chain = f", chain {outcome.chain_id}" if outcome.chain_id is not None else ""
        lines = [
            f"Mismatch{entry} on field '{outcome.field}'{chain}",
            f"  Representation A (PDB):   {outcome.value_a!r}",
            f"  Representation B (mmCIF): {outcome.value_b!r}",
            f"  Requirement: {outcome.requirement}",
        ]
        self._write("\n".join(lines) + "\n")

    def report_last_attempted(self, identifier: Optional[str]) -> None:
        self._end_progress_line()
        if identifier is None:
            self._write("No PDB entry was attempted\n")
        else:
            self._write(f"Last PDB id tested: {identifier}\n")

    def report_done(self, elapsed_minutes: float) -> None:
        self._end_progress_line()
        self._write(f"Elapsed time: {elapsed_minutes:.1f} minutes\n")

    def _end_progress_line(self) -> None:
        if self._dots % self.dots_per_line:
            self._write("\n")
            self._dots = 0
