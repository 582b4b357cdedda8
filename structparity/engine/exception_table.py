"""
Known-exception table.

Some entries disagree between the PDB and mmCIF parses for reasons that
are understood (malformed source files, parser quirks). Rather than hiding
those carve-outs in comments, they are listed per PDB id and rule name and
the engine waives exactly those rules for exactly those entries.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class KnownException:
    """
    One waived rule.

    Attributes:
        pdb_id: Entry id, matched case-insensitively
        field: Rule name as reported in mismatch diagnostics (e.g. "groupTypeSum")
        reason: Why the mismatch is expected
        chain: Restrict the waiver to one chain; None waives every chain
    """

    pdb_id: str
    field: str
    reason: str
    chain: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnownException":
        return cls(
            pdb_id=data["pdb_id"].lower(),
            field=data["field"],
            reason=data["reason"],
            chain=data.get("chain"),
        )


class ExceptionTable:
    """Lookup of known exceptions keyed by (pdb_id, field)."""

    def __init__(self, exceptions: Iterable[KnownException] = ()):
        self._by_key: Dict[tuple, List[KnownException]] = {}
        for exception in exceptions:
            key = (exception.pdb_id.lower(), exception.field)
            self._by_key.setdefault(key, []).append(exception)

    @classmethod
    def from_entries(cls, entries: Iterable[Dict[str, Any]]) -> "ExceptionTable":
        """Build a table from entry dicts as returned by Settings.load_exception_table."""
        return cls(KnownException.from_dict(entry) for entry in entries)

    def waives(
        self, pdb_id: str, field: str, chain_id: Optional[str] = None
    ) -> Optional[KnownException]:
        """Return the exception covering this rule failure, or None."""
        for exception in self._by_key.get((str(pdb_id).lower(), field), []):
            if exception.chain is None or exception.chain == chain_id:
                return exception
        return None

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_key.values())

    def __iter__(self):
        for items in self._by_key.values():
            yield from items
