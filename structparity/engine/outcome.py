"""Comparison outcome model."""

from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Dict, List, Optional


class ComparisonStage(Enum):
    """Stage of the equivalence battery a rule belongs to."""

    RECORD = "record"
    HEADER = "header"
    CHAIN = "chain"


@dataclass
class WaivedRule:
    """A failing rule that the known-exception table let through."""

    field: str
    reason: str
    value_a: Any = None
    value_b: Any = None
    chain_id: Optional[str] = None


@dataclass
class ComparisonOutcome:
    """
    Result of comparing representation A (PDB) with representation B (mmCIF).

    A failed outcome names the first rule that failed, both values and the
    requirement that was not met. One-sided rules (presence, minimum length)
    leave the value of the other representation as None.
    """

    passed: bool
    field: Optional[str] = None
    value_a: Any = None
    value_b: Any = None
    requirement: Optional[str] = None
    stage: Optional[ComparisonStage] = None
    chain_id: Optional[str] = None
    waived: List[WaivedRule] = dataclass_field(default_factory=list)

    @classmethod
    def success(cls, waived: Optional[List[WaivedRule]] = None) -> "ComparisonOutcome":
        return cls(passed=True, waived=list(waived or []))

    @classmethod
    def failure(
        cls,
        field: str,
        value_a: Any,
        value_b: Any,
        requirement: str,
        stage: Optional[ComparisonStage] = None,
        chain_id: Optional[str] = None,
    ) -> "ComparisonOutcome":
        return cls(
            passed=False,
            field=field,
            value_a=value_a,
            value_b=value_b,
            requirement=requirement,
            stage=stage,
            chain_id=chain_id,
        )

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.passed:
            return "pass"
        chain = f" (chain {self.chain_id})" if self.chain_id is not None else ""
        return f"failed {self.field}{chain}: requirement {self.requirement}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["stage"] = self.stage.value if self.stage else None
        return data
