"""
Equivalence Engine

Runs a fixed battery of staged rules between the PDB parse (representation
A) and the mmCIF parse (representation B) of one entry:

- Stage A: record-level predicates (exact)
- Stage B: header fields (exact, tolerance-bounded, or presence-only)
- Stage C: per-chain counts and self-consistency checks

The first failing rule ends the comparison of that entry. Presence-only
rules (authors, classification, description) are deliberate: their
encodings differ too much between the formats for value equality.
"""

from typing import Any, List, Optional

from structparity.domain.record import (
    DEFAULT_RESOLUTION,
    Chain,
    ExperimentalTechnique,
    GroupType,
    StructuredRecord,
)
from structparity.engine.exception_table import ExceptionTable
from structparity.engine.outcome import ComparisonOutcome, ComparisonStage, WaivedRule
from structparity.utils.logger import get_logger

logger = get_logger(__name__)

DELTA = 0.01
DELTA_RESOLUTION = 0.01

MIN_AUTHORS_LENGTH = 2
MAX_INTERNAL_CHAIN_ID_LENGTH = 4

# Absorbs binary rounding so that e.g. 1.00 vs 1.01 counts as within 0.01
_FLOAT_SLACK = 1e-9

# Resolution for these is recorded elsewhere in mmCIF (e.g. 3iz2)
_RESOLUTION_SKIP_TECHNIQUES = frozenset(
    {ExperimentalTechnique.ELECTRON_CRYSTALLOGRAPHY, ExperimentalTechnique.ELECTRON_MICROSCOPY}
)

_CELL_PARAMETERS = (
    ("cellA", "a"),
    ("cellB", "b"),
    ("cellC", "c"),
    ("cellAlpha", "alpha"),
    ("cellBeta", "beta"),
    ("cellGamma", "gamma"),
)


class _RuleFailed(Exception):
    """Carries the first failing outcome out of a stage."""

    def __init__(self, outcome: ComparisonOutcome):
        super().__init__(outcome.describe())
        self.outcome = outcome


class _RuleChecker:
    """Evaluates rules for one stage, consulting the exception table on failure."""

    def __init__(
        self,
        pdb_id: str,
        stage: ComparisonStage,
        exception_table: ExceptionTable,
        waived: List[WaivedRule],
        chain_id: Optional[str] = None,
    ):
        self.pdb_id = pdb_id
        self.stage = stage
        self.exception_table = exception_table
        self.waived = waived
        self.chain_id = chain_id

    def check(self, ok: bool, field: str, value_a: Any, value_b: Any, requirement: str) -> None:
        if ok:
            return

        exception = self.exception_table.waives(self.pdb_id, field, self.chain_id)
        if exception is not None:
            self.waived.append(
                WaivedRule(
                    field=field,
                    reason=exception.reason,
                    value_a=value_a,
                    value_b=value_b,
                    chain_id=self.chain_id,
                )
            )
            logger.warning(
                "Known exception waived a failing rule",
                operation="compare",
                context={"pdb_id": self.pdb_id, "field": field, "chain": self.chain_id},
                error=exception.reason,
            )
            return

        raise _RuleFailed(
            ComparisonOutcome.failure(
                field, value_a, value_b, requirement, stage=self.stage, chain_id=self.chain_id
            )
        )

    def equal(self, field: str, value_a: Any, value_b: Any) -> None:
        self.check(value_a == value_b, field, value_a, value_b, "A == B")

    def close(self, field: str, value_a: Optional[float], value_b: Optional[float], delta: float) -> None:
        ok = (
            value_a is not None
            and value_b is not None
            and abs(value_a - value_b) <= delta + _FLOAT_SLACK
        )
        self.check(ok, field, value_a, value_b, f"|A - B| <= {delta}")

    def present_a(self, field: str, value: Any, min_length: int = 1) -> None:
        self.check(_is_present(value, min_length), field, value, None, _presence_requirement("A", min_length))

    def present_b(self, field: str, value: Any, min_length: int = 1) -> None:
        self.check(_is_present(value, min_length), field, None, value, _presence_requirement("B", min_length))


def _is_present(value: Any, min_length: int) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return len(value.strip()) >= min_length
    return True


def _presence_requirement(side: str, min_length: int) -> str:
    if min_length > 1:
        return f"present on {side} with length >= {min_length}"
    return f"present on {side}"


def normalize_title(title: str) -> str:
    """Lower-case and drop every space so that line-wrapping differences vanish."""
    return title.lower().replace(" ", "")


def _technique_labels(techniques) -> List[str]:
    return sorted(t.value for t in techniques)


def _group_type_sum(chain: Chain) -> int:
    return (
        len(chain.get_atom_groups(GroupType.AMINOACID))
        + len(chain.get_atom_groups(GroupType.HETATM))
        + len(chain.get_atom_groups(GroupType.NUCLEOTIDE))
    )


class EquivalenceEngine:
    """
    Compares the PDB and mmCIF parses of the same entry.

    Example:
        engine = EquivalenceEngine(ExceptionTable.from_entries(entries))
        outcome = engine.compare(pdb_record, cif_record)
        if not outcome.passed:
            print(outcome.field, outcome.value_a, outcome.value_b)
    """

    def __init__(
        self,
        exception_table: Optional[ExceptionTable] = None,
        delta: float = DELTA,
        delta_resolution: float = DELTA_RESOLUTION,
    ):
        self.exception_table = exception_table or ExceptionTable()
        self.delta = delta
        self.delta_resolution = delta_resolution

    def compare(
        self,
        record_a: StructuredRecord,
        record_b: StructuredRecord,
        pdb_id: Optional[str] = None,
    ) -> ComparisonOutcome:
        """
        Run stages A, B and C; return the first failure or a pass.

        Args:
            record_a: Record parsed from PDB format
            record_b: Record parsed from mmCIF format
            pdb_id: Id used for exception lookups; defaults to record_a.pdb_code

        Returns:
            ComparisonOutcome, carrying any waived rules
        """
        pdb_id = str(pdb_id or record_a.pdb_code)
        waived: List[WaivedRule] = []

        for stage in (self.compare_record_predicates, self.compare_headers, self.compare_chains):
            outcome = stage(record_a, record_b, pdb_id, waived)
            if not outcome.passed:
                outcome.waived = waived
                return outcome

        return ComparisonOutcome.success(waived)

    def compare_record_predicates(
        self,
        record_a: StructuredRecord,
        record_b: StructuredRecord,
        pdb_id: str,
        waived: Optional[List[WaivedRule]] = None,
    ) -> ComparisonOutcome:
        """Stage A: NMR / crystallographic flags, model count, id code, assembly flag."""
        waived = waived if waived is not None else []
        rules = _RuleChecker(pdb_id, ComparisonStage.RECORD, self.exception_table, waived)
        try:
            rules.equal("isNmr", record_a.is_nmr, record_b.is_nmr)
            rules.equal("isCrystallographic", record_a.is_crystallographic, record_b.is_crystallographic)
            rules.equal("nrModels", record_a.nr_models, record_b.nr_models)
            rules.equal("idCode", record_a.pdb_code, record_b.pdb_code)
            rules.check(
                not record_a.biological_assembly and not record_b.biological_assembly,
                "isBiologicalAssembly",
                record_a.biological_assembly,
                record_b.biological_assembly,
                "False on A and B",
            )
        except _RuleFailed as failed:
            return failed.outcome
        return ComparisonOutcome.success(waived)

    def compare_headers(
        self,
        record_a: StructuredRecord,
        record_b: StructuredRecord,
        pdb_id: str,
        waived: Optional[List[WaivedRule]] = None,
    ) -> ComparisonOutcome:
        """Stage B: header metadata, resolution and crystallographic cell."""
        waived = waived if waived is not None else []
        rules = _RuleChecker(pdb_id, ComparisonStage.HEADER, self.exception_table, waived)
        h_a = record_a.header
        h_b = record_b.header

        try:
            rules.equal("idCode", h_a.id_code, h_b.id_code)

            # Presence only: name punctuation and ordering differ between formats (e.g. 1zjo)
            rules.present_a("authors", h_a.authors, MIN_AUTHORS_LENGTH)
            rules.present_b("authors", h_b.authors, MIN_AUTHORS_LENGTH)
            # Presence only: keyword wording differs between formats (e.g. 3ofb)
            rules.present_a("classification", h_a.classification)
            rules.present_b("classification", h_b.classification)
            rules.present_a("description", h_a.description)
            rules.present_b("description", h_b.description)

            rules.equal("depDate", h_a.dep_date, h_b.dep_date)
            rules.equal("modDate", h_a.mod_date, h_b.mod_date)

            techniques_a = h_a.experimental_techniques
            techniques_b = h_b.experimental_techniques
            rules.check(
                len(techniques_a) > 0,
                "experimentalTechniques",
                _technique_labels(techniques_a),
                None,
                "non-empty on A",
            )
            rules.check(
                techniques_a == techniques_b,
                "experimentalTechniques",
                _technique_labels(techniques_a),
                _technique_labels(techniques_b),
                "A == B",
            )

            if not techniques_a & _RESOLUTION_SKIP_TECHNIQUES:
                rules.close("resolution", h_a.resolution, h_b.resolution, self.delta_resolution)

            rules.present_a("title", h_a.title)
            rules.present_b("title", h_b.title)
            if h_a.title is not None and h_b.title is not None:
                rules.equal("title", normalize_title(h_a.title), normalize_title(h_b.title))

            if record_a.is_nmr:
                rules.check(
                    h_a.resolution is not None
                    and abs(h_a.resolution - DEFAULT_RESOLUTION) <= self.delta_resolution + _FLOAT_SLACK,
                    "resolution",
                    h_a.resolution,
                    None,
                    f"A == {DEFAULT_RESOLUTION} for NMR entries",
                )

            if record_a.is_crystallographic:
                self._compare_crystallographic_info(rules, record_a, record_b)

        except _RuleFailed as failed:
            return failed.outcome
        return ComparisonOutcome.success(waived)

    def _compare_crystallographic_info(
        self, rules: _RuleChecker, record_a: StructuredRecord, record_b: StructuredRecord
    ) -> None:
        info_a = record_a.header.crystallographic_info
        info_b = record_b.header.crystallographic_info
        rules.present_a("crystallographicInfo", info_a)
        rules.present_b("crystallographicInfo", info_b)
        if info_a is None or info_b is None:
            return

        rules.present_a("spaceGroup", info_a.space_group)
        rules.present_b("spaceGroup", info_b.space_group)
        rules.present_a("crystalCell", info_a.cell)
        rules.present_b("crystalCell", info_b.cell)
        if info_a.cell is None or info_b.cell is None:
            return

        for field, attribute in _CELL_PARAMETERS:
            rules.close(
                field,
                getattr(info_a.cell, attribute),
                getattr(info_b.cell, attribute),
                self.delta,
            )

    def compare_chains(
        self,
        record_a: StructuredRecord,
        record_b: StructuredRecord,
        pdb_id: str,
        waived: Optional[List[WaivedRule]] = None,
    ) -> ComparisonOutcome:
        """Stage C: pair chains by one-character id and compare each pair."""
        waived = waived if waived is not None else []
        rules = _RuleChecker(pdb_id, ComparisonStage.CHAIN, self.exception_table, waived)
        try:
            rules.equal("chainCount", len(record_a.chains), len(record_b.chains))
        except _RuleFailed as failed:
            return failed.outcome

        for chain_a in record_a.chains:
            chain_b = record_b.get_chain_by_pdb(chain_a.chain_id)
            outcome = self.compare_chain(chain_a, chain_b, pdb_id, waived)
            if not outcome.passed:
                return outcome

        return ComparisonOutcome.success(waived)

    def compare_chain(
        self,
        chain_a: Chain,
        chain_b: Optional[Chain],
        pdb_id: str,
        waived: Optional[List[WaivedRule]] = None,
    ) -> ComparisonOutcome:
        """
        Compare one chain pair.

        Returns a partial outcome for this chain only; compare_chains stops at
        the first chain that fails.
        """
        waived = waived if waived is not None else []
        chain_id = chain_a.chain_id
        rules = _RuleChecker(pdb_id, ComparisonStage.CHAIN, self.exception_table, waived, chain_id)

        try:
            rules.check(chain_b is not None, "chainId", chain_id, None, "chain present on B")
            if chain_b is None:
                return ComparisonOutcome.success(waived)
            rules.equal("chainId", chain_a.chain_id, chain_b.chain_id)

            # Only mmCIF carries an internal (label_asym_id) chain id
            rules.present_b("internalChainId", chain_b.internal_chain_id)
            rules.check(
                chain_b.internal_chain_id is None
                or len(chain_b.internal_chain_id) <= MAX_INTERNAL_CHAIN_ID_LENGTH,
                "internalChainId",
                None,
                chain_b.internal_chain_id,
                f"length <= {MAX_INTERNAL_CHAIN_ID_LENGTH} on B",
            )
            rules.check(len(chain_a.chain_id) == 1, "chainId", chain_a.chain_id, None, "length == 1 on A")
            rules.check(len(chain_b.chain_id) == 1, "chainId", None, chain_b.chain_id, "length == 1 on B")

            # SEQRES of either side decides polymer status
            polymer = chain_a.is_polymer() or chain_b.is_polymer()
            if polymer:
                # Compound metadata is only required on A (parser asymmetry)
                rules.present_a("compound", chain_a.compound)

            rules.present_a("parent", chain_a.parent)
            rules.present_b("parent", chain_b.parent)

            rules.equal("atomLength", chain_a.atom_length, chain_b.atom_length)
            rules.equal(
                "aminoAcidCount",
                len(chain_a.get_atom_groups(GroupType.AMINOACID)),
                len(chain_b.get_atom_groups(GroupType.AMINOACID)),
            )
            rules.check(chain_a.atom_length >= 1, "atomLength", chain_a.atom_length, None, ">= 1 on A")

            if polymer:
                rules.check(
                    chain_a.seqres_length >= 1,
                    "seqResLength",
                    chain_a.seqres_length,
                    None,
                    ">= 1",
                )

            rules.check(
                chain_a.atom_length == len(chain_a.get_atom_groups()),
                "atomGroupsSize",
                chain_a.atom_length,
                None,
                "atomLength == len(atom groups) on A",
            )
            rules.check(
                chain_b.atom_length == len(chain_b.get_atom_groups()),
                "atomGroupsSize",
                None,
                chain_b.atom_length,
                "atomLength == len(atom groups) on B",
            )

            sum_a = _group_type_sum(chain_a)
            sum_b = _group_type_sum(chain_b)
            rules.equal("groupTypeSum", sum_a, sum_b)
            rules.check(
                chain_a.atom_length == sum_a,
                "groupTypeSum",
                sum_a,
                None,
                f"amino + hetatm + nucleotide == atomLength ({chain_a.atom_length}) on A",
            )
        except _RuleFailed as failed:
            return failed.outcome

        return ComparisonOutcome.success(waived)
