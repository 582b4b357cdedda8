"""
Structure record domain model.

In-memory representation of one PDB entry as produced by either the PDB
or the mmCIF reader. Both readers fill the same model so the equivalence
engine can compare them field by field.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

# Resolution assigned when an entry carries no physical resolution (NMR, models)
DEFAULT_RESOLUTION = 99.0

PDB_ID_PATTERN = re.compile(r"\d\w\w\w", re.ASCII)


class FileFormat(Enum):
    """File format a record was parsed from."""

    PDB = "pdb"  # representation A
    MMCIF = "mmcif"  # representation B


class GroupType(Enum):
    """Chemical classification of an observed or SEQRES group."""

    AMINOACID = "amino"
    NUCLEOTIDE = "nucleotide"
    HETATM = "hetatm"
    OTHER = "other"


class ExperimentalTechnique(Enum):
    """Experimental method labels as written in EXPDTA / _exptl.method."""

    XRAY_DIFFRACTION = "X-RAY DIFFRACTION"
    SOLUTION_NMR = "SOLUTION NMR"
    SOLID_STATE_NMR = "SOLID-STATE NMR"
    ELECTRON_MICROSCOPY = "ELECTRON MICROSCOPY"
    ELECTRON_CRYSTALLOGRAPHY = "ELECTRON CRYSTALLOGRAPHY"
    NEUTRON_DIFFRACTION = "NEUTRON DIFFRACTION"
    FIBER_DIFFRACTION = "FIBER DIFFRACTION"
    POWDER_DIFFRACTION = "POWDER DIFFRACTION"
    SOLUTION_SCATTERING = "SOLUTION SCATTERING"
    INFRARED_SPECTROSCOPY = "INFRARED SPECTROSCOPY"
    FLUORESCENCE_TRANSFER = "FLUORESCENCE TRANSFER"
    THEORETICAL_MODEL = "THEORETICAL MODEL"

    @classmethod
    def from_label(cls, label: str) -> Optional["ExperimentalTechnique"]:
        """Resolve a free-text method label, None when it is not recognised."""
        normalized = " ".join(label.strip().upper().split())
        normalized = _TECHNIQUE_ALIASES.get(normalized, normalized)
        for technique in cls:
            if technique.value == normalized:
                return technique
        return None

    @property
    def is_crystallographic(self) -> bool:
        return self in _CRYSTALLOGRAPHIC_TECHNIQUES

    @property
    def is_nmr(self) -> bool:
        return self in (ExperimentalTechnique.SOLUTION_NMR, ExperimentalTechnique.SOLID_STATE_NMR)


# Legacy spellings still found in older entries
_TECHNIQUE_ALIASES = {
    "NMR": "SOLUTION NMR",
    "SOLID-STATE NMR": "SOLID-STATE NMR",
    "SOLID STATE NMR": "SOLID-STATE NMR",
    "ELECTRON DIFFRACTION": "ELECTRON CRYSTALLOGRAPHY",
    "FIBRE DIFFRACTION": "FIBER DIFFRACTION",
    "CRYO-ELECTRON MICROSCOPY": "ELECTRON MICROSCOPY",
}

_CRYSTALLOGRAPHIC_TECHNIQUES = frozenset(
    {
        ExperimentalTechnique.XRAY_DIFFRACTION,
        ExperimentalTechnique.NEUTRON_DIFFRACTION,
        ExperimentalTechnique.ELECTRON_CRYSTALLOGRAPHY,
        ExperimentalTechnique.FIBER_DIFFRACTION,
        ExperimentalTechnique.POWDER_DIFFRACTION,
    }
)


def parse_techniques(labels: Iterable[str]) -> FrozenSet[ExperimentalTechnique]:
    """Turn method labels into a technique set, dropping unknown labels."""
    techniques = set()
    for label in labels:
        for part in label.split(";"):
            technique = ExperimentalTechnique.from_label(part)
            if technique is not None:
                techniques.add(technique)
    return frozenset(techniques)


@dataclass(frozen=True)
class RecordIdentifier:
    """
    Validated four-character PDB id: one digit followed by three word characters.

    Validation happens at construction, so an existing identifier is always
    well formed. The code is kept as written in the corpus resource.
    """

    code: str

    def __post_init__(self):
        if not isinstance(self.code, str) or not PDB_ID_PATTERN.fullmatch(self.code):
            raise ValueError(f"Invalid PDB id: {self.code!r}")

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return bool(PDB_ID_PATTERN.fullmatch(code))

    @property
    def lower(self) -> str:
        return self.code.lower()

    @property
    def upper(self) -> str:
        return self.code.upper()

    def __str__(self) -> str:
        return self.code


@dataclass
class Group:
    """An observed residue, ligand, water or SEQRES monomer."""

    name: str
    group_type: GroupType
    residue_number: Optional[int] = None
    insertion_code: str = ""

    @property
    def is_polymeric(self) -> bool:
        return self.group_type in (GroupType.AMINOACID, GroupType.NUCLEOTIDE)


@dataclass
class Chain:
    """
    A chain of one structure record.

    Attributes:
        chain_id: Author chain identifier, one character in both formats
        internal_chain_id: mmCIF label_asym_id; None when parsed from PDB
        atom_groups: Observed groups of the first model, in file order
        seqres_groups: Groups derived from SEQRES / _pdbx_poly_seq_scheme
        compound: Molecule metadata (COMPND / _entity), None when absent
        parent: Owning record, set by StructuredRecord; not part of equality
    """

    chain_id: str
    internal_chain_id: Optional[str] = None
    atom_groups: List[Group] = field(default_factory=list)
    seqres_groups: List[Group] = field(default_factory=list)
    compound: Optional[Dict[str, Any]] = None
    parent: Optional["StructuredRecord"] = field(default=None, repr=False, compare=False)

    @property
    def atom_length(self) -> int:
        return len(self.atom_groups)

    @property
    def seqres_length(self) -> int:
        return len(self.seqres_groups)

    def get_atom_groups(self, group_type: Optional[GroupType] = None) -> List[Group]:
        """Return observed groups, optionally restricted to one group type."""
        if group_type is None:
            return list(self.atom_groups)
        return [group for group in self.atom_groups if group.group_type == group_type]

    def is_polymer(self) -> bool:
        """True when any SEQRES group is an amino acid or a nucleotide."""
        return any(group.is_polymeric for group in self.seqres_groups)


@dataclass
class CrystalCell:
    """Unit cell edge lengths (Angstrom) and angles (degrees)."""

    a: float
    b: float
    c: float
    alpha: float
    beta: float
    gamma: float


@dataclass
class CrystallographicInfo:
    space_group: Optional[str] = None
    cell: Optional[CrystalCell] = None


@dataclass
class RecordHeader:
    """Entry-level metadata shared by both formats."""

    id_code: Optional[str] = None
    title: Optional[str] = None
    authors: Optional[str] = None
    classification: Optional[str] = None
    description: Optional[str] = None
    dep_date: Optional[date] = None
    mod_date: Optional[date] = None
    experimental_techniques: FrozenSet[ExperimentalTechnique] = frozenset()
    resolution: float = DEFAULT_RESOLUTION
    crystallographic_info: Optional[CrystallographicInfo] = None


@dataclass
class StructuredRecord:
    """
    One parsed PDB entry.

    Chains are taken from the first model; nr_models counts all models.
    """

    pdb_code: str
    header: RecordHeader
    chains: List[Chain] = field(default_factory=list)
    nr_models: int = 1
    biological_assembly: bool = False
    file_format: Optional[FileFormat] = None

    def __post_init__(self):
        for chain in self.chains:
            chain.parent = self

    @property
    def is_nmr(self) -> bool:
        return any(t.is_nmr for t in self.header.experimental_techniques)

    @property
    def is_crystallographic(self) -> bool:
        techniques = self.header.experimental_techniques
        if techniques:
            return any(t.is_crystallographic for t in techniques)
        # No method recorded: fall back on the presence of a real cell and resolution
        info = self.header.crystallographic_info
        return (
            info is not None
            and info.cell is not None
            and self.header.resolution != DEFAULT_RESOLUTION
        )

    def get_chain_by_pdb(self, chain_id: str) -> Optional[Chain]:
        for chain in self.chains:
            if chain.chain_id == chain_id:
                return chain
        return None
