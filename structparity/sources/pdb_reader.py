"""
PDB format reader (representation A).

Coordinates, models, title, authors, compounds and resolution come from
Biopython's PDBParser and its parsed header. HEADER, EXPDTA, REVDAT,
CRYST1 and SEQRES are read from the fixed-column records directly since
the parsed header does not keep them in the form the comparison needs.
"""

import io
from datetime import date, datetime
from typing import Dict, List, Optional

from Bio.PDB import PDBParser

from structparity.domain.record import (
    DEFAULT_RESOLUTION,
    Chain,
    CrystalCell,
    CrystallographicInfo,
    FileFormat,
    Group,
    RecordHeader,
    StructuredRecord,
    parse_techniques,
)
from structparity.sources.classification import classify_name, classify_residue


def _parse_pdb_date(text: str) -> Optional[date]:
    """Parse a DD-MMM-YY date, None when blank or malformed."""
    text = text.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text.title(), "%d-%b-%y").date()
    except ValueError:
        return None


def _parse_float(text: str) -> Optional[float]:
    try:
        return float(text)
    except ValueError:
        return None


def _blank_to_none(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class PdbReader:
    """Builds a StructuredRecord from PDB-format text."""

    file_format = FileFormat.PDB

    def __init__(self):
        self.parser = PDBParser(QUIET=True)

    def read(self, text: str, pdb_id: str) -> StructuredRecord:
        """
        Parse PDB-format text.

        Args:
            text: Full file content
            pdb_id: Id used as Biopython structure id

        Returns:
            StructuredRecord with chains from the first model

        Raises:
            ValueError: If the file holds no model
        """
        lines = text.splitlines()
        structure = self.parser.get_structure(pdb_id, io.StringIO(text))
        models = structure.get_list()
        if not models:
            raise ValueError(f"No models found in PDB file for {pdb_id}")

        parsed_header = structure.header
        header = self._build_header(lines, parsed_header)

        compounds = self._compounds_by_chain(parsed_header)
        seqres = self._read_seqres(lines)

        chains = []
        for bio_chain in models[0]:
            chains.append(
                Chain(
                    chain_id=bio_chain.id,
                    internal_chain_id=None,
                    atom_groups=[
                        Group(
                            name=residue.get_resname().strip(),
                            group_type=classify_residue(residue),
                            residue_number=residue.id[1],
                            insertion_code=residue.id[2].strip(),
                        )
                        for residue in bio_chain
                    ],
                    seqres_groups=seqres.get(bio_chain.id, []),
                    compound=compounds.get(bio_chain.id.lower()),
                )
            )

        return StructuredRecord(
            pdb_code=(header.id_code or pdb_id).upper(),
            header=header,
            chains=chains,
            nr_models=len(models),
            file_format=FileFormat.PDB,
        )

    def _build_header(self, lines: List[str], parsed_header: Dict) -> RecordHeader:
        classification = None
        dep_date = None
        id_code = None
        method_parts: List[str] = []
        revision_dates: List[date] = []
        crystallographic_info = None

        for line in lines:
            record = line[:6].strip()
            if record == "HEADER":
                classification = _blank_to_none(line[10:50])
                dep_date = _parse_pdb_date(line[50:59])
                id_code = _blank_to_none(line[62:66])
            elif record == "EXPDTA":
                method_parts.append(line[10:79].strip())
            elif record == "REVDAT":
                revision_date = _parse_pdb_date(line[13:22])
                if revision_date is not None:
                    revision_dates.append(revision_date)
            elif record == "CRYST1":
                crystallographic_info = self._read_cryst1(line)
            elif record in ("ATOM", "HETATM", "MODEL"):
                break

        resolution = parsed_header.get("resolution")
        compounds = [
            entry.get("molecule")
            for entry in parsed_header.get("compound", {}).values()
            if entry.get("molecule")
        ]

        techniques = parse_techniques([" ".join(method_parts)]) if method_parts else frozenset()

        return RecordHeader(
            id_code=id_code.upper() if id_code else None,
            title=_blank_to_none(parsed_header.get("name")),
            authors=_blank_to_none(parsed_header.get("author")),
            classification=classification,
            description=", ".join(compounds) if compounds else None,
            dep_date=dep_date,
            mod_date=max(revision_dates) if revision_dates else None,
            experimental_techniques=techniques,
            resolution=resolution if resolution is not None else DEFAULT_RESOLUTION,
            crystallographic_info=crystallographic_info,
        )

    @staticmethod
    def _read_cryst1(line: str) -> CrystallographicInfo:
        values = [
            _parse_float(line[6:15]),
            _parse_float(line[15:24]),
            _parse_float(line[24:33]),
            _parse_float(line[33:40]),
            _parse_float(line[40:47]),
            _parse_float(line[47:54]),
        ]
        cell = CrystalCell(*values) if None not in values else None
        return CrystallographicInfo(space_group=_blank_to_none(line[55:66]), cell=cell)

    @staticmethod
    def _read_seqres(lines: List[str]) -> Dict[str, List[Group]]:
        seqres: Dict[str, List[Group]] = {}
        for line in lines:
            if not line.startswith("SEQRES"):
                continue
            chain_id = line[11] if len(line) > 11 else " "
            for name in line[19:70].split():
                seqres.setdefault(chain_id, []).append(Group(name=name, group_type=classify_name(name)))
        return seqres

    @staticmethod
    def _compounds_by_chain(parsed_header: Dict) -> Dict[str, Dict]:
        """Map lower-cased chain id to its COMPND entry (Biopython lower-cases chain lists)."""
        by_chain: Dict[str, Dict] = {}
        for entry in parsed_header.get("compound", {}).values():
            for chain_id in entry.get("chain", "").split(","):
                chain_id = chain_id.strip()
                if chain_id:
                    by_chain[chain_id.lower()] = entry
        return by_chain
