"""
mmCIF format reader (representation B).

Header categories are read through MMCIF2Dict; coordinates and models
through MMCIFParser, which keys chains by author chain id so chains line up
with the PDB-format parse of the same entry.
"""

import io
from datetime import date
from typing import Dict, List, Optional

from Bio.PDB import MMCIFParser
from Bio.PDB.MMCIF2Dict import MMCIF2Dict

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

# mmCIF placeholders for unknown and inapplicable values
_MISSING = ("?", ".")

_CELL_KEYS = (
    "_cell.length_a",
    "_cell.length_b",
    "_cell.length_c",
    "_cell.angle_alpha",
    "_cell.angle_beta",
    "_cell.angle_gamma",
)

_RESOLUTION_KEYS = (
    "_refine.ls_d_res_high",
    "_reflns.d_resolution_high",
    "_em_3d_reconstruction.resolution",
)


def _values(mmcif_dict: Dict, key: str) -> List[str]:
    """All non-placeholder values of a data item, in file order."""
    raw = mmcif_dict.get(key, [])
    if isinstance(raw, str):
        raw = [raw]
    return [value for value in raw if value not in _MISSING]


def _column(mmcif_dict: Dict, key: str) -> List[str]:
    """Raw column of a loop, placeholders kept so rows stay aligned."""
    raw = mmcif_dict.get(key, [])
    if isinstance(raw, str):
        return [raw]
    return list(raw)


def _first(mmcif_dict: Dict, *keys: str) -> Optional[str]:
    for key in keys:
        values = _values(mmcif_dict, key)
        if values:
            return values[0].strip()
    return None


def _parse_date(text: Optional[str]) -> Optional[date]:
    if not text:
        return None
    try:
        return date.fromisoformat(text.strip()[:10])
    except ValueError:
        return None


def _parse_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        return None


class MmcifReader:
    """Builds a StructuredRecord from mmCIF text."""

    file_format = FileFormat.MMCIF

    def __init__(self):
        self.parser = MMCIFParser(QUIET=True)

    def read(self, text: str, pdb_id: str) -> StructuredRecord:
        """
        Parse mmCIF text.

        Args:
            text: Full file content
            pdb_id: Id used as Biopython structure id

        Returns:
            StructuredRecord with chains from the first model

        Raises:
            ValueError: If the file holds no model
        """
        mmcif_dict = MMCIF2Dict(io.StringIO(text))
        structure = self.parser.get_structure(pdb_id, io.StringIO(text))
        models = structure.get_list()
        if not models:
            raise ValueError(f"No models found in mmCIF file for {pdb_id}")

        header = self._build_header(mmcif_dict)
        internal_ids, entity_ids = self._atom_site_chain_ids(mmcif_dict)
        seqres = self._read_poly_seq_scheme(mmcif_dict)
        entity_descriptions = self._entity_descriptions(mmcif_dict)

        chains = []
        for bio_chain in models[0]:
            entity_id = entity_ids.get(bio_chain.id)
            compound = None
            if entity_id is not None:
                compound = {
                    "entity_id": entity_id,
                    "molecule": entity_descriptions.get(entity_id),
                }
            chains.append(
                Chain(
                    chain_id=bio_chain.id,
                    internal_chain_id=internal_ids.get(bio_chain.id),
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
                    compound=compound,
                )
            )

        return StructuredRecord(
            pdb_code=(header.id_code or pdb_id).upper(),
            header=header,
            chains=chains,
            nr_models=len(models),
            file_format=FileFormat.MMCIF,
        )

    def _build_header(self, mmcif_dict: Dict) -> RecordHeader:
        id_code = _first(mmcif_dict, "_entry.id")

        authors = _values(mmcif_dict, "_audit_author.name")
        description = _first(mmcif_dict, "_struct.pdbx_descriptor")
        if description is None:
            descriptions = _values(mmcif_dict, "_entity.pdbx_description")
            description = ", ".join(descriptions) if descriptions else None

        revision_dates = [
            parsed
            for parsed in (
                _parse_date(value)
                for value in (
                    _values(mmcif_dict, "_pdbx_audit_revision_history.revision_date")
                    or _values(mmcif_dict, "_database_PDB_rev.date")
                )
            )
            if parsed is not None
        ]

        resolution = _parse_float(_first(mmcif_dict, *_RESOLUTION_KEYS))

        return RecordHeader(
            id_code=id_code.upper() if id_code else None,
            title=_first(mmcif_dict, "_struct.title"),
            authors=", ".join(authors) if authors else None,
            classification=_first(mmcif_dict, "_struct_keywords.pdbx_keywords"),
            description=description,
            dep_date=_parse_date(
                _first(
                    mmcif_dict,
                    "_pdbx_database_status.recvd_initial_deposition_date",
                    "_database_PDB_rev.date_original",
                )
            ),
            mod_date=max(revision_dates) if revision_dates else None,
            experimental_techniques=parse_techniques(_values(mmcif_dict, "_exptl.method")),
            resolution=resolution if resolution is not None else DEFAULT_RESOLUTION,
            crystallographic_info=self._read_cell(mmcif_dict),
        )

    @staticmethod
    def _read_cell(mmcif_dict: Dict) -> Optional[CrystallographicInfo]:
        space_group = _first(mmcif_dict, "_symmetry.space_group_name_H-M")
        values = [_parse_float(_first(mmcif_dict, key)) for key in _CELL_KEYS]
        cell = CrystalCell(*values) if None not in values else None
        if cell is None and space_group is None:
            return None
        return CrystallographicInfo(space_group=space_group, cell=cell)

    @staticmethod
    def _atom_site_chain_ids(mmcif_dict: Dict):
        """
        First label_asym_id and label_entity_id seen for each author chain.

        Only the first model is scanned, matching the chains of the record.
        """
        auth_ids = _column(mmcif_dict, "_atom_site.auth_asym_id")
        label_ids = _column(mmcif_dict, "_atom_site.label_asym_id")
        entity_ids = _column(mmcif_dict, "_atom_site.label_entity_id")
        model_ids = _column(mmcif_dict, "_atom_site.pdbx_PDB_model_num")

        first_model = model_ids[0] if model_ids else None
        internal: Dict[str, str] = {}
        entities: Dict[str, str] = {}
        for index, auth_id in enumerate(auth_ids):
            if model_ids and model_ids[index] != first_model:
                break
            if auth_id in internal:
                continue
            if index < len(label_ids):
                internal[auth_id] = label_ids[index]
            if index < len(entity_ids):
                entities[auth_id] = entity_ids[index]
        return internal, entities

    @staticmethod
    def _read_poly_seq_scheme(mmcif_dict: Dict) -> Dict[str, List[Group]]:
        """SEQRES-equivalent groups per author chain; heterogeneous positions count once."""
        strands = _column(mmcif_dict, "_pdbx_poly_seq_scheme.pdb_strand_id")
        monomers = _column(mmcif_dict, "_pdbx_poly_seq_scheme.mon_id")
        seq_ids = _column(mmcif_dict, "_pdbx_poly_seq_scheme.seq_id")

        seqres: Dict[str, List[Group]] = {}
        seen = set()
        for strand, name, seq_id in zip(strands, monomers, seq_ids):
            if (strand, seq_id) in seen:
                continue
            seen.add((strand, seq_id))
            seqres.setdefault(strand, []).append(Group(name=name, group_type=classify_name(name)))
        return seqres

    @staticmethod
    def _entity_descriptions(mmcif_dict: Dict) -> Dict[str, Optional[str]]:
        ids = _column(mmcif_dict, "_entity.id")
        descriptions = _column(mmcif_dict, "_entity.pdbx_description")
        return {
            entity_id: (description if description not in _MISSING else None)
            for entity_id, description in zip(ids, descriptions)
        }
