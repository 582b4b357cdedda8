"""Shared builders for in-memory structure records."""

from datetime import date

import pytest

from structparity.domain.record import (
    Chain,
    CrystalCell,
    CrystallographicInfo,
    ExperimentalTechnique,
    FileFormat,
    Group,
    GroupType,
    RecordHeader,
    StructuredRecord,
)


def make_chain(
    chain_id="A",
    internal_chain_id=None,
    amino=3,
    hetatm=1,
    nucleotide=0,
    seqres=None,
    compound=None,
):
    atom_groups = (
        [Group("ALA", GroupType.AMINOACID, residue_number=i + 1) for i in range(amino)]
        + [Group("DA", GroupType.NUCLEOTIDE, residue_number=100 + i) for i in range(nucleotide)]
        + [Group("HOH", GroupType.HETATM, residue_number=200 + i) for i in range(hetatm)]
    )
    if seqres is None:
        seqres = amino
    seqres_groups = [Group("ALA", GroupType.AMINOACID) for _ in range(seqres)]
    return Chain(
        chain_id=chain_id,
        internal_chain_id=internal_chain_id,
        atom_groups=atom_groups,
        seqres_groups=seqres_groups,
        compound=compound,
    )


def make_record(
    file_format=FileFormat.PDB,
    pdb_code="1ABC",
    resolution=2.0,
    techniques=frozenset({ExperimentalTechnique.XRAY_DIFFRACTION}),
    cell=(10.0, 20.0, 30.0, 90.0, 90.0, 90.0),
    chains=None,
    nr_models=1,
    **header_overrides,
):
    """
    Build a consistent X-ray record.

    PDB-format records get a compound on each chain; mmCIF-format records
    get an internal chain id instead, as the real readers do.
    """
    if chains is None:
        if file_format == FileFormat.PDB:
            chains = [make_chain("A", compound={"molecule": "test protein"})]
        else:
            chains = [make_chain("A", internal_chain_id="A")]

    header_fields = dict(
        id_code=pdb_code,
        title="Crystal structure of a test protein",
        authors="A.Smith, B.Jones",
        classification="HYDROLASE",
        description="TEST PROTEIN",
        dep_date=date(1999, 1, 15),
        mod_date=date(2011, 7, 13),
        experimental_techniques=frozenset(techniques),
        resolution=resolution,
        crystallographic_info=(
            CrystallographicInfo(space_group="P 1", cell=CrystalCell(*cell)) if cell else None
        ),
    )
    header_fields.update(header_overrides)

    return StructuredRecord(
        pdb_code=pdb_code,
        header=RecordHeader(**header_fields),
        chains=chains,
        nr_models=nr_models,
        file_format=file_format,
    )


@pytest.fixture
def record_pair():
    """Factory for an (A, B) pair; keyword arguments apply to both, a_/b_ prefixes to one side."""

    def _factory(**kwargs):
        shared = {k: v for k, v in kwargs.items() if not k.startswith(("a_", "b_"))}
        a_kwargs = dict(shared, **{k[2:]: v for k, v in kwargs.items() if k.startswith("a_")})
        b_kwargs = dict(shared, **{k[2:]: v for k, v in kwargs.items() if k.startswith("b_")})
        return (
            make_record(FileFormat.PDB, **a_kwargs),
            make_record(FileFormat.MMCIF, **b_kwargs),
        )

    return _factory
