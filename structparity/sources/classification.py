"""Group classification shared by the PDB and mmCIF readers."""

from Bio.PDB.Polypeptide import is_aa

from structparity.domain.record import GroupType

# Standard RNA / DNA monomers, including inosine and unknown nucleotides
NUCLEOTIDE_NAMES = frozenset(
    {"A", "C", "G", "U", "T", "I", "N", "DA", "DC", "DG", "DT", "DU", "DI", "DN"}
)


def classify_name(name: str) -> GroupType:
    """
    Classify a monomer by residue name alone.

    Used for SEQRES groups; names that are neither amino acids nor
    nucleotides are OTHER.
    """
    name = name.strip().upper()
    if is_aa(name, standard=False):
        return GroupType.AMINOACID
    if name in NUCLEOTIDE_NAMES:
        return GroupType.NUCLEOTIDE
    return GroupType.OTHER


def classify_residue(residue) -> GroupType:
    """
    Classify an observed Biopython residue.

    HETATM records (ligands, waters, modified residues) are heteroatom
    groups. Standard records are amino acids or nucleotides by name; any
    other standard record is treated as a heteroatom group too, so every
    observed group lands in one of the three counted types.
    """
    hetfield = residue.id[0]
    if hetfield != " ":
        return GroupType.HETATM
    group_type = classify_name(residue.get_resname())
    if group_type == GroupType.OTHER:
        return GroupType.HETATM
    return group_type
