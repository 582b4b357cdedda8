"""structparity - PDB vs mmCIF parsing equivalence checks over large corpora."""

__version__ = "0.1.0"
