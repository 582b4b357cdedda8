"""Unit tests for the known-exception table (structparity/engine/exception_table.py)"""

import pytest

from structparity.config.settings import Settings
from structparity.engine.exception_table import ExceptionTable, KnownException


@pytest.fixture
def table():
    return ExceptionTable.from_entries(
        [
            {"pdb_id": "3O6G", "field": "groupTypeSum", "chain": "A", "reason": "GLU ligand"},
            {"pdb_id": "3o6g", "field": "aminoAcidCount", "chain": "A", "reason": "GLU ligand"},
            {"pdb_id": "1zjo", "field": "authors", "reason": "author list differs"},
        ]
    )


class TestKnownException:
    def test_from_dict_lowercases_id(self):
        exception = KnownException.from_dict({"pdb_id": "4A10", "field": "compound", "reason": "x"})

        assert exception.pdb_id == "4a10"
        assert exception.chain is None


class TestExceptionTable:
    """Tests for ExceptionTable lookups."""

    def test_length_and_iteration(self, table):
        assert len(table) == 3
        assert {e.field for e in table} == {"groupTypeSum", "aminoAcidCount", "authors"}

    def test_waives_matching_chain(self, table):
        exception = table.waives("3o6g", "groupTypeSum", "A")

        assert exception is not None
        assert exception.reason == "GLU ligand"

    def test_lookup_is_case_insensitive_on_id(self, table):
        assert table.waives("3O6G", "aminoAcidCount", "A") is not None

    def test_other_chain_not_waived(self, table):
        assert table.waives("3o6g", "groupTypeSum", "B") is None

    def test_entry_without_chain_waives_every_chain(self, table):
        assert table.waives("1zjo", "authors") is not None
        assert table.waives("1zjo", "authors", "C") is not None

    def test_other_field_not_waived(self, table):
        assert table.waives("1zjo", "title") is None

    def test_empty_table(self):
        table = ExceptionTable()

        assert len(table) == 0
        assert table.waives("1abc", "resolution") is None


class TestPackagedTable:
    """The exception table shipped with the package."""

    def test_packaged_table_loads(self, tmp_path):
        entries = Settings(storage_root=tmp_path).load_exception_table()
        table = ExceptionTable.from_entries(entries)

        assert table.waives("3o6g", "groupTypeSum", "A") is not None
        assert table.waives("4a10", "compound", "F") is not None
