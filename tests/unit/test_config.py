"""
Unit tests for run settings (structparity/config/settings.py)

Tests covering:
- Environment fallbacks for every setting
- Storage root validation against the temp directory
- Exception table loading and schema validation
"""

import os
import tempfile

import pytest

from structparity.config.settings import (
    DEFAULT_DOWNLOAD_URL,
    DEFAULT_EXCEPTIONS_FILE,
    Settings,
)
from structparity.exceptions import ConfigurationError

ENV_VARS = [
    "PDB_DIR",
    "PARITY_FETCH_REMOTE",
    "PARITY_DOWNLOAD_URL",
    "PARITY_CONTINUE_ON_MISMATCH",
    "PARITY_EXCEPTIONS_FILE",
    "PARITY_REPORT_DIR",
    "PARITY_METRICS_ENABLED",
    "AWS_REGION",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without parity environment variables."""
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestSettingsDefaults:
    """Tests for defaults and environment fallbacks."""

    def test_defaults(self):
        settings = Settings()

        assert str(settings.storage_root) == tempfile.gettempdir()
        assert settings.fetch_remote is True
        assert settings.download_url == DEFAULT_DOWNLOAD_URL
        assert settings.continue_on_mismatch is False
        assert settings.exceptions_file == DEFAULT_EXCEPTIONS_FILE
        assert settings.report_dir is None
        assert settings.metrics_enabled is False
        assert settings.aws_region == "us-east-1"

    def test_environment_values(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PDB_DIR", str(tmp_path))
        monkeypatch.setenv("PARITY_FETCH_REMOTE", "false")
        monkeypatch.setenv("PARITY_DOWNLOAD_URL", "https://mirror.example.org/pdb/")
        monkeypatch.setenv("PARITY_CONTINUE_ON_MISMATCH", "1")
        monkeypatch.setenv("PARITY_REPORT_DIR", str(tmp_path / "reports"))
        monkeypatch.setenv("PARITY_METRICS_ENABLED", "yes")
        monkeypatch.setenv("AWS_REGION", "eu-west-1")

        settings = Settings.from_env()

        assert settings.storage_root == tmp_path
        assert settings.fetch_remote is False
        assert settings.download_url == "https://mirror.example.org/pdb"
        assert settings.continue_on_mismatch is True
        assert settings.report_dir == tmp_path / "reports"
        assert settings.metrics_enabled is True
        assert settings.aws_region == "eu-west-1"

    def test_explicit_arguments_override_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PDB_DIR", "/somewhere/else")
        monkeypatch.setenv("PARITY_CONTINUE_ON_MISMATCH", "true")

        settings = Settings(storage_root=tmp_path, continue_on_mismatch=False)

        assert settings.storage_root == tmp_path
        assert settings.continue_on_mismatch is False

    def test_to_dict(self, tmp_path):
        data = Settings(storage_root=tmp_path).to_dict()

        assert data["storage_root"] == str(tmp_path)
        assert data["report_dir"] is None


class TestStorageRootValidation:
    """Tests for the temp-directory precondition."""

    def test_unset_storage_root_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings().validate_storage_root()

        assert "PDB_DIR" in str(exc_info.value)

    def test_temp_dir_with_trailing_separator_rejected(self):
        settings = Settings(storage_root=tempfile.gettempdir() + os.sep)

        with pytest.raises(ConfigurationError):
            settings.validate_storage_root()

    def test_dedicated_directory_accepted(self, tmp_path):
        settings = Settings(storage_root=tmp_path)

        assert settings.validate_storage_root() == tmp_path

    def test_storage_root_must_be_directory(self, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")

        with pytest.raises(ConfigurationError):
            Settings(storage_root=not_a_dir).validate()

    def test_invalid_download_url_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            Settings(storage_root=tmp_path, download_url="ftp://ftp.wwpdb.org").validate()

    def test_download_url_not_checked_when_offline(self, tmp_path):
        Settings(storage_root=tmp_path, fetch_remote=False, download_url="ftp://x").validate()


class TestLoadExceptionTable:
    """Tests for exception table loading."""

    def test_packaged_table_is_valid(self, tmp_path):
        entries = Settings(storage_root=tmp_path).load_exception_table()

        assert len(entries) >= 1
        assert all({"pdb_id", "field", "reason"} <= set(entry) for entry in entries)

    def test_packaged_table_keeps_group_counts_enforced(self, tmp_path):
        """Amino-acid and group-type counts are never waived by the packaged table."""
        entries = Settings(storage_root=tmp_path).load_exception_table()

        waived_fields = {entry["field"] for entry in entries}
        assert "aminoAcidCount" not in waived_fields
        assert "groupTypeSum" not in waived_fields
        assert {(entry["pdb_id"], entry["field"]) for entry in entries} == {("4a10", "compound")}

    def test_custom_table(self, tmp_path):
        table_file = tmp_path / "exceptions.yaml"
        table_file.write_text(
            "exceptions:\n"
            "  - pdb_id: 1abc\n"
            "    field: resolution\n"
            "    reason: test entry\n",
            encoding="utf-8",
        )

        entries = Settings(storage_root=tmp_path, exceptions_file=table_file).load_exception_table()

        assert entries == [{"pdb_id": "1abc", "field": "resolution", "reason": "test entry"}]

    def test_empty_table_returns_no_entries(self, tmp_path):
        table_file = tmp_path / "empty.yaml"
        table_file.write_text("", encoding="utf-8")

        assert Settings(storage_root=tmp_path).load_exception_table(table_file) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Settings(storage_root=tmp_path).load_exception_table(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        table_file = tmp_path / "broken.yaml"
        table_file.write_text("exceptions: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            Settings(storage_root=tmp_path).load_exception_table(table_file)

    @pytest.mark.parametrize(
        "entry",
        [
            "  - pdb_id: abcd\n    field: resolution\n    reason: bad id\n",
            "  - pdb_id: 1abc\n    reason: no field\n",
            "  - pdb_id: 1abc\n    field: resolution\n    reason: x\n    severity: high\n",
        ],
    )
    def test_schema_violations(self, tmp_path, entry):
        table_file = tmp_path / "invalid.yaml"
        table_file.write_text("exceptions:\n" + entry, encoding="utf-8")

        with pytest.raises(ConfigurationError, match="validation failed"):
            Settings(storage_root=tmp_path).load_exception_table(table_file)
