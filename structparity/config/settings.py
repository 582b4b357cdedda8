"""
Configuration loader for parity runs.

Reads run settings from environment variables, refuses to start against
the platform temp directory, and loads the known-exception table from YAML
with JSON schema validation.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

from structparity.exceptions import ConfigurationError
from structparity.utils.logger import get_logger

logger = get_logger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PACKAGE_ROOT / "data"
DEFAULT_EXCEPTIONS_FILE = DATA_DIR / "known_exceptions.yaml"
DEFAULT_EXCEPTIONS_SCHEMA = DATA_DIR / "known_exceptions.schema.json"

# Environment variable names
PDB_DIR_ENV = "PDB_DIR"
FETCH_REMOTE_ENV = "PARITY_FETCH_REMOTE"
DOWNLOAD_URL_ENV = "PARITY_DOWNLOAD_URL"
CONTINUE_ON_MISMATCH_ENV = "PARITY_CONTINUE_ON_MISMATCH"
EXCEPTIONS_FILE_ENV = "PARITY_EXCEPTIONS_FILE"
REPORT_DIR_ENV = "PARITY_REPORT_DIR"
METRICS_ENABLED_ENV = "PARITY_METRICS_ENABLED"
AWS_REGION_ENV = "AWS_REGION"

DEFAULT_DOWNLOAD_URL = "https://files.wwpdb.org/pub/pdb"
DEFAULT_AWS_REGION = "us-east-1"

PathLike = Union[str, Path]


def _read_flag(name: str, default: bool) -> bool:
    """Return a boolean environment flag ("true"/"1"/"yes" are truthy)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


class Settings:
    """
    Run settings resolved from explicit arguments, then environment variables.

    The storage root mirrors the file cache convention of falling back to
    the temp directory when PDB_DIR is unset; validate_storage_root() turns
    that fallback into a ConfigurationError so a run never silently tests
    against an empty or shared cache.
    """

    def __init__(
        self,
        storage_root: Optional[PathLike] = None,
        fetch_remote: Optional[bool] = None,
        download_url: Optional[str] = None,
        continue_on_mismatch: Optional[bool] = None,
        exceptions_file: Optional[PathLike] = None,
        report_dir: Optional[PathLike] = None,
        metrics_enabled: Optional[bool] = None,
        aws_region: Optional[str] = None,
    ):
        root = storage_root or os.getenv(PDB_DIR_ENV) or tempfile.gettempdir()
        self.storage_root = Path(root)
        self.fetch_remote = (
            fetch_remote if fetch_remote is not None else _read_flag(FETCH_REMOTE_ENV, True)
        )
        self.download_url = (download_url or os.getenv(DOWNLOAD_URL_ENV) or DEFAULT_DOWNLOAD_URL).rstrip("/")
        self.continue_on_mismatch = (
            continue_on_mismatch
            if continue_on_mismatch is not None
            else _read_flag(CONTINUE_ON_MISMATCH_ENV, False)
        )
        self.exceptions_file = Path(
            exceptions_file or os.getenv(EXCEPTIONS_FILE_ENV) or DEFAULT_EXCEPTIONS_FILE
        )
        report = report_dir or os.getenv(REPORT_DIR_ENV)
        self.report_dir = Path(report) if report else None
        self.metrics_enabled = (
            metrics_enabled
            if metrics_enabled is not None
            else _read_flag(METRICS_ENABLED_ENV, False)
        )
        self.aws_region = aws_region or os.getenv(AWS_REGION_ENV) or DEFAULT_AWS_REGION

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings purely from environment variables."""
        return cls()

    def validate_storage_root(self) -> Path:
        """
        Reject the platform temp directory as storage root.

        Returns:
            The storage root

        Raises:
            ConfigurationError: If the root is the default temp directory
        """
        temp_dir = os.path.realpath(tempfile.gettempdir())
        root = os.path.realpath(str(self.storage_root))
        if root.rstrip(os.sep) == temp_dir.rstrip(os.sep):
            raise ConfigurationError(
                f"{PDB_DIR_ENV} has not been set or it is set to the default temp "
                f"directory ({temp_dir}). Please set {PDB_DIR_ENV} to run parity tests"
            )
        return self.storage_root

    def validate(self) -> None:
        """
        Validate all settings needed before a run starts.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        self.validate_storage_root()
        if self.storage_root.exists() and not self.storage_root.is_dir():
            raise ConfigurationError(f"Storage root is not a directory: {self.storage_root}")
        if self.fetch_remote and not self.download_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid download URL: {self.download_url}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storage_root": str(self.storage_root),
            "fetch_remote": self.fetch_remote,
            "download_url": self.download_url,
            "continue_on_mismatch": self.continue_on_mismatch,
            "exceptions_file": str(self.exceptions_file),
            "report_dir": str(self.report_dir) if self.report_dir else None,
            "metrics_enabled": self.metrics_enabled,
            "aws_region": self.aws_region,
        }

    def load_exception_table(
        self,
        exceptions_path: Optional[PathLike] = None,
        schema_path: Optional[PathLike] = None,
    ) -> List[Dict[str, Any]]:
        """
        Load known-exception entries from YAML and validate against schema.

        Args:
            exceptions_path: YAML file; defaults to the configured exceptions file
            schema_path: JSON schema; defaults to the packaged schema

        Returns:
            List of exception entry dicts (pdb_id, field, reason, optional chain)

        Raises:
            ConfigurationError: If a file is missing, unparsable or fails validation
        """
        exceptions_path = Path(exceptions_path or self.exceptions_file)
        schema_path = Path(schema_path or DEFAULT_EXCEPTIONS_SCHEMA)

        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                schema = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Exception table schema not found: {schema_path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {schema_path}: {e}") from e

        try:
            with open(exceptions_path, "r", encoding="utf-8") as f:
                table = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Exception table not found: {exceptions_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {exceptions_path}: {e}") from e

        if not table:
            logger.warning(
                "Empty exception table",
                operation="load_exception_table",
                context={"path": str(exceptions_path)},
            )
            return []

        try:
            jsonschema.validate(instance=table, schema=schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(
                f"Exception table validation failed: {e.message}"
            ) from e
        except jsonschema.SchemaError as e:
            raise ConfigurationError(f"Exception table schema is invalid: {e.message}") from e

        entries = table.get("exceptions", [])
        logger.info(
            f"Loaded {len(entries)} known exceptions",
            operation="load_exception_table",
            context={"path": str(exceptions_path)},
        )
        return entries
