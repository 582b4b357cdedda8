"""
Record Source - retrieves one entry in one file format.

The format is passed on every fetch call; sources hold no per-format mode
state, so a single source can serve both representations of an entry.
"""

import gzip
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from structparity.config.settings import DEFAULT_DOWNLOAD_URL
from structparity.domain.record import FileFormat, RecordIdentifier, StructuredRecord
from structparity.exceptions import FetchError
from structparity.sources.mmcif_reader import MmcifReader
from structparity.sources.pdb_reader import PdbReader
from structparity.utils.logger import get_logger, log_operation

logger = get_logger(__name__)

# Subdirectory and file-name pattern of the wwPDB divided archive, per format
_ARCHIVE_LAYOUT: Dict[FileFormat, tuple] = {
    FileFormat.PDB: ("data/structures/divided/pdb", "pdb{id}.ent.gz"),
    FileFormat.MMCIF: ("data/structures/divided/mmCIF", "{id}.cif.gz"),
}


class RecordSource(ABC):
    """Interface consumed by the batch orchestrator."""

    @abstractmethod
    def fetch(self, identifier: RecordIdentifier, file_format: FileFormat) -> StructuredRecord:
        """
        Return the parsed record for identifier in file_format.

        Raises:
            FetchError: If the entry cannot be retrieved or parsed
        """


class CachedRecordSource(RecordSource):
    """
    File cache laid out like the wwPDB divided archive.

    Files found under the storage root are parsed directly. Missing files
    are downloaded from the archive mirror when fetch_remote is enabled,
    written to a temporary name first and renamed into place once complete.
    """

    def __init__(
        self,
        storage_root: Union[str, Path],
        fetch_remote: bool = True,
        base_url: str = DEFAULT_DOWNLOAD_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 60,
    ):
        """
        Initialize the cached source.

        Args:
            storage_root: Root directory of the local archive copy
            fetch_remote: Download files missing from the cache
            base_url: Archive mirror URL (the directory holding data/structures)
            session: Optional requests session (useful for testing)
            timeout: HTTP timeout in seconds
        """
        self.storage_root = Path(storage_root)
        self.fetch_remote = fetch_remote
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.readers = {
            FileFormat.PDB: PdbReader(),
            FileFormat.MMCIF: MmcifReader(),
        }

    @staticmethod
    def relative_path(identifier: RecordIdentifier, file_format: FileFormat) -> str:
        """Archive-relative path, e.g. data/structures/divided/pdb/hh/pdb4hhb.ent.gz."""
        pdb_id = identifier.lower
        directory, pattern = _ARCHIVE_LAYOUT[file_format]
        return f"{directory}/{pdb_id[1:3]}/{pattern.format(id=pdb_id)}"

    def local_path(self, identifier: RecordIdentifier, file_format: FileFormat) -> Path:
        return self.storage_root / self.relative_path(identifier, file_format)

    @log_operation("fetch_record")
    def fetch(self, identifier: RecordIdentifier, file_format: FileFormat) -> StructuredRecord:
        path = self.local_path(identifier, file_format)
        if not path.exists():
            if not self.fetch_remote:
                raise FetchError(str(identifier), file_format, f"not in local cache: {path}")
            self._download(identifier, file_format, path)

        try:
            with gzip.open(path, "rt", encoding="utf-8", errors="replace") as handle:
                text = handle.read()
        except (OSError, EOFError) as e:
            raise FetchError(str(identifier), file_format, f"cannot read {path}: {e}") from e

        try:
            return self.readers[file_format].read(text, identifier.upper)
        except Exception as e:
            raise FetchError(str(identifier), file_format, f"parse error: {e}") from e

    def _download(self, identifier: RecordIdentifier, file_format: FileFormat, path: Path) -> None:
        url = f"{self.base_url}/{self.relative_path(identifier, file_format)}"
        logger.info(
            "Downloading missing entry",
            operation="download_record",
            context={"pdb_id": str(identifier), "file_format": file_format.value, "url": url},
        )

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(str(identifier), file_format, f"download failed from {url}: {e}") from e

        partial = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(partial, "wb") as f:
                f.write(response.content)
            os.replace(partial, path)
        except OSError as e:
            try:
                partial.unlink()
            except FileNotFoundError:
                pass
            raise FetchError(str(identifier), file_format, f"cannot write {path}: {e}") from e
