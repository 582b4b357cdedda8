"""
Corpus loader.

Reads the ordered list of PDB ids a batch run works through. The format is
one id per line; lines starting with "#" are comments and the first empty
line ends the list. Everything after that empty line is ignored, which lets
a large master list carry a short "quick" list at its top for local runs.

The packaged lists behind the named run modes are small seed samples of
well-known entries. Full runs pass a random archive sample with --corpus.
"""

from importlib import resources
from pathlib import Path
from typing import IO, Iterable, List, Union

from structparity.domain.record import RecordIdentifier
from structparity.exceptions import CorpusFormatError
from structparity.utils.logger import get_logger

logger = get_logger(__name__)

LARGE_CORPUS = "large"
VERY_LARGE_CORPUS = "very-large"

# Run mode -> packaged resource under structparity/corpus/data
NAMED_CORPORA = {
    LARGE_CORPUS: "large_seed.list",
    VERY_LARGE_CORPUS: "very_large_seed.list",
}

CorpusResource = Union[str, Path, IO[str]]


def load_corpus(resource: CorpusResource) -> List[RecordIdentifier]:
    """
    Load a corpus of PDB ids.

    Args:
        resource: Path to a UTF-8 list file, or an open text stream

    Returns:
        Ordered list of validated identifiers

    Raises:
        CorpusFormatError: If a non-comment, non-empty line is not a valid id
        FileNotFoundError: If the list file does not exist
    """
    if hasattr(resource, "read"):
        name = getattr(resource, "name", "<stream>")
        return _read_identifiers(resource, name)

    path = Path(resource)
    with open(path, "r", encoding="utf-8") as f:
        return _read_identifiers(f, path)


def load_named_corpus(name: str) -> List[RecordIdentifier]:
    """
    Load one of the packaged corpora by run mode name ("large", "very-large").

    Raises:
        KeyError: If the name is not a known run mode
    """
    filename = NAMED_CORPORA[name]
    resource = resources.files("structparity.corpus").joinpath("data").joinpath(filename)
    with resource.open("r", encoding="utf-8") as f:
        return _read_identifiers(f, f"structparity/corpus/data/{filename}")


def _read_identifiers(lines: Iterable[str], resource_name) -> List[RecordIdentifier]:
    identifiers: List[RecordIdentifier] = []

    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if line.startswith("#"):
            continue
        if not line:
            break

        if not RecordIdentifier.is_valid(line):
            logger.error(
                "Invalid PDB id in corpus",
                operation="load_corpus",
                context={"resource": str(resource_name), "line": line},
            )
            raise CorpusFormatError(line, resource_name)

        identifiers.append(RecordIdentifier(line))

    logger.info(
        f"Loaded {len(identifiers)} PDB ids",
        operation="load_corpus",
        context={"resource": str(resource_name)},
    )
    return identifiers
