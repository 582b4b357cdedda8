"""
Full corpus parity runs (MANUAL / NIGHTLY ONLY).

Compares every entry of the packaged corpora against a local copy of the
wwPDB archive. Needs PDB_DIR pointing at a dedicated directory; missing
files are downloaded there unless PARITY_FETCH_REMOTE=false.
"""

import os

import pytest

from structparity.config.settings import Settings
from structparity.corpus.loader import LARGE_CORPUS, VERY_LARGE_CORPUS, load_named_corpus
from structparity.engine.equivalence import EquivalenceEngine
from structparity.engine.exception_table import ExceptionTable
from structparity.orchestration.batch import BatchOrchestrator
from structparity.sources.record_source import CachedRecordSource

RUN_LONG = os.getenv("RUN_PARITY_LONG_TESTS") == "1"


@pytest.fixture(scope="module")
def settings():
    settings = Settings.from_env()
    settings.validate()
    return settings


@pytest.fixture(scope="module")
def orchestrator(settings):
    source = CachedRecordSource(
        settings.storage_root,
        fetch_remote=settings.fetch_remote,
        base_url=settings.download_url,
    )
    engine = EquivalenceEngine(ExceptionTable.from_entries(settings.load_exception_table()))
    return BatchOrchestrator(source, engine)


@pytest.mark.longrun
@pytest.mark.skipif(not RUN_LONG, reason="Set RUN_PARITY_LONG_TESTS=1 and PDB_DIR to run full corpus checks")
class TestLongPdbVsMmcif:
    """Every corpus entry must parse identically from PDB and mmCIF."""

    @pytest.mark.parametrize("mode", [LARGE_CORPUS, VERY_LARGE_CORPUS])
    def test_corpus(self, orchestrator, mode):
        report = orchestrator.run(load_named_corpus(mode))

        assert report.all_passed, [failure.to_dict() for failure in report.failures]
