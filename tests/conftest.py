from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from promptscan.aggregator import Aggregator
from promptscan.logging import SERVICE_LOGGERS
from tests._fixtures.repo_builder import RepoBuilder, StubExtractor


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a throwaway repository rooted under the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def stub_aggregator() -> Aggregator:
    """Aggregator with default scanners whose structural stage never spawns a process."""
    return Aggregator(structural_extractor=StubExtractor())


@pytest.fixture(autouse=True)
def _restore_promptscan_loggers() -> Iterator[None]:
    # configure_logging() detaches these loggers from the root; undo it so caplog keeps working.
    names = ("promptscan", *SERVICE_LOGGERS)
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate
