"""
Shared pytest fixtures for lwwcrdt tests.
"""

import logging
import random
from datetime import datetime
from pathlib import Path

import pytest

from lwwcrdt.simulation.config import SimulationConfig


@pytest.fixture(scope="session")
def test_output_root() -> Path:
    """
    Returns the root test_output directory. Created once per test session.
    Files here persist after tests complete for easy access.
    """
    output_dir = Path(__file__).parent.parent / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def test_output_dir(request, test_output_root) -> Path:
    """
    Returns a directory for the current test to write output files.
    Directory structure: test_output/<module_name>/<test_name>/
    """
    module_name = request.module.__name__.split(".")[-1]
    test_dir = test_output_root / module_name / request.node.name
    test_dir.mkdir(parents=True, exist_ok=True)
    return test_dir


@pytest.fixture
def timestamped_output_dir(request, test_output_root) -> Path:
    """
    Like test_output_dir but with a timestamp component, for keeping several
    runs of the same test side by side.
    """
    module_name = request.module.__name__.split(".")[-1]
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    test_dir = test_output_root / module_name / request.node.name / timestamp
    test_dir.mkdir(parents=True, exist_ok=True)
    return test_dir


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so ids and choices repeat across runs."""
    return random.Random(1234)


@pytest.fixture
def small_config() -> SimulationConfig:
    """A simulation small enough to run in well under a second."""
    return SimulationConfig(
        node_count=4,
        create_count=8,
        read_count=16,
        update_count=32,
        delete_count=2,
        reject_probability=0.1,
        max_delivery_delay=1024,
        seed=42,
    )


@pytest.fixture(autouse=True)
def reset_lwwcrdt_logging():
    """Reset logging state before and after each test.

    Leaves only the library's NullHandler on the package logger and resets
    its level to NOTSET, so configuration in one test cannot leak into
    another.
    """
    logger = logging.getLogger("lwwcrdt")

    def _reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()
