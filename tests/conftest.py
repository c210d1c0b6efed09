"""Pytest configuration and shared fixtures for the replcore test suite."""

import logging
import sys
from pathlib import Path

import pytest

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from replcore.session.repl import Repl
from replcore.session.config import ReplConfig
from tests.fixtures.evaluator import FakeEvaluator, MemoryFiles


# Configure logging for tests
logging.basicConfig(level=logging.WARNING)


@pytest.fixture
def evaluator() -> FakeEvaluator:
    """A fresh in-memory evaluator."""
    return FakeEvaluator()


@pytest.fixture
def repl(evaluator: FakeEvaluator) -> Repl:
    """An isolated REPL session over the fake evaluator."""
    return Repl(evaluator, config=ReplConfig())


@pytest.fixture
def files() -> MemoryFiles:
    """Source files of a small project under src/."""
    return MemoryFiles(
        {
            "src/foo/bar.cljs": "(ns foo.bar)\n(def answer 42)\n",
            "src/foo/a.cljs": "(ns foo.a (:require [foo.b]))\n(def a 1)\n",
            "src/foo/b.cljs": "(ns foo.b)\n(def b 2)\n",
            "src/foo/c.cljs": "(ns foo.c)\n(def c 3)\n",
            "src/foo/macros.clj": "(ns foo.macros)\n",
        }
    )


@pytest.fixture
def src_options(files: MemoryFiles) -> dict:
    """Options that let the REPL load namespaces from ``files``."""
    return {"read_file_fn": files, "src_paths": ["src"]}


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Component integration tests")


# Timeout configuration
def pytest_collection_modifyitems(config, items):
    """Add a timeout to every test based on its markers."""
    for item in items:
        if item.get_closest_marker("unit"):
            item.add_marker(pytest.mark.timeout(5))
        else:
            item.add_marker(pytest.mark.timeout(10))
