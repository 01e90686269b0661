"""
Pytest configuration and shared fixtures.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from sixth_degree.config import CrawlerConfig
from sixth_degree.graph import GraphStore, PathFinder

# Configure logging for tests
logging.basicConfig(level=logging.INFO)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def crawler_config() -> CrawlerConfig:
    """Config pointing at a fake API host with the default retry policy."""
    return CrawlerConfig(api_url="https://wiki.test/w/api.php")


@pytest.fixture
def scenario_graph() -> Dict[str, List[str]]:
    """Four-cycle A-B-C-D-A."""
    return {
        "A": ["B", "D"],
        "B": ["A", "C"],
        "C": ["B", "D"],
        "D": ["A", "C"],
    }


@pytest.fixture
def scenario_store(scenario_graph) -> GraphStore:
    return GraphStore(scenario_graph)


@pytest.fixture
def finder(scenario_store: GraphStore) -> PathFinder:
    return PathFinder(scenario_store)


@pytest.fixture
def write_seed_file(tmp_path: Path) -> Callable[[List[str]], Path]:
    """Write the given lines to a seed file and return its path."""
    def _write(lines: List[str]) -> Path:
        path = tmp_path / "seed_names.txt"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


