"""
GraphStore - the in-memory adjacency map served to path queries.

The store is built once (from a crawl or from the persisted JSON document) and
is read-only afterwards, so it can be shared by concurrent queries without
copying or locking.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from sixth_degree.exceptions import GraphLoadError, GraphWriteError
from sixth_degree.models import Graph, Person

logger = logging.getLogger(__name__)

# Older crawls wrote null for nodes without connections
_graph_document = TypeAdapter(Dict[str, Optional[List[str]]])

BROWSE_LIMIT = 500
SEARCH_LIMIT = 50


def save_graph(graph: Mapping[str, Sequence[str]], path: Union[str, Path]) -> None:
    """
    Persist the adjacency map as pretty-printed JSON.

    The document is written to a temporary file next to `path` and renamed
    into place, so readers never see a half-written graph.
    """
    path = Path(path)
    payload = {name: list(neighbors) for name, neighbors in graph.items()}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise GraphWriteError(f"Failed to write graph to {path}: {e}") from e
    logger.info(f"Wrote graph with {len(payload)} nodes to {path}")


class GraphStore:
    """Read-only adjacency map with the lookups needed by search and people queries."""

    def __init__(self, adjacency: Mapping[str, Sequence[str]]):
        self._adjacency: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {name: tuple(neighbors) for name, neighbors in adjacency.items()}
        )
        self._sorted_names: List[str] = sorted(self._adjacency)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "GraphStore":
        """
        Load the persisted graph document.

        Raises:
            GraphLoadError: the file is missing, unreadable or not a mapping of
                name -> list of names. Serving without a graph is not possible.
        """
        try:
            raw = Path(path).read_bytes()
        except OSError as e:
            raise GraphLoadError(f"Failed to open graph file {path}: {e}") from e

        try:
            document = _graph_document.validate_json(raw)
        except ValidationError as e:
            raise GraphLoadError(f"Failed to decode graph file {path}: {e}") from e

        store = cls({name: neighbors or [] for name, neighbors in document.items()})
        logger.info(f"Loaded graph with {len(store)} nodes from {path}")
        return store

    def __len__(self) -> int:
        return len(self._adjacency)

    def __contains__(self, node: object) -> bool:
        return node in self._adjacency

    def neighbors(self, node: str) -> Sequence[str]:
        """Neighbors in crawl order. Unknown nodes have none."""
        return self._adjacency.get(node, ())

    @property
    def adjacency(self) -> Mapping[str, Sequence[str]]:
        return self._adjacency

    @property
    def names(self) -> List[str]:
        """All node names, sorted."""
        return list(self._sorted_names)

    def search_people(self, query: str = "", limit: Optional[int] = None) -> List[Person]:
        """
        Case-insensitive substring search over node names, in sorted order.

        An empty query browses all names. Default limits are 500 when browsing
        and 50 when filtering.
        """
        if limit is None:
            limit = BROWSE_LIMIT if not query else SEARCH_LIMIT

        needle = query.lower()
        people: List[Person] = []
        for name in self._sorted_names:
            if len(people) >= limit:
                break
            if not needle or needle in name.lower():
                people.append(Person(name=name))
        return people

    def to_dict(self) -> Graph:
        """Full adjacency map as plain lists, e.g. for JSON export."""
        return {name: list(neighbors) for name, neighbors in self._adjacency.items()}
