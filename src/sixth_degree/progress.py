"""
Progress reporting for path searches.

LevelProgressCollector turns the pathfinder's per-node (level, node) callbacks
into one `level_explored` message per BFS level. SearchSession runs a query
through a collector and finishes the stream with per-node summaries for the
path and a `path_found` message, or a single `error` message.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from sixth_degree.exceptions import PathQueryError
from sixth_degree.graph.pathfinder import PathFinder
from sixth_degree.models import (
    ErrorMessage,
    ExplorationEvent,
    LevelExplored,
    LevelExploredMessage,
    NodeExplored,
    NodeExploredMessage,
    PathFound,
    PathFoundMessage,
    PathQuery,
    PathResult,
    SearchError,
)

logger = logging.getLogger(__name__)

Emit = Callable[[BaseModel], None]


class LevelProgressCollector:
    """Observer that batches visited nodes by level."""

    def __init__(self, emit: Emit):
        self._emit = emit
        self._current_level = 0
        self._batch: List[str] = []
        self.level_counts: Dict[int, int] = defaultdict(int)
        self.node_levels: Dict[str, int] = {}
        self.events: List[ExplorationEvent] = []

    def __call__(self, level: int, node: str) -> None:
        if self._current_level and level != self._current_level:
            self.flush()
        self._current_level = level
        self._batch.append(node)
        self.level_counts[level] += 1
        self.node_levels.setdefault(node, level)

    def flush(self) -> None:
        """Emit the pending level batch, if any."""
        if not self._batch:
            return
        event = ExplorationEvent(level=self._current_level, nodes=list(self._batch))
        self._batch.clear()
        self.events.append(event)
        self._emit(LevelExploredMessage(data=LevelExplored(level=event.level, nodes=event.nodes)))


class SearchSession:
    """Runs path queries and streams their progress messages to `emit`."""

    def __init__(self, finder: PathFinder, emit: Emit):
        self.finder = finder
        self._emit = emit

    def run(self, query: PathQuery) -> Optional[PathResult]:
        """
        Run one query. Query failures are reported as an `error` message and
        None is returned; they are never raised to the caller.
        """
        collector = LevelProgressCollector(self._emit)
        try:
            result = self.finder.solve(query, collector)
        except PathQueryError as e:
            collector.flush()
            logger.info(f"Search {query.start_node} -> {query.end_node} failed: {e.message}")
            self._emit(ErrorMessage(data=SearchError(kind=e.kind, message=e.message)))
            return None

        collector.flush()

        # One summary per path node, at the level where BFS actually visited it
        for position, node in enumerate(result.path, start=1):
            level = collector.node_levels.get(node, position)
            self._emit(NodeExploredMessage(data=NodeExplored(
                level=level,
                node=node,
                nodes_explored_at_level=collector.level_counts.get(level, 0),
            )))

        self._emit(PathFoundMessage(data=PathFound(path=result.path, length=result.length)))
        logger.info(
            f"Search {query.start_node} -> {query.end_node}: {result.length} hops, "
            f"{sum(collector.level_counts.values())} nodes visited"
        )
        return result

    async def run_async(self, query: PathQuery) -> Optional[PathResult]:
        """Run one query on a worker thread. `emit` is called from that thread."""
        return await asyncio.to_thread(self.run, query)
