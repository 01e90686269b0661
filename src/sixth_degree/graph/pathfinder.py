"""
PathFinder - level-by-level breadth-first search over a GraphStore.

The search reports every node it visits to an optional observer as
(level, node), with level 1 being the start node's frontier, so a caller can
stream exploration progress while the query runs.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Dict, List, Optional

from sixth_degree.exceptions import NodeNotFoundError, NoPathError
from sixth_degree.models import PathQuery, PathResult, QueryErrorKind

from .store import GraphStore

logger = logging.getLogger(__name__)

VisitObserver = Callable[[int, str], None]


class PathFinder:
    """Shortest path queries against a read-only GraphStore."""

    def __init__(self, store: GraphStore):
        self.store = store

    def find_shortest_path(
        self,
        start: str,
        end: str,
        on_visit: Optional[VisitObserver] = None,
    ) -> PathResult:
        """
        Find one shortest path from start to end.

        When several shortest paths exist, the one returned is fixed by the
        neighbor order in the graph (first discovery wins).

        Args:
            start: Start node name (exact, case-sensitive)
            end: End node name
            on_visit: Called once per visited node, including the end node,
                before the result is returned. Not called when start == end.

        Raises:
            NodeNotFoundError: start or end is not a node of the graph
            NoPathError: every reachable node was visited without reaching end
        """
        if start not in self.store:
            raise NodeNotFoundError(start, QueryErrorKind.START_NOT_FOUND)
        if end not in self.store:
            raise NodeNotFoundError(end, QueryErrorKind.END_NOT_FOUND)

        if start == end:
            return PathResult(path=[start])

        started = time.perf_counter()
        frontier = deque([start])
        visited = {start}
        parents: Dict[str, str] = {}
        level = 1

        while frontier:
            # Nodes enqueued while expanding this level belong to the next one
            for _ in range(len(frontier)):
                current = frontier.popleft()
                if on_visit is not None:
                    on_visit(level, current)

                if current == end:
                    path = self._reconstruct_path(parents, start, end)
                    logger.debug(
                        f"Path {start} -> {end} found at level {level}, "
                        f"{len(visited)} nodes discovered in {(time.perf_counter() - started) * 1000:.1f}ms"
                    )
                    return PathResult(path=path)

                for neighbor in self.store.neighbors(current):
                    if neighbor not in visited:
                        visited.add(neighbor)
                        parents[neighbor] = current
                        frontier.append(neighbor)
            level += 1

        logger.debug(f"No path {start} -> {end} after visiting {len(visited)} nodes")
        raise NoPathError(start, end)

    def solve(self, query: PathQuery, on_visit: Optional[VisitObserver] = None) -> PathResult:
        return self.find_shortest_path(query.start_node, query.end_node, on_visit)

    async def find_shortest_path_async(
        self,
        start: str,
        end: str,
        on_visit: Optional[VisitObserver] = None,
    ) -> PathResult:
        """Run one query on a worker thread so concurrent requests don't block the event loop."""
        return await asyncio.to_thread(self.find_shortest_path, start, end, on_visit)

    @staticmethod
    def _reconstruct_path(parents: Dict[str, str], start: str, end: str) -> List[str]:
        path = [end]
        node = end
        while node != start:
            node = parents[node]
            path.append(node)
        path.reverse()
        return path
