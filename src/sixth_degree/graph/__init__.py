from .store import GraphStore, save_graph
from .pathfinder import PathFinder

__all__ = ["GraphStore", "save_graph", "PathFinder"]
