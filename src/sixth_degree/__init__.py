"""
sixth_degree - shortest connection paths between people on Wikipedia.

Crawls a link graph from a seed list of names and answers shortest path
queries over it, streaming the breadth-first search level by level.
"""

from .config import CrawlerConfig
from .crawler import CrawlPipeline, load_valid_names
from .graph import GraphStore, PathFinder, save_graph
from .progress import LevelProgressCollector, SearchSession
from .wikipedia import WikiLinkClient

__all__ = [
    "CrawlerConfig",
    "CrawlPipeline",
    "load_valid_names",
    "GraphStore",
    "PathFinder",
    "save_graph",
    "LevelProgressCollector",
    "SearchSession",
    "WikiLinkClient",
]
