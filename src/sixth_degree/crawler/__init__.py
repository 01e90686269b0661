from .pipeline import CrawlPipeline
from .seeds import iter_seed_names, load_valid_names

__all__ = ["CrawlPipeline", "iter_seed_names", "load_valid_names"]
