import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class CrawlerConfig(BaseModel):
    """Configuration for the link client, the crawl pipeline and the graph files."""

    # Remote link API
    api_url: str = "https://en.wikipedia.org/w/api.php"
    user_agent: str = "SixDegreeBot/1.0 (Educational Project)"
    request_timeout: float = Field(30.0, gt=0)

    # Connection pool shared by all workers
    max_connections: int = Field(100, ge=1)
    max_keepalive_connections: int = Field(10, ge=0)

    # Retry policy: delays are base_delay * 2**attempt, doubled on 429
    max_attempts: int = Field(3, ge=1)
    base_delay: float = Field(1.0, ge=0)

    # Minimum spacing between request starts across all workers, 0 disables it
    request_interval: float = Field(0.0, ge=0)

    # Pipeline
    num_workers: int = Field(10, ge=1)
    queue_size: int = Field(100, ge=1)

    # Files
    seed_file: Path = Path("seed_names.txt")
    graph_file: Path = Path("graph.json")

    log_level: str = "INFO"
    # Level for per-result crawl progress lines, defaults to log_level
    progress_log_level: Optional[str] = None

    @classmethod
    def from_env(cls) -> "CrawlerConfig":
        """Create config from environment variables (and a .env file if present)."""
        load_dotenv()
        return cls(
            api_url=os.getenv("WIKI_API_URL", "https://en.wikipedia.org/w/api.php"),
            user_agent=os.getenv("WIKI_USER_AGENT", "SixDegreeBot/1.0 (Educational Project)"),
            request_timeout=float(os.getenv("WIKI_REQUEST_TIMEOUT", "30")),
            max_connections=int(os.getenv("WIKI_MAX_CONNECTIONS", "100")),
            max_keepalive_connections=int(os.getenv("WIKI_MAX_KEEPALIVE", "10")),
            max_attempts=int(os.getenv("WIKI_MAX_ATTEMPTS", "3")),
            base_delay=float(os.getenv("WIKI_BASE_DELAY", "1.0")),
            request_interval=float(os.getenv("WIKI_REQUEST_INTERVAL", "0")),
            num_workers=int(os.getenv("CRAWL_NUM_WORKERS", "10")),
            queue_size=int(os.getenv("CRAWL_QUEUE_SIZE", "100")),
            seed_file=Path(os.getenv("CRAWL_SEED_FILE", "seed_names.txt")),
            graph_file=Path(os.getenv("CRAWL_GRAPH_FILE", "graph.json")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            progress_log_level=os.getenv("CRAWL_PROGRESS_LOG_LEVEL") or None,
        )
