"""
Centralized logging configuration for the sixth_degree crawler and search tools.

A crawl logs one line per aggregated result at INFO. That is useful for small
seed lists and unreadable for large ones, so the crawler's loggers get their
own level (`progress_level`) independent of the root level.
"""

import asyncio
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")

CRAWLER_LOGGER = "sixth_degree.crawler"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    use_rich: bool = True,
    progress_level: Optional[str] = None,
) -> None:
    """
    Configure the root logger once for a crawl or search run.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        use_rich: Colored Rich output for terminals; plain lines with the
            asyncio task name otherwise, so interleaved worker output can be
            told apart in redirected crawl logs
        progress_level: Level for the crawl pipeline's loggers. WARNING
            hides per-result progress but keeps retries and failures.
            Defaults to `level`.
    """
    numeric_level = _level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if use_rich:
        handler = RichHandler(
            console=Console(file=sys.stderr),
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
            log_time_format="[%H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.addFilter(_TaskNameFilter())
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)-5s [%(task)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))
    root_logger.addHandler(handler)

    # Handler passes everything; levels are decided per logger
    crawler_level = _level(progress_level) if progress_level else numeric_level
    logging.getLogger(CRAWLER_LOGGER).setLevel(crawler_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, crawler={logging.getLevelName(crawler_level)}, rich={use_rich}"
    )


class _TaskNameFilter(logging.Filter):
    """Adds `task`: the current asyncio task name, or '-' outside the loop."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.task = _current_task_name()
        return True


def _current_task_name() -> str:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        return "-"
    return task.get_name() if task is not None else "-"
