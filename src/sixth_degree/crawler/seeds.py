"""
Seed file loading. The seed file is a newline-delimited list of page titles
and doubles as the universe of valid graph nodes.
"""

import logging
from pathlib import Path
from typing import FrozenSet, Iterator, Union

from sixth_degree.exceptions import SeedFileError

logger = logging.getLogger(__name__)


def iter_seed_names(path: Union[str, Path]) -> Iterator[str]:
    """Yield the non-empty, stripped lines of the seed file in order."""
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                name = line.strip()
                if name:
                    yield name
    except (OSError, UnicodeDecodeError) as e:
        raise SeedFileError(f"Failed to read seed file {path}: {e}") from e


def load_valid_names(path: Union[str, Path]) -> FrozenSet[str]:
    """Build the set of acceptable crawl targets from the seed file."""
    valid_names = frozenset(iter_seed_names(path))
    logger.info(f"Loaded {len(valid_names)} valid names from {path}")
    return valid_names
