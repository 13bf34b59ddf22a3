"""Configuration dataclasses for the annotation partitioning pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "LOG_LEVEL"


def _resolve_log_level(level: Optional[Union[str, int]]) -> int:
    """Resolve a log level name, falling back to LOG_LEVEL and then INFO."""
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV)
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[Union[str, int]] = None) -> int:
    """
    Configure root logging for a command-line run.

    Args:
        level: Level name or number. Uses the LOG_LEVEL environment
            variable when None, and INFO when neither is usable.

    Returns:
        The numeric level that was applied.
    """
    resolved = _resolve_log_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=True)
    return resolved


@dataclass
class FeatureConfig:
    """Configuration for feature construction."""
    weight_by_rarity: bool = False  # Scale caption columns by rarity (off: presence only)
    self_distance_tolerance: float = 1e-3
    show_progress: bool = False

    def __post_init__(self):
        if self.self_distance_tolerance < 0:
            raise ValueError("self_distance_tolerance must be non-negative")


@dataclass
class PartitionConfig:
    """Configuration for recursive bisection and target-k partitioning."""
    max_group_size: int = 100  # Bisection stops once a group has at most this many items
    items_per_group: int = 50  # Target-k uses k = max(1, n // items_per_group)
    max_iter: int = 100  # Local search passes before giving up on convergence
    method: str = "swap"  # "swap" or "alternate"
    random_state: Optional[int] = None  # None draws fresh entropy every run
    allow_oversized_groups: bool = False
    n_init: int = 10  # k-means restarts per bisection split

    def __post_init__(self):
        if self.max_group_size < 1:
            raise ValueError("max_group_size must be at least 1")
        if self.items_per_group < 1:
            raise ValueError("items_per_group must be at least 1")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if self.n_init < 1:
            raise ValueError("n_init must be at least 1")
        if self.method not in ("swap", "alternate"):
            raise ValueError(f"Unknown medoid search method: {self.method}")


@dataclass
class MaterializeConfig:
    """Configuration for writing groups to the filesystem."""
    output_dir: str = "tag_partitioned"
    write_files: bool = True  # False only logs the planned copies
    move_files: bool = False  # Remove the source after a successful copy
