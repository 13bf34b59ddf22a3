"""Exceptions raised by the partitioning pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union


class PartitionPipelineError(Exception):
    """Base exception for all partitioning errors."""


class RecordParseError(PartitionPipelineError):
    """Raised when an input line does not split into the expected fields."""

    def __init__(self, path: Union[str, Path], line_number: int, message: str):
        self.path = str(path)
        self.line_number = line_number
        super().__init__(f"{self.path}:{line_number}: {message}")


class PartitionError(PartitionPipelineError):
    """Raised when clustering cannot produce a valid assignment."""


class UnsplittableGroupError(PartitionError):
    """Raised when an oversized group cannot be split into two non-empty halves."""

    def __init__(self, indices: Sequence[int], max_group_size: int):
        self.indices = list(indices)
        self.max_group_size = max_group_size
        super().__init__(
            f"Group of {len(self.indices)} items exceeds max_group_size="
            f"{max_group_size} but cannot be split (identical feature vectors?)"
        )


class InternalConsistencyError(PartitionPipelineError):
    """Raised when a representation invariant is violated."""
