"""Abstract base class for feature builders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, Optional, Sequence, TypeVar

from tqdm import tqdm

from ..config import FeatureConfig

RecordT = TypeVar("RecordT")
FeaturesT = TypeVar("FeaturesT")


class FeatureBuilder(ABC, Generic[RecordT, FeaturesT]):
    """
    Turn raw annotation records into numeric features.

    Subclasses compute any corpus-wide statistics in `build`, which sees
    every record before returning.
    """

    #: Description shown on the progress bar.
    progress_desc = "Building features"

    def __init__(self, config: Optional[FeatureConfig] = None):
        """
        Initialize the feature builder.

        Args:
            config: Configuration for feature construction. Uses defaults if None.
        """
        self.config = config or FeatureConfig()

    def _progress(self, records: Sequence[Any]) -> Iterable[Any]:
        """Wrap records in a progress bar when configured."""
        return tqdm(
            records,
            desc=self.progress_desc,
            disable=not self.config.show_progress
        )

    @abstractmethod
    def build(self, records: Sequence[RecordT]) -> FeaturesT:
        """
        Build features for all records.

        Args:
            records: Every record of the run.

        Returns:
            Feature container for the run.
        """
        pass
