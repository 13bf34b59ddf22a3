"""Data types and result containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from scipy import sparse


@dataclass(frozen=True)
class CaptionRecord:
    """One caption-mode input line."""
    item_id: str
    caption: str


@dataclass(frozen=True)
class TagRecord:
    """One tag-mode input line."""
    item_id: str
    tags: tuple[str, ...]
    rating: str = ""


@dataclass(frozen=True)
class Tag:
    """A parsed `(name:score)` tag."""
    name: str
    score: float


@dataclass
class Vocabulary:
    """Corpus-wide token statistics for caption mode."""
    tokens: list[str]
    document_frequency: dict[str, int]
    item_count: int

    @property
    def weights(self) -> dict[str, float]:
        """Rarity weight per token: 1 - df / item_count."""
        if self.item_count == 0:
            return {}
        return {
            token: 1.0 - self.document_frequency[token] / self.item_count
            for token in self.tokens
        }

    def weight_array(self) -> NDArray[np.float64]:
        """Rarity weights in vocabulary order."""
        weights = self.weights
        return np.array([weights[t] for t in self.tokens], dtype=np.float64)

    def __len__(self) -> int:
        return len(self.tokens)

    def __contains__(self, token: object) -> bool:
        return token in self.document_frequency


@dataclass
class CaptionFeatures:
    """Caption-mode features: one row per item over the vocabulary order."""
    item_ids: list[str]
    token_sets: list[frozenset[str]]
    vocabulary: Vocabulary
    matrix: sparse.csr_matrix

    def __len__(self) -> int:
        return len(self.item_ids)

    def labels_of(self, idx: int) -> frozenset[str]:
        return self.token_sets[idx]


@dataclass
class TagFeatures:
    """Tag-mode features: unit-normalised sparse tag vectors."""
    item_ids: list[str]
    vectors: list[dict[str, float]]
    matrix: sparse.csr_matrix
    feature_names: list[str]
    tag_counts: dict[str, int] = field(default_factory=dict)
    dropped: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.item_ids)

    def labels_of(self, idx: int) -> frozenset[str]:
        return frozenset(self.vectors[idx])


@dataclass
class ClusterAssignment:
    """Result of a target-k medoid partition."""
    labels: NDArray[np.int64]
    medoids: NDArray[np.int64]
    cost: float
    n_iter: int
    n_swaps: int = 0

    @property
    def n_clusters(self) -> int:
        return len(self.medoids)

    def members(self) -> dict[int, list[int]]:
        """Non-empty clusters mapped to their member indices."""
        groups: dict[int, list[int]] = {}
        for idx, label in enumerate(self.labels):
            groups.setdefault(int(label), []).append(idx)
        return groups


@dataclass
class Group:
    """A final group of items handed to the materializer."""
    group_id: int
    item_ids: list[str]
    labels: set[str] = field(default_factory=set)
    medoid: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.item_ids)


@dataclass
class MaterializeReport:
    """Counts of filesystem actions taken for a set of groups."""
    copied: int = 0
    skipped: int = 0
    removed: int = 0
    failed: int = 0
    planned: int = 0


@dataclass
class PartitionResults:
    """Complete results from one partitioning run."""
    mode: str
    groups: list[Group]
    item_count: int
    dropped_item_ids: list[str] = field(default_factory=list)
    assignment: Optional[ClusterAssignment] = None
    vocabulary: Optional[Vocabulary] = None
    tag_counts: dict[str, int] = field(default_factory=dict)
    materialize_report: Optional[MaterializeReport] = None

    @property
    def assigned_item_ids(self) -> list[str]:
        return [item_id for group in self.groups for item_id in group.item_ids]
