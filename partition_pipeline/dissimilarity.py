"""Distance models over caption and tag feature vectors."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import sparse
from sklearn.metrics.pairwise import euclidean_distances

from .errors import InternalConsistencyError

logger = logging.getLogger(__name__)

DEFAULT_SELF_DISTANCE_TOLERANCE = 1e-3


class DissimilarityModel(ABC):
    """Non-negative, symmetric distance between two feature vectors."""

    @abstractmethod
    def distance(self, a: Any, b: Any) -> float:
        """Distance between two vectors of the same feature space."""
        pass

    @abstractmethod
    def pairwise(
        self,
        matrix: sparse.spmatrix,
        item_ids: Optional[Sequence[str]] = None
    ) -> NDArray[np.float64]:
        """
        Dense distance matrix between all rows.

        Args:
            matrix: Feature matrix of shape (n_samples, n_features).
            item_ids: Optional identifiers used in error messages.

        Returns:
            Array of shape (n_samples, n_samples).
        """
        pass


class EuclideanDissimilarity(DissimilarityModel):
    """
    Euclidean distance between caption presence vectors.

    This is the geometry k-means uses natively during bisection.
    """

    def distance(self, a: Any, b: Any) -> float:
        a = np.asarray(a.toarray() if sparse.issparse(a) else a, dtype=np.float64).ravel()
        b = np.asarray(b.toarray() if sparse.issparse(b) else b, dtype=np.float64).ravel()
        if a.shape != b.shape:
            raise ValueError(f"Vectors differ in length: {a.shape[0]} != {b.shape[0]}")
        return float(np.linalg.norm(a - b))

    def pairwise(
        self,
        matrix: sparse.spmatrix,
        item_ids: Optional[Sequence[str]] = None
    ) -> NDArray[np.float64]:
        distances = euclidean_distances(matrix)
        np.fill_diagonal(distances, 0.0)
        return distances


class CosineTagDissimilarity(DissimilarityModel):
    """
    One minus the dot product of unit-normalised sparse tag vectors.

    Self-distance must be zero within `tolerance`; anything else means the
    vectors were not normalised and raises InternalConsistencyError.
    """

    def __init__(self, tolerance: float = DEFAULT_SELF_DISTANCE_TOLERANCE):
        self.tolerance = tolerance

    @staticmethod
    def similarity(a: Mapping[str, float], b: Mapping[str, float]) -> float:
        """Dot product summed over the union of labels."""
        return math.fsum(a.get(label, 0.0) * b.get(label, 0.0) for label in set(a) | set(b))

    def check_self_distance(self, a: Mapping[str, float], item_id: Optional[str] = None) -> None:
        """
        Verify that a vector is at distance zero from itself.

        Raises:
            InternalConsistencyError: If the self-distance exceeds tolerance.
        """
        self_distance = 1.0 - self.similarity(a, a)
        if abs(self_distance) > self.tolerance:
            name = item_id if item_id is not None else "<vector>"
            logger.error(f"Self-distance check failed for {name}: {self_distance} ({dict(a)})")
            raise InternalConsistencyError(
                f"Self-distance of {name} is {self_distance:.6f}, "
                f"exceeds tolerance {self.tolerance}"
            )

    def distance(self, a: Mapping[str, float], b: Mapping[str, float]) -> float:
        if a is b:
            self.check_self_distance(a)
        return max(0.0, 1.0 - self.similarity(a, b))

    def pairwise(
        self,
        matrix: sparse.spmatrix,
        item_ids: Optional[Sequence[str]] = None
    ) -> NDArray[np.float64]:
        """
        Dense cosine distance matrix between the rows of `matrix`.

        The result is a full n x n float64 array, so memory grows as 8 * n**2
        bytes (about 3.2 GB at 20k items). Split very large inputs before
        calling this.

        Raises:
            InternalConsistencyError: If any row's self-distance exceeds the tolerance.
        """
        matrix = sparse.csr_matrix(matrix, dtype=np.float64)
        similarities = (matrix @ matrix.T).toarray()
        distances = 1.0 - similarities

        diagonal = np.abs(np.diag(distances))
        bad = np.flatnonzero(diagonal > self.tolerance)
        if bad.size:
            idx = int(bad[0])
            name = item_ids[idx] if item_ids is not None else f"row {idx}"
            logger.error(
                f"Self-distance check failed for {bad.size} items; first is {name} "
                f"with self-distance {distances[idx, idx]}"
            )
            raise InternalConsistencyError(
                f"Self-distance of {name} is {distances[idx, idx]:.6f}, "
                f"exceeds tolerance {self.tolerance}"
            )

        np.fill_diagonal(distances, 0.0)
        distances = np.maximum(distances, 0.0)
        # Rounding can leave the product a hair off symmetric
        return (distances + distances.T) / 2.0
