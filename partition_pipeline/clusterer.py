from __future__ import annotations
import logging
import warnings
from typing import Optional, Sequence
import numpy as np
from numpy.typing import NDArray
from scipy import sparse
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning
from .config import PartitionConfig
from .errors import PartitionError, UnsplittableGroupError
from .types import ClusterAssignment

logger = logging.getLogger(__name__)

_IMPROVEMENT_EPS = 1e-10


class RecursiveBisector:
    """
    Split oversized groups in two until every group fits under a size bound.

    Pending groups live on an explicit worklist, so uneven splits of very
    large groups never deepen the call stack.
    """

    def __init__(self, config: Optional[PartitionConfig] = None):
        """
        Initialize the RecursiveBisector.

        Args:
            config: Configuration for partitioning. Uses defaults if None.
        """
        self.config = config or PartitionConfig()
        self.n_splits_ = 0

    def _split(
        self,
        matrix: sparse.csr_matrix,
        indices: NDArray[np.int64],
        random_state: Optional[int]
    ) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
        """
        Run 2-means over the rows of one group.

        Args:
            matrix: Feature matrix for the whole run.
            indices: Row indices of the group to split.
            random_state: Seed for this split's k-means.

        Returns:
            The two halves; either may be empty when the rows are identical.
        """
        if matrix.shape[1] == 0:
            return indices, indices[:0]

        kmeans = KMeans(
            n_clusters=2,
            n_init=self.config.n_init,
            random_state=random_state
        )
        with warnings.catch_warnings():
            # Identical rows yield one distinct cluster; handled below
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            labels = kmeans.fit_predict(matrix[indices])

        return indices[labels == 0], indices[labels == 1]

    def partition(
        self,
        matrix: sparse.spmatrix,
        indices: Optional[Sequence[int]] = None
    ) -> list[list[int]]:
        """
        Bisect until every group has at most `max_group_size` members.

        Args:
            matrix: Feature matrix of shape (n_samples, n_features).
            indices: Rows to partition. Defaults to all rows.

        Returns:
            List of groups, each a list of row indices. An input no larger
            than the bound comes back as a single group.

        Raises:
            UnsplittableGroupError: If an oversized group cannot be split
                and `allow_oversized_groups` is False.
        """
        matrix = sparse.csr_matrix(matrix)
        if indices is None:
            indices = np.arange(matrix.shape[0])
        indices = np.asarray(indices, dtype=np.int64)

        max_size = self.config.max_group_size
        rng = np.random.default_rng(self.config.random_state)
        # Every successful split adds one non-empty group
        max_splits = max(len(indices) - 1, 0)

        self.n_splits_ = 0
        groups: list[list[int]] = []
        pending = [indices] if len(indices) else []

        while pending:
            group = pending.pop()
            if len(group) <= max_size:
                groups.append(group.tolist())
                continue

            if self.n_splits_ >= max_splits:
                raise PartitionError(
                    f"Split budget of {max_splits} exhausted with {len(pending) + 1} groups pending"
                )

            logger.debug(f"split: file_count={len(group)}")
            seed = None if self.config.random_state is None else int(rng.integers(2**31 - 1))
            left, right = self._split(matrix, group, seed)

            if len(left) == 0 or len(right) == 0:
                if self.config.allow_oversized_groups:
                    logger.warning(
                        f"Cannot split group of {len(group)} items "
                        f"(max {max_size}); keeping it oversized"
                    )
                    groups.append(group.tolist())
                    continue
                raise UnsplittableGroupError(group.tolist(), max_size)

            self.n_splits_ += 1
            pending.append(left)
            pending.append(right)

        logger.info(f"Bisection produced {len(groups)} groups after {self.n_splits_} splits")
        return groups


class MedoidPartitioner:
    """
    Partition items into k groups around medoids of a dissimilarity matrix.

    Two local searches are available:
    - "swap": eager medoid/non-medoid swaps using cached nearest and
      second-nearest distances (FasterPAM style).
    - "alternate": Voronoi iteration, reassigning items and moving each
      medoid to the member with least total distance.

    Both stop when no move lowers the total cost or after `max_iter` passes.
    """

    def __init__(self, config: Optional[PartitionConfig] = None):
        """
        Initialize the MedoidPartitioner.

        Args:
            config: Configuration for partitioning. Uses defaults if None.
        """
        self.config = config or PartitionConfig()

    def target_k(self, n_samples: int) -> int:
        """Number of groups for `n_samples` items: max(1, n // items_per_group)."""
        return max(1, n_samples // self.config.items_per_group)

    def random_medoids(self, n_samples: int, k: int) -> NDArray[np.int64]:
        """Draw k distinct starting medoids with the configured seed."""
        rng = np.random.default_rng(self.config.random_state)
        return rng.choice(n_samples, size=k, replace=False).astype(np.int64)

    @staticmethod
    def _assign(
        distances: NDArray[np.float64],
        medoids: NDArray[np.int64]
    ) -> tuple[NDArray[np.int64], NDArray[np.float64], NDArray[np.float64]]:
        """
        Nearest medoid per item, with nearest and second-nearest distances.

        Ties go to the medoid listed first.
        """
        to_medoids = distances[:, medoids]
        nearest = np.argmin(to_medoids, axis=1)
        d_nearest = to_medoids[np.arange(len(nearest)), nearest]
        if len(medoids) > 1:
            d_second = np.partition(to_medoids, 1, axis=1)[:, 1]
        else:
            d_second = np.full(len(nearest), np.inf)
        return nearest.astype(np.int64), d_nearest, d_second

    def _swap_search(
        self,
        distances: NDArray[np.float64],
        medoids: NDArray[np.int64]
    ) -> tuple[NDArray[np.int64], int, int]:
        n_samples = distances.shape[0]
        k = len(medoids)
        is_medoid = np.zeros(n_samples, dtype=bool)
        is_medoid[medoids] = True

        nearest, d_nearest, d_second = self._assign(distances, medoids)
        n_swaps = 0
        n_iter = 0
        converged = False

        while n_iter < self.config.max_iter:
            n_iter += 1
            swapped = False
            for x in range(n_samples):
                if is_medoid[x]:
                    continue
                d_x = distances[x]
                # Cost if x joins the medoids, per item, keeping or losing its nearest
                keep = np.minimum(d_nearest, d_x)
                lose = np.minimum(d_second, d_x)
                delta = (
                    np.bincount(nearest, weights=lose - keep, minlength=k)
                    + keep.sum() - d_nearest.sum()
                )
                i = int(np.argmin(delta))
                if delta[i] < -_IMPROVEMENT_EPS:
                    is_medoid[medoids[i]] = False
                    medoids[i] = x
                    is_medoid[x] = True
                    nearest, d_nearest, d_second = self._assign(distances, medoids)
                    n_swaps += 1
                    swapped = True
            if not swapped:
                converged = True
                break

        if not converged:
            logger.warning(f"Swap search stopped after {n_iter} passes without converging")
        return medoids, n_iter, n_swaps

    def _alternate_search(
        self,
        distances: NDArray[np.float64],
        medoids: NDArray[np.int64]
    ) -> tuple[NDArray[np.int64], int, int]:
        n_swaps = 0
        n_iter = 0
        converged = False

        while n_iter < self.config.max_iter:
            n_iter += 1
            nearest, _, _ = self._assign(distances, medoids)
            updated = medoids.copy()
            for c in range(len(medoids)):
                members = np.flatnonzero(nearest == c)
                if members.size == 0:
                    continue
                others = np.setdiff1d(medoids, [medoids[c]])
                candidates = members[~np.isin(members, others)]
                if candidates.size == 0:
                    continue
                within = distances[np.ix_(candidates, members)].sum(axis=1)
                best = int(np.argmin(within))
                current = distances[medoids[c], members].sum()
                if within[best] < current - _IMPROVEMENT_EPS:
                    updated[c] = candidates[best]
                    n_swaps += 1
            if np.array_equal(updated, medoids):
                converged = True
                break
            medoids = updated

        if not converged:
            logger.warning(f"Alternate search stopped after {n_iter} passes without converging")
        return medoids, n_iter, n_swaps

    def partition(
        self,
        distances: NDArray[np.float64],
        k: Optional[int] = None,
        initial_medoids: Optional[Sequence[int]] = None
    ) -> ClusterAssignment:
        """
        Assign every item to one of k medoids.

        Args:
            distances: Square dissimilarity matrix.
            k: Number of groups. Defaults to `target_k(n_samples)`.
            initial_medoids: Starting medoids. Drawn at random if None.

        Returns:
            ClusterAssignment with one label per item.

        Raises:
            PartitionError: If the matrix is not square, there are fewer
                items than groups, or the initial medoids are invalid.
        """
        distances = np.asarray(distances, dtype=np.float64)
        if distances.ndim != 2 or distances.shape[0] != distances.shape[1]:
            raise PartitionError(f"Dissimilarity matrix must be square, got shape {distances.shape}")

        n_samples = distances.shape[0]
        if k is None:
            k = self.target_k(n_samples)
        if k < 1:
            raise PartitionError(f"Number of groups must be at least 1, got {k}")
        if n_samples < k:
            raise PartitionError(f"Cannot partition {n_samples} items into {k} groups")

        if initial_medoids is None:
            medoids = self.random_medoids(n_samples, k)
        else:
            medoids = np.asarray(initial_medoids, dtype=np.int64).copy()
            if (
                medoids.shape != (k,)
                or len(np.unique(medoids)) != k
                or medoids.min() < 0
                or medoids.max() >= n_samples
            ):
                raise PartitionError(
                    f"Expected {k} distinct initial medoids in [0, {n_samples}), got {medoids.tolist()}"
                )

        logger.info(f"Running {self.config.method} medoid search with k={k} over {n_samples} items")

        if self.config.method == "alternate":
            medoids, n_iter, n_swaps = self._alternate_search(distances, medoids)
        else:
            medoids, n_iter, n_swaps = self._swap_search(distances, medoids)

        labels, d_nearest, _ = self._assign(distances, medoids)
        assignment = ClusterAssignment(
            labels=labels,
            medoids=medoids,
            cost=float(d_nearest.sum()),
            n_iter=n_iter,
            n_swaps=n_swaps
        )

        non_empty = len(np.unique(labels))
        if non_empty < k:
            logger.warning(f"Only {non_empty} of {k} groups are non-empty (duplicate items?)")
        logger.info(
            f"medoids: {medoids.tolist()}, cost={assignment.cost:.4f}, "
            f"iterations={n_iter}, swaps={n_swaps}"
        )
        return assignment
