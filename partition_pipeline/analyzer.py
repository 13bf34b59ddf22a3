"""Group construction and partition coverage checks."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence

from .errors import InternalConsistencyError
from .types import ClusterAssignment, Group

logger = logging.getLogger(__name__)


class LabelledFeatures(Protocol):
    """Feature containers that expose item ids and per-item labels."""
    item_ids: list[str]

    def labels_of(self, idx: int) -> frozenset[str]: ...


class GroupAnalyzer:
    """
    Turn clustering output into named groups.

    - Collects the union of labels (tags or caption tokens) per group
    - Resolves medoid indices to item ids
    - Verifies that groups cover every item exactly once
    """

    @staticmethod
    def label_union(features: LabelledFeatures, indices: Iterable[int]) -> set[str]:
        """De-duplicated union of the labels of the given items."""
        labels: set[str] = set()
        for idx in indices:
            labels.update(features.labels_of(idx))
        return labels

    def groups_from_indices(
        self,
        index_groups: Sequence[Sequence[int]],
        features: LabelledFeatures
    ) -> list[Group]:
        """
        Build groups from bisection output.

        Group ids count from 1 in emission order.

        Args:
            index_groups: Row indices per group.
            features: Features the indices refer to.

        Returns:
            One Group per index group.
        """
        groups = []
        for group_id, indices in enumerate(index_groups, start=1):
            groups.append(Group(
                group_id=group_id,
                item_ids=[features.item_ids[i] for i in indices],
                labels=self.label_union(features, indices)
            ))
        return groups

    def groups_from_assignment(
        self,
        assignment: ClusterAssignment,
        features: LabelledFeatures
    ) -> list[Group]:
        """
        Build groups from a medoid partition.

        Group ids are the cluster labels; empty clusters are omitted.

        Args:
            assignment: Medoid partition over the features' rows.
            features: Features the assignment refers to.

        Returns:
            Non-empty groups ordered by cluster label.
        """
        groups = []
        for label, indices in sorted(assignment.members().items()):
            medoid_idx = int(assignment.medoids[label])
            groups.append(Group(
                group_id=label,
                item_ids=[features.item_ids[i] for i in indices],
                labels=self.label_union(features, indices),
                medoid=features.item_ids[medoid_idx]
            ))
        return groups

    @staticmethod
    def verify_coverage(groups: Sequence[Group], item_ids: Sequence[str]) -> None:
        """
        Check that groups are disjoint and cover exactly the given items.

        Item ids are compared as multisets, so repeated ids in the input
        must appear the same number of times across groups.

        Raises:
            InternalConsistencyError: If an item is missing, extra or repeated.
        """
        expected: dict[str, int] = {}
        for item_id in item_ids:
            expected[item_id] = expected.get(item_id, 0) + 1

        seen: dict[str, int] = {}
        for group in groups:
            for item_id in group.item_ids:
                seen[item_id] = seen.get(item_id, 0) + 1

        if seen != expected:
            missing = sorted(i for i in expected if seen.get(i, 0) < expected[i])
            extra = sorted(i for i in seen if seen[i] > expected.get(i, 0))
            logger.error(f"Partition coverage mismatch: missing={missing[:10]}, extra={extra[:10]}")
            raise InternalConsistencyError(
                f"Groups do not cover the input exactly: {len(missing)} missing, {len(extra)} extra"
            )
