"""Main pipeline orchestration for annotation partitioning."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .analyzer import GroupAnalyzer
from .clusterer import MedoidPartitioner, RecursiveBisector
from .config import FeatureConfig, MaterializeConfig, PartitionConfig
from .dissimilarity import CosineTagDissimilarity
from .features import CaptionFeatureBuilder, TagFeatureBuilder
from .features.record_loader import load_caption_records, load_records, load_tag_records
from .materializer import GroupMaterializer
from .types import CaptionRecord, Group, PartitionResults, TagRecord

logger = logging.getLogger(__name__)


class AnnotationPartitionPipeline:
    """
    Main orchestration class for partitioning annotated files.

    Combines all components:
    - CaptionFeatureBuilder / TagFeatureBuilder for feature construction
    - CosineTagDissimilarity for tag distances (bisection uses k-means geometry)
    - RecursiveBisector (captions) and MedoidPartitioner (tags)
    - GroupAnalyzer for labels and coverage checks
    - GroupMaterializer for the optional filesystem layout
    """

    def __init__(
        self,
        feature_config: Optional[FeatureConfig] = None,
        partition_config: Optional[PartitionConfig] = None,
        materialize_config: Optional[MaterializeConfig] = None
    ):
        """
        Initialize the pipeline.

        Args:
            feature_config: Configuration for feature construction.
            partition_config: Configuration for clustering.
            materialize_config: Where and how to write groups. Groups are
                only written to disk when this is given.
        """
        self.feature_config = feature_config or FeatureConfig()
        self.partition_config = partition_config or PartitionConfig()

        self.caption_builder = CaptionFeatureBuilder(self.feature_config)
        self.tag_builder = TagFeatureBuilder(self.feature_config)
        self.tag_dissimilarity = CosineTagDissimilarity(
            tolerance=self.feature_config.self_distance_tolerance
        )
        self.bisector = RecursiveBisector(self.partition_config)
        self.medoid_partitioner = MedoidPartitioner(self.partition_config)
        self.analyzer = GroupAnalyzer()
        self.materializer = (
            GroupMaterializer(materialize_config) if materialize_config is not None else None
        )

    def _finish(self, results: PartitionResults) -> PartitionResults:
        if self.materializer is not None and results.groups:
            logger.info("Writing groups to disk...")
            results.materialize_report = self.materializer.materialize(results.groups)
        logger.info("Pipeline complete!")
        return results

    def run_from_captions(self, records: Sequence[CaptionRecord]) -> PartitionResults:
        """
        Partition caption records by recursive bisection.

        Args:
            records: Caption records of the whole run.

        Returns:
            Size-bounded groups covering every record.
        """
        logger.info(f"Running caption pipeline with {len(records)} items")

        logger.info("Step 1: Building caption features...")
        features = self.caption_builder.build(records)

        logger.info("Step 2: Recursive bisection...")
        index_groups = self.bisector.partition(features.matrix)

        logger.info("Step 3: Collecting groups...")
        groups = self.analyzer.groups_from_indices(index_groups, features)
        self.analyzer.verify_coverage(groups, features.item_ids)

        return self._finish(PartitionResults(
            mode="captions",
            groups=groups,
            item_count=len(records),
            vocabulary=features.vocabulary
        ))

    def run_from_tags(self, records: Sequence[TagRecord]) -> PartitionResults:
        """
        Partition tag records around medoids.

        Items with no usable tags are excluded and listed in
        `dropped_item_ids`.

        Args:
            records: Tag records of the whole run.

        Returns:
            Medoid groups covering every surviving record.
        """
        logger.info(f"Running tag pipeline with {len(records)} items")

        logger.info("Step 1: Building tag features...")
        features = self.tag_builder.build(records)

        groups: list[Group] = []
        assignment = None
        if len(features) == 0:
            logger.warning("No items with usable tags; nothing to partition")
        else:
            logger.info("Step 2: Computing dissimilarities...")
            distances = self.tag_dissimilarity.pairwise(features.matrix, features.item_ids)

            logger.info("Step 3: Medoid partitioning...")
            assignment = self.medoid_partitioner.partition(distances)

            logger.info("Step 4: Collecting groups...")
            groups = self.analyzer.groups_from_assignment(assignment, features)
            self.analyzer.verify_coverage(groups, features.item_ids)

        return self._finish(PartitionResults(
            mode="tags",
            groups=groups,
            item_count=len(records),
            dropped_item_ids=list(features.dropped),
            assignment=assignment,
            tag_counts=dict(features.tag_counts)
        ))

    def run_captions(self, paths: Iterable[Union[str, Path]]) -> PartitionResults:
        """Load caption files and partition them."""
        return self.run_from_captions(load_records(paths, load_caption_records))

    def run_tags(self, paths: Iterable[Union[str, Path]]) -> PartitionResults:
        """Load tag files and partition them."""
        return self.run_from_tags(load_records(paths, load_tag_records))
