"""
Annotation Partitioning Pipeline

Splits a corpus of annotated image files into small groups of similar items:
- Caption mode: token-presence vectors, recursive 2-means bisection
  until every group is under a size bound
- Tag mode: unit-normalised weighted tags, cosine dissimilarity and
  k-medoids with about 50 items per group
- Optional copy/move of each group into its own directory
"""

from .config import FeatureConfig, PartitionConfig, MaterializeConfig, configure_logging
from .errors import (
    PartitionPipelineError,
    RecordParseError,
    PartitionError,
    UnsplittableGroupError,
    InternalConsistencyError,
)
from .types import (
    CaptionRecord,
    TagRecord,
    Tag,
    Vocabulary,
    CaptionFeatures,
    TagFeatures,
    ClusterAssignment,
    Group,
    MaterializeReport,
    PartitionResults,
)
from .features import CaptionFeatureBuilder, TagFeatureBuilder
from .dissimilarity import DissimilarityModel, EuclideanDissimilarity, CosineTagDissimilarity
from .clusterer import RecursiveBisector, MedoidPartitioner
from .analyzer import GroupAnalyzer
from .materializer import GroupMaterializer
from .pipeline import AnnotationPartitionPipeline
from .report import log_groups, print_results_summary

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "FeatureConfig",
    "PartitionConfig",
    "MaterializeConfig",
    "configure_logging",
    # Errors
    "PartitionPipelineError",
    "RecordParseError",
    "PartitionError",
    "UnsplittableGroupError",
    "InternalConsistencyError",
    # Types
    "CaptionRecord",
    "TagRecord",
    "Tag",
    "Vocabulary",
    "CaptionFeatures",
    "TagFeatures",
    "ClusterAssignment",
    "Group",
    "MaterializeReport",
    "PartitionResults",
    # Core components
    "CaptionFeatureBuilder",
    "TagFeatureBuilder",
    "DissimilarityModel",
    "EuclideanDissimilarity",
    "CosineTagDissimilarity",
    "RecursiveBisector",
    "MedoidPartitioner",
    "GroupAnalyzer",
    "GroupMaterializer",
    # Pipeline
    "AnnotationPartitionPipeline",
    # Reporting
    "log_groups",
    "print_results_summary",
]
