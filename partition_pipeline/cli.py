import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import FeatureConfig, MaterializeConfig, PartitionConfig, configure_logging
from .errors import PartitionPipelineError
from .pipeline import AnnotationPartitionPipeline
from .report import log_groups, print_results_summary

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser, default_output_dir: Optional[str]) -> None:
    parser.add_argument(
        "files",
        nargs="+",
        help="Tab-separated annotation files"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=default_output_dir,
        help="Directory to copy grouped files into"
        + (f" (default: {default_output_dir})" if default_output_dir else " (default: no copy)")
    )
    parser.add_argument(
        "--move",
        action="store_true",
        help="Delete each source file after it has been copied"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log planned copies without touching the filesystem"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for clustering (default: non-deterministic)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level name (default: $LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print a human-readable summary when done"
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while building features"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="partition-annotations",
        description="Partition annotated image files into groups of similar items"
    )
    subparsers = parser.add_subparsers(dest="mode", required=True)

    captions = subparsers.add_parser(
        "captions",
        help="Recursively bisect caption records until groups are small enough"
    )
    _add_common_arguments(captions, default_output_dir=None)
    captions.add_argument(
        "--max-group-size",
        type=int,
        default=100,
        help="Largest allowed group (default: 100)"
    )
    captions.add_argument(
        "--allow-oversized",
        action="store_true",
        help="Keep groups that cannot be split instead of failing"
    )
    captions.add_argument(
        "--weight-by-rarity",
        action="store_true",
        help="Scale token presence by corpus rarity before clustering"
    )

    tags = subparsers.add_parser(
        "tags",
        help="Partition weighted tag records around medoids"
    )
    _add_common_arguments(tags, default_output_dir="tag_partitioned")
    tags.add_argument(
        "--items-per-group",
        type=int,
        default=50,
        help="Target items per group; k = max(1, n // this) (default: 50)"
    )
    tags.add_argument(
        "--max-iter",
        type=int,
        default=100,
        help="Maximum local search passes (default: 100)"
    )
    tags.add_argument(
        "--method",
        choices=["swap", "alternate"],
        default="swap",
        help="Medoid local search (default: swap)"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        feature_config = FeatureConfig(
            weight_by_rarity=getattr(args, "weight_by_rarity", False),
            show_progress=args.progress
        )
        partition_config = PartitionConfig(
            max_group_size=getattr(args, "max_group_size", 100),
            items_per_group=getattr(args, "items_per_group", 50),
            max_iter=getattr(args, "max_iter", 100),
            method=getattr(args, "method", "swap"),
            random_state=args.seed,
            allow_oversized_groups=getattr(args, "allow_oversized", False)
        )
    except ValueError as e:
        parser.error(str(e))

    materialize_config = None
    if args.output_dir is not None:
        materialize_config = MaterializeConfig(
            output_dir=args.output_dir,
            write_files=not args.dry_run,
            move_files=args.move
        )

    pipeline = AnnotationPartitionPipeline(
        feature_config=feature_config,
        partition_config=partition_config,
        materialize_config=materialize_config
    )

    try:
        if args.mode == "captions":
            results = pipeline.run_captions(args.files)
        else:
            results = pipeline.run_tags(args.files)
    except PartitionPipelineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except OSError as e:
        logger.error(f"Failed to read input: {e}")
        return 1

    log_groups(results)
    if args.summary:
        print_results_summary(results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
