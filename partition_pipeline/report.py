"""Group records and human-readable run summaries."""

from __future__ import annotations

import logging

from .types import Group, PartitionResults

logger = logging.getLogger(__name__)


def group_record(index: int, group: Group) -> dict:
    """Machine-readable record for one resolved group."""
    record = {
        "idx": index,
        "group_id": group.group_id,
        "file_count": group.size,
        "files": list(group.item_ids),
    }
    if group.medoid is not None:
        record["medoid"] = group.medoid
        record["labels"] = sorted(group.labels)
    return record


def log_groups(results: PartitionResults) -> list[dict]:
    """
    Emit one INFO "resolved group" record per group.

    Returns:
        The emitted records, in group order.
    """
    records = []
    for index, group in enumerate(results.groups, start=1):
        record = group_record(index, group)
        logger.info(f"resolved group: {record}")
        records.append(record)
    return records


def print_results_summary(results: PartitionResults, max_files: int = 10) -> None:
    """Print a human-readable summary of partitioning results."""
    print("\n" + "=" * 60)
    print(f"ANNOTATION PARTITION RESULTS ({results.mode.upper()} MODE)")
    print("=" * 60)

    print(f"\nItems loaded: {results.item_count}")
    print(f"Items excluded (no usable annotation): {len(results.dropped_item_ids)}")
    print(f"Groups: {len(results.groups)}")
    if results.vocabulary is not None:
        print(f"Vocabulary size: {len(results.vocabulary)}")
    if results.assignment is not None:
        print(f"Total medoid distance: {results.assignment.cost:.4f}")

    print("\n" + "-" * 60)
    print("GROUPS")
    print("-" * 60)

    for group in results.groups:
        print(f"\nGroup {group.group_id}: {group.size} files")
        if group.medoid is not None:
            print(f"  Medoid: {group.medoid}")
            print(f"  Labels: {', '.join(sorted(group.labels)[:20])}")
        for item_id in group.item_ids[:max_files]:
            print(f"  {item_id}")
        if group.size > max_files:
            print(f"  ... and {group.size - max_files} more")

    report = results.materialize_report
    if report is not None:
        print("\n" + "-" * 60)
        print("MATERIALIZATION")
        print("-" * 60)
        print(f"Copied: {report.copied}  Skipped: {report.skipped}  "
              f"Removed: {report.removed}  Failed: {report.failed}")

    print("\n" + "=" * 60)
