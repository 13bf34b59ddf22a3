"""Copy or move grouped files into one directory per group."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Sequence

from .config import MaterializeConfig
from .types import Group, MaterializeReport

logger = logging.getLogger(__name__)


class GroupMaterializer:
    """
    Lay out groups on the filesystem as `<output_dir>/group_<id>/<file name>`.

    A destination that already exists is never overwritten, so running
    twice over the same groups is a no-op the second time. Failures on
    one file are logged and counted, and the remaining files still run.
    """

    def __init__(self, config: Optional[MaterializeConfig] = None):
        """
        Initialize the GroupMaterializer.

        Args:
            config: Configuration for materialization. Uses defaults if None.
        """
        self.config = config or MaterializeConfig()

    def group_dir(self, group: Group) -> Path:
        return Path(self.config.output_dir) / f"group_{group.group_id}"

    def _place(self, source: Path, destination: Path, report: MaterializeReport) -> None:
        if destination.exists():
            logger.debug(f"skip {source}: {destination} exists")
            report.skipped += 1
            return

        try:
            shutil.copy2(source, destination)
        except OSError as e:
            logger.warning(f"Failed to copy {source} -> {destination}: {e}")
            report.failed += 1
            return
        report.copied += 1

        if self.config.move_files:
            logger.info(f"remove {source}")
            try:
                source.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove {source} after copy: {e}")
                report.failed += 1
                return
            report.removed += 1

    def materialize(self, groups: Sequence[Group]) -> MaterializeReport:
        """
        Copy (or move) every member file into its group directory.

        Args:
            groups: Final groups; item ids are source file paths.

        Returns:
            Counts of copied, skipped, removed, failed and planned files.
        """
        report = MaterializeReport()

        for group in groups:
            outdir = self.group_dir(group)
            logger.debug(f"group {group.group_id}: {group.size} files, labels={sorted(group.labels)}")

            if self.config.write_files:
                try:
                    outdir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.warning(f"Failed to create {outdir}: {e}")
                    report.failed += group.size
                    continue

            for item_id in group.item_ids:
                source = Path(item_id)
                destination = outdir / source.name
                logger.info(f"copy {source} -> {destination}")
                report.planned += 1
                if self.config.write_files:
                    self._place(source, destination, report)

        logger.info(
            f"Materialized {len(groups)} groups into {self.config.output_dir}: "
            f"{report.copied} copied, {report.skipped} skipped, "
            f"{report.removed} removed, {report.failed} failed"
        )
        return report
