"""Pytest configuration and fixtures."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest

from partition_pipeline.types import CaptionRecord, TagRecord


@pytest.fixture
def write_lines(tmp_path: Path) -> Callable[[str, Sequence[str]], Path]:
    """Write lines to a file under tmp_path and return its path."""
    def _write(name: str, lines: Sequence[str]) -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def three_captions() -> list[CaptionRecord]:
    return [
        CaptionRecord(item_id="item1", caption="a red cat"),
        CaptionRecord(item_id="item2", caption="a red dog"),
        CaptionRecord(item_id="item3", caption="a blue bird"),
    ]


@pytest.fixture
def two_topic_tags() -> list[TagRecord]:
    """100 tag records in two clearly separated topics of 50 each."""
    records = []
    for i in range(50):
        records.append(TagRecord(
            item_id=f"animals/{i}.jpg",
            tags=("(cat:1.0)", f"(fur:{(i + 1) / 100})"),
        ))
    for i in range(50):
        records.append(TagRecord(
            item_id=f"vehicles/{i}.jpg",
            tags=("(car:1.0)", f"(wheel:{(i + 1) / 100})"),
        ))
    return records
