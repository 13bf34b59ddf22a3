"""Loading of tab-separated caption and tag records."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, TypeVar, Union

from ..errors import RecordParseError
from ..types import CaptionRecord, TagRecord

logger = logging.getLogger(__name__)

CAPTION_MIN_FIELDS = 3
TAG_FIELDS = 4

RecordT = TypeVar("RecordT", CaptionRecord, TagRecord)


def _iter_lines(path: Path) -> Iterable[tuple[int, str]]:
    """
    Yield (line_number, line) for non-blank lines of a UTF-8 file.

    Raises:
        RecordParseError: If a line is not valid UTF-8.
    """
    with open(path, "rb") as f:
        for line_number, raw in enumerate(f, start=1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise RecordParseError(path, line_number, f"invalid UTF-8: {e}") from e
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            yield line_number, line


def parse_caption_line(
    line: str,
    path: Union[str, Path] = "<string>",
    line_number: int = 1
) -> CaptionRecord:
    """
    Parse `<ignored>\\t<item-id>\\t<caption>[\\t...]`.

    Fields after the caption are ignored.

    Raises:
        RecordParseError: If the line has fewer than three fields.
    """
    fields = line.split("\t")
    if len(fields) < CAPTION_MIN_FIELDS:
        raise RecordParseError(
            path, line_number,
            f"expected at least {CAPTION_MIN_FIELDS} tab-separated fields, got {len(fields)}"
        )
    return CaptionRecord(item_id=fields[1], caption=fields[2])


def parse_tag_line(
    line: str,
    path: Union[str, Path] = "<string>",
    line_number: int = 1
) -> TagRecord:
    """
    Parse `<ignored>\\t<item-id>\\t<tag>,<tag>,...\\t<rating>`.

    Individual tags are kept as raw strings; malformed tags are dropped
    later by the tag feature builder.

    Raises:
        RecordParseError: If the line does not have exactly four fields.
    """
    fields = line.split("\t")
    if len(fields) != TAG_FIELDS:
        raise RecordParseError(
            path, line_number,
            f"expected {TAG_FIELDS} tab-separated fields, got {len(fields)}"
        )
    _, item_id, tags, rating = fields
    raw_tags = tuple(t for t in tags.split(",") if t)
    return TagRecord(item_id=item_id, tags=raw_tags, rating=rating)


def _load(
    path: Union[str, Path],
    parse: Callable[[str, Path, int], RecordT]
) -> list[RecordT]:
    path = Path(path)
    records = [parse(line, path, line_number) for line_number, line in _iter_lines(path)]
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


def load_caption_records(path: Union[str, Path]) -> list[CaptionRecord]:
    """
    Load caption records from a single file.

    Raises:
        OSError: If the file cannot be read.
        RecordParseError: On the first malformed line.
    """
    records = _load(path, parse_caption_line)
    for record in records:
        logger.debug(f"file caption: {record.item_id} -> {record.caption!r}")
    return records


def load_tag_records(path: Union[str, Path]) -> list[TagRecord]:
    """
    Load tag records from a single file.

    Raises:
        OSError: If the file cannot be read.
        RecordParseError: On the first malformed line.
    """
    records = _load(path, parse_tag_line)
    for record in records:
        logger.debug(f"file tags: {record.item_id} -> {len(record.tags)} tags, rating={record.rating!r}")
    return records


def load_records(
    paths: Iterable[Union[str, Path]],
    loader: Callable[[Union[str, Path]], list[RecordT]]
) -> list[RecordT]:
    """
    Load and concatenate records from several files in order.

    Args:
        paths: Input files.
        loader: `load_caption_records` or `load_tag_records`.

    Returns:
        All records, in file then line order.
    """
    records: list[RecordT] = []
    for path in paths:
        records.extend(loader(path))
    return records
