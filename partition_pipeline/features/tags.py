"""Weighted tag parsing and unit-normalised sparse tag vectors."""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, Optional, Sequence

import numpy as np
from scipy import sparse
from sklearn.feature_extraction import DictVectorizer

from ..types import Tag, TagFeatures, TagRecord
from .base import FeatureBuilder

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"^\((?P<name>.+):(?P<score>-?[0-9.]+)\)$")


def parse_tag(text: str) -> Optional[Tag]:
    """
    Parse a single `(name:score)` tag.

    Returns:
        The tag, or None if the text is not of that form.
    """
    match = TAG_PATTERN.match(text.strip())
    if match is None:
        logger.debug(f"Skipping malformed tag {text!r}")
        return None
    try:
        score = float(match.group("score"))
    except ValueError:
        logger.debug(f"Skipping tag with unparseable score {text!r}")
        return None
    if not math.isfinite(score):
        logger.debug(f"Skipping tag with out-of-range score {text!r}")
        return None
    return Tag(name=match.group("name"), score=score)


def collect_tags(raw_tags: Iterable[str]) -> dict[str, float]:
    """
    Parse raw tag strings into a name -> score map.

    Malformed tags are skipped; a repeated name keeps its last score.
    """
    tags: dict[str, float] = {}
    for raw in raw_tags:
        if not raw:
            continue
        tag = parse_tag(raw)
        if tag is not None:
            tags[tag.name] = tag.score
    return tags


def parse_tags(text: str) -> dict[str, float]:
    """Parse a comma-separated tag list such as `(cat:0.8),(dog:0.2)`."""
    return collect_tags(text.split(","))


def normalize(tags: dict[str, float]) -> dict[str, float]:
    """
    Scale scores to unit L2 norm.

    Returns:
        Normalised copy; empty if the map is empty or all scores are zero.
    """
    scale = max((abs(v) for v in tags.values()), default=0.0)
    if scale == 0.0:
        return {}
    # Divide by the largest magnitude first so huge scores cannot overflow.
    scaled = {name: score / scale for name, score in tags.items()}
    norm = math.hypot(*scaled.values())
    return {name: score / norm for name, score in scaled.items()}


class TagFeatureBuilder(FeatureBuilder[TagRecord, TagFeatures]):
    """
    Build L2-normalised sparse tag vectors.

    Items with no usable tags are dropped and reported in
    `TagFeatures.dropped`; they take part in no group.
    """

    progress_desc = "Parsing tags"

    def build(self, records: Sequence[TagRecord]) -> TagFeatures:
        """
        Parse and normalise tags for every record.

        Args:
            records: Tag records of the whole run.

        Returns:
            TagFeatures for the surviving items, in input order.
        """
        item_ids: list[str] = []
        vectors: list[dict[str, float]] = []
        dropped: list[str] = []

        for record in self._progress(records):
            raw = collect_tags(record.tags)
            vector = normalize(raw)
            if not vector:
                if raw:
                    logger.debug(f"Dropping {record.item_id}: all tag scores are zero")
                else:
                    logger.debug(f"Dropping {record.item_id}: no valid tags")
                dropped.append(record.item_id)
                continue
            logger.debug(f"{record.item_id}: {vector}")
            item_ids.append(record.item_id)
            vectors.append(vector)

        if dropped:
            logger.warning(f"{len(dropped)} items have no usable tags and were excluded")

        tag_counts: dict[str, int] = {}
        for vector in vectors:
            for name in vector:
                tag_counts[name] = tag_counts.get(name, 0) + 1
        logger.info(f"Tag counts: {tag_counts}")

        if vectors:
            vectorizer = DictVectorizer(dtype=np.float64, sparse=True, sort=True)
            matrix = sparse.csr_matrix(vectorizer.fit_transform(vectors))
            feature_names = [str(name) for name in vectorizer.get_feature_names_out()]
        else:
            matrix = sparse.csr_matrix((0, 0), dtype=np.float64)
            feature_names = []

        logger.info(
            f"Built {len(vectors)} tag vectors over {len(feature_names)} labels"
        )

        return TagFeatures(
            item_ids=item_ids,
            vectors=vectors,
            matrix=matrix,
            feature_names=feature_names,
            tag_counts=tag_counts,
            dropped=dropped
        )
