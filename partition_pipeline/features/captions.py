"""Caption tokenisation, vocabulary statistics and presence vectors."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from scipy import sparse
from sklearn.preprocessing import MultiLabelBinarizer

from ..types import CaptionFeatures, CaptionRecord, Vocabulary
from .base import FeatureBuilder

logger = logging.getLogger(__name__)


def clean_token(value: str) -> str:
    """Keep only the alphanumeric characters of a token."""
    return "".join(c for c in value if c.isalnum())


def tokenize(caption: str) -> frozenset[str]:
    """
    Split a caption into its set of distinct cleaned tokens.

    Punctuation-only fragments clean to the empty string and are dropped.
    """
    cleaned = (clean_token(fragment) for fragment in caption.split())
    return frozenset(token for token in cleaned if token)


def build_vocabulary(token_sets: Sequence[frozenset[str]]) -> Vocabulary:
    """
    Count document frequency for every token seen in any item.

    Args:
        token_sets: Per-item distinct token sets.

    Returns:
        Vocabulary in sorted token order.
    """
    document_frequency: dict[str, int] = {}
    for tokens in token_sets:
        for token in tokens:
            document_frequency[token] = document_frequency.get(token, 0) + 1

    return Vocabulary(
        tokens=sorted(document_frequency),
        document_frequency=document_frequency,
        item_count=len(token_sets)
    )


class CaptionFeatureBuilder(FeatureBuilder[CaptionRecord, CaptionFeatures]):
    """
    Build binary token-presence vectors from free-text captions.

    Rarity weights are computed for the whole corpus but only applied to
    the vectors when `FeatureConfig.weight_by_rarity` is set; by default
    clustering sees raw 0/1 presence.
    """

    progress_desc = "Tokenizing captions"

    def presence_matrix(
        self,
        token_sets: Sequence[frozenset[str]],
        vocabulary: Vocabulary
    ) -> sparse.csr_matrix:
        """
        Binary item x token matrix in vocabulary order.

        Args:
            token_sets: Per-item distinct token sets.
            vocabulary: Vocabulary built from the same token sets.

        Returns:
            CSR matrix of shape (n_items, n_tokens) with 0.0/1.0 entries.
        """
        if not vocabulary.tokens:
            return sparse.csr_matrix((len(token_sets), 0), dtype=np.float64)

        binarizer = MultiLabelBinarizer(classes=vocabulary.tokens, sparse_output=True)
        matrix = binarizer.fit_transform(token_sets)
        return sparse.csr_matrix(matrix, dtype=np.float64)

    def build(self, records: Sequence[CaptionRecord]) -> CaptionFeatures:
        """
        Tokenize every caption, then derive vocabulary and vectors.

        Args:
            records: Caption records of the whole run.

        Returns:
            CaptionFeatures aligned with the input order.
        """
        # Pass 1: collect token sets
        token_sets = [tokenize(record.caption) for record in self._progress(records)]

        # Pass 2: corpus statistics need every item
        vocabulary = build_vocabulary(token_sets)
        matrix = self.presence_matrix(token_sets, vocabulary)

        if self.config.weight_by_rarity and len(vocabulary):
            logger.info("Scaling presence vectors by token rarity")
            matrix = sparse.csr_matrix(matrix @ sparse.diags(vocabulary.weight_array()))

        logger.info(
            f"Built {matrix.shape[0]} caption vectors over {len(vocabulary)} tokens"
        )

        return CaptionFeatures(
            item_ids=[record.item_id for record in records],
            token_sets=token_sets,
            vocabulary=vocabulary,
            matrix=matrix
        )
