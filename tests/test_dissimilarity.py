"""Tests for the distance models."""

import itertools

import numpy as np
import pytest
from scipy import sparse

from partition_pipeline.dissimilarity import CosineTagDissimilarity, EuclideanDissimilarity
from partition_pipeline.errors import InternalConsistencyError
from partition_pipeline.features import TagFeatureBuilder, normalize


@pytest.fixture
def tag_vectors():
    rng = np.random.default_rng(7)
    labels = ["cat", "dog", "tree", "car", "sky"]
    vectors = []
    for _ in range(12):
        chosen = rng.choice(labels, size=rng.integers(1, len(labels) + 1), replace=False)
        vectors.append(normalize({str(name): float(rng.uniform(-1, 1)) for name in chosen}))
    return vectors


def test_cosine_self_distance_is_zero(tag_vectors):
    model = CosineTagDissimilarity()
    for vector in tag_vectors:
        assert model.distance(vector, vector) == pytest.approx(0.0, abs=1e-3)


def test_cosine_is_symmetric_and_non_negative(tag_vectors):
    model = CosineTagDissimilarity()
    for a, b in itertools.combinations(tag_vectors, 2):
        assert model.distance(a, b) == pytest.approx(model.distance(b, a))
        assert model.distance(a, b) >= 0.0


def test_cosine_disjoint_labels_are_distance_one():
    model = CosineTagDissimilarity()
    assert model.distance({"cat": 1.0}, {"car": 1.0}) == pytest.approx(1.0)


def test_cosine_uses_label_union():
    model = CosineTagDissimilarity()
    a = normalize({"cat": 0.8, "dog": 0.2})
    b = normalize({"cat": 1.0, "tree": 1.0})
    expected = 1.0 - a["cat"] * b["cat"]
    assert model.distance(a, b) == pytest.approx(expected)


def test_cosine_self_check_rejects_unnormalized_vector():
    model = CosineTagDissimilarity()
    vector = {"cat": 2.0}
    with pytest.raises(InternalConsistencyError):
        model.distance(vector, vector)
    with pytest.raises(InternalConsistencyError):
        model.check_self_distance({"cat": 0.5}, item_id="x.jpg")


def test_cosine_pairwise_matches_pointwise(two_topic_tags):
    features = TagFeatureBuilder().build(two_topic_tags)
    model = CosineTagDissimilarity()

    distances = model.pairwise(features.matrix, features.item_ids)

    assert distances.shape == (100, 100)
    np.testing.assert_allclose(np.diag(distances), 0.0)
    np.testing.assert_allclose(distances, distances.T)
    assert (distances >= 0.0).all()
    for i, j in [(0, 1), (0, 50), (49, 99), (10, 60)]:
        assert distances[i, j] == pytest.approx(
            model.distance(features.vectors[i], features.vectors[j])
        )
    # Items from different topics share no labels
    assert distances[0, 50] == pytest.approx(1.0)
    assert distances[0, 1] < 0.01


def test_cosine_pairwise_rejects_unnormalized_rows():
    model = CosineTagDissimilarity()
    matrix = sparse.csr_matrix(np.array([[1.0, 0.0], [2.0, 0.0]]))
    with pytest.raises(InternalConsistencyError, match="b.jpg"):
        model.pairwise(matrix, ["a.jpg", "b.jpg"])


def test_cosine_tolerance_is_configurable():
    model = CosineTagDissimilarity(tolerance=0.5)
    vector = {"cat": 0.9}
    assert model.distance(vector, vector) == pytest.approx(0.19)


def test_euclidean_distance():
    model = EuclideanDissimilarity()
    assert model.distance([1, 0, 1], [0, 0, 1]) == pytest.approx(1.0)
    assert model.distance([1, 1, 0, 0], [0, 0, 1, 1]) == pytest.approx(2.0)
    assert model.distance([1, 0], [1, 0]) == 0.0


def test_euclidean_distance_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        EuclideanDissimilarity().distance([1, 0], [1, 0, 0])


def test_euclidean_pairwise_on_sparse_rows():
    matrix = sparse.csr_matrix(np.array([
        [1.0, 0.0, 0.0, 1.0, 0.0, 1.0],
        [1.0, 0.0, 0.0, 0.0, 1.0, 1.0],
        [1.0, 1.0, 1.0, 0.0, 0.0, 0.0],
    ]))
    model = EuclideanDissimilarity()
    distances = model.pairwise(matrix)

    np.testing.assert_allclose(np.diag(distances), 0.0)
    np.testing.assert_allclose(distances, distances.T)
    assert distances[0, 1] == pytest.approx(np.sqrt(2))
    assert distances[0, 2] == pytest.approx(2.0)
    assert distances[0, 1] == pytest.approx(model.distance(matrix[0], matrix[1]))
