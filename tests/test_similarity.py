import pytest

from retrieval_core.errors import DimensionMismatchError
from retrieval_core.similarity import l2_normalize, score, top_k


def test_score_is_dot_product():
    assert score([1.0, 0.0], [0.5, 0.5]) == pytest.approx(0.5)
    assert score([0.6, 0.8], [0.6, 0.8]) == pytest.approx(1.0)


def test_score_rejects_length_mismatch():
    with pytest.raises(DimensionMismatchError):
        score([1.0, 0.0], [1.0, 0.0, 0.0])


def test_l2_normalize_gives_unit_length():
    assert l2_normalize([3.0, 4.0]) == pytest.approx([0.6, 0.8])


def test_l2_normalize_keeps_zero_vector_finite():
    assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]


def test_top_k_orders_descending_and_truncates():
    vectors = [[0.1, 0.0], [0.9, 0.0], [0.5, 0.0], [0.7, 0.0]]

    results = top_k([1.0, 0.0], vectors, k=3)

    assert [r.index for r in results] == [1, 3, 2]
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)


def test_top_k_length_is_min_of_k_and_collection():
    vectors = [[1.0, 0.0], [0.0, 1.0]]

    assert len(top_k([1.0, 0.0], vectors, k=10)) == 2


def test_top_k_ties_keep_input_order():
    vectors = [[1.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 0.0]]

    results = top_k([1.0, 0.0], vectors, k=4)

    assert [r.index for r in results] == [0, 2, 3, 1]


@pytest.mark.parametrize("k", [0, -3])
def test_top_k_non_positive_k_is_empty(k):
    assert top_k([1.0, 0.0], [[1.0, 0.0]], k=k) == []


def test_top_k_empty_collection_is_empty():
    assert top_k([1.0, 0.0], [], k=5) == []


def test_top_k_detects_dimension_drift():
    with pytest.raises(DimensionMismatchError):
        top_k([1.0, 0.0, 0.0], [[1.0, 0.0]], k=1)
