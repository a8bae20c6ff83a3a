"""
Tests for the postprocessing (grouping) module.
"""

import itertools

from cropengine.detection import Detection
from cropengine.postprocessor import group_detections, is_close


def test_group_merges_near_duplicates():
    """Two overlapping hits merge; a distant one stays separate."""
    raw = [
        Detection(10, 10, 20, 20),
        Detection(11, 11, 21, 19),
        Detection(100, 100, 20, 20),
    ]

    grouped = group_detections(raw, min_neighbors=1, epsilon=0.2)

    assert grouped == [
        Detection(10, 10, 20, 19),
        Detection(100, 100, 20, 20),
    ]


def test_is_close_is_symmetric():
    """Closeness does not depend on argument order."""
    a = Detection(10, 10, 20, 20)
    b = Detection(11, 11, 21, 19)
    c = Detection(100, 100, 20, 20)

    assert is_close(a, b, 0.2) and is_close(b, a, 0.2)
    assert not is_close(a, c, 0.2) and not is_close(c, a, 0.2)


def test_group_is_transitive():
    """a~b and b~c put all three in one group even though a and c are far apart."""
    a = Detection(0, 0, 20, 20)
    b = Detection(4, 0, 20, 20)
    c = Detection(8, 0, 20, 20)
    assert not is_close(a, c, 0.2)

    grouped = group_detections([a, c, b], min_neighbors=1, epsilon=0.2)

    assert grouped == [Detection(4, 0, 20, 20)]


def test_group_order_independent():
    """Every permutation of the raw hits yields the same groups."""
    raw = [
        Detection(0, 0, 20, 20),
        Detection(4, 0, 20, 20),
        Detection(8, 0, 20, 20),
        Detection(60, 60, 30, 30),
        Detection(62, 61, 31, 30),
    ]
    expected = sorted(
        group_detections(raw, 1, 0.2), key=lambda d: (d.x, d.y)
    )

    for perm in itertools.permutations(raw):
        result = sorted(group_detections(list(perm), 1, 0.2), key=lambda d: (d.x, d.y))
        assert result == expected


def test_min_neighbors_filters_small_groups():
    """Singleton groups are dropped when two neighbours are required."""
    raw = [
        Detection(10, 10, 20, 20),
        Detection(11, 11, 21, 19),
        Detection(100, 100, 20, 20),
    ]

    grouped = group_detections(raw, min_neighbors=2, epsilon=0.2)

    assert grouped == [Detection(10, 10, 20, 19)]


def test_group_empty():
    """No raw hits, no detections."""
    assert group_detections([], min_neighbors=1, epsilon=0.2) == []
