import pytest
from hypothesis import given
from hypothesis import strategies as st

from dedupvault.features import (
    FEATURE_NUM,
    NO_FEATURE,
    FeatureTable,
    calc_feature,
    compute_features,
    unique_containers,
)
from dedupvault.trace import Chunk

ids = st.integers(min_value=0, max_value=(1 << 63) - 1)


def test_feature_of_zero_is_offset():
    assert calc_feature(0, 0) == 0xCDD8AF6CD9C471E1
    assert calc_feature(0, 1) == 0x39BEA30BD9A49E


def test_feature_slope_is_multiplier():
    diff = (calc_feature(1, 0) - calc_feature(0, 0)) % (1 << 64)
    assert diff == 0x8C966374151A67B6


def test_negative_id_wraps():
    for k in range(FEATURE_NUM):
        assert calc_feature(-1, k) == calc_feature((1 << 64) - 1, k)


@pytest.mark.parametrize("k", [-1, FEATURE_NUM])
def test_bad_feature_index(k):
    with pytest.raises(ValueError):
        calc_feature(3, k)


def test_empty_features():
    assert compute_features([]) == (NO_FEATURE,) * FEATURE_NUM


@given(ids)
def test_single_id_features(cid):
    assert compute_features([cid]) == tuple(
        calc_feature(cid, k) for k in range(FEATURE_NUM)
    )


@given(st.lists(ids, min_size=1, max_size=20))
def test_features_are_minima(cids):
    features = compute_features(cids)
    for k in range(FEATURE_NUM):
        assert features[k] == min(calc_feature(c, k) for c in cids)
    assert compute_features(reversed(cids)) == features


@given(st.lists(ids, min_size=1, max_size=10), st.lists(ids, max_size=10))
def test_features_of_superset_not_larger(base, extra):
    small = compute_features(base)
    big = compute_features(base + extra)
    assert all(b <= s for b, s in zip(big, small))


def test_unique_containers_counts_distinct():
    chunks = [Chunk(id=i) for i in (5, 7, 5, 9, 7)]
    assert unique_containers(chunks) == 3
    assert unique_containers([]) == 0


def test_unique_containers_accumulates():
    seen = set()
    assert unique_containers([Chunk(id=1), Chunk(id=2)], seen) == 2
    assert unique_containers([Chunk(id=2), Chunk(id=3)], seen) == 3
    assert seen == {1, 2, 3}


def test_table_insert_and_lookup():
    table = FeatureTable()
    fa = compute_features([1, 2])
    fb = compute_features([2, 3])
    table.insert(fa, 0)
    table.insert(fb, 1)
    table.insert(fa, 2)
    assert table.lookup(0, fa[0]) == (0, 2) or fa[0] == fb[0]
    for k in range(FEATURE_NUM):
        assert 0 in table.lookup(k, fa[k])
        assert 2 in table.lookup(k, fa[k])
        assert 1 in table.lookup(k, fb[k])


def test_table_lookup_missing():
    table = FeatureTable()
    assert table.lookup(0, 12345) == ()


def test_table_lookup_order():
    table = FeatureTable()
    features = compute_features([4])
    for rid in (3, 1, 2):
        table.insert(features, rid)
    assert table.lookup(2, features[2]) == (3, 1, 2)


def test_table_rejects_empty_feature():
    table = FeatureTable()
    with pytest.raises(ValueError):
        table.insert(compute_features([]), 0)


def test_table_rejects_wrong_length():
    table = FeatureTable()
    with pytest.raises(ValueError):
        table.insert((1, 2, 3), 0)


def test_table_bad_index():
    with pytest.raises(ValueError):
        FeatureTable().lookup(FEATURE_NUM, 0)