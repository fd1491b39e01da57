"""Min-hash features of container id sets and a table indexing them."""

FEATURE_NUM = 4
NO_FEATURE = (1 << 64) - 1

_MASK64 = (1 << 64) - 1

# Multipliers and offsets of the linear transforms, one pair per feature.
_LT_K = (
    0x8C966374151A67B6,
    0x3EDF7EFE33CDFD7B,
    0x5A2C4A1A310BE558,
    0x69E43FCB628FBEB7,
)
_LT_B = (
    0xCDD8AF6CD9C471E1,
    0x39BEA30BD9A49E,
    0x233B737E0EEEE721,
    0xD6D57C6896B14ED4,
)


def calc_feature(container_id, k):
    """The k-th linear transform of a container id, modulo 2 ** 64."""
    if not 0 <= k < FEATURE_NUM:
        raise ValueError(f"feature index must be in range 0..{FEATURE_NUM - 1}")
    return ((container_id & _MASK64) * _LT_K[k] + _LT_B[k]) & _MASK64


def compute_features(container_ids):
    """The minimum of each transform over the ids; NO_FEATURE where empty."""
    features = [NO_FEATURE] * FEATURE_NUM
    for cid in container_ids:
        for k in range(FEATURE_NUM):
            value = calc_feature(cid, k)
            if value < features[k]:
                features[k] = value
    return tuple(features)


def unique_containers(pointers, seen=None):
    """Count the distinct container ids referred to by ``pointers``.

    When ``seen`` is a set, the ids are added to it and its new size is
    returned, so counts accumulate across calls.
    """
    ids = set() if seen is None else seen
    ids.update(pointer.id for pointer in pointers)
    return len(ids)


class FeatureTable:
    """For each feature index, maps a feature value to the recipes having it."""

    def __init__(self):
        self._tables = [{} for _ in range(FEATURE_NUM)]

    def insert(self, features, recipe_id):
        features = tuple(features)
        if len(features) != FEATURE_NUM:
            raise ValueError(f"expected {FEATURE_NUM} features, got {len(features)}")
        if NO_FEATURE in features:
            raise ValueError("cannot index an empty feature")
        for table, feature in zip(self._tables, features):
            table.setdefault(feature, []).append(recipe_id)

    def lookup(self, k, feature):
        """Recipe ids sharing the k-th feature value, in insertion order."""
        if not 0 <= k < FEATURE_NUM:
            raise ValueError(f"feature index must be in range 0..{FEATURE_NUM - 1}")
        return tuple(self._tables[k].get(feature, ()))