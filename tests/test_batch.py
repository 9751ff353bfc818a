import pytest

from sparsefm.batch import ProbeArena, copy_features, parse_row
from sparsefm.errors import FeatureParseError, MalformedValueError, RowParseError
from sparsefm.types import IndexFeature, NamedFeature


class ListWrapper:
    """A row source that only exposes a length and positional access."""

    def __init__(self, items):
        self._items = items

    def __len__(self):
        return len(self._items)

    def __getitem__(self, i):
        return self._items[i]


def test_missing_tokens_are_skipped():
    features = parse_row([None, "1:2.0", None, "3:4.0"], "indexed")

    assert features == [IndexFeature(1, 2.0), IndexFeature(3, 4.0)]


def test_missing_row_yields_none():
    assert parse_row(None, "indexed") is None
    assert parse_row(None, "indexed", [IndexFeature(1)]) is None


def test_empty_row_yields_empty_list():
    assert parse_row([], "named") == []
    assert parse_row([None, None], "named") == []


def test_row_source_items_are_stringified():
    row = ListWrapper([1, None, "user:alice:0.5"])

    assert parse_row(row, "named") == [NamedFeature("1"), NamedFeature("alice", 0.5, field="user")]


def test_probes_are_reused_when_lengths_match():
    probes = [IndexFeature(0), IndexFeature(0)]
    originals = list(probes)

    features = parse_row(["5:1.5", "6"], "indexed", probes)

    assert features is probes
    assert features[0] is originals[0] and features[1] is originals[1]
    assert features == [IndexFeature(5, 1.5), IndexFeature(6, 1.0)]


def test_empty_probe_slots_are_filled_for_the_next_call():
    probes = [None, None, None]

    first = parse_row(["1:1", "2:2", "3:3"], "indexed", probes)
    ids = [id(f) for f in probes]
    second = parse_row(["4:4", "5:5", "6:6"], "indexed", probes)

    assert first is second is probes
    assert [id(f) for f in second] == ids
    assert second == parse_row(["4:4", "5:5", "6:6"], "indexed")


def test_skipped_tokens_compact_into_a_copy():
    probes = [NamedFeature("p0"), NamedFeature("p1"), NamedFeature("p2")]
    originals = list(probes)

    features = parse_row(["a:1", None, "b:2"], "named", probes)

    assert features is not probes
    assert features == [NamedFeature("a", 1.0), NamedFeature("b", 2.0)]
    assert features[0] is originals[0] and features[1] is originals[1]
    assert probes[2] is originals[2]


def test_probes_of_other_length_are_ignored():
    probes = [IndexFeature(9, 9.0)]

    features = parse_row(["1", "2"], "indexed", probes)

    assert features == [IndexFeature(1), IndexFeature(2)]
    assert probes == [IndexFeature(9, 9.0)]


def test_probe_of_wrong_variant_is_replaced():
    probes = [NamedFeature("x")]

    features = parse_row(["4:2"], "indexed", probes)

    assert features == [IndexFeature(4, 2.0)]
    assert isinstance(probes[0], IndexFeature)


def test_malformed_token_fails_the_row():
    with pytest.raises(RowParseError) as excinfo:
        parse_row(["1:1", None, "2:bad"], "indexed")

    err = excinfo.value
    assert isinstance(err, FeatureParseError)
    assert isinstance(err.__cause__, MalformedValueError)
    assert err.position == 2
    assert err.token == "2:bad"
    assert "2:bad" in str(err)


def test_copy_features_detaches_from_probes():
    probes = [None]
    row = parse_row(["1:1"], "indexed", probes)
    kept = copy_features(row)

    parse_row(["2:2"], "indexed", probes)

    assert kept == [IndexFeature(1, 1.0)]
    assert probes == [IndexFeature(2, 2.0)]


def test_arena_reuses_slots_across_rows():
    arena = ProbeArena(mode="named")

    first = arena.parse_row(["a", "f:b:2"])
    ids = [id(f) for f in first]
    second = arena.parse_row(["c:3", "d"])

    assert len(arena) == 2
    assert [id(f) for f in second] == ids
    assert second == [NamedFeature("c", 3.0), NamedFeature("d")]


def test_arena_resizes_for_rows_of_other_length():
    arena = ProbeArena(2, mode="indexed")
    arena.parse_row(["1", "2"])
    kept = arena.slots[0]

    features = arena.parse_row(["3", "4", "5"])

    assert len(arena) == 3
    assert features[0] is kept
    assert features == [IndexFeature(3), IndexFeature(4), IndexFeature(5)]

    assert arena.parse_row(["6"]) == [IndexFeature(6)]
    assert len(arena) == 1
    assert arena.parse_row(None) is None


def test_arena_overwrite_slot():
    arena = ProbeArena(3, mode="indexed")

    feature = arena.overwrite(1, "7:0.5")
    again = arena.overwrite(1, "8")

    assert feature is again
    assert arena.slots == [None, IndexFeature(8, 1.0), None]


def test_arena_rejects_unknown_mode():
    with pytest.raises(ValueError):
        ProbeArena(mode="dense")
