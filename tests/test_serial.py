import pytest
from hypothesis import given
from hypothesis import strategies as st

from dedupvault.serial import Reader, Writer


def test_int32_is_network_order():
    assert Writer(4).int32(1).getvalue() == b"\x00\x00\x00\x01"


def test_int64_is_big_endian():
    assert Writer(8).int64(0x0102030405060708).getvalue() == bytes(range(1, 9))


def test_string_is_nul_terminated():
    assert Writer(16).string("abc").getvalue() == b"abc\x00"


@given(
    st.integers(-(2**15), 2**15 - 1),
    st.integers(0, 2**16 - 1),
    st.integers(-(2**31), 2**31 - 1),
    st.integers(0, 2**32 - 1),
    st.integers(-(2**63), 2**63 - 1),
    st.integers(0, 2**64 - 1),
)
def test_integer_round_trip(a, b, c, d, e, f):
    w = Writer(None)
    w.int16(a).uint16(b).int32(c).uint32(d).int64(e).uint64(f)
    assert len(w) == 2 + 2 + 4 + 4 + 8 + 8
    r = Reader(w.getvalue())
    assert (r.int16(), r.uint16(), r.int32(), r.uint32(), r.int64(), r.uint64()) == (
        a, b, c, d, e, f,
    )
    assert r.remaining() == 0


@given(st.text().filter(lambda s: "\0" not in s), st.binary())
def test_string_and_raw_round_trip(text, blob):
    w = Writer(None).string(text).raw(blob)
    r = Reader(w.getvalue())
    assert r.string() == text
    assert r.raw(len(blob)) == blob
    assert r.remaining() == 0


def test_capacity_is_enforced():
    w = Writer(4)
    with pytest.raises(ValueError):
        w.int64(1)
    assert len(w) == 0


def test_capacity_exactly_filled():
    w = Writer(6).int32(7).int16(3)
    assert len(w) == 6
    with pytest.raises(ValueError):
        w.raw(b"x")


def test_value_out_of_range():
    with pytest.raises(ValueError):
        Writer(None).int16(2**15)
    with pytest.raises(ValueError):
        Writer(None).uint32(-1)


def test_string_with_nul_rejected():
    with pytest.raises(ValueError):
        Writer(None).string("a\0b")


def test_read_past_end():
    r = Reader(Writer(None).int16(5).getvalue())
    assert r.int16() == 5
    with pytest.raises(ValueError):
        r.int32()


def test_unterminated_string():
    with pytest.raises(ValueError):
        Reader(b"abc").string()


def test_remaining_tracks_position():
    r = Reader(Writer(None).int32(9).int64(10).getvalue())
    assert r.remaining() == 12
    r.int32()
    assert r.remaining() == 8