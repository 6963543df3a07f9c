"""Tests for the memory obfuscation transform."""

import pytest

from baofeng_ctrl.utils.crypto import (
    KEY_TABLE,
    KEY_COUNT,
    KeyIndexError,
    crypt,
    key_window,
    xor_crypt_block,
)

# Every byte value at every key cursor position
ALL_BYTES_ALL_POSITIONS = bytes(b for b in range(256) for _ in range(4))


def test_key_table_is_twenty_four_byte_keys():
    assert len(KEY_TABLE) == 80
    assert KEY_COUNT == 20


def test_key_window_slices_table():
    assert key_window(0) == b"BHT "
    assert key_window(1) == b"CO 7"
    assert key_window(19) == b"I LZ"


@pytest.mark.parametrize("index", [20, 100, -1])
def test_key_window_out_of_range_raises(index):
    with pytest.raises(KeyIndexError):
        key_window(index)


def test_negative_key_index_is_identity():
    data = bytes(range(64))
    assert crypt(data, -1) == data


def test_crypt_out_of_range_key_raises():
    with pytest.raises(ValueError):
        crypt(b"\x01\x02", KEY_COUNT)


def test_known_vector_key_zero():
    # Key "BHT ": 0x42 0x48 0x54 0x20; the space leaves position 3 untouched.
    assert crypt(b"\x01\x02\x03\x04", 0) == b"\x43\x4A\x57\x04"


def test_byte_equal_to_key_is_not_revealed():
    assert crypt(b"B", 0) == b"B"


def test_byte_that_would_flip_to_ff_is_kept():
    # 0x42 ^ 0xBD == 0xFF
    assert crypt(b"\xBD", 0) == b"\xBD"


@pytest.mark.parametrize("index", range(KEY_COUNT))
def test_crypt_is_self_inverse(index):
    once = crypt(ALL_BYTES_ALL_POSITIONS, index)
    assert crypt(once, index) == ALL_BYTES_ALL_POSITIONS


@pytest.mark.parametrize("index", range(KEY_COUNT))
def test_sentinels_preserved(index):
    data = b"\x00\xFF" * 8
    assert crypt(data, index) == data


@pytest.mark.parametrize("index", range(KEY_COUNT))
def test_space_key_byte_leaves_position_unchanged(index):
    key = key_window(index)
    out = crypt(ALL_BYTES_ALL_POSITIONS, index)
    for j in range(4):
        if key[j] != 0x20:
            continue
        for i in range(j, len(out), 4):
            assert out[i] == ALL_BYTES_ALL_POSITIONS[i]


def test_xor_crypt_block_output_length_matches_input():
    assert len(xor_crypt_block(b"\x10" * 13, b"ABCD")) == 13
