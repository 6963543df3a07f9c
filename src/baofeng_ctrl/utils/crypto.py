"""
Memory obfuscation helpers.

BF-family radios store parts of their memory XORed with one of twenty
4-byte keys. The transform is symmetric: the same call encrypts and
decrypts.
"""

from __future__ import annotations

KEY_TABLE = b"BHT CO 7A ES EIYM PQXN YRVB  HQPW RCMS N SATK DHZO RC SL6RB  JCGPN VJ PKEK LI LZ"
KEY_SIZE = 4
KEY_COUNT = len(KEY_TABLE) // KEY_SIZE


class KeyIndexError(ValueError):
    """Key index does not select a full window of the key table."""


def key_window(key_index: int) -> bytes:
    """Return the 4-byte key selected by `key_index`."""
    if key_index < 0 or key_index >= KEY_COUNT:
        raise KeyIndexError(
            f"Key index {key_index} out of range (0..{KEY_COUNT - 1})"
        )
    start = key_index * KEY_SIZE
    return KEY_TABLE[start : start + KEY_SIZE]


def xor_crypt_block(data: bytes, key: bytes) -> bytes:
    """
    XOR encrypt/decrypt data with conditional byte handling.

    Bytes are NOT transformed if:
    - The key byte at that position is a space (0x20)
    - Byte value is 0x00
    - Byte value is 0xFF
    - Byte equals the key byte at that position
    - Byte equals the key byte XOR 0xFF
    """
    out = bytearray(len(data))
    for i, byte in enumerate(data):
        key_byte = key[i % KEY_SIZE]
        if key_byte != 0x20 and byte not in (0x00, 0xFF, key_byte, key_byte ^ 0xFF):
            out[i] = byte ^ key_byte
        else:
            out[i] = byte
    return bytes(out)


def crypt(data: bytes, key_index: int) -> bytes:
    """
    Apply the memory transform with the key at `key_index`.

    A negative index means "no transform" and returns the data unchanged.

    Raises:
        KeyIndexError: If the index is past the last key
    """
    if key_index < 0:
        return bytes(data)
    return xor_crypt_block(data, key_window(key_index))
