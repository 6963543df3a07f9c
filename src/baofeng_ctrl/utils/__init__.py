"""
Utility modules for baofeng-ctrl.

This package groups pure helpers that are shared across the protocol
layer and the CLI.
"""

from . import crypto as crypto

from .crypto import (
    KEY_TABLE,
    KEY_COUNT,
    KeyIndexError,
    key_window,
    xor_crypt_block,
    crypt,
)

__all__ = [
    "crypto",
    "KEY_TABLE",
    "KEY_COUNT",
    "KeyIndexError",
    "key_window",
    "xor_crypt_block",
    "crypt",
]
