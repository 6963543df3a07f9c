"""
baofeng-ctrl - Memory programming utility for BF-family radios

Handshake, block-level and memory-level read/write, and the memory
obfuscation transform over a serial programming cable.
"""

__version__ = "0.1.0"

from baofeng_ctrl.protocol import SerialTransport, DeviceSession
from baofeng_ctrl.utils.crypto import crypt

__all__ = [
    "SerialTransport",
    "DeviceSession",
    "crypt",
    "__version__",
]
