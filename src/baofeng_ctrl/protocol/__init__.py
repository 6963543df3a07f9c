"""Radio protocol layer - serial transport and programming session."""

from .transport import (
    SerialTransport,
    RadioTransportError,
    RadioShortRead,
    RadioTimeout,
    RadioProtocolMismatch,
    DEFAULT_BAUDRATE,
    DEFAULT_TIMEOUT,
)
from .session import (
    DeviceSession,
    HandshakeInfo,
    SessionStateError,
    UnalignedWriteError,
    HANDSHAKE_STEPS,
    SEND_PAYLOAD,
    DEFAULT_BLOCK_SIZE,
)

__all__ = [
    # Transport
    "SerialTransport",
    "RadioTransportError",
    "RadioShortRead",
    "RadioTimeout",
    "RadioProtocolMismatch",
    "DEFAULT_BAUDRATE",
    "DEFAULT_TIMEOUT",
    # Session
    "DeviceSession",
    "HandshakeInfo",
    "SessionStateError",
    "UnalignedWriteError",
    "HANDSHAKE_STEPS",
    "SEND_PAYLOAD",
    "DEFAULT_BLOCK_SIZE",
]
