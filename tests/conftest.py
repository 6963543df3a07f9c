"""Shared fixtures: a scripted stand-in for the radio's serial port."""

import pytest

from baofeng_ctrl.protocol import SerialTransport, DeviceSession

MODEL_TEXT = b"UV-K6 BF-V1.02 "  # 15 bytes, as answered to 'M'
FIRMWARE_INFO = bytes(range(0x30, 0x40))  # 16 bytes, as answered to 'F'


class FakeSerial:
    """
    Minimal pyserial look-alike.

    Queued bytes are handed out by read() in order; everything written is
    recorded in `written`, one entry per write() call.
    """

    def __init__(self, max_chunk=None):
        self.is_open = True
        self.timeout = 1.0
        self.written = []
        self.max_chunk = max_chunk
        self._rx = bytearray()

    def queue(self, *chunks: bytes) -> None:
        for chunk in chunks:
            self._rx.extend(chunk)

    @property
    def pending(self) -> int:
        return len(self._rx)

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)

    def read(self, size: int = 1) -> bytes:
        n = min(size, len(self._rx))
        if self.max_chunk:
            n = min(n, self.max_chunk)
        out = bytes(self._rx[:n])
        del self._rx[:n]
        return out

    def reset_input_buffer(self) -> None:
        self._rx.clear()

    def close(self) -> None:
        self.is_open = False


def handshake_responses() -> bytes:
    """Radio replies to the four handshake steps."""
    return b"\x06" + FIRMWARE_INFO + MODEL_TEXT + b"\x06"


def block_response(address: int, payload: bytes) -> bytes:
    """Radio reply to an 'R' request: echoed header followed by the payload."""
    return bytes([0x52, address >> 8, address & 0xFF, len(payload)]) + payload


@pytest.fixture
def fake_serial():
    return FakeSerial()


@pytest.fixture
def transport(fake_serial):
    return SerialTransport(port="FAKE", ser=fake_serial)


@pytest.fixture
def session(fake_serial, transport):
    """Session with the handshake already done and the write log cleared."""
    fake_serial.queue(handshake_responses())
    sess = DeviceSession(transport)
    sess.handshake()
    fake_serial.written.clear()
    return sess
