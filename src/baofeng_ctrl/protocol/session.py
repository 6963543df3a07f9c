"""
Device Session Protocol Layer

High-level programming session for BF-family radios.

This module provides:
- The fixed four-step programming-mode handshake
- Block-level read/write with header and ACK validation
- Chunked memory read/write over consecutive blocks
- The optional memory obfuscation transform
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..utils import crypto
from .transport import (
    SerialTransport,
    RadioTransportError,
    RadioProtocolMismatch,
)

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 0x40
ADDRESS_MASK = 0xFFFF

CMD_READ = ord('R')
CMD_WRITE = ord('W')
ACK = 0x06

HANDSHAKE_MAGIC = b"PROGRAMBFNORMALU"
# Device initialization vector sent after "SEND"; opaque to the host.
SEND_PAYLOAD = bytes([
    0x21, 0x05, 0x0D, 0x01, 0x01, 0x01, 0x04, 0x11,
    0x08, 0x05, 0x0D, 0x0D, 0x01, 0x11, 0x0F, 0x09,
    0x12, 0x09, 0x10, 0x04, 0x00,
])

# (outbound bytes, expected response length), executed strictly in order
HANDSHAKE_STEPS: Tuple[Tuple[bytes, int], ...] = (
    (HANDSHAKE_MAGIC, 1),
    (b"F", 16),
    (b"M", 15),
    (b"SEND" + SEND_PAYLOAD, 1),
)

ProgressCallback = Callable[[int, int], None]


class SessionStateError(RadioTransportError):
    """Operation issued out of protocol order"""
    pass


class UnalignedWriteError(ValueError):
    """Write data does not end on a block boundary and no pad byte was given"""
    pass


@dataclass(frozen=True)
class HandshakeInfo:
    """Raw responses collected during the handshake."""
    program_ack: bytes
    firmware_info: bytes
    model_raw: bytes
    send_ack: bytes

    @property
    def model(self) -> str:
        """Model response as text (display only)."""
        return self.model_raw.decode('ascii', errors='replace').rstrip('\x00 ')


class DeviceSession:
    """
    Programming session over an open SerialTransport.

    The handshake must run exactly once before any block operation. The
    block size is fixed when the session is created.

    Example:
        with DeviceSession(SerialTransport("/dev/ttyUSB0")) as session:
            session.handshake()
            data = session.read_memory(-1, 0xF000, 0x1000)
            session.write_memory(-1, 0xF000, data)
    """

    def __init__(self, transport: SerialTransport, block_size: int = DEFAULT_BLOCK_SIZE):
        """
        Initialize session.

        Args:
            transport: SerialTransport instance
            block_size: Bytes per block read/write (1..255, default 64)
        """
        if not 0 < block_size <= 0xFF:
            raise ValueError(f"Block size must be 1..255, got {block_size}")
        self.transport = transport
        self._block_size = block_size
        self._handshake_info: Optional[HandshakeInfo] = None
        self._handshake_started = False

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def handshake_info(self) -> Optional[HandshakeInfo]:
        """Responses from the handshake, or None before it ran"""
        return self._handshake_info

    def __enter__(self) -> "DeviceSession":
        self.transport.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.transport.close()

    def close(self) -> None:
        self.transport.close()

    def _require_handshake(self) -> None:
        if self._handshake_info is None:
            raise SessionStateError("Handshake has not been performed")

    def handshake(self) -> HandshakeInfo:
        """
        Put the radio into programming mode.

        Protocol:
            1. "PROGRAMBFNORMALU"          -> 1 byte
            2. 'F'                         -> 16 bytes
            3. 'M'                         -> 15 bytes (model text)
            4. "SEND" + 21-byte payload    -> 1 byte

        Returns:
            HandshakeInfo with the raw response of every step

        Raises:
            SessionStateError: If a handshake was already attempted on this
                session, whether or not it completed
            RadioShortRead, RadioTimeout: If a step gets a short response
        """
        if self._handshake_started:
            raise SessionStateError("Handshake already attempted on this session")
        self._handshake_started = True

        logger.info("Starting initial communication...")
        responses: List[bytes] = []
        for outbound, expected_len in HANDSHAKE_STEPS:
            logger.info(f"Sending: {outbound[:16]!r}")
            response = self.transport.send_receive(outbound, expected_len)
            logger.debug(f"Response: {response.hex(' ').upper()}")
            responses.append(response)

        info = HandshakeInfo(*responses)
        self._handshake_info = info
        logger.info(f"Handshake complete, model: {info.model!r}")
        return info

    def read_block(self, address: int) -> bytes:
        """
        Read one block of memory.

        Protocol:
            REQUEST:  ['R' | addr_hi | addr_lo | size]
            RESPONSE: ['R' | addr_hi | addr_lo | size | data...]

        Args:
            address: Memory address (16-bit)

        Returns:
            `block_size` data bytes (header stripped)

        Raises:
            RadioProtocolMismatch: If the header does not echo the request
        """
        self._require_handshake()
        address &= ADDRESS_MASK
        hi, lo = address >> 8, address & 0xFF

        cmd = bytes([CMD_READ, hi, lo, self._block_size])
        response = self.transport.send_receive(cmd, 4 + self._block_size)

        if response[0] != CMD_READ or response[1] != hi or response[2] != lo:
            raise RadioProtocolMismatch(
                f"Wrong read response at {address:04X}: "
                f"header {response[:4].hex().upper()}"
            )

        logger.debug(f"Read block at {address:04X}: {self._block_size} bytes")
        return response[4:]

    def write_block(self, address: int, data: bytes) -> None:
        """
        Write one block of memory.

        Protocol:
            REQUEST:  ['W' | addr_hi | addr_lo | size | data...]
            RESPONSE: 0x06 (ACK)

        Args:
            address: Memory address (16-bit)
            data: Exactly `block_size` bytes

        Raises:
            ValueError: If data is not exactly one block
            RadioProtocolMismatch: If the radio does not ACK
        """
        self._require_handshake()
        if len(data) != self._block_size:
            raise ValueError(
                f"Block data must be {self._block_size} bytes, got {len(data)}"
            )
        address &= ADDRESS_MASK

        cmd = bytes([CMD_WRITE, address >> 8, address & 0xFF, self._block_size]) + bytes(data)
        response = self.transport.send_receive(cmd, 1)
        if response[0] != ACK:
            raise RadioProtocolMismatch(
                f"Wrong write response at {address:04X} "
                f"(got 0x{response[0]:02X})"
            )

        logger.debug(f"Write block at {address:04X}: {len(data)} bytes")

    def read_memory(
        self,
        key_index: int,
        address: int,
        count: int,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Read `count` bytes starting at `address`, block by block.

        Each block is decrypted independently when `key_index >= 0`. The
        last block is read in full and truncated to fit `count`.

        Args:
            key_index: Crypt key index, or negative for raw data
            address: Start address (wraps at 0x10000)
            count: Number of bytes to return
            progress_cb: Optional callback(bytes_read, total)
        """
        if count < 0:
            raise ValueError(f"Count must not be negative, got {count}")
        if key_index >= 0:
            crypto.key_window(key_index)

        result = bytearray()
        while len(result) < count:
            block = self.read_block(address)
            result.extend(self.crypt(block, key_index))
            address = (address + self._block_size) & ADDRESS_MASK
            if progress_cb:
                progress_cb(min(len(result), count), count)

        logger.info(f"Read {count} bytes of memory")
        return bytes(result[:count])

    def write_memory(
        self,
        key_index: int,
        address: int,
        data: bytes,
        pad_byte: Optional[int] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Write `data` starting at `address`, block by block.

        Each chunk is encrypted independently when `key_index >= 0`. A final
        chunk shorter than the block size is rejected before anything is
        sent, unless `pad_byte` is given to fill it out.

        Args:
            key_index: Crypt key index, or negative for raw data
            address: Start address (wraps at 0x10000)
            data: Bytes to write
            pad_byte: Fill value for a short final chunk
            progress_cb: Optional callback(bytes_written, total)

        Raises:
            UnalignedWriteError: If data is not block aligned and pad_byte is None
            ValueError: If pad_byte is outside 0..255
        """
        remainder = len(data) % self._block_size
        if remainder and pad_byte is None:
            raise UnalignedWriteError(
                f"Data length {len(data)} is not a multiple of block size "
                f"{self._block_size}"
            )
        if pad_byte is not None and not 0 <= pad_byte <= 0xFF:
            raise ValueError(f"Pad byte must be 0..255, got {pad_byte}")
        if key_index >= 0:
            crypto.key_window(key_index)

        total = len(data)
        for offset in range(0, total, self._block_size):
            chunk = bytes(data[offset : offset + self._block_size])
            if len(chunk) < self._block_size:
                chunk += bytes([pad_byte]) * (self._block_size - len(chunk))
            self.write_block(address, self.crypt(chunk, key_index))
            address = (address + self._block_size) & ADDRESS_MASK
            if progress_cb:
                progress_cb(min(offset + self._block_size, total), total)

        logger.info(f"Wrote {total} bytes of memory")

    def crypt(self, data: bytes, key_index: int) -> bytes:
        """Apply the memory transform (no-op for negative key_index)."""
        return crypto.crypt(data, key_index)
