"""
Serial Transport Layer

Handles low-level serial communication with BF-family radios that speak
the "PROGRAMBFNORMALU" programming protocol.

This module provides:
- Serial port initialization and configuration
- A single request/response primitive (send_receive)
- Timeout and short-read detection
"""

import time
import logging
from typing import Optional

try:
    import serial
except ImportError:
    raise ImportError("PySerial required: pip install pyserial")

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200
DEFAULT_TIMEOUT = 1.0


class RadioTransportError(Exception):
    """Base exception for transport layer errors"""
    pass


class RadioShortRead(RadioTransportError):
    """Stream returned no data before the expected length arrived"""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Short read [{expected} {received}]")


class RadioTimeout(RadioTransportError):
    """Read or write deadline elapsed"""
    pass


class RadioProtocolMismatch(RadioTransportError):
    """Response header or ACK did not match the request"""
    pass


class SerialTransport:
    """
    Timeout-bounded serial transport.

    Every exchange is one write followed by a read of an exact number of
    bytes. Nothing is retried: a failed call is a failed operation.

    Example:
        with SerialTransport(port="/dev/ttyUSB0") as transport:
            ack = transport.send_receive(b"PROGRAMBFNORMALU", 1)
    """

    def __init__(
        self,
        port: Optional[str] = None,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
        ser=None,
    ):
        """
        Initialize transport layer.

        Args:
            port: Serial port (e.g., "/dev/ttyUSB0", "COM3")
            baudrate: Serial baud rate (default 115200)
            timeout: Read/write timeout in seconds (default 1.0)
            ser: Already-open serial object to use instead of opening `port`
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = ser

    @property
    def is_open(self) -> bool:
        return bool(self.ser is not None and self.ser.is_open)

    def open(self) -> None:
        """
        Open serial port and configure for radio communication.

        Raises:
            RadioTransportError: If port cannot be opened
        """
        if self.is_open:
            return
        if not self.port:
            raise RadioTransportError("No serial port given")

        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=8,
                parity='N',
                stopbits=1,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            # Clear any junk in buffer
            self.ser.reset_input_buffer()

            logger.debug(
                f"Opened {self.port} at {self.baudrate} bps "
                f"(timeout={self.timeout}s)"
            )
        except serial.SerialException as e:
            raise RadioTransportError(f"Cannot open port {self.port}: {e}")

    def close(self) -> None:
        """Close serial port."""
        if self.ser is not None and self.ser.is_open:
            self.ser.close()
            logger.debug(f"Closed {self.port or 'serial port'}")

    def __enter__(self) -> "SerialTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def send_raw(self, data: bytes) -> None:
        """
        Send raw bytes to radio.

        Raises:
            RadioTimeout: If the write deadline elapses
            RadioTransportError: If write fails or is incomplete
        """
        if not self.is_open:
            raise RadioTransportError("Serial port not open")

        try:
            written = self.ser.write(data)
        except serial.SerialTimeoutException as e:
            raise RadioTimeout(f"Write timed out: {e}")
        except serial.SerialException as e:
            raise RadioTransportError(f"Write error: {e}")

        if written is not None and written != len(data):
            raise RadioTransportError(
                f"Incomplete write: sent {written}/{len(data)} bytes"
            )
        logger.debug(f">>> {data.hex().upper()}")

    def recv_exact(self, length: int) -> bytes:
        """
        Receive exactly `length` bytes under a single deadline.

        Partial reads are accumulated. The deadline is armed once for the
        whole receive and is not reset when data arrives.

        Raises:
            RadioShortRead: An underlying read returned nothing early
            RadioTimeout: The deadline elapsed before `length` bytes arrived
        """
        if not self.is_open:
            raise RadioTransportError("Serial port not open")

        buffer = bytearray()
        deadline = time.monotonic() + self.timeout
        original_timeout = self.ser.timeout
        rearmed = False
        try:
            while len(buffer) < length:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RadioTimeout(
                        f"Read timed out ({len(buffer)}/{length} bytes)"
                    )
                # Assigning the timeout reconfigures a real port
                if buffer or original_timeout != self.timeout:
                    self.ser.timeout = remaining
                    rearmed = True
                try:
                    chunk = self.ser.read(length - len(buffer))
                except serial.SerialException as e:
                    raise RadioTransportError(f"Read error: {e}")

                if not chunk:
                    if time.monotonic() >= deadline:
                        raise RadioTimeout(
                            f"Read timed out ({len(buffer)}/{length} bytes)"
                        )
                    raise RadioShortRead(length, len(buffer))
                buffer.extend(chunk)
        finally:
            if rearmed:
                self.ser.timeout = original_timeout

        logger.debug(f"<<< {bytes(buffer).hex().upper()}")
        return bytes(buffer)

    def send_receive(self, data: bytes, expected_len: int) -> bytes:
        """
        Write `data` in full, then read exactly `expected_len` bytes.

        Args:
            data: Outbound bytes
            expected_len: Number of response bytes to wait for

        Returns:
            The complete response
        """
        self.send_raw(data)
        return self.recv_exact(expected_len)

