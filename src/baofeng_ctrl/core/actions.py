"""
Core workflow actions for baofeng-ctrl.

Each action opens its own session, runs the handshake, does its work and
closes the port on every exit path. Results come back as OperationResult;
write gating happens before the port is opened.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Callable, Iterator

from baofeng_ctrl.protocol import (
    SerialTransport,
    DeviceSession,
    RadioTransportError,
)
from .config import SessionConfig
from .results import OperationResult, RadioTypeReport
from .safety import SafetyContext, require_write_permission

logger = logging.getLogger(__name__)

# Radio settings area used by the radio-type workflow
SETTINGS_ADDRESS = 0xF000
SETTINGS_SIZE = 0x1000
RADIO_TYPE_OFFSET = 0x255
STATUS_BLOCK_ADDRESS = 0xF240
STATUS_BYTE_OFFSET = 0x15

ProgressCallback = Callable[[int, int], None]


class _ListLogHandler(logging.Handler):
    """Capture log records into a list of formatted strings."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records = []
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


@contextmanager
def _capture_logs(logger_name: str = "baofeng_ctrl"):
    """Capture logs for core operations into a list."""
    target_logger = logging.getLogger(logger_name)
    handler = _ListLogHandler()
    previous_level = target_logger.level
    if previous_level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
        target_logger.setLevel(logging.INFO)
    target_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        target_logger.removeHandler(handler)
        target_logger.setLevel(previous_level)


def detect_serial_port() -> str:
    """
    Return the first serial port that looks like a programming cable.

    Raises:
        RadioTransportError: If no USB/COM port is present
    """
    import serial.tools.list_ports

    for port in serial.tools.list_ports.comports():
        if "USB" in port.device or "COM" in port.device:
            logger.info(f"Auto-detected port: {port.device}")
            return port.device
    raise RadioTransportError("No suitable serial port found.")


@contextmanager
def _open_session(config: SessionConfig, result: OperationResult) -> Iterator[DeviceSession]:
    """Open the port, run the handshake and yield the session."""
    port = config.port or detect_serial_port()
    result.port = port
    transport = SerialTransport(port, baudrate=config.baudrate, timeout=config.timeout)
    with DeviceSession(transport, block_size=config.block_size) as session:
        result.handshake = session.handshake()
        yield session


def _check_fill(result: OperationResult, data: bytes) -> None:
    if not data:
        return
    if data == b"\x00" * len(data):
        result.warnings.append("Data is all zeros (possible read failure)")
    elif data == b"\xFF" * len(data):
        result.warnings.append("Data is all 0xFF (blank/erased memory)")


def _record_failure(result: OperationResult, error: Exception) -> None:
    logger.exception(f"{result.operation} failed")
    result.fail(str(error))


def identify_radio(config: SessionConfig) -> OperationResult:
    """Run the handshake; the radio's answers land in result.handshake."""
    result = OperationResult(ok=True, operation="identify_radio", port=config.port or "")
    with _capture_logs() as logs:
        try:
            with _open_session(config, result):
                pass
        except Exception as e:
            _record_failure(result, e)
        result.logs = logs
    return result


def read_memory_dump(
    config: SessionConfig,
    address: int,
    count: int,
    key_index: int = -1,
    progress_cb: Optional[ProgressCallback] = None,
) -> OperationResult:
    """
    Read a memory region from the radio.

    Args:
        config: Session settings
        address: Start address
        count: Number of bytes
        key_index: Crypt key index, or -1 for raw data
        progress_cb: Optional progress callback(bytes_read, total)

    Returns:
        OperationResult with `data` and `sha256` filled on success
    """
    result = OperationResult(
        ok=True, operation="read_memory", port=config.port or "", address=address, length=count
    )
    with _capture_logs() as logs:
        try:
            with _open_session(config, result) as session:
                data = session.read_memory(key_index, address, count, progress_cb=progress_cb)
            result.data = data
            result.set_payload(data)
            _check_fill(result, data)
        except Exception as e:
            _record_failure(result, e)
        result.logs = logs
    return result


def read_single_block(config: SessionConfig, address: int) -> OperationResult:
    """Read one raw block into result.data."""
    result = OperationResult(
        ok=True, operation="read_block", port=config.port or "",
        address=address, length=config.block_size,
    )
    with _capture_logs() as logs:
        try:
            with _open_session(config, result) as session:
                result.data = session.read_block(address)
        except Exception as e:
            _record_failure(result, e)
        result.logs = logs
    return result


def write_memory_image(
    config: SessionConfig,
    address: int,
    data: bytes,
    safety_ctx: SafetyContext,
    key_index: int = -1,
    pad_byte: Optional[int] = None,
    verify: bool = True,
    progress_cb: Optional[ProgressCallback] = None,
) -> OperationResult:
    """
    Write a memory image to the radio.

    Safety context is enforced before the port is opened.

    Args:
        config: Session settings
        address: Start address
        data: Bytes to write
        safety_ctx: Safety context for gating
        key_index: Crypt key index, or -1 for raw data
        pad_byte: Fill value for a short final block (None rejects it)
        verify: Read the region back and compare
        progress_cb: Optional progress callback(written, total)

    Returns:
        OperationResult; `verified` is set when verify is requested

    Raises:
        WritePermissionError: If safety check fails
    """
    result = OperationResult(
        ok=True, operation="write_memory", port=config.port or "", address=address
    )
    result.set_payload(data)

    with _capture_logs() as logs:
        require_write_permission(
            safety_ctx,
            target_region=result.region,
            bytes_length=len(data),
        )

        if safety_ctx.simulate:
            result.simulated = True
            result.warnings.append("Simulation mode - no actual write performed")
            result.logs = logs
            return result

        try:
            with _open_session(config, result) as session:
                session.write_memory(
                    key_index, address, data, pad_byte=pad_byte, progress_cb=progress_cb
                )
                if verify:
                    readback = session.read_memory(key_index, address, len(data))
                    result.verified = readback == bytes(data)
                    if not result.verified:
                        result.fail("Readback verification failed")
        except Exception as e:
            _record_failure(result, e)
        result.logs = logs
    return result


def set_radio_type(
    config: SessionConfig,
    radio_type: Optional[int],
    safety_ctx: Optional[SafetyContext] = None,
) -> OperationResult:
    """
    Report the radio type digit and update it when it differs.

    Reads the 4 KiB settings area at 0xF000 raw. If `radio_type` (0..9)
    is given and the ASCII digit at offset 0x255 differs, the patched area
    is written back. Finally block 0xF240 is read and its byte 0x15
    reported in result.radio_type.

    Raises:
        ValueError: If radio_type is outside 0..9, or the block size does
            not divide the settings area
        WritePermissionError: If a type is requested and the safety check fails
    """
    if SETTINGS_SIZE % config.block_size:
        raise ValueError(
            f"Block size {config.block_size} does not divide the "
            f"0x{SETTINGS_SIZE:X}-byte settings area"
        )

    result = OperationResult(
        ok=True, operation="set_radio_type", port=config.port or "",
        address=SETTINGS_ADDRESS, length=SETTINGS_SIZE,
    )
    if radio_type is not None:
        if not 0 <= radio_type <= 9:
            raise ValueError(f"Radio type must be 0..9, got {radio_type}")
        require_write_permission(
            safety_ctx or SafetyContext(),
            target_region=result.region,
            bytes_length=SETTINGS_SIZE,
        )
    simulate = safety_ctx is not None and safety_ctx.simulate

    with _capture_logs() as logs:
        try:
            with _open_session(config, result) as session:
                settings = bytearray(session.read_memory(-1, SETTINGS_ADDRESS, SETTINGS_SIZE))
                previous = settings[RADIO_TYPE_OFFSET]
                logger.info(f"Radio type byte at 0x{RADIO_TYPE_OFFSET:03X}: {previous}")

                changed = False
                wanted = ord("0") + radio_type if radio_type is not None else None
                if wanted is not None and previous != wanted:
                    settings[RADIO_TYPE_OFFSET] = wanted
                    if simulate:
                        result.simulated = True
                        result.warnings.append("Simulation mode - no actual write performed")
                    else:
                        session.write_memory(-1, SETTINGS_ADDRESS, bytes(settings))
                        changed = True
                        logger.info(f"Radio type set to {chr(wanted)}")

                status = session.read_block(STATUS_BLOCK_ADDRESS)
                logger.info(
                    f"Block 0x{STATUS_BLOCK_ADDRESS:04X} byte 0x{STATUS_BYTE_OFFSET:02X}: "
                    f"{status[STATUS_BYTE_OFFSET]}"
                )
            result.radio_type = RadioTypeReport(
                previous=previous,
                changed=changed,
                status_byte=status[STATUS_BYTE_OFFSET],
            )
        except Exception as e:
            _record_failure(result, e)
        result.logs = logs
    return result
