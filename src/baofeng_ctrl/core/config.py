"""
Connection settings shared by the CLI and core actions.
"""

from dataclasses import dataclass
from typing import Optional

from baofeng_ctrl.protocol import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_BLOCK_SIZE


@dataclass
class SessionConfig:
    """
    Settings for one programming session.

    Attributes:
        port: Serial port path; None means auto-detect
        baudrate: Serial baud rate
        timeout: Read/write deadline in seconds
        block_size: Bytes per block read/write
    """
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    timeout: float = DEFAULT_TIMEOUT
    block_size: int = DEFAULT_BLOCK_SIZE

    def __post_init__(self):
        if self.baudrate <= 0:
            raise ValueError(f"Baud rate must be positive, got {self.baudrate}")
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")
        if not 0 < self.block_size <= 0xFF:
            raise ValueError(f"Block size must be 1..255, got {self.block_size}")
