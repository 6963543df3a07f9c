"""
Core module for baofeng-ctrl.

This module provides the single source of truth for:
- Session settings (config.py)
- Write gating / confirmation (safety.py)
- Address, count and key parsing (parsing.py)
- Result objects (results.py)
- Read/write/identify workflows (actions.py)

The CLI calls into this module rather than driving the protocol itself.
"""

from .config import SessionConfig
from .safety import (
    SafetyContext,
    require_write_permission,
    WritePermissionError,
    CONFIRMATION_TOKEN,
)
from .parsing import parse_int_value, parse_address, parse_count, parse_key_index
from .results import OperationResult, RadioTypeReport
from .actions import (
    detect_serial_port,
    identify_radio,
    read_memory_dump,
    read_single_block,
    write_memory_image,
    set_radio_type,
)

__all__ = [
    # Config
    "SessionConfig",
    # Safety
    "SafetyContext",
    "require_write_permission",
    "WritePermissionError",
    "CONFIRMATION_TOKEN",
    # Parsing
    "parse_int_value",
    "parse_address",
    "parse_count",
    "parse_key_index",
    # Results
    "OperationResult",
    "RadioTypeReport",
    # Actions
    "detect_serial_port",
    "identify_radio",
    "read_memory_dump",
    "read_single_block",
    "write_memory_image",
    "set_radio_type",
]
