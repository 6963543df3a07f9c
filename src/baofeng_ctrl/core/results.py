"""
Result objects for core operations.

A result describes one programming session: which port it ran on, the
memory window it touched, what the radio answered to the handshake and
the bytes that moved.
"""

import hashlib
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from baofeng_ctrl.protocol import HandshakeInfo


@dataclass(frozen=True)
class RadioTypeReport:
    """Radio-type workflow outcome."""
    previous: int
    changed: bool
    status_byte: int

    @property
    def previous_char(self) -> str:
        return chr(self.previous) if 0x20 <= self.previous < 0x7F else "?"


@dataclass
class OperationResult:
    """
    Outcome of a core operation.

    Attributes:
        ok: Whether the operation completed successfully
        operation: Name of the operation (e.g., "read_memory", "set_radio_type")
        port: Serial port the session ran on
        address: First memory address touched, None for handshake-only runs
        length: Number of bytes in the memory window
        data: Bytes read from the radio (reads only)
        handshake: Radio responses to the programming handshake
        sha256: Hash of the bytes read or written
        verified: Read-back comparison outcome, None when not checked
        simulated: Write was gated in dry-run mode and nothing was sent
        radio_type: Radio-type workflow report
        warnings: Non-blocking issues encountered
        errors: Blocking errors that caused failure
        logs: Captured log lines from the operation
    """
    ok: bool
    operation: str
    port: str = ""
    address: Optional[int] = None
    length: int = 0
    data: Optional[bytes] = None
    handshake: Optional[HandshakeInfo] = None
    sha256: str = ""
    verified: Optional[bool] = None
    simulated: bool = False
    radio_type: Optional[RadioTypeReport] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)

    @property
    def region(self) -> str:
        """Memory window as "0xSTART-0xEND" (end inclusive, wrapping at 64K)."""
        if self.address is None:
            return ""
        if self.length <= 0:
            return f"0x{self.address:04X}"
        end = (self.address + self.length - 1) & 0xFFFF
        return f"0x{self.address:04X}-0x{end:04X}"

    @property
    def model(self) -> str:
        return self.handshake.model if self.handshake else ""

    def set_payload(self, payload: bytes) -> None:
        """Record hash and length of the transferred bytes."""
        self.sha256 = hashlib.sha256(payload).hexdigest()
        self.length = len(payload)

    def fail(self, message: str) -> None:
        self.errors.append(message)
        self.ok = False

    def to_summary(self) -> str:
        status = "SUCCESS" if self.ok else "FAILED"
        lines = [f"[{status}] {self.operation}"]
        if self.port:
            lines.append(f"  Port: {self.port}")
        if self.model:
            lines.append(f"  Radio: {self.model}")
        if self.region:
            lines.append(f"  Region: {self.region} ({self.length:,} bytes)")
        if self.sha256:
            lines.append(f"  sha256: {self.sha256[:16]}...")
        if self.verified is not None:
            lines.append(f"  Verified: {'yes' if self.verified else 'NO'}")
        if self.simulated:
            lines.append("  Simulated: nothing written")
        for label, items in (("Warnings", self.warnings), ("Errors", self.errors)):
            if items:
                lines.append(f"  {label}:")
                lines.extend(f"    - {item}" for item in items)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; byte strings are hex-encoded."""
        handshake = None
        if self.handshake is not None:
            handshake = {
                "model": self.handshake.model,
                "program_ack": self.handshake.program_ack.hex(),
                "firmware_info": self.handshake.firmware_info.hex(),
                "send_ack": self.handshake.send_ack.hex(),
            }
        radio_type = None
        if self.radio_type is not None:
            radio_type = {
                "previous": self.radio_type.previous,
                "changed": self.radio_type.changed,
                "status_byte": self.radio_type.status_byte,
            }
        return {
            "ok": self.ok,
            "operation": self.operation,
            "port": self.port,
            "region": self.region,
            "length": self.length,
            "data": self.data.hex() if self.data is not None else None,
            "handshake": handshake,
            "sha256": self.sha256,
            "verified": self.verified,
            "simulated": self.simulated,
            "radio_type": radio_type,
            "warnings": self.warnings,
            "errors": self.errors,
            "logs": self.logs,
        }
