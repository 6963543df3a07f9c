"""
Safety context and write gating for radio memory writes.

Every path that sends 'W' blocks to a radio goes through
require_write_permission first.
"""

from dataclasses import dataclass
from typing import Optional, Callable

# Confirmation token required for non-interactive writes
CONFIRMATION_TOKEN = "WRITE"


class WritePermissionError(Exception):
    """
    Raised when a write operation is not permitted.

    Attributes:
        reason: Human-readable explanation of why write was denied
        details: Additional context (region, length, etc.)
    """
    def __init__(self, reason: str, details: Optional[dict] = None):
        self.reason = reason
        self.details = details or {}
        super().__init__(reason)


@dataclass
class SafetyContext:
    """
    Safety context for write operations.

    Attributes:
        write_enabled: Whether the --write flag was provided
        confirmation_token: For non-interactive mode, must match CONFIRMATION_TOKEN
        interactive: Whether the caller can prompt for confirmation
        simulate: Dry run; permission is granted but nothing is written
    """
    write_enabled: bool = False
    confirmation_token: Optional[str] = None
    interactive: bool = True
    simulate: bool = False

    # The CLI sets these to Rich/typer prompt functions
    prompt_confirmation: Optional[Callable[[str], str]] = None
    show_details: Optional[Callable[[dict], None]] = None

    def to_details_dict(self, target_region: str = "", bytes_length: int = 0) -> dict:
        return {
            "target_region": target_region,
            "bytes_length": bytes_length,
            "simulate": self.simulate,
        }


def require_write_permission(
    ctx: SafetyContext,
    target_region: str = "",
    bytes_length: int = 0,
) -> None:
    """
    Enforce write permission rules.

    Rules enforced:
    1. Simulation mode: always allowed (no actual write)
    2. Write not enabled: denied
    3. Target region unknown: denied
    4. Confirmation token present: must match exactly
    5. Interactive: user must type the token at the prompt

    Raises:
        WritePermissionError: If write is not permitted
    """
    details = ctx.to_details_dict(target_region, bytes_length)

    if ctx.simulate:
        return

    if not ctx.write_enabled:
        raise WritePermissionError(
            "Write operation requires explicit permission. Use the --write flag.",
            details=details,
        )

    if not target_region:
        raise WritePermissionError(
            "Target region is unknown. Provide an explicit address.",
            details=details,
        )

    if ctx.confirmation_token is not None:
        if ctx.confirmation_token.strip().upper() != CONFIRMATION_TOKEN:
            raise WritePermissionError(
                f"Confirmation token mismatch. Expected '{CONFIRMATION_TOKEN}'.",
                details=details,
            )
        return

    if not ctx.interactive:
        raise WritePermissionError(
            "Non-interactive mode requires confirmation_token.",
            details=details,
        )

    if ctx.show_details:
        ctx.show_details(details)

    if not ctx.prompt_confirmation:
        raise WritePermissionError(
            "Interactive confirmation required but no prompt handler set. "
            "Provide confirmation_token for non-interactive mode.",
            details=details,
        )

    user_input = ctx.prompt_confirmation(
        f"Type '{CONFIRMATION_TOKEN}' to proceed, or anything else to abort"
    )
    if user_input.strip().upper() != CONFIRMATION_TOKEN:
        raise WritePermissionError(
            "Confirmation failed. Write aborted by user.",
            details=details,
        )

