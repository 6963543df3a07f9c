"""
baofeng-ctrl CLI

Command-line interface for reading and writing BF-family radio memory.
"""

import sys
import logging
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler
from rich.progress import Progress, BarColumn, TextColumn

from baofeng_ctrl.core.config import SessionConfig
from baofeng_ctrl.core.parsing import (
    parse_address as _parse_address_core,
    parse_count as _parse_count_core,
    parse_key_index as _parse_key_index_core,
)
from baofeng_ctrl.core.safety import (
    SafetyContext,
    WritePermissionError,
    CONFIRMATION_TOKEN,
)
from baofeng_ctrl.core.results import OperationResult
from baofeng_ctrl.core.actions import (
    identify_radio as core_identify_radio,
    read_memory_dump as core_read_memory,
    read_single_block as core_read_block,
    write_memory_image as core_write_memory,
    set_radio_type as core_set_radio_type,
)
from baofeng_ctrl.protocol import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, DEFAULT_BLOCK_SIZE
from baofeng_ctrl.utils.crypto import crypt as crypt_bytes

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger("baofeng_ctrl")

# Setup Rich console
console = Console()

app = typer.Typer(help="📻 baofeng-ctrl - BF radio memory programmer")

# Fill byte for a short final block; 0xFF is the erased value and passes through the crypt
WRITE_PAD_BYTE = 0xFF


def print_header(text: str) -> None:
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    console.print(f"❌ {text}", style="red")


def parse_address(value: str) -> int:
    """
    Parse a memory address from string.

    CLI wrapper around core.parsing.parse_address that converts
    ValueError to typer.BadParameter for proper CLI error handling.
    """
    try:
        return _parse_address_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def parse_count(value: str) -> int:
    """CLI wrapper around core.parsing.parse_count."""
    try:
        return _parse_count_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def parse_key_index(value: int) -> int:
    """CLI wrapper around core.parsing.parse_key_index."""
    try:
        return _parse_key_index_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logger.setLevel(logging.DEBUG)


def _make_config(port: Optional[str], baud: int, timeout: float, block_size: int) -> SessionConfig:
    try:
        return SessionConfig(port=port, baudrate=baud, timeout=timeout, block_size=block_size)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _build_safety_context(write_flag: bool, confirm_token: Optional[str], simulate: bool) -> SafetyContext:
    """
    Build the write gate for a CLI command.

    Supports three modes:
    1. Non-interactive (script): --confirm WRITE provided, no prompts
    2. Interactive (TTY): prompts user for typed confirmation
    3. Non-interactive without token: denied by the core gate
    """
    if confirm_token is not None:
        return SafetyContext(
            write_enabled=write_flag,
            confirmation_token=confirm_token,
            interactive=False,
            simulate=simulate,
        )

    def show_details(details: dict) -> None:
        console.print()
        console.print(Panel(
            f"[bold yellow]⚠️  WRITE CONFIRMATION REQUIRED[/bold yellow]\n\n"
            f"Target:        {details.get('target_region', 'Unknown')}\n"
            f"Bytes:         {details.get('bytes_length', 0):,}\n"
            f"\n[bold]Type '{CONFIRMATION_TOKEN}' to proceed, or anything else to abort:[/bold]",
            title="Radio Write Operation",
            expand=False,
        ))

    def prompt_confirmation(prompt_text: str) -> str:
        return typer.prompt("Confirm")

    return SafetyContext(
        write_enabled=write_flag,
        confirmation_token=None,
        interactive=sys.stdin.isatty(),
        simulate=simulate,
        prompt_confirmation=prompt_confirmation,
        show_details=show_details,
    )


def _report_permission_error(e: WritePermissionError) -> None:
    if "requires explicit permission" in e.reason:
        print_error("Write operation requires --write flag.")
        console.print("This is a safety measure to prevent accidental writes to your radio.")
        details = e.details
        if details:
            console.print(f"  Target:        {details.get('target_region', '')}")
            console.print(f"  Bytes:         {details.get('bytes_length', 0):,}")
    elif "Non-interactive" in e.reason:
        print_error("Non-interactive environment detected but no confirmation token provided.")
        console.print(f"[bold]For scripted use, provide:[/bold] --write --confirm {CONFIRMATION_TOKEN}")
    else:
        print_error(e.reason)


def _finish(result: OperationResult, json_output: bool) -> None:
    """Print warnings/errors of a result and exit non-zero on failure."""
    if json_output:
        console.print_json(json.dumps(result.to_dict(), default=str))
    for warn in result.warnings:
        print_warning(warn)
    if not result.ok:
        for err in result.errors:
            print_error(err)
        raise typer.Exit(code=1)


def _hexdump(data: bytes, base: int) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Address", style="cyan")
    table.add_column("Hex", style="green")
    table.add_column("ASCII", style="magenta")
    for offset in range(0, len(data), 16):
        row = data[offset:offset + 16]
        text = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in row)
        table.add_row(f"{(base + offset) & 0xFFFF:04X}", row.hex(" ").upper(), text)
    return table


@app.command()
def ports() -> None:
    """List available serial ports."""
    print_header("Available Serial Ports")

    import serial.tools.list_ports

    ports_list = list(serial.tools.list_ports.comports())

    if not ports_list:
        print_warning("No serial ports found")
        return

    table = Table(title="Serial Ports")
    table.add_column("Port", style="cyan")
    table.add_column("Device", style="magenta")
    table.add_column("Description", style="green")

    for port in ports_list:
        table.add_row(port.device, port.name or "-", port.description or "-")

    console.print(table)


@app.command()
def info(
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (auto-detect if omitted)"),
    baud: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Read/write timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    """Run the programming handshake and show what the radio reports."""
    _set_verbose(verbose)
    print_header("Radio Handshake")

    result = core_identify_radio(_make_config(port, baud, timeout, DEFAULT_BLOCK_SIZE))
    if result.ok:
        handshake = result.handshake
        table = Table(title="Radio Information")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Port", result.port)
        table.add_row("Model", handshake.model or "-")
        table.add_row("Firmware Info", handshake.firmware_info.hex(" ").upper())
        table.add_row("Program ACK", handshake.program_ack.hex().upper())
        table.add_row("SEND ACK", handshake.send_ack.hex().upper())
        console.print(table)
    _finish(result, json_output=False)


@app.command("read")
def read_memory(
    address: str = typer.Argument(..., help="Start address (e.g. 0xF000)"),
    count: str = typer.Argument(..., help="Number of bytes (e.g. 0x1000)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Save to file"),
    key: int = typer.Option(-1, "--key", "-k", help="Crypt key index (-1 = raw)"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (auto-detect if omitted)"),
    baud: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Read/write timeout in seconds"),
    block_size: int = typer.Option(DEFAULT_BLOCK_SIZE, "--block-size", help="Block size in bytes"),
    json_output: bool = typer.Option(False, "--json", help="Print result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    """Read a memory region from the radio."""
    _set_verbose(verbose)
    start = parse_address(address)
    length = parse_count(count)
    key_index = parse_key_index(key)
    config = _make_config(port, baud, timeout, block_size)

    print_header(f"Read Memory 0x{start:04X} (+{length:#x})")

    with Progress(
        TextColumn("[{task.description}]"),
        BarColumn(),
        TextColumn("[{task.percentage:.0f}%]"),
        console=console,
    ) as progress:
        task = progress.add_task("Reading...", total=max(length, 1))
        result = core_read_memory(
            config,
            start,
            length,
            key_index=key_index,
            progress_cb=lambda done, total: progress.update(task, completed=done),
        )

    if result.ok:
        data = result.data
        if output:
            output_path = Path(output)
            output_path.write_bytes(data)
            print_success(f"Saved {len(data):,} bytes to {output_path}")
        elif not json_output:
            console.print(_hexdump(data, start))
        console.print(result.to_summary())
    _finish(result, json_output)


@app.command("read-block")
def read_block(
    address: str = typer.Argument(..., help="Block address (e.g. 0xF240)"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (auto-detect if omitted)"),
    baud: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Read/write timeout in seconds"),
    block_size: int = typer.Option(DEFAULT_BLOCK_SIZE, "--block-size", help="Block size in bytes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    """Read and hex-dump a single raw block."""
    _set_verbose(verbose)
    start = parse_address(address)
    print_header(f"Read Block 0x{start:04X}")

    result = core_read_block(_make_config(port, baud, timeout, block_size), start)
    if result.ok:
        console.print(_hexdump(result.data, start))
    _finish(result, json_output=False)


@app.command("write")
def write_memory(
    address: str = typer.Argument(..., help="Start address (e.g. 0xF000)"),
    image: str = typer.Argument(..., help="Binary file to write"),
    key: int = typer.Option(-1, "--key", "-k", help="Crypt key index (-1 = raw)"),
    pad: bool = typer.Option(False, "--pad", help="Pad a short final block with 0xFF"),
    verify: bool = typer.Option(True, "--verify/--no-verify", help="Read back and compare"),
    write: bool = typer.Option(False, "--write", help="Enable writing to the radio"),
    confirm: Optional[str] = typer.Option(None, "--confirm", help=f"Non-interactive confirmation token ({CONFIRMATION_TOKEN})"),
    simulate: bool = typer.Option(False, "--simulate", help="Dry run, nothing is written"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (auto-detect if omitted)"),
    baud: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Read/write timeout in seconds"),
    block_size: int = typer.Option(DEFAULT_BLOCK_SIZE, "--block-size", help="Block size in bytes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    """Write a binary image to radio memory."""
    _set_verbose(verbose)
    start = parse_address(address)
    key_index = parse_key_index(key)
    config = _make_config(port, baud, timeout, block_size)

    image_path = Path(image)
    if not image_path.exists():
        print_error(f"File not found: {image_path}")
        raise typer.Exit(code=1)
    data = image_path.read_bytes()

    print_header(f"Write Memory 0x{start:04X} ({len(data):,} bytes)")

    ctx = _build_safety_context(write, confirm, simulate)
    try:
        with Progress(
            TextColumn("[{task.description}]"),
            BarColumn(),
            TextColumn("[{task.percentage:.0f}%]"),
            console=console,
        ) as progress:
            task = progress.add_task("Writing...", total=max(len(data), 1))
            result = core_write_memory(
                config,
                start,
                data,
                ctx,
                key_index=key_index,
                pad_byte=WRITE_PAD_BYTE if pad else None,
                verify=verify,
                progress_cb=lambda done, total: progress.update(task, completed=done),
            )
    except WritePermissionError as e:
        _report_permission_error(e)
        raise typer.Abort()

    console.print(result.to_summary())
    if result.ok:
        print_success("Write complete")
    _finish(result, json_output=False)


@app.command("set-radio-type")
def set_radio_type(
    radio_type: Optional[int] = typer.Argument(None, help="Radio type digit 0-9 (omit to only report)"),
    write: bool = typer.Option(False, "--write", help="Enable writing to the radio"),
    confirm: Optional[str] = typer.Option(None, "--confirm", help=f"Non-interactive confirmation token ({CONFIRMATION_TOKEN})"),
    simulate: bool = typer.Option(False, "--simulate", help="Dry run, nothing is written"),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial port (auto-detect if omitted)"),
    baud: int = typer.Option(DEFAULT_BAUDRATE, "--baud", help="Baud rate"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Read/write timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    """Show the radio type digit and change it when requested."""
    _set_verbose(verbose)
    if radio_type is not None and not 0 <= radio_type <= 9:
        raise typer.BadParameter(f"Radio type must be 0-9, got {radio_type}")

    print_header("Radio Type")
    ctx = _build_safety_context(write, confirm, simulate)
    try:
        result = core_set_radio_type(
            _make_config(port, baud, timeout, DEFAULT_BLOCK_SIZE),
            radio_type,
            ctx,
        )
    except WritePermissionError as e:
        _report_permission_error(e)
        raise typer.Abort()

    if result.ok:
        report = result.radio_type
        table = Table(title="Radio Type")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Type byte", f"{report.previous} ({report.previous_char!r})")
        table.add_row("Changed", str(report.changed))
        table.add_row("Status byte", str(report.status_byte))
        console.print(table)
    _finish(result, json_output=False)


@app.command("crypt")
def crypt_file(
    input_file: str = typer.Argument(..., help="Input binary file"),
    output: str = typer.Argument(..., help="Output binary file"),
    key: int = typer.Option(..., "--key", "-k", help="Crypt key index"),
) -> None:
    """Apply the memory transform to a file offline (encrypts and decrypts)."""
    key_index = parse_key_index(key)
    in_path = Path(input_file)
    if not in_path.exists():
        print_error(f"File not found: {in_path}")
        raise typer.Exit(code=1)

    data = in_path.read_bytes()
    Path(output).write_bytes(crypt_bytes(data, key_index))
    print_success(f"Transformed {len(data):,} bytes with key {key_index} -> {output}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"\n[red bold]Fatal error:[/red bold] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
