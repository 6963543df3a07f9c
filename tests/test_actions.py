"""Tests for core workflow actions against a scripted radio."""

import hashlib
from types import SimpleNamespace

import pytest

from baofeng_ctrl.core import actions
from baofeng_ctrl.core.actions import (
    RADIO_TYPE_OFFSET,
    SETTINGS_ADDRESS,
    SETTINGS_SIZE,
    STATUS_BLOCK_ADDRESS,
    STATUS_BYTE_OFFSET,
    detect_serial_port,
    identify_radio,
    read_memory_dump,
    read_single_block,
    set_radio_type,
    write_memory_image,
)
from baofeng_ctrl.core.config import SessionConfig
from baofeng_ctrl.core.safety import SafetyContext, WritePermissionError
from baofeng_ctrl.protocol import SerialTransport, RadioTransportError
from baofeng_ctrl.utils.crypto import crypt

from conftest import FakeSerial, block_response, handshake_responses


@pytest.fixture
def radio(monkeypatch):
    """Route every session opened by core actions to one FakeSerial."""
    ser = FakeSerial()
    ser.queue(handshake_responses())

    def make_transport(port, baudrate, timeout):
        return SerialTransport(port, baudrate=baudrate, timeout=timeout, ser=ser)

    monkeypatch.setattr(actions, "SerialTransport", make_transport)
    return ser


@pytest.fixture
def config():
    return SessionConfig(port="FAKE")


def _settings_image(type_char: bytes) -> bytes:
    image = bytearray(i & 0xFF for i in range(SETTINGS_SIZE))
    image[RADIO_TYPE_OFFSET] = type_char[0]
    return bytes(image)


def _queue_region(ser, address: int, data: bytes, block: int = 0x40) -> None:
    for offset in range(0, len(data), block):
        ser.queue(block_response((address + offset) & 0xFFFF, data[offset:offset + block]))


def test_identify_radio(radio, config):
    result = identify_radio(config)
    assert result.ok
    assert result.model == "UV-K6 BF-V1.02"
    assert result.port == "FAKE"
    assert not radio.is_open


def test_read_memory_dump(radio, config):
    data = bytes(range(0x80))
    _queue_region(radio, 0xF000, data)

    result = read_memory_dump(config, 0xF000, 0x80)

    assert result.ok
    assert result.data == data
    assert result.region == "0xF000-0xF07F"
    assert result.sha256 == hashlib.sha256(data).hexdigest()
    assert any("Read 128 bytes" in line for line in result.logs)


def test_read_memory_dump_decrypts(radio, config):
    raw = bytes(range(0x10, 0x50))
    _queue_region(radio, 0xF000, raw)

    result = read_memory_dump(config, 0xF000, 0x40, key_index=2)

    assert result.data == crypt(raw, 2)


def test_read_memory_dump_warns_on_erased(radio, config):
    _queue_region(radio, 0x0000, b"\xFF" * 0x40)
    result = read_memory_dump(config, 0x0000, 0x40)
    assert result.ok
    assert any("0xFF" in w for w in result.warnings)


def test_read_memory_dump_failure_closes_port(radio, config):
    radio.queue(b"\x52\xAA\xBB\x40" + bytes(0x40))

    result = read_memory_dump(config, 0xF000, 0x40)

    assert not result.ok
    assert "Wrong read response" in result.errors[0]
    assert not radio.is_open


def test_read_single_block(radio, config):
    payload = bytes(range(0x40))
    radio.queue(block_response(STATUS_BLOCK_ADDRESS, payload))

    result = read_single_block(config, STATUS_BLOCK_ADDRESS)

    assert result.ok
    assert result.data == payload
    assert radio.written[-1] == b"R\xF2\x40\x40"


class TestWriteMemoryImage:

    def test_requires_write_flag(self, radio, config):
        with pytest.raises(WritePermissionError):
            write_memory_image(config, 0xF000, bytes(0x40), SafetyContext())
        assert radio.written == []

    def test_wrong_token_rejected(self, radio, config):
        ctx = SafetyContext(write_enabled=True, confirmation_token="yes", interactive=False)
        with pytest.raises(WritePermissionError):
            write_memory_image(config, 0xF000, bytes(0x40), ctx)
        assert radio.written == []

    def test_simulation_sends_nothing(self, radio, config):
        ctx = SafetyContext(simulate=True)
        result = write_memory_image(config, 0xF000, bytes(0x40), ctx)
        assert result.ok
        assert result.simulated is True
        assert radio.written == []

    def test_write_and_verify(self, radio, config):
        data = bytes(range(0x20, 0xA0))
        radio.queue(b"\x06\x06")
        _queue_region(radio, 0x1000, crypt(data, 1))
        ctx = SafetyContext(write_enabled=True, confirmation_token="WRITE", interactive=False)

        result = write_memory_image(config, 0x1000, data, ctx, key_index=1)

        assert result.ok
        assert result.verified is True
        assert radio.written[4] == b"W\x10\x00\x40" + crypt(data[:0x40], 1)
        assert radio.written[5] == b"W\x10\x40\x40" + crypt(data[0x40:], 1)

    def test_verify_mismatch_reported(self, radio, config):
        radio.queue(b"\x06")
        _queue_region(radio, 0x1000, b"\x00" * 0x40)
        ctx = SafetyContext(write_enabled=True, confirmation_token="write", interactive=False)

        result = write_memory_image(config, 0x1000, b"\x01" * 0x40, ctx)

        assert not result.ok
        assert result.verified is False

    def test_unaligned_without_padding_fails(self, radio, config):
        ctx = SafetyContext(write_enabled=True, confirmation_token="WRITE", interactive=False)
        result = write_memory_image(config, 0x1000, bytes(0x41), ctx)
        assert not result.ok
        assert not any(w.startswith(b"W") for w in radio.written)


class TestSetRadioType:

    def test_report_only(self, radio, config):
        _queue_region(radio, SETTINGS_ADDRESS, _settings_image(b"3"))
        status = bytes(range(0x40))
        radio.queue(block_response(STATUS_BLOCK_ADDRESS, status))

        result = set_radio_type(config, None)

        assert result.ok
        assert result.radio_type.previous == ord("3")
        assert result.radio_type.changed is False
        assert result.radio_type.status_byte == status[STATUS_BYTE_OFFSET]
        assert not any(w.startswith(b"W") for w in radio.written)

    def test_matching_type_not_rewritten(self, radio, config):
        _queue_region(radio, SETTINGS_ADDRESS, _settings_image(b"5"))
        radio.queue(block_response(STATUS_BLOCK_ADDRESS, bytes(0x40)))
        ctx = SafetyContext(write_enabled=True, confirmation_token="WRITE", interactive=False)

        result = set_radio_type(config, 5, ctx)

        assert result.ok
        assert result.radio_type.changed is False

    def test_changed_type_written_back(self, radio, config):
        image = _settings_image(b"1")
        _queue_region(radio, SETTINGS_ADDRESS, image)
        radio.queue(b"\x06" * (SETTINGS_SIZE // 0x40))
        radio.queue(block_response(STATUS_BLOCK_ADDRESS, bytes(0x40)))
        ctx = SafetyContext(write_enabled=True, confirmation_token="WRITE", interactive=False)

        result = set_radio_type(config, 7, ctx)

        assert result.ok
        assert result.radio_type.changed is True
        writes = [w for w in radio.written if w.startswith(b"W")]
        assert len(writes) == SETTINGS_SIZE // 0x40
        expected = bytearray(image)
        expected[RADIO_TYPE_OFFSET] = ord("7")
        assert b"".join(w[4:] for w in writes) == bytes(expected)
        assert writes[0][:4] == b"W\xF0\x00\x40"

    def test_requires_permission_before_connecting(self, radio, config):
        with pytest.raises(WritePermissionError):
            set_radio_type(config, 2, SafetyContext())
        assert radio.written == []

    def test_rejects_out_of_range_type(self, radio, config):
        with pytest.raises(ValueError):
            set_radio_type(config, 10, SafetyContext(simulate=True))

    def test_block_size_must_divide_settings_area(self, radio):
        config = SessionConfig(port="FAKE", block_size=0x30)
        with pytest.raises(ValueError, match="does not divide"):
            set_radio_type(config, None)
        assert radio.written == []

    def test_simulated_change_sends_no_writes(self, radio, config):
        _queue_region(radio, SETTINGS_ADDRESS, _settings_image(b"1"))
        radio.queue(block_response(STATUS_BLOCK_ADDRESS, bytes(0x40)))

        result = set_radio_type(config, 4, SafetyContext(simulate=True))

        assert result.ok
        assert result.simulated
        assert result.radio_type.changed is False
        assert not any(w.startswith(b"W") for w in radio.written)


def test_detect_serial_port(monkeypatch):
    import serial.tools.list_ports

    ports = [SimpleNamespace(device="/dev/ttyS0"), SimpleNamespace(device="/dev/ttyUSB1")]
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: ports)
    assert detect_serial_port() == "/dev/ttyUSB1"


def test_detect_serial_port_none_found(monkeypatch):
    import serial.tools.list_ports

    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [])
    with pytest.raises(RadioTransportError):
        detect_serial_port()
