from __future__ import annotations

from datetime import datetime

import pytest

from gmchist.history.device import (
    CMD_POWER_OFF,
    CMD_POWER_ON,
    DeviceError,
    GmcDevice,
    SerialSettings,
    history_command,
    set_datetime_command,
)


def test_history_command_layout():
    assert history_command(0x000800, 2048) == b"<SPIR\x00\x08\x00\x08\x00>>"
    with pytest.raises(ValueError):
        history_command(0x1000000, 16)
    with pytest.raises(ValueError):
        history_command(0, 0)


def test_set_datetime_command_layout():
    assert set_datetime_command(datetime(2026, 10, 19, 8, 30, 15)) == b"<SETDATETIME\x1a\x0a\x13\x08\x1e\x0f>>"


def test_read_history_requests_each_block(fake_serial):
    sleeps: list[float] = []
    progress: list[tuple[int, int]] = []
    device = GmcDevice(SerialSettings(port="/dev/ttyFAKE"), sleep=sleeps.append)

    image = device.read_history(flash_size=8, block_size=4, block_delay=0.1, progress=lambda *p: progress.append(p))

    assert image == bytes(range(8))
    assert fake_serial.port.written == [history_command(0, 4), history_command(4, 4)]
    assert sleeps == [0.1]
    assert progress == [(1, 2), (2, 2)]
    assert fake_serial.kwargs["port"] == "/dev/ttyFAKE"


def test_identity_and_clock_queries(fake_serial):
    with GmcDevice(SerialSettings(port="/dev/ttyFAKE")) as device:
        assert device.get_version() == "GMC-320Re 4.22"
        assert device.get_serial() == "F4880012345678"
        assert device.get_datetime().format() == "19/Oct/26 08:30:15"
        device.set_datetime()
    assert fake_serial.port.closed


def test_temperature_and_voltage(fake_serial):
    device = GmcDevice(SerialSettings(port="/dev/ttyFAKE"))

    assert device.get_temperature() == 23.5
    assert device.get_voltage() == pytest.approx(4.2)


def test_negative_temperature(serial_with):
    serial_with(lambda data: bytes([3, 7, 1, 0xAA]))

    assert GmcDevice(SerialSettings(port="/dev/ttyFAKE")).get_temperature() == -3.7


def test_power_commands_expect_no_reply(fake_serial):
    device = GmcDevice(SerialSettings(port="/dev/ttyFAKE"))

    device.power_off()
    device.power_on()

    assert fake_serial.port.written == [CMD_POWER_OFF, CMD_POWER_ON]
    assert CMD_POWER_ON == b"<POWERON>>"
    assert CMD_POWER_OFF == b"<POWEROFF>>"


def test_short_reply_raises(serial_with):
    serial_with(lambda data: b"\x01\x02")
    device = GmcDevice(SerialSettings(port="/dev/ttyFAKE"))

    with pytest.raises(DeviceError):
        device.get_version()
    with pytest.raises(DeviceError):
        device.read_history(flash_size=8, block_size=4, block_delay=0)
