"""Shared fakes for tests that talk to the detector over pyserial."""
from __future__ import annotations

import pytest

from gmchist.history.device import (
    CMD_GET_DATETIME,
    CMD_GET_SERIAL,
    CMD_GET_TEMPERATURE,
    CMD_GET_VERSION,
    CMD_GET_VOLTAGE,
)


class FakePort:
    def __init__(self, responder):
        self._responder = responder
        self._pending = b""
        self.written: list[bytes] = []
        self.closed = False

    def reset_input_buffer(self) -> None:
        self._pending = b""

    def write(self, data: bytes) -> None:
        self.written.append(bytes(data))
        self._pending = self._responder(bytes(data))

    def flush(self) -> None:
        pass

    def read(self, size: int) -> bytes:
        chunk, self._pending = self._pending[:size], self._pending[size:]
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeSerialModule:
    def __init__(self, responder):
        self.SerialException = RuntimeError
        self.port = FakePort(responder)
        self.kwargs: dict = {}

    def Serial(self, **kwargs):
        self.kwargs = kwargs
        return self.port


def flash_responder(data: bytes) -> bytes:
    if data.startswith(b"<SPIR"):
        address = int.from_bytes(data[5:8], "big")
        length = int.from_bytes(data[8:10], "big")
        return bytes((address + i) % 256 for i in range(length))
    if data.startswith(b"<SETDATETIME"):
        return b"\xAA"
    replies = {
        CMD_GET_VERSION: b"GMC-320Re 4.22",
        CMD_GET_SERIAL: b"\xf4\x88\x00\x12\x34\x56\x78",
        CMD_GET_DATETIME: bytes([26, 10, 19, 8, 30, 15, 0xAA]),
        CMD_GET_TEMPERATURE: bytes([23, 5, 0, 0xAA]),
        CMD_GET_VOLTAGE: bytes([42]),
    }
    return replies.get(data, b"")


@pytest.fixture
def fake_serial(monkeypatch):
    module = FakeSerialModule(flash_responder)
    monkeypatch.setattr("gmchist.history.device.serial", module)
    return module


@pytest.fixture
def serial_with(monkeypatch):
    """Install a fake serial module whose port answers with ``responder``."""

    def install(responder) -> FakeSerialModule:
        module = FakeSerialModule(responder)
        monkeypatch.setattr("gmchist.history.device.serial", module)
        return module

    return install
