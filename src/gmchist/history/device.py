from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import serial

from .config import FLASH_SIZE
from .records import Timestamp

logger = logging.getLogger(__name__)

CMD_GET_VERSION = b"<GETVER>>"
CMD_GET_SERIAL = b"<GETSERIAL>>"
CMD_GET_DATETIME = b"<GETDATETIME>>"
CMD_GET_TEMPERATURE = b"<GETTEMP>>"
CMD_GET_VOLTAGE = b"<GETVOLT>>"
CMD_POWER_ON = b"<POWERON>>"
CMD_POWER_OFF = b"<POWEROFF>>"
CMD_SET_DATETIME = b"<SETDATETIME"
CMD_READ_HISTORY = b"<SPIR"
CMD_TAIL = b">>"

VERSION_LEN = 14
SERIAL_LEN = 7
DATETIME_LEN = 7  # YY MM DD HH MM SS 0xAA
TEMPERATURE_LEN = 4  # integer part, fraction, sign (1 = negative), 0xAA
VOLTAGE_LEN = 1  # tenths of a volt


class DeviceError(RuntimeError):
    """The detector did not answer a command the way the protocol describes."""


@dataclass
class SerialSettings:
    port: str
    baudrate: int = 115200
    timeout: float = 2.0


def history_command(address: int, length: int) -> bytes:
    """``<SPIR`` + 24-bit address + 16-bit length, both big-endian, + ``>>``."""
    if not 0 <= address <= 0xFFFFFF:
        raise ValueError(f"History address out of range: {address:#x}")
    if not 0 < length <= 0xFFFF:
        raise ValueError(f"History length out of range: {length}")
    return CMD_READ_HISTORY + address.to_bytes(3, "big") + length.to_bytes(2, "big") + CMD_TAIL


def set_datetime_command(when: datetime) -> bytes:
    fields = bytes([when.year % 100, when.month, when.day, when.hour, when.minute, when.second])
    return CMD_SET_DATETIME + fields + CMD_TAIL


class GmcDevice:
    """Command client for a GQ GMC style detector on a serial port."""

    def __init__(self, settings: SerialSettings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self._sleep = sleep
        self._serial = serial.Serial(
            port=settings.port,
            baudrate=settings.baudrate,
            timeout=settings.timeout,
        )

    def __enter__(self) -> "GmcDevice":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    def command(self, payload: bytes, expect: int = 0) -> bytes:
        self._serial.reset_input_buffer()
        self._serial.write(payload)
        self._serial.flush()
        if expect <= 0:
            return b""
        data = bytearray()
        while len(data) < expect:
            chunk = self._serial.read(expect - len(data))
            if not chunk:
                break
            data.extend(chunk)
        if len(data) < expect:
            raise DeviceError(
                f"Short reply to {payload[:12]!r}: expected {expect} bytes, got {len(data)}"
            )
        return bytes(data)

    def get_version(self) -> str:
        return self.command(CMD_GET_VERSION, VERSION_LEN).decode("ascii", errors="ignore").strip()

    def get_serial(self) -> str:
        return self.command(CMD_GET_SERIAL, SERIAL_LEN).hex().upper()

    def get_datetime(self) -> Timestamp:
        return Timestamp.from_bytes(self.command(CMD_GET_DATETIME, DATETIME_LEN))

    def get_temperature(self) -> float:
        whole, fraction, sign = self.command(CMD_GET_TEMPERATURE, TEMPERATURE_LEN)[:3]
        return float(f"{'-' if sign == 1 else ''}{whole}.{fraction}")

    def get_voltage(self) -> float:
        return self.command(CMD_GET_VOLTAGE, VOLTAGE_LEN)[0] / 10.0

    def set_datetime(self, when: Optional[datetime] = None) -> None:
        when = when or datetime.now()
        self.command(set_datetime_command(when), expect=1)
        logger.info("Device clock set to %s", when.isoformat(timespec="seconds"))

    def power_on(self) -> None:
        self.command(CMD_POWER_ON)

    def power_off(self) -> None:
        self.command(CMD_POWER_OFF)

    def read_history(
        self,
        flash_size: int = FLASH_SIZE,
        block_size: int = 2048,
        block_delay: float = 0.1,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> bytes:
        """Download the full history flash, one ``SPIR`` request per block."""
        if flash_size % block_size:
            raise ValueError("flash_size must be a multiple of block_size")
        image = bytearray()
        total_blocks = flash_size // block_size
        for block in range(total_blocks):
            address = block * block_size
            image.extend(self.command(history_command(address, block_size), block_size))
            logger.info("Retrieved block %d of %d (address %06X)", block + 1, total_blocks, address)
            if progress is not None:
                progress(block + 1, total_blocks)
            if block_delay > 0 and block + 1 < total_blocks:
                self._sleep(block_delay)
        return bytes(image)

    def close(self) -> None:
        try:
            self._serial.close()
        except serial.SerialException:
            logger.debug("Error closing %s", self.settings.port, exc_info=True)
