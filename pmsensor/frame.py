"""PMS5003 frame layout, validation and command encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

FRAME_SIZE = 32
START_BYTES = b"\x42\x4d"
DATA_LENGTH = 28
COMMAND_SIZE = 7

_LAYOUT = struct.Struct(">2s15H")


class FrameError(ValueError):
    """Raised when a frame is malformed or fails validation."""


class Command(IntEnum):
    """Command codes understood by the sensor."""

    CHANGE_MODE = 0xE1
    PASSIVE_READ = 0xE2
    SLEEP = 0xE4


@dataclass(frozen=True)
class Reading:
    """One decoded measurement frame."""

    frame_length: int
    pm1_cf: int
    pm2_5_cf: int
    pm10_cf: int
    pm1_atm: int
    pm2_5_atm: int
    pm10_atm: int
    gt0_3: int
    gt0_5: int
    gt1_0: int
    gt2_5: int
    gt5_0: int
    gt10: int
    reserved: int
    checksum: int
    raw: bytes = field(default=b"", repr=False, compare=False)

    @classmethod
    def from_bytes(cls, raw):
        """Decode a 32-byte frame without validating it."""
        raw = bytes(raw)
        if len(raw) != FRAME_SIZE:
            raise FrameError(f"Frame must be {FRAME_SIZE} bytes, got {len(raw)}")
        _, *values = _LAYOUT.unpack(raw)
        return cls(*values, raw=raw)


def checksum(data):
    """Return the 16-bit sum of all bytes in ``data``."""
    return sum(data) & 0xFFFF


def validate_frame(raw):
    """Check start bytes, length field and checksum; return the decoded reading."""
    raw = bytes(raw)
    if len(raw) != FRAME_SIZE:
        raise FrameError(f"Frame must be {FRAME_SIZE} bytes, got {len(raw)}")
    if raw[:2] != START_BYTES:
        raise FrameError(f"Invalid start bytes: {raw[:2].hex().upper()}")
    reading = Reading.from_bytes(raw)
    if reading.frame_length != DATA_LENGTH:
        raise FrameError(f"Invalid frame length: {reading.frame_length}")
    calculated = checksum(raw[:-2])
    if calculated != reading.checksum:
        raise FrameError(
            f"Checksum mismatch: calc=0x{calculated:04X}, recv=0x{reading.checksum:04X}"
        )
    return reading


def build_command(command, data_high=0, data_low=0):
    """Encode a 7-byte command frame."""
    for name, value in (("command", command), ("data_high", data_high), ("data_low", data_low)):
        if not 0 <= int(value) <= 0xFF:
            raise ValueError(f"{name} must fit in one byte, got {value}")
    head = START_BYTES + bytes((int(command), int(data_high), int(data_low)))
    return head + checksum(head).to_bytes(2, "big")


def format_buffer(data):
    """Render bytes as hex, sixteen per line, followed by a blank line."""
    parts = []
    for position, byte in enumerate(data, 1):
        parts.append(f"{byte:02X} ")
        if position % 16 == 0:
            parts.append("\n")
    parts.append("\n")
    return "".join(parts)


class FrameAssembler:
    """Collects bytes from a stream into complete frames."""

    def __init__(self):
        self._buffer = bytearray()

    @property
    def collected(self):
        """Number of bytes of the current partial frame."""
        return len(self._buffer)

    def reset(self):
        """Discard any partial frame."""
        self._buffer.clear()

    def feed(self, byte):
        """Add one byte; return the frame bytes once 32 have been gathered."""
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Not a byte value: {byte}")
        held = len(self._buffer)
        if held == 0:
            if byte == START_BYTES[0]:
                self._buffer.append(byte)
        elif held == 1:
            if byte == START_BYTES[1]:
                self._buffer.append(byte)
            else:
                self._buffer.clear()
        else:
            self._buffer.append(byte)
            if len(self._buffer) == FRAME_SIZE:
                frame = bytes(self._buffer)
                self._buffer.clear()
                return frame
        return None