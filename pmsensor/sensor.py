"""Serial-port access to a PMS5003 particulate sensor."""

from __future__ import annotations

import logging
import time

import serial

from .frame import (
    DATA_LENGTH,
    FRAME_SIZE,
    START_BYTES,
    Command,
    FrameAssembler,
    Reading,
    build_command,
    checksum,
    format_buffer,
    validate_frame,
)

SUPPORTED_BAUD_RATES = frozenset({9600, 19200, 38400, 57600, 115200})

log = logging.getLogger(__name__)


class SensorError(Exception):
    """Raised when the sensor cannot be opened, read or written."""


def validate_baud(baud):
    """Return ``baud`` if the serial port supports it, else raise."""
    if baud not in SUPPORTED_BAUD_RATES:
        raise SensorError(f"Unsupported baud rate: {baud}")
    return baud


def _open_serial(device, baud):
    return serial.Serial(port=device, baudrate=baud, timeout=0)


class PMS5003:
    """A PMS5003 sensor on a serial port."""

    header_timeout = 10.0
    poll_interval = 0.001
    idle_backoff = 0.1

    def __init__(self, device, baud=9600, port_factory=None):
        self.device = device
        self.baud = baud
        self._port_factory = port_factory or _open_serial
        self._port = None

    @property
    def is_open(self):
        return self._port is not None

    def open(self):
        """Open the serial port in raw mode."""
        validate_baud(self.baud)
        if self._port is not None:
            return
        try:
            self._port = self._port_factory(self.device, self.baud)
        except (OSError, serial.SerialException) as exc:
            raise SensorError(f"Failed to open serial port {self.device}: {exc}") from exc

    def close(self):
        """Close the serial port if it is open."""
        if self._port is not None:
            self._port.close()
            self._port = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _require_port(self):
        if self._port is None:
            raise SensorError("UART not initialized")
        return self._port

    def read_frame(self, timeout=5.0):
        """Wait up to ``timeout`` seconds for a complete, valid frame."""
        port = self._require_port()
        assembler = FrameAssembler()
        log.info("Waiting for frame...")
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                chunk = port.read(1)
            except (OSError, serial.SerialException) as exc:
                raise SensorError(f"read: {exc}") from exc
            if chunk:
                frame = assembler.feed(chunk[0])
                if frame is not None:
                    reading = validate_frame(frame)
                    log.info("Frame received and validated!\n%s", format_buffer(frame))
                    return reading
            else:
                time.sleep(self.poll_interval)
        raise SensorError(f"Timeout reading full frame ({assembler.collected} bytes collected)")

    def read_data(self):
        """Read one frame, reporting but not rejecting bad length or checksum."""
        port = self._require_port()
        log.info("Waiting for frame...")
        start = time.monotonic()
        synced = False
        while True:
            if time.monotonic() - start >= self.header_timeout:
                log.error("Timeout waiting for header")
                self.flush()
                self.reset()
                raise SensorError("Timeout waiting for header")
            try:
                chunk = port.read(1)
            except (OSError, serial.SerialException) as exc:
                log.error("read: %s", exc)
                continue
            if not chunk:
                log.debug("No data available")
                self.flush()
                time.sleep(self.idle_backoff)
                continue
            byte = chunk[0]
            if not synced and byte == START_BYTES[0]:
                synced = True
            elif synced and byte == START_BYTES[1]:
                break
            else:
                synced = False

        raw = bytearray(START_BYTES)
        while len(raw) < FRAME_SIZE:
            try:
                chunk = port.read(FRAME_SIZE - len(raw))
            except (OSError, serial.SerialException) as exc:
                raise SensorError(f"read: {exc}") from exc
            if not chunk:
                raise SensorError(f"Incomplete frame ({len(raw)} bytes read)")
            raw += chunk
        log.info("Read %d bytes\n%s", len(raw), format_buffer(raw))

        reading = Reading.from_bytes(raw)
        if reading.frame_length != DATA_LENGTH:
            log.warning("Invalid frame length: %d", reading.frame_length)
        calculated = checksum(raw[:-2])
        if calculated != reading.checksum:
            log.warning(
                "Checksum mismatch: calculated 0x%04X, received 0x%04X",
                calculated,
                reading.checksum,
            )
        self.flush()
        return reading

    def send_command(self, command, data_high=0, data_low=0):
        """Send a command frame and return the bytes sent."""
        port = self._require_port()
        frame = build_command(command, data_high, data_low)
        try:
            written = port.write(frame)
        except (OSError, serial.SerialException) as exc:
            # The sensor may still be waking; give it time and carry on.
            log.error("write: %s", exc)
            time.sleep(1.0)
            return frame
        if written is not None and written != len(frame):
            raise SensorError("Failed to write command to PMS5003")
        log.info(
            "Sent command: 0x%02X with data: 0x%02X 0x%02X (checksum: 0x%02X 0x%02X)",
            int(command),
            data_high,
            data_low,
            frame[5],
            frame[6],
        )
        return frame

    def set_active_mode(self):
        log.info("Active command")
        return self.send_command(Command.CHANGE_MODE, 0x00, 0x01)

    def set_passive_mode(self):
        log.info("Passive command")
        return self.send_command(Command.CHANGE_MODE, 0x00, 0x00)

    def request_frame(self):
        log.info("Request frame command")
        return self.send_command(Command.PASSIVE_READ, 0x00, 0x00)

    def sleep(self):
        log.info("Sleep command")
        return self.send_command(Command.SLEEP, 0x00, 0x00)

    def wake(self):
        log.info("Wake-up command")
        return self.send_command(Command.SLEEP, 0x00, 0x01)

    def flush(self):
        """Discard unread input."""
        port = self._require_port()
        log.info("Flushing UART")
        port.reset_input_buffer()

    def reset(self):
        """Close and reopen the serial port."""
        self.close()
        self.open()