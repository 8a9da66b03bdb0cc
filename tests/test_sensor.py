import struct

import pytest

from pmsensor.frame import Command, FrameError, build_command, checksum
from pmsensor.sensor import PMS5003, SUPPORTED_BAUD_RATES, SensorError, validate_baud

VALUES = (5, 7, 9, 4, 6, 8, 1000, 300, 120, 40, 8, 2)


def make_frame(values=VALUES, length=28, good_checksum=True):
    body = b"BM" + struct.pack(">14H", length, *values, 0)
    value = checksum(body) if good_checksum else (checksum(body) + 1) & 0xFFFF
    return body + struct.pack(">H", value)


class FakePort:
    def __init__(self, data=b"", short_write=False):
        self.buffer = bytearray(data)
        self.written = []
        self.flushes = 0
        self.closed = False
        self.short_write = short_write

    def read(self, size=1):
        chunk = bytes(self.buffer[:size])
        del self.buffer[:size]
        return chunk

    def write(self, data):
        self.written.append(bytes(data))
        return len(data) - 1 if self.short_write else len(data)

    def reset_input_buffer(self):
        self.flushes += 1
        self.buffer.clear()

    def close(self):
        self.closed = True


def make_sensor(port, baud=9600):
    calls = []

    def factory(device, rate):
        calls.append((device, rate))
        return port

    return PMS5003("/dev/ttyTEST0", baud, factory), calls


@pytest.mark.parametrize("baud", sorted(SUPPORTED_BAUD_RATES))
def test_validate_baud_accepts_supported(baud):
    assert validate_baud(baud) == baud


def test_validate_baud_rejects_unsupported():
    with pytest.raises(SensorError, match="Unsupported baud rate"):
        validate_baud(1234)


def test_open_with_bad_baud_does_not_touch_port():
    sensor, calls = make_sensor(FakePort(), baud=1234)
    with pytest.raises(SensorError):
        sensor.open()
    assert calls == []


def test_open_failure_becomes_sensor_error():
    def factory(device, rate):
        raise OSError("no such device")

    sensor = PMS5003("/dev/ttyTEST0", 9600, factory)
    with pytest.raises(SensorError, match="Failed to open"):
        sensor.open()
    assert not sensor.is_open


def test_context_manager_opens_and_closes():
    port = FakePort()
    sensor, calls = make_sensor(port)
    with sensor as opened:
        assert opened.is_open
    assert calls == [("/dev/ttyTEST0", 9600)]
    assert port.closed
    assert not sensor.is_open


@pytest.mark.parametrize(
    "action",
    [lambda s: s.read_frame(0.01), lambda s: s.read_data(), lambda s: s.flush(), lambda s: s.wake()],
)
def test_operations_require_open_port(action):
    port = FakePort(make_frame())
    sensor, calls = make_sensor(port)
    with pytest.raises(SensorError) as excinfo:
        action(sensor)
    assert "not initialized" in str(excinfo.value)
    assert sensor.is_open is False
    assert calls == []
    assert port.written == []
    assert port.flushes == 0


@pytest.mark.parametrize(
    "method, expected",
    [
        ("set_active_mode", (Command.CHANGE_MODE, 0, 1)),
        ("set_passive_mode", (Command.CHANGE_MODE, 0, 0)),
        ("request_frame", (Command.PASSIVE_READ, 0, 0)),
        ("sleep", (Command.SLEEP, 0, 0)),
        ("wake", (Command.SLEEP, 0, 1)),
    ],
)
def test_mode_commands_write_expected_frames(method, expected):
    port = FakePort()
    sensor, _ = make_sensor(port)
    with sensor:
        sent = getattr(sensor, method)()
    assert port.written == [build_command(*expected)]
    assert sent == port.written[0]


def test_short_write_raises():
    sensor, _ = make_sensor(FakePort(short_write=True))
    with sensor, pytest.raises(SensorError):
        sensor.send_command(Command.SLEEP, 0, 1)


def test_read_frame_finds_frame_in_noise():
    frame = make_frame()
    sensor, _ = make_sensor(FakePort(b"\x00\x13" + frame))
    with sensor:
        reading = sensor.read_frame(2.0)
    assert reading.raw == frame
    assert reading.gt0_3 == VALUES[6]


def test_read_frame_bad_checksum_raises():
    sensor, _ = make_sensor(FakePort(make_frame(good_checksum=False)))
    with sensor, pytest.raises(FrameError, match="Checksum"):
        sensor.read_frame(2.0)


def test_read_frame_bad_length_raises():
    sensor, _ = make_sensor(FakePort(make_frame(length=30)))
    with sensor, pytest.raises(FrameError, match="length"):
        sensor.read_frame(2.0)


def test_read_frame_times_out():
    sensor, _ = make_sensor(FakePort(b"BM\x00"))
    with sensor, pytest.raises(SensorError, match="Timeout"):
        sensor.read_frame(0.02)


def test_read_data_returns_reading_and_flushes():
    frame = make_frame()
    port = FakePort(b"\x01" + frame)
    sensor, _ = make_sensor(port)
    with sensor:
        reading = sensor.read_data()
    assert reading.raw == frame
    assert port.flushes == 1


def test_read_data_tolerates_bad_checksum():
    frame = make_frame(good_checksum=False)
    sensor, _ = make_sensor(FakePort(frame))
    with sensor:
        reading = sensor.read_data()
    assert reading.checksum != checksum(frame[:-2])
    assert reading.pm10_atm == VALUES[5]


def test_read_data_truncated_frame_raises():
    sensor, _ = make_sensor(FakePort(make_frame()[:20]))
    with sensor, pytest.raises(SensorError, match="Incomplete"):
        sensor.read_data()


def test_read_data_header_timeout_resets_port():
    port = FakePort()
    sensor, calls = make_sensor(port)
    sensor.header_timeout = 0.0
    with sensor, pytest.raises(SensorError, match="Timeout waiting for header"):
        sensor.read_data()
    assert len(calls) == 2
    assert port.flushes == 1


def test_reset_reopens_port():
    ports = []
    frame = make_frame()

    def factory(device, rate):
        ports.append(FakePort(frame))
        return ports[-1]

    sensor = PMS5003("/dev/ttyTEST0", 9600, factory)
    sensor.open()
    sensor.reset()
    assert sensor.is_open
    assert len(ports) == 2
    assert ports[0].closed and not ports[1].closed

    reading = sensor.read_frame(2.0)
    assert reading.raw == frame
    assert ports[0].buffer == bytearray(frame)
    assert ports[1].buffer == bytearray()

    sensor.close()
    assert not sensor.is_open
    assert ports[1].closed