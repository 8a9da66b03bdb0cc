# pmsensor

Read particulate matter measurements from a Plantower PMS5003 sensor
connected to a serial port.

## Installation

```
pip install .
```

## Command line

```
pms-read /dev/ttyUSB0
```

The command opens the port at 9600 baud. It wakes the sensor, switches it to
active mode, flushes the input and waits up to five seconds for a frame. It
tries up to five times. After each failure it reports the attempt on standard
error, reopens the port, wakes the sensor again and flushes the input. When a
valid frame arrives, the command prints the decoded values and the raw bytes
as hex. It then puts the sensor back to sleep and closes the port. Progress
messages go to the log at INFO level.

The exit status is 1 when the port cannot be opened or a serial error stops
the run. Otherwise it is 0, even when no valid frame arrived.

## Library

```python
from pmsensor.sensor import PMS5003

with PMS5003("/dev/ttyUSB0", 9600) as sensor:
    sensor.wake()
    sensor.set_active_mode()
    sensor.flush()
    reading = sensor.read_frame(5.0)
    print(reading.pm2_5_atm)
    sensor.sleep()
```

`PMS5003` opens the port when it is used as a context manager, or when you
call `open()`. It also offers these methods:

- `read_frame(timeout)` waits for a complete frame and validates it. It raises
  `FrameError` when the start bytes, the length field or the checksum are
  wrong. It raises `SensorError` when no full frame arrives within `timeout`
  seconds.
- `read_data()` waits up to ten seconds for the start bytes and then reads the
  rest of the frame. A bad length or checksum is logged as a warning, and the
  reading is still returned. If the start bytes do not arrive in time, the
  method flushes and reopens the port, then raises `SensorError`.
- `send_command(command, data_high, data_low)` sends a command frame.
- `set_active_mode()`, `set_passive_mode()`, `request_frame()`, `sleep()` and
  `wake()` send the matching sensor commands.
- `flush()` discards unread input.
- `reset()` closes and reopens the port.

`SensorError` also covers these cases: the port cannot be opened, a read
fails, a write is incomplete, or a method is called before the port is open.
`open()` accepts only the baud rates 9600, 19200, 38400, 57600 and 115200.
`validate_baud` applies the same check on its own.

A `Reading` has the fields `frame_length`, `pm1_cf`, `pm2_5_cf`, `pm10_cf`,
`pm1_atm`, `pm2_5_atm`, `pm10_atm`, `gt0_3`, `gt0_5`, `gt1_0`, `gt2_5`,
`gt5_0`, `gt10`, `reserved`, `checksum` and `raw`. The `raw` field holds the
frame bytes.

The `pmsensor.frame` module works without any hardware:

- `Reading.from_bytes` decodes a 32-byte frame without checking it.
- `validate_frame` checks the start bytes, the length field and the checksum.
- `checksum` computes the 16-bit byte sum.
- `FrameAssembler` builds frames from a byte stream, one byte at a time.
- `build_command` encodes the 7-byte command frames that the sensor accepts,
  using the `Command` codes.
- `format_buffer` renders bytes as hex, sixteen per line.

`pmsensor.cli` provides `format_reading`, `format_raw` and `read_with_retries`
for use in your own scripts.

## What it does not do

The package takes single readings. It does not sample on a schedule, store
measurements or average them over time. The `pms-read` command always uses
9600 baud.

## Tests

```
pip install .[test]
pytest
```