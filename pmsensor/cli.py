"""Command-line reader: wake the sensor, take one reading, put it to sleep."""

from __future__ import annotations

import argparse
import logging
import sys
import time

from .frame import FrameError, format_buffer
from .sensor import PMS5003, SensorError

_UNIT = "µg/m³"


def format_reading(reading):
    """Render a reading as labelled lines."""
    lines = [
        "Parsed PMS5003 Data:",
        f"Frame length: {reading.frame_length}",
        f"PM1.0 CF=1:  {reading.pm1_cf} {_UNIT}",
        f"PM2.5 CF=1:  {reading.pm2_5_cf} {_UNIT}",
        f"PM10  CF=1:  {reading.pm10_cf} {_UNIT}",
        f"PM1.0 ATM:   {reading.pm1_atm} {_UNIT}",
        f"PM2.5 ATM:   {reading.pm2_5_atm} {_UNIT}",
        f"PM10  ATM:   {reading.pm10_atm} {_UNIT}",
        f">0.3µm:      {reading.gt0_3}",
        f">0.5µm:      {reading.gt0_5}",
        f">1.0µm:      {reading.gt1_0}",
        f">2.5µm:      {reading.gt2_5}",
        f">5.0µm:      {reading.gt5_0}",
        f">10µm:       {reading.gt10}",
        f"Checksum:    0x{reading.checksum:04X}",
    ]
    return "\n".join(lines) + "\n"


def format_raw(raw):
    """Render raw frame bytes under a heading."""
    return "Raw Data:\n" + format_buffer(raw)


def read_with_retries(sensor, retries=5, timeout=5.0, delay=1.0):
    """Try to read a frame, resetting and waking the sensor after each failure."""
    for attempt in range(1, retries + 1):
        try:
            return sensor.read_frame(timeout)
        except (FrameError, SensorError) as exc:
            print(
                f"Failed to read data from PMS5003, retrying... (attempt = {attempt}): {exc}",
                file=sys.stderr,
            )
            time.sleep(delay)
            sensor.reset()
            sensor.wake()
            time.sleep(delay)
            sensor.flush()
    return None


def main(argv=None):
    parser = argparse.ArgumentParser(prog="pms-read", description="Read one PMS5003 measurement.")
    parser.add_argument("device", help="serial device, e.g. /dev/ttyUSB0")
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    sensor = PMS5003(args.device, 9600)
    try:
        sensor.open()
    except SensorError as exc:
        print(f"Failed to initialize PMS5003: {exc}", file=sys.stderr)
        return 1

    try:
        sensor.wake()
        time.sleep(1.0)
        sensor.set_active_mode()
        time.sleep(1.0)
        sensor.flush()

        reading = read_with_retries(sensor)
        if reading is not None:
            print(format_reading(reading))
            print(format_raw(reading.raw))
            print("Valid frame received!")

        sensor.sleep()
        time.sleep(1.0)
    except SensorError as exc:
        print(f"PMS5003 error: {exc}", file=sys.stderr)
        return 1
    finally:
        sensor.close()
    return 0