"""Reading and decoding data from PMS5003 particulate matter sensors over a serial port."""

__version__ = "0.1.0"
__all__ = ["frame", "sensor", "cli"]