"""Building blocks for crash tombstone reports: formatting, base64, time, signals and /proc sections."""

__version__ = "0.1.0"