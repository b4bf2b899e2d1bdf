"""Fetch, verify, unpack and activate Zig toolchain releases."""

__version__ = "0.1.0"
