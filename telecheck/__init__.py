"""Fake telemetry backend and verification harness for proxy telemetry."""

__version__ = "0.1.0"
