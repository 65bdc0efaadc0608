"""Fake implementations and sample data for testing.

- FakeCaptureSource: Scripted in-memory capture source for the verifier
- stackdriver: Sample telemetry messages a proxy would report
"""

from .capture import FakeCaptureSource

__all__ = ["FakeCaptureSource"]
