"""Core domain logic for the telecheck verification harness.

This package contains zero external dependencies and represents
the capture and verification logic of the application. The fake
receiver and other integrations are handled by the adapters package.
"""

from .channel import CaptureChannel
from .comparator import compare_messages, mask_fields, render_message
from .errors import (
    BindError,
    DecodeError,
    MismatchError,
    TelecheckError,
    VerificationTimeoutError,
)
from .expectations import (
    Expectation,
    ExpectationSet,
    log_entries_expectation,
    time_series_expectation,
    traffic_assertions_expectation,
)
from .models import (
    CapturedRequest,
    ExpectationStatus,
    Fixture,
    MismatchReport,
    ServiceKind,
    VerificationResult,
    VerificationState,
)
from .verifier import TelemetryVerifier

__all__ = [
    "BindError",
    "CaptureChannel",
    "CapturedRequest",
    "DecodeError",
    "Expectation",
    "ExpectationSet",
    "ExpectationStatus",
    "Fixture",
    "MismatchError",
    "MismatchReport",
    "ServiceKind",
    "TelecheckError",
    "TelemetryVerifier",
    "VerificationResult",
    "VerificationState",
    "VerificationTimeoutError",
    "compare_messages",
    "log_entries_expectation",
    "mask_fields",
    "render_message",
    "time_series_expectation",
    "traffic_assertions_expectation",
]
