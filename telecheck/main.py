"""Composition root for the telecheck verification harness.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Run modes:
- serve: run the fake receiver and log every captured request
- verify: run the fake receiver and verify the configured fixtures arrive
- replay: send the configured fixtures to a running receiver
"""

import asyncio
import logging
import sys

from telecheck.adapters.fixtures import load_fixture
from telecheck.adapters.receiver.http_server import FakeTelemetryReceiver
from telecheck.adapters.replay import TelemetryReplayClient
from telecheck.config import Settings, load_settings
from telecheck.core.channel import CaptureChannel
from telecheck.core.expectations import (
    Expectation,
    log_entries_expectation,
    time_series_expectation,
    traffic_assertions_expectation,
)
from telecheck.core.verifier import TelemetryVerifier

logger = logging.getLogger(__name__)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_expectations(settings: Settings) -> list[Expectation]:
    """Build expectations for every configured fixture file.

    Raises:
        OSError: If a fixture file cannot be read.
        ValueError: If a fixture file is invalid or none is configured.
    """
    expectations: list[Expectation] = []
    if settings.client_metric_fixture:
        expectations.append(
            time_series_expectation(
                "client metrics",
                load_fixture("client request count", settings.client_metric_fixture),
            )
        )
    if settings.server_metric_fixture:
        expectations.append(
            time_series_expectation(
                "server metrics",
                load_fixture("server request count", settings.server_metric_fixture),
            )
        )
    if settings.access_log_fixture:
        expectations.append(
            log_entries_expectation(
                "logs", load_fixture("server access log", settings.access_log_fixture)
            )
        )
    if settings.traffic_assertions_fixture:
        expectations.append(
            traffic_assertions_expectation(
                "edges",
                load_fixture("traffic assertions", settings.traffic_assertions_fixture),
            )
        )
    if not expectations:
        raise ValueError("verify mode needs at least one fixture file configured")
    return expectations


async def _log_captures(channel: CaptureChannel, poll_interval: float) -> None:
    """Log every request captured on a channel until cancelled."""
    while True:
        event = await channel.next_event(poll_interval)
        logger.info(
            f"Received {event.kind.value} {event.method} request #{event.sequence} "
            f"({len(event.payload)} top-level field(s))"
        )


async def _run_serve(settings: Settings) -> int:
    async with FakeTelemetryReceiver(
        host=settings.receiver_host, port=settings.receiver_port
    ) as receiver:
        logger.info(f"Serving fake telemetry backend at {receiver.url}")
        await asyncio.gather(
            *(
                _log_captures(channel, settings.poll_interval_seconds)
                for channel in receiver.channels.values()
            )
        )
    return 0


async def _run_verify(settings: Settings) -> int:
    expectations = build_expectations(settings)
    async with FakeTelemetryReceiver(
        host=settings.receiver_host, port=settings.receiver_port
    ) as receiver:
        verifier = TelemetryVerifier(
            receiver.channels,
            timeout_seconds=settings.verify_timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
        )
        result = await verifier.verify(expectations)
    await asyncio.to_thread(print, result.describe())
    return 0 if result.passed else 1


async def _run_replay(settings: Settings) -> int:
    async with TelemetryReplayClient(settings.replay_target_url) as client:
        for name, path in (
            ("client request count", settings.client_metric_fixture),
            ("server request count", settings.server_metric_fixture),
        ):
            if path:
                await client.create_time_series(
                    settings.replay_project, load_fixture(name, path)
                )
        if settings.access_log_fixture:
            await client.write_log_entries(
                load_fixture("server access log", settings.access_log_fixture)
            )
        if settings.traffic_assertions_fixture:
            await client.report_traffic_assertions(
                load_fixture("traffic assertions", settings.traffic_assertions_fixture)
            )
    logger.info(f"Replayed fixtures to {settings.replay_target_url}")
    return 0


async def bootstrap(settings: Settings | None = None) -> int:
    """Load configuration, wire adapters, and run the selected mode.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Select and run the run mode

    Returns:
        Process exit code.
    """
    # Step 1: Load configuration
    if settings is None:
        settings = load_settings()

    # Step 2: Configure logging
    configure_logging("DEBUG" if settings.debug else settings.log_level, settings.log_format)
    logger.info(f"Starting telecheck in {settings.run_mode} mode...")

    # Step 3: Select run mode
    if settings.run_mode == "serve":
        return await _run_serve(settings)
    if settings.run_mode == "verify":
        return await _run_verify(settings)
    if settings.run_mode == "replay":
        return await _run_replay(settings)

    logger.error(f"Unknown run mode: {settings.run_mode}")
    return 1


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Successful shutdown or verification passed
        1: Verification failed or fatal error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    try:
        exit_code = asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
