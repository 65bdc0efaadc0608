"""External adapters for the telecheck verification harness.

This package contains all integrations with the outside world (HTTP
servers, HTTP clients, fixture files) and provides implementations of
the core port interfaces.

Adapter Organization:

- receiver/: Fake telemetry backend capturing what the proxy sends
- fixtures.py: Loading expected messages from JSON files
- replay.py: Client sending fixture payloads to a running receiver
"""
