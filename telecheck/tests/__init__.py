"""Test suite for the telecheck verification harness.

Organized into four categories:

1. core/: Unit tests for capture, comparison and verification logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for the fake receiver, fixtures and replay client
   - Real HTTP over an ephemeral localhost port

3. integration/: End-to-end verification scenarios over HTTP

4. fakes/: Port implementations and sample telemetry for testing
"""
