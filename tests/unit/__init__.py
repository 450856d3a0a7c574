"""Unit tests for individual components in isolation.

Coverage:
    - chat/: Controller state machine with a scripted transport
    - client/: Configuration and event-stream parsing
    - models/: Pydantic validation of backend payloads

Uses in-memory fakes for the transport and session source.
"""
