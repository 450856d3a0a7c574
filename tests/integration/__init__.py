"""Integration tests for components working together.

Coverage:
    - REST service wrappers with real HTTP requests
    - Reply stream transport over the real SSE parsing path
    - Full chat flow from session creation to a streamed reply

Requests are served by tests/fake_backend.py over httpx.ASGITransport.
"""
