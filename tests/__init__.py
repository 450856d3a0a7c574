"""Test package for Liquidity Chat.

Structure:
    - unit/: Controller state machine, schemas, config and SSE parsing
    - integration/: Real httpx clients against an in-process fake backend
    - fake_backend.py: FastAPI stand-in for the analysis backend

Integration tests route requests through httpx.ASGITransport, so no
network or external service is needed. Leverages pytest with pytest-check
for soft assertions.
"""
