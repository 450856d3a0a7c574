"""Liquidity Chat - converse with an AI assistant about token-liquidity analyses.

Combines httpx for REST and Server-Sent Events streaming, NiceGUI for the
chat interface, and Pydantic for data validation.

Components:
    - client: Backend API clients and the reply stream transport
    - chat: Session controller with streaming state machine
    - ui: Web interface for chat interactions
    - models: Backend payload schemas
"""

__version__ = "0.1.0"
