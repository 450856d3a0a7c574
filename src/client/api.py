"""Thin httpx wrapper for the backend REST API.

Attaches the bearer credential when one is present, decodes JSON or text
bodies, and turns failures into ApiError.
"""

import logging
from typing import Any

import httpx

from src.client.config import ClientConfig
from src.client.credentials import CredentialProvider
from src.client.errors import ApiError

logger = logging.getLogger(__name__)


class ApiClient:
    """Issues authenticated-when-possible requests against the backend.

    A new AsyncClient is opened per request, so the object holds no
    connection state and is safe to share between UI handlers.
    """

    def __init__(
        self,
        config: ClientConfig,
        credentials: CredentialProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            config: Client configuration with base URL and timeouts.
            credentials: Source of the optional bearer token.
            transport: Optional httpx transport, used by tests to route
                requests to an in-process backend.
        """
        self._config = config
        self._credentials = credentials
        self._transport = transport

    @property
    def credentials(self) -> CredentialProvider:
        return self._credentials

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded body.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL, e.g. "/api/history".
            json: Optional JSON body.
            params: Optional query parameters; None values are dropped.

        Returns:
            Parsed JSON for JSON responses, otherwise the response text.

        Raises:
            ApiError: On connection failure or a non-2xx status.
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        async with httpx.AsyncClient(
            base_url=self._config.api_base_url,
            timeout=self._config.request_timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method, path, json=json, params=params, headers=self._headers()
                )
            except httpx.RequestError as e:
                logger.error(f"{method} {path} failed: {e}")
                raise ApiError(f"Connection failed: {e}") from e

        if "application/json" in response.headers.get("content-type", ""):
            data = response.json()
        else:
            data = response.text

        if response.is_success:
            return data

        if response.status_code == 401:
            logger.info("Backend rejected credential, clearing stored token")
            self._credentials.clear()

        message = "An error occurred"
        errors: list = []
        if isinstance(data, dict):
            message = data.get("message") or data.get("detail") or message
            errors = data.get("errors") or []
        elif data:
            message = data
        logger.warning(f"{method} {path} returned {response.status_code}: {message}")
        raise ApiError(str(message), status_code=response.status_code, errors=errors)
