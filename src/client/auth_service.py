"""E-mail OTP sign-in against the backend.

Successful sign-ins store the issued bearer token in the injected
TokenStore; nothing is kept at module level.
"""

import logging

from src.client.api import ApiClient
from src.client.credentials import TokenStore
from src.models.auth import CurrentUserResponse, LoginResponse, OtpSentResponse, User

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, api: ApiClient, tokens: TokenStore) -> None:
        self._api = api
        self._tokens = tokens

    async def send_otp(self, email: str) -> OtpSentResponse:
        data = await self._api.request("POST", "/api/auth/send-otp", json={"email": email})
        return OtpSentResponse.model_validate(data)

    async def verify_otp(self, email: str, otp: str) -> LoginResponse:
        """Exchange a one-time code for a bearer token and store it."""
        data = await self._api.request(
            "POST", "/api/auth/verify-otp", json={"email": email, "otp": otp.strip()}
        )
        return self._store(LoginResponse.model_validate(data))

    async def sign_in(self, email: str, password: str) -> LoginResponse:
        data = await self._api.request(
            "POST", "/api/auth/signin", json={"email": email, "password": password}
        )
        return self._store(LoginResponse.model_validate(data))

    async def current_user(self) -> User:
        data = await self._api.request("GET", "/api/auth/me")
        return CurrentUserResponse.model_validate(data).user

    def logout(self) -> None:
        self._tokens.clear()

    @property
    def is_authenticated(self) -> bool:
        return self._tokens.is_authenticated

    def _store(self, response: LoginResponse) -> LoginResponse:
        if response.access_token:
            self._tokens.set_token(response.access_token)
            logger.info(f"Signed in as {response.user.email}")
        return response
