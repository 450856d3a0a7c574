"""Pydantic models for the backend's e-mail OTP sign-in flow."""

from pydantic import BaseModel

from src.models.schemas import CamelModel


class User(CamelModel):
    id: str
    email: str
    is_email_verified: bool = False


class LoginResponse(BaseModel):
    """Response after a successful sign-in.

    Attributes:
        access_token: Bearer token for subsequent requests.
        user: The signed-in user.
        message: Backend status message.
    """

    access_token: str
    user: User
    message: str = ""


class OtpSentResponse(BaseModel):
    message: str
    email: str


class CurrentUserResponse(CamelModel):
    user: User
