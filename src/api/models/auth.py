"""Auth request and response models."""

from pydantic import BaseModel

from taskboard.models.identity import AuthResult


class AuthSignUpRequest(BaseModel):
    """Request model for sign up."""

    email: str
    password: str
    display_name: str | None = None


class AuthSignInRequest(BaseModel):
    """Request model for sign in."""

    email: str
    password: str


class AuthResponse(BaseModel):
    """Response model for auth operations."""

    user_id: str | None = None
    email: str | None = None
    display_name: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        identity = result.identity
        return cls(
            user_id=identity.id if identity else None,
            email=identity.email if identity else None,
            display_name=identity.display_name if identity else None,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_at=result.expires_at,
        )
