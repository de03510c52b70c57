"""
Auth request/response schemas. Passwords are capped at bcrypt's 72-byte input limit.
"""
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

BCRYPT_MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_CHARS = 8


def _within_bcrypt_limit(v: str) -> str:
    if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return v


Password = Annotated[str, AfterValidator(_within_bcrypt_limit)]


class RegisterRequest(BaseModel):
    email: EmailStr
    password: Annotated[Password, Field(min_length=MIN_PASSWORD_CHARS)]
    name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: Password


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    role: str
    plan: str
