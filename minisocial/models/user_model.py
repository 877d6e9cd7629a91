from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional


class SignupRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("username", "email", "password", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        # blank fields are reported as missing, not as a malformed email
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("email", "password", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AuthResponse(BaseModel):
    id: str
    username: str
    email: EmailStr
    token: str
