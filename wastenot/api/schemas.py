"""Request bodies for the JSON API."""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$", max_length=255)
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    username: str
    password: str


class AvatarUpdateRequest(BaseModel):
    avatar_url: Optional[str] = None


class JoinActivityRequest(BaseModel):
    user_id: int
