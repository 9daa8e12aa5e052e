from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """Registration payload; the password arrives already hashed."""

    username: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    password_hash: str
    avatar_url: Optional[str] = None


class User(BaseModel):
    """Registered user with accumulated points and completed-meal streak."""

    id: int
    username: str
    email: str
    name: str
    password_hash: str
    points: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)  # lifetime completed meals, not consecutive days
    avatar_url: Optional[str] = None

    def to_public(self) -> "UserPublic":
        return UserPublic.model_validate(self.model_dump(exclude={"password_hash"}))


class UserPublic(BaseModel):
    """User as returned to clients (no password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    name: str
    points: int
    streak: int
    avatar_url: Optional[str] = None
