"""Pydantic schemas for user endpoints.

Request fields are optional so that missing values reach the field
validators and come back as localized validation errors.
"""

from pydantic import BaseModel, ConfigDict, Field


class UserCreateRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class UserUpdateRequest(BaseModel):
    username: str | None = None
    image: str | None = None  # base64


class PasswordResetRequest(BaseModel):
    email: str | None = None


class PasswordUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str | None = None
    password_reset_token: str | None = Field(default=None, alias="passwordResetToken")


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    image: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserPageResponse(BaseModel):
    content: list[UserResponse]
    page: int
    size: int
    total_pages: int = Field(serialization_alias="totalPages")
