from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from app.schema.sql import UserRole, UserStatus

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class IdTokenRequest(BaseModel):
  """Firebase ID token issued to the client after sign-in."""

  id_token: StrictStr = Field(min_length=1, alias="idToken")
  model_config = ConfigDict(populate_by_name=True)


class SignupRequest(IdTokenRequest):
  full_name: StrictStr = Field(min_length=1, max_length=200)
  school: StrictStr = Field(min_length=1, max_length=200)
  teacher: StrictStr = Field(min_length=1, max_length=200)

  @field_validator("full_name", "school", "teacher")
  @classmethod
  def strip_required(cls, value: str) -> str:
    value = value.strip()
    if not value:
      raise ValueError("must not be blank")
    return value


class ProfileUpdateRequest(BaseModel):
  full_name: StrictStr | None = Field(default=None, min_length=1, max_length=200)
  school: StrictStr | None = Field(default=None, max_length=200)
  teacher: StrictStr | None = Field(default=None, max_length=200)
  profile_image_url: StrictStr | None = Field(default=None, max_length=2048)
  model_config = ConfigDict(extra="forbid")


class BeltUpdateRequest(BaseModel):
  curriculum_id: uuid.UUID | None


class ApproveUserRequest(BaseModel):
  role: UserRole = UserRole.STUDENT


class AdminUserUpdateRequest(BaseModel):
  full_name: StrictStr | None = Field(default=None, max_length=200)
  school: StrictStr | None = Field(default=None, max_length=200)
  teacher: StrictStr | None = Field(default=None, max_length=200)
  role: UserRole | None = None
  current_belt_id: uuid.UUID | None = None
  model_config = ConfigDict(extra="forbid")


class VideoSaveRequest(BaseModel):
  title: StrictStr = Field(max_length=300)
  video_url: StrictStr = Field(max_length=2048)
  description: StrictStr | None = None
  thumbnail_url: StrictStr | None = Field(default=None, max_length=2048)
  duration_seconds: int | None = Field(default=None, ge=0)
  is_published: bool = True
  recorded: StrictStr | None = Field(default=None, max_length=100)
  category_ids: list[uuid.UUID] = Field(default_factory=list)
  performer_ids: list[uuid.UUID] = Field(default_factory=list)
  curriculum_ids: list[uuid.UUID] = Field(default_factory=list)


class CategoryRequest(BaseModel):
  name: StrictStr = Field(min_length=1, max_length=100)
  color: StrictStr = Field(default="#6b7280", pattern=HEX_COLOR_PATTERN)
  description: StrictStr | None = None


class PerformerRequest(BaseModel):
  name: StrictStr = Field(min_length=1, max_length=200)
  bio: StrictStr | None = None


class CurriculumRequest(BaseModel):
  name: StrictStr = Field(min_length=1, max_length=100)
  color: StrictStr = Field(pattern=HEX_COLOR_PATTERN)
  description: StrictStr | None = None
  display_order: int | None = Field(default=None, ge=0)


class CurriculumOrder(BaseModel):
  id: uuid.UUID
  display_order: int = Field(ge=0)


class CurriculumReorderRequest(BaseModel):
  orders: list[CurriculumOrder] = Field(min_length=1)


class SendMessageRequest(BaseModel):
  """`recipient_id` is a user id or the literal "admin"."""

  recipient_id: StrictStr = Field(min_length=1)
  message: StrictStr = Field(min_length=1, max_length=5000)


class AdminNotificationRequest(BaseModel):
  message: StrictStr = Field(min_length=1, max_length=5000)
  recipient_id: uuid.UUID | None = None
  broadcast: bool = False


class UserListQuery(BaseModel):
  page: int = Field(default=1, ge=1)
  limit: int = Field(default=20, ge=1, le=100)
  email: str | None = None
  status: UserStatus | None = None
  role: UserRole | None = None
  sort_by: Literal["created_at", "email", "status", "full_name", "role"] = "created_at"
  sort_order: Literal["asc", "desc"] = "desc"
