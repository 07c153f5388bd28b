from __future__ import annotations

import datetime
import uuid
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class UserRole(str, Enum):
  STUDENT = "Student"
  TEACHER = "Teacher"
  HEAD_TEACHER = "Head Teacher"
  ADMIN = "Admin"


class UserStatus(str, Enum):
  PENDING = "PENDING"
  APPROVED = "APPROVED"
  REJECTED = "REJECTED"
  DISABLED = "DISABLED"


class AuditAction(str, Enum):
  USER_SIGNUP = "user_signup"
  USER_APPROVAL = "user_approval"
  USER_REJECTION = "user_rejection"
  USER_DELETION = "user_deletion"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
  # Store the human-readable value ("Head Teacher"), not the member name.
  return [member.value for member in enum_cls]


class Curriculum(Base):
  __tablename__ = "curriculums"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  color: Mapped[str] = mapped_column(String, nullable=False, default="#6b7280")
  display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
  created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL", use_alter=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class User(Base):
  __tablename__ = "users"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  firebase_uid: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
  full_name: Mapped[str | None] = mapped_column(String, nullable=True)
  profile_image_url: Mapped[str | None] = mapped_column(String, nullable=True)
  school: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  teacher: Mapped[str | None] = mapped_column(String, nullable=True)
  role: Mapped[UserRole] = mapped_column(SAEnum(UserRole, name="user_role", values_callable=_enum_values), default=UserRole.STUDENT, nullable=False)
  status: Mapped[UserStatus] = mapped_column(SAEnum(UserStatus, name="user_status"), default=UserStatus.PENDING, nullable=False)
  current_belt_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("curriculums.id", ondelete="SET NULL"), nullable=True)
  approved_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  approved_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Category(Base):
  __tablename__ = "categories"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  color: Mapped[str] = mapped_column(String, nullable=False, default="#6b7280")
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Performer(Base):
  __tablename__ = "performers"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
  bio: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Video(Base):
  __tablename__ = "videos"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  video_url: Mapped[str] = mapped_column(String, nullable=False)
  thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
  duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
  is_published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
  recorded: Mapped[str | None] = mapped_column(String, nullable=True)
  views: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
  created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VideoCategory(Base):
  __tablename__ = "video_categories"

  video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
  category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)


class VideoCurriculum(Base):
  __tablename__ = "video_curriculums"

  video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
  curriculum_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("curriculums.id", ondelete="CASCADE"), primary_key=True)


class VideoPerformer(Base):
  __tablename__ = "video_performers"

  video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
  performer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("performers.id", ondelete="CASCADE"), primary_key=True)


class Favorite(Base):
  __tablename__ = "user_favorites"
  __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_user_favorites_user_video"),)

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class VideoView(Base):
  __tablename__ = "video_views"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
  # Anonymous views are recorded without a user.
  user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  viewed_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class Notification(Base):
  __tablename__ = "notifications"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  sender_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  recipient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  message: Mapped[str] = mapped_column(Text, nullable=False)
  is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class AuditLog(Base):
  __tablename__ = "audit_logs"

  id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
  actor_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  actor_email: Mapped[str | None] = mapped_column(String, nullable=True)
  action: Mapped[AuditAction] = mapped_column(SAEnum(AuditAction, name="audit_action", values_callable=_enum_values), nullable=False)
  target_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
  target_email: Mapped[str | None] = mapped_column(String, nullable=True)
  additional_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
