"""Baseline schema for the video library.

Revision ID: 5f1c2a7d9e01
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5f1c2a7d9e01"
down_revision = None
branch_labels = None
depends_on = None

user_role = postgresql.ENUM("Student", "Teacher", "Head Teacher", "Admin", name="user_role", create_type=False)
user_status = postgresql.ENUM("PENDING", "APPROVED", "REJECTED", "DISABLED", name="user_status", create_type=False)
audit_action = postgresql.ENUM("user_signup", "user_approval", "user_rejection", "user_deletion", name="audit_action", create_type=False)


def _uuid(name: str, **kwargs: object) -> sa.Column:
  return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamp(name: str = "created_at") -> sa.Column:
  return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True)


def upgrade() -> None:
  """Upgrade schema."""
  bind = op.get_bind()
  user_role.create(bind, checkfirst=True)
  user_status.create(bind, checkfirst=True)
  audit_action.create(bind, checkfirst=True)

  # Curriculums and users reference each other; the curriculum author FK is added last.
  op.create_table(
    "curriculums",
    _uuid("id", nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("color", sa.String(), nullable=False),
    sa.Column("display_order", sa.Integer(), nullable=False),
    _uuid("created_by", nullable=True),
    _timestamp(),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_curriculums_display_order"), "curriculums", ["display_order"], unique=False)

  op.create_table(
    "users",
    _uuid("id", nullable=False),
    sa.Column("firebase_uid", sa.String(), nullable=False),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("full_name", sa.String(), nullable=True),
    sa.Column("profile_image_url", sa.String(), nullable=True),
    sa.Column("school", sa.String(), nullable=True),
    sa.Column("teacher", sa.String(), nullable=True),
    sa.Column("role", user_role, nullable=False),
    sa.Column("status", user_status, nullable=False),
    _uuid("current_belt_id", nullable=True),
    _uuid("approved_by", nullable=True),
    sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
    _timestamp(),
    _timestamp("updated_at"),
    sa.ForeignKeyConstraint(["current_belt_id"], ["curriculums.id"], ondelete="SET NULL"),
    sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_users_firebase_uid"), "users", ["firebase_uid"], unique=True)
  op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
  op.create_index(op.f("ix_users_school"), "users", ["school"], unique=False)
  op.create_foreign_key("curriculums_created_by_fkey", "curriculums", "users", ["created_by"], ["id"], ondelete="SET NULL")

  op.create_table(
    "categories",
    _uuid("id", nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("color", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    _timestamp(),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("name"),
  )
  op.create_table(
    "performers",
    _uuid("id", nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("bio", sa.Text(), nullable=True),
    _timestamp(),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("name"),
  )
  op.create_table(
    "videos",
    _uuid("id", nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("video_url", sa.String(), nullable=False),
    sa.Column("thumbnail_url", sa.String(), nullable=True),
    sa.Column("duration_seconds", sa.Integer(), nullable=True),
    sa.Column("is_published", sa.Boolean(), nullable=False),
    sa.Column("recorded", sa.String(), nullable=True),
    sa.Column("views", sa.Integer(), server_default="0", nullable=False),
    _uuid("created_by", nullable=True),
    _timestamp(),
    _timestamp("updated_at"),
    sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_videos_is_published"), "videos", ["is_published"], unique=False)

  for table, column, target in (("video_categories", "category_id", "categories"), ("video_curriculums", "curriculum_id", "curriculums"), ("video_performers", "performer_id", "performers")):
    op.create_table(
      table,
      _uuid("video_id", nullable=False),
      _uuid(column, nullable=False),
      sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
      sa.ForeignKeyConstraint([column], [f"{target}.id"], ondelete="CASCADE"),
      sa.PrimaryKeyConstraint("video_id", column),
    )

  op.create_table(
    "user_favorites",
    _uuid("id", nullable=False),
    _uuid("user_id", nullable=False),
    _uuid("video_id", nullable=False),
    _timestamp(),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("user_id", "video_id", name="uq_user_favorites_user_video"),
  )
  op.create_index(op.f("ix_user_favorites_user_id"), "user_favorites", ["user_id"], unique=False)

  op.create_table(
    "video_views",
    _uuid("id", nullable=False),
    _uuid("video_id", nullable=False),
    _uuid("user_id", nullable=True),
    _timestamp("viewed_at"),
    sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_video_views_video_id"), "video_views", ["video_id"], unique=False)
  op.create_index(op.f("ix_video_views_viewed_at"), "video_views", ["viewed_at"], unique=False)

  op.create_table(
    "notifications",
    _uuid("id", nullable=False),
    _uuid("sender_id", nullable=True),
    _uuid("recipient_id", nullable=False),
    sa.Column("message", sa.Text(), nullable=False),
    sa.Column("is_read", sa.Boolean(), nullable=False),
    _timestamp(),
    sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
    sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_notifications_recipient_id"), "notifications", ["recipient_id"], unique=False)
  op.create_index(op.f("ix_notifications_created_at"), "notifications", ["created_at"], unique=False)

  op.create_table(
    "audit_logs",
    _uuid("id", nullable=False),
    _uuid("actor_id", nullable=True),
    sa.Column("actor_email", sa.String(), nullable=True),
    sa.Column("action", audit_action, nullable=False),
    _uuid("target_id", nullable=True),
    sa.Column("target_email", sa.String(), nullable=True),
    sa.Column("additional_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    _timestamp(),
    sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  for table in ("audit_logs", "notifications", "video_views", "user_favorites", "video_performers", "video_curriculums", "video_categories", "videos", "performers", "categories"):
    op.drop_table(table)
  op.drop_constraint("curriculums_created_by_fkey", "curriculums", type_="foreignkey")
  op.drop_table("users")
  op.drop_table("curriculums")

  bind = op.get_bind()
  audit_action.drop(bind, checkfirst=True)
  user_status.drop(bind, checkfirst=True)
  user_role.drop(bind, checkfirst=True)
