"""SQLAlchemy ORM models for forms, submissions and their attachments."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formdesk.db.base import Base
from formdesk.db.enums import DEFAULT_THANK_YOU_MESSAGE, FormStatus

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Form(Base):
    """A designed form: ordered field schemas plus publication state."""

    __tablename__ = "forms"
    __table_args__ = (
        Index("idx_forms_status", "status"),
        Index("idx_forms_created", "created_at"),
        CheckConstraint("submissions_count >= 0", name="ck_forms_submissions_count_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    fields: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), default=FormStatus.DRAFT.value, nullable=False
    )
    thank_you_message: Mapped[str] = mapped_column(
        Text, default=DEFAULT_THANK_YOU_MESSAGE, nullable=False
    )
    submission_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submissions_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Stored builder preferences; not enforced by the submission pipeline
    allow_duplicates: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    collect_emails: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    require_login: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )

    submissions: Mapped[list["Submission"]] = relationship(
        back_populates="form",
        cascade="all, delete-orphan",
    )


class Submission(Base):
    """One accepted response to a form."""

    __tablename__ = "submissions"
    __table_args__ = (
        Index("idx_submissions_form", "form_id"),
        Index("idx_submissions_form_submitted", "form_id", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    submitted_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    form: Mapped["Form"] = relationship(back_populates="submissions")
    files: Mapped[list["SubmissionFile"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionFile.position",
    )


class SubmissionFile(Base):
    """Normalized attachment record for a file field of a submission."""

    __tablename__ = "submission_files"
    __table_args__ = (Index("idx_submission_files_submission", "submission_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    field_name: Mapped[str] = mapped_column(Text, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mime_type: Mapped[str] = mapped_column(Text, nullable=False)
    # Set only for files this service stored itself (staged channel)
    storage_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    submission: Mapped["Submission"] = relationship(back_populates="files")
