"""Submission ingestion pipeline and submission read/delete flows."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from formdesk.core.structured_logging import build_log_context
from formdesk.db.enums import FormStatus
from formdesk.db.models import Form, Submission, SubmissionFile
from formdesk.services import attachment_service, form_service
from formdesk.services.attachment_service import AttachmentRecord, StagedFile
from formdesk.services.form_service import FormNotFoundError
from formdesk.services.validation_service import (
    SubmissionValidationError,
    parse_fields,
    validate_submission,
)


logger = logging.getLogger(__name__)

FORM_NOT_PUBLISHED = "Form is not published"
SUBMISSION_LIMIT_REACHED = "Submission limit reached"


class SubmissionServiceError(Exception):
    """Base exception for submission service errors."""

    pass


class SubmissionNotFoundError(SubmissionServiceError):
    """Submission not found for the given form."""

    def __init__(self, message: str = "Submission not found"):
        super().__init__(message)


class FormClosedError(SubmissionServiceError):
    """Form does not accept submissions (unpublished or limit reached)."""

    pass


@dataclass(frozen=True)
class SubmissionResult:
    message: str
    submission_id: uuid.UUID


def check_eligibility(form: Form) -> None:
    if form.status != FormStatus.PUBLISHED.value:
        raise FormClosedError(FORM_NOT_PUBLISHED)
    if form.submission_limit is not None and form.submissions_count >= form.submission_limit:
        raise FormClosedError(SUBMISSION_LIMIT_REACHED)


def submit_form(
    db: Session,
    form_id: uuid.UUID,
    payload: dict[str, Any],
    staged_files: list[StagedFile] | None = None,
) -> SubmissionResult:
    """Validate and persist one submission, taking a slot on the form counter.

    Staged files are consumed: stored on success, discarded otherwise.
    """
    staged_files = list(staged_files or [])
    try:
        form = form_service.get_form(db, form_id)
        if not form:
            raise FormNotFoundError()
        check_eligibility(form)
        if not isinstance(payload, Mapping):
            raise SubmissionValidationError("Submission data must be an object")

        fields = parse_fields(form.fields)
        data, remote_files = attachment_service.extract_remote_files(fields, payload)
        staged_files, ignored = attachment_service.select_staged_for_fields(fields, staged_files)
        if ignored:
            logger.info(
                "submission_uploads_ignored count=%d",
                len(ignored),
                extra=build_log_context(form_id=str(form_id)),
            )
            attachment_service.discard_staged(ignored)

        sources = [*remote_files, *staged_files]
        for field_name, filename in attachment_service.attachment_placeholders(sources).items():
            if data.get(field_name) in (None, ""):
                data[field_name] = filename

        validate_submission(fields, data)
    except Exception:
        attachment_service.discard_staged(staged_files)
        raise

    submission_id = uuid.uuid4()
    records = attachment_service.normalize_attachments(sources, str(submission_id))

    try:
        _persist_submission(db, form, submission_id, data, records)
    except Exception:
        db.rollback()
        attachment_service.delete_stored(
            [record.storage_key for record in records if record.storage_key]
        )
        raise

    logger.info(
        "submission_accepted files=%d",
        len(records),
        extra=build_log_context(form_id=str(form.id), submission_id=str(submission_id)),
    )
    return SubmissionResult(message=form.thank_you_message, submission_id=submission_id)


def _persist_submission(
    db: Session,
    form: Form,
    submission_id: uuid.UUID,
    data: dict[str, Any],
    records: list[AttachmentRecord],
) -> Submission:
    # Slot first: a concurrent submission may have taken the last one since
    # check_eligibility read the form.
    if not form_service.increment_submissions_count(db, form.id):
        db.rollback()
        db.refresh(form)
        check_eligibility(form)
        raise FormClosedError(SUBMISSION_LIMIT_REACHED)

    submission = Submission(
        id=submission_id,
        form_id=form.id,
        data=data,
        submitted_at=datetime.now(timezone.utc),
        files=[
            SubmissionFile(
                position=position,
                field_name=record.field_name,
                original_name=record.original_name,
                url=record.url,
                size=record.size,
                mime_type=record.mime_type,
                storage_key=record.storage_key,
            )
            for position, record in enumerate(records)
        ],
    )
    db.add(submission)
    db.commit()
    db.refresh(form)
    return submission


def list_submissions(db: Session, form_id: uuid.UUID) -> list[Submission]:
    form_service.get_form_or_raise(db, form_id)
    return (
        db.query(Submission)
        .options(selectinload(Submission.files))
        .filter(Submission.form_id == form_id)
        .order_by(Submission.submitted_at.desc())
        .all()
    )


def get_submission(
    db: Session, form_id: uuid.UUID, submission_id: uuid.UUID
) -> Submission | None:
    return (
        db.query(Submission)
        .options(selectinload(Submission.files))
        .filter(Submission.id == submission_id, Submission.form_id == form_id)
        .first()
    )


def get_submission_or_raise(
    db: Session, form_id: uuid.UUID, submission_id: uuid.UUID
) -> Submission:
    submission = get_submission(db, form_id, submission_id)
    if not submission:
        raise SubmissionNotFoundError()
    return submission


def delete_submission(db: Session, form_id: uuid.UUID, submission_id: uuid.UUID) -> None:
    """Delete a submission, then release its slot on the form counter.

    The two writes are separate; a failed decrement leaves the counter high
    and is only logged.
    """
    submission = get_submission_or_raise(db, form_id, submission_id)
    storage_keys = [file.storage_key for file in submission.files if file.storage_key]
    db.delete(submission)
    db.commit()
    attachment_service.delete_stored(storage_keys)

    log_context = build_log_context(form_id=str(form_id), submission_id=str(submission_id))
    try:
        if not form_service.decrement_submissions_count(db, form_id):
            logger.info("submission_counter_already_zero", extra=log_context)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("submission_counter_decrement_failed", extra=log_context, exc_info=True)
        return

    logger.info("submission_deleted", extra=log_context)
