"""Form service for the builder: CRUD, duplication, publishing and counters."""

import copy
import logging
import uuid
from typing import Any

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from formdesk.db.enums import DEFAULT_THANK_YOU_MESSAGE, FormStatus
from formdesk.db.models import Form
from formdesk.services import attachment_service
from formdesk.services.validation_service import normalize_fields, validate_form_definition


logger = logging.getLogger(__name__)

DUPLICATE_TITLE_SUFFIX = " (Copy)"
TITLE_MAX_LENGTH = 200
NULLABLE_ATTRIBUTES = ("description", "submission_limit")
REQUIRED_ATTRIBUTES = (
    "title",
    "status",
    "thank_you_message",
    "allow_duplicates",
    "collect_emails",
    "require_login",
)


class FormServiceError(Exception):
    """Base exception for form service errors."""

    pass


class FormNotFoundError(FormServiceError):
    """Form not found."""

    def __init__(self, message: str = "Form not found"):
        super().__init__(message)


def list_forms(db: Session) -> list[Form]:
    return db.query(Form).order_by(Form.created_at.desc()).all()


def get_form(db: Session, form_id: uuid.UUID) -> Form | None:
    return db.query(Form).filter(Form.id == form_id).first()


def get_form_or_raise(db: Session, form_id: uuid.UUID) -> Form:
    form = get_form(db, form_id)
    if not form:
        raise FormNotFoundError()
    return form


def create_form(
    db: Session,
    title: str,
    description: str | None,
    fields: Any,
    status: str = FormStatus.DRAFT.value,
    thank_you_message: str | None = None,
    submission_limit: int | None = None,
    allow_duplicates: bool = True,
    collect_emails: bool = False,
    require_login: bool = False,
) -> Form:
    validate_form_definition(fields)
    form = Form(
        title=title,
        description=description,
        fields=normalize_fields(fields),
        status=status,
        thank_you_message=thank_you_message or DEFAULT_THANK_YOU_MESSAGE,
        submission_limit=submission_limit,
        submissions_count=0,
        allow_duplicates=allow_duplicates,
        collect_emails=collect_emails,
        require_login=require_login,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("form_created id=%s fields=%d", form.id, len(form.fields))
    return form


def update_form(db: Session, form: Form, changes: dict[str, Any]) -> Form:
    """Apply a partial update in a single write.

    ``changes`` holds only the attributes the caller sent. None clears
    ``description`` and ``submission_limit`` and is ignored elsewhere.
    """
    if "fields" in changes:
        validate_form_definition(changes["fields"])
        form.fields = normalize_fields(changes["fields"])
    for attr in NULLABLE_ATTRIBUTES:
        if attr in changes:
            setattr(form, attr, changes[attr])
    for attr in REQUIRED_ATTRIBUTES:
        if changes.get(attr) is not None:
            setattr(form, attr, changes[attr])

    db.commit()
    db.refresh(form)
    return form


def publish_form(db: Session, form: Form) -> Form:
    return update_form(db, form, {"status": FormStatus.PUBLISHED.value})


def unpublish_form(db: Session, form: Form) -> Form:
    return update_form(db, form, {"status": FormStatus.DRAFT.value})


def duplicate_form(db: Session, form: Form) -> Form:
    """Copy every non-identity attribute; the copy starts with no submissions."""
    title = form.title + DUPLICATE_TITLE_SUFFIX
    clone = Form(
        title=title[:TITLE_MAX_LENGTH],
        description=form.description,
        fields=copy.deepcopy(form.fields),
        status=form.status,
        thank_you_message=form.thank_you_message,
        submission_limit=form.submission_limit,
        submissions_count=0,
        allow_duplicates=form.allow_duplicates,
        collect_emails=form.collect_emails,
        require_login=form.require_login,
    )
    db.add(clone)
    db.commit()
    db.refresh(clone)
    logger.info("form_duplicated source=%s copy=%s", form.id, clone.id)
    return clone


def delete_form(db: Session, form: Form) -> None:
    """Delete a form together with its submissions and their attachment rows."""
    storage_keys = [
        file.storage_key
        for submission in form.submissions
        for file in submission.files
        if file.storage_key
    ]
    form_id = form.id
    db.delete(form)
    db.commit()
    attachment_service.delete_stored(storage_keys)
    logger.info("form_deleted id=%s stored_files=%d", form_id, len(storage_keys))


# =============================================================================
# Submission counter
# =============================================================================


def increment_submissions_count(db: Session, form_id: uuid.UUID) -> bool:
    """Take one submission slot if the form is published and below its limit.

    Runs as one conditional UPDATE so concurrent submissions cannot push the
    counter past ``submission_limit``. Returns False when no slot was taken.
    Does not commit.
    """
    result = db.execute(
        update(Form)
        .where(
            Form.id == form_id,
            Form.status == FormStatus.PUBLISHED.value,
            or_(
                Form.submission_limit.is_(None),
                Form.submissions_count < Form.submission_limit,
            ),
        )
        .values(submissions_count=Form.submissions_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def decrement_submissions_count(db: Session, form_id: uuid.UUID) -> bool:
    """Release one submission slot; the counter never goes below zero.

    Returns False when the counter was already zero. Does not commit.
    """
    result = db.execute(
        update(Form)
        .where(Form.id == form_id, Form.submissions_count > 0)
        .values(submissions_count=Form.submissions_count - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
