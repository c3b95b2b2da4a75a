"""Form builder and submission review endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from formdesk.core.deps import get_db
from formdesk.db.models import Form, Submission
from formdesk.schemas.forms import (
    FormAnalyticsRead,
    FormCreate,
    FormRead,
    FormSummary,
    FormUpdate,
    MessageResponse,
    SubmissionFileRead,
    SubmissionRead,
)
from formdesk.services import analytics_service, form_service, submission_service
from formdesk.services.validation_service import parse_fields

router = APIRouter(prefix="/forms", tags=["forms"])


def _form_summary(form: Form) -> FormSummary:
    return FormSummary(
        id=form.id,
        title=form.title,
        status=form.status,
        submissions_count=form.submissions_count,
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def _form_read(form: Form) -> FormRead:
    return FormRead(
        id=form.id,
        title=form.title,
        description=form.description,
        fields=parse_fields(form.fields),
        status=form.status,
        thank_you_message=form.thank_you_message,
        submission_limit=form.submission_limit,
        submissions_count=form.submissions_count,
        allow_duplicates=form.allow_duplicates,
        collect_emails=form.collect_emails,
        require_login=form.require_login,
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def _submission_read(submission: Submission) -> SubmissionRead:
    return SubmissionRead(
        id=submission.id,
        form=submission.form_id,
        data=submission.data or {},
        files=[
            SubmissionFileRead(
                field_name=f.field_name,
                original_name=f.original_name,
                url=f.url,
                size=f.size,
                mime_type=f.mime_type,
            )
            for f in submission.files
        ],
        submitted_at=submission.submitted_at,
        created_at=submission.created_at,
    )


# =============================================================================
# Forms
# =============================================================================


@router.get("", response_model=list[FormSummary])
def list_forms(db: Session = Depends(get_db)):
    return [_form_summary(form) for form in form_service.list_forms(db)]


@router.post("", response_model=FormRead, status_code=status.HTTP_201_CREATED)
def create_form(body: FormCreate, db: Session = Depends(get_db)):
    form = form_service.create_form(
        db=db,
        title=body.title,
        description=body.description,
        fields=body.fields,
        status=body.status,
        thank_you_message=body.thank_you_message,
        submission_limit=body.submission_limit,
        allow_duplicates=body.allow_duplicates,
        collect_emails=body.collect_emails,
        require_login=body.require_login,
    )
    return _form_read(form)


@router.get("/{form_id}", response_model=FormRead)
def get_form(form_id: UUID, db: Session = Depends(get_db)):
    return _form_read(form_service.get_form_or_raise(db, form_id))


@router.put("/{form_id}", response_model=FormRead)
def update_form(form_id: UUID, body: FormUpdate, db: Session = Depends(get_db)):
    form = form_service.get_form_or_raise(db, form_id)
    updated = form_service.update_form(db, form, body.model_dump(exclude_unset=True))
    return _form_read(updated)


@router.delete("/{form_id}", response_model=MessageResponse)
def delete_form(form_id: UUID, db: Session = Depends(get_db)):
    form = form_service.get_form_or_raise(db, form_id)
    form_service.delete_form(db, form)
    return MessageResponse(message="Form deleted")


@router.post(
    "/{form_id}/duplicate", response_model=FormRead, status_code=status.HTTP_201_CREATED
)
def duplicate_form(form_id: UUID, db: Session = Depends(get_db)):
    form = form_service.get_form_or_raise(db, form_id)
    return _form_read(form_service.duplicate_form(db, form))


@router.post("/{form_id}/publish", response_model=FormRead)
def publish_form(form_id: UUID, db: Session = Depends(get_db)):
    form = form_service.get_form_or_raise(db, form_id)
    return _form_read(form_service.publish_form(db, form))


@router.post("/{form_id}/unpublish", response_model=FormRead)
def unpublish_form(form_id: UUID, db: Session = Depends(get_db)):
    form = form_service.get_form_or_raise(db, form_id)
    return _form_read(form_service.unpublish_form(db, form))


@router.get(
    "/{form_id}/analytics",
    response_model=FormAnalyticsRead,
    response_model_exclude_none=True,
)
def get_form_analytics(form_id: UUID, db: Session = Depends(get_db)):
    return analytics_service.get_form_analytics(db, form_id)


# =============================================================================
# Submissions (review)
# =============================================================================


@router.get("/{form_id}/submissions", response_model=list[SubmissionRead])
def list_submissions(form_id: UUID, db: Session = Depends(get_db)):
    submissions = submission_service.list_submissions(db, form_id)
    return [_submission_read(submission) for submission in submissions]


@router.get("/{form_id}/submissions/{submission_id}", response_model=SubmissionRead)
def get_submission(form_id: UUID, submission_id: UUID, db: Session = Depends(get_db)):
    submission = submission_service.get_submission_or_raise(db, form_id, submission_id)
    return _submission_read(submission)


@router.delete("/{form_id}/submissions/{submission_id}", response_model=MessageResponse)
def delete_submission(form_id: UUID, submission_id: UUID, db: Session = Depends(get_db)):
    submission_service.delete_submission(db, form_id, submission_id)
    return MessageResponse(message="Submission deleted successfully")
