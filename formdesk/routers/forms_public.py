"""Public submission endpoint for people filling in a form."""

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import FormData, UploadFile

from formdesk.core.deps import get_db
from formdesk.core.rate_limit import SUBMISSION_LIMIT, limiter
from formdesk.core.structured_logging import build_log_context
from formdesk.schemas.forms import SubmissionCreateResponse
from formdesk.services import attachment_service, submission_service
from formdesk.services.attachment_service import StagedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["forms-public"])

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
LIST_KEY_SUFFIX = "[]"


def _is_form_encoded(request: Request) -> bool:
    content_type = request.headers.get("content-type", "").lower()
    return content_type.startswith(FORM_CONTENT_TYPES)


def _split_form_data(form_data: FormData) -> tuple[dict[str, Any], list[StagedFile]]:
    """Turn multipart items into a payload and staged uploads.

    Repeated keys (or keys ending in ``[]``) become lists; file parts are
    staged under their part name.
    """
    payload: dict[str, Any] = {}
    staged: list[StagedFile] = []
    try:
        for key in dict.fromkeys(form_data.keys()):
            values = form_data.getlist(key)
            uploads = [value for value in values if isinstance(value, UploadFile)]
            texts = [value for value in values if not isinstance(value, UploadFile)]

            for upload in uploads:
                if not upload.filename:
                    continue
                staged.append(attachment_service.stage_upload(key, upload))

            if not texts:
                continue
            name = key[: -len(LIST_KEY_SUFFIX)] if key.endswith(LIST_KEY_SUFFIX) else key
            if key.endswith(LIST_KEY_SUFFIX) or len(texts) > 1:
                payload[name] = texts
            else:
                payload[name] = texts[0]
    except Exception:
        attachment_service.discard_staged(staged)
        raise
    return payload, staged


@router.post(
    "/{form_id}/submissions",
    response_model=SubmissionCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(SUBMISSION_LIMIT)
async def submit_form(form_id: UUID, request: Request, db: Session = Depends(get_db)):
    staged: list[StagedFile] = []
    if _is_form_encoded(request):
        form_data = await request.form()
        try:
            payload, staged = _split_form_data(form_data)
        finally:
            await form_data.close()
    else:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from exc

    logger.debug(
        "submission_received uploads=%d",
        len(staged),
        extra=build_log_context(
            form_id=str(form_id), route="/forms/{form_id}/submissions", method="POST"
        ),
    )
    result = submission_service.submit_form(db, form_id, payload, staged)
    return SubmissionCreateResponse(message=result.message, submission_id=result.submission_id)
