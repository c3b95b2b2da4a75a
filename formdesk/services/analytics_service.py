"""Analytics service for the form results page.

Aggregates are computed from stored submissions on every call; nothing is
cached on the form row.
"""
import uuid
from collections import Counter
from typing import Any

from sqlalchemy.orm import Session

from formdesk.db.models import Form, Submission
from formdesk.services import form_service
from formdesk.services.validation_service import parse_fields


def get_form_analytics(db: Session, form_id: uuid.UUID) -> dict[str, Any]:
    """Return totals and a per-field breakdown for one form."""
    form = form_service.get_form_or_raise(db, form_id)
    rows = (
        db.query(Submission.data)
        .filter(Submission.form_id == form_id)
        .order_by(Submission.submitted_at.asc())
        .all()
    )
    submissions = [row.data or {} for row in rows]
    return {
        "total": len(submissions),
        "created_at": form.created_at,
        "updated_at": form.updated_at,
        "fields": summarize_fields(form, submissions),
    }


def summarize_fields(form: Form, submissions: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    if not submissions:
        return {}

    summary: dict[str, dict[str, Any]] = {}
    for field in parse_fields(form.fields):
        responses = [
            submission.get(field.name)
            for submission in submissions
            if submission.get(field.name) not in (None, "")
        ]

        if field.is_choice:
            counts: Counter[str] = Counter()
            for response in responses:
                if isinstance(response, list):
                    counts.update(str(item) for item in response)
                else:
                    counts[str(response)] += 1
            summary[field.name] = {"type": "categorical", "data": dict(counts)}
            continue

        rate = len(responses) / len(submissions) * 100
        summary[field.name] = {
            "type": "numeric",
            "total_responses": len(responses),
            "response_rate": f"{rate:.1f}",
        }
    return summary
