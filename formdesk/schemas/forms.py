"""Schemas for forms, submissions and analytics.

JSON bodies use camelCase keys (``thankYouMessage``, ``submissionLimit``);
Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


FieldType = Literal[
    "text",
    "email",
    "number",
    "textarea",
    "select",
    "checkbox",
    "radio",
    "file",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FormFieldValidation(CamelModel):
    pattern: str | None = None
    min_length: int | None = Field(None, ge=0)
    max_length: int | None = Field(None, ge=0)
    min: float | None = None
    max: float | None = None


class FormField(CamelModel):
    type: FieldType
    label: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    placeholder: str | None = None
    required: bool = False
    options: list[str] | None = None
    validation: FormFieldValidation | None = None

    @property
    def is_choice(self) -> bool:
        return self.type in ("select", "checkbox", "radio")


class FormCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    # Checked by the form definition validator, not by pydantic
    fields: Any = None
    status: Literal["draft", "published"] = "draft"
    thank_you_message: str | None = None
    submission_limit: int | None = Field(None, ge=1)
    allow_duplicates: bool = True
    collect_emails: bool = False
    require_login: bool = False


class FormUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    fields: Any = None
    status: Literal["draft", "published"] | None = None
    thank_you_message: str | None = None
    submission_limit: int | None = Field(None, ge=1)
    allow_duplicates: bool | None = None
    collect_emails: bool | None = None
    require_login: bool | None = None


class FormSummary(CamelModel):
    id: UUID
    title: str
    status: str
    submissions_count: int
    created_at: datetime
    updated_at: datetime


class FormRead(FormSummary):
    description: str | None
    fields: list[FormField]
    thank_you_message: str
    submission_limit: int | None
    allow_duplicates: bool
    collect_emails: bool
    require_login: bool


class SubmissionFileRead(CamelModel):
    field_name: str
    original_name: str
    url: str
    size: int
    mime_type: str


class SubmissionRead(CamelModel):
    id: UUID
    form: UUID
    data: dict[str, Any]
    files: list[SubmissionFileRead]
    submitted_at: datetime
    created_at: datetime


class SubmissionCreateResponse(CamelModel):
    message: str
    submission_id: UUID


class MessageResponse(CamelModel):
    message: str


class FieldAnalytics(CamelModel):
    type: Literal["categorical", "numeric"]
    data: dict[str, int] | None = None
    total_responses: int | None = None
    response_rate: str | None = None


class FormAnalyticsRead(CamelModel):
    total: int
    created_at: datetime
    updated_at: datetime
    fields: dict[str, FieldAnalytics]
