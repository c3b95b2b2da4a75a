"""Form definition and submission validators.

Both validators walk fields in declaration order and stop at the first
problem, raising a ``ValueError`` subclass whose message is safe to show to
the person filling in (or designing) the form.
"""

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from formdesk.db.enums import FieldType
from formdesk.schemas.forms import FormField


EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REQUIRED_FIELD_PROPERTIES = ("type", "label", "name")


class FormDefinitionError(ValueError):
    """A form's field list is not fit to be saved."""


class SubmissionValidationError(ValueError):
    """A submitted payload does not satisfy the form's fields."""


# =============================================================================
# Form definition
# =============================================================================


def validate_form_definition(fields: Any) -> None:
    if not isinstance(fields, list):
        raise FormDefinitionError("Fields must be an array")
    if len(fields) == 0:
        raise FormDefinitionError("Form must have at least one field to be saved")

    seen_names: set[str] = set()
    valid_types = FieldType.values()
    for position, field in enumerate(fields, start=1):
        if not isinstance(field, Mapping):
            raise FormDefinitionError(f"Field {position} must be an object")

        missing = [prop for prop in REQUIRED_FIELD_PROPERTIES if _is_blank(field.get(prop))]
        if missing:
            raise FormDefinitionError(
                "Each field must have type, label, and name properties "
                f"(field {position} is missing {', '.join(missing)})"
            )

        field_type = field["type"]
        label = field["label"]
        if field_type not in valid_types:
            raise FormDefinitionError(
                f"Invalid field type: {field_type}. Valid types: {', '.join(valid_types)}"
            )

        if field_type in FieldType.choice_types():
            options = field.get("options")
            if (
                not isinstance(options, list)
                or len(options) == 0
                or not all(isinstance(option, str) for option in options)
            ):
                raise FormDefinitionError(
                    f'Field "{label}" of type {field_type} must have options array'
                )

        validation = field.get("validation")
        pattern = validation.get("pattern") if isinstance(validation, Mapping) else None
        if pattern and field_type == FieldType.EMAIL.value:
            try:
                re.compile(pattern)
            except (re.error, TypeError) as exc:
                raise FormDefinitionError(
                    f'Invalid regex pattern for field "{label}"'
                ) from exc

        try:
            FormField.model_validate(_without_scalar_options(field))
        except ValidationError as exc:
            raise FormDefinitionError(
                f'Invalid validation settings for field "{label}"'
            ) from exc

        name = field["name"]
        if name in seen_names:
            raise FormDefinitionError(f'Duplicate field name "{name}"')
        seen_names.add(name)


def normalize_fields(fields: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Return storable field dicts; options are kept only on choice fields.

    Callers validate with ``validate_form_definition`` first.
    """
    normalized: list[dict[str, Any]] = []
    for raw in fields:
        field = FormField.model_validate(_without_scalar_options(raw))
        normalized.append(field.model_dump(by_alias=True, exclude_none=True))
    return normalized


def parse_fields(fields_json: list[dict[str, Any]] | None) -> list[FormField]:
    return [FormField.model_validate(field) for field in fields_json or []]


# =============================================================================
# Submission
# =============================================================================


def validate_submission(fields: Sequence[FormField], payload: Mapping[str, Any]) -> None:
    if not isinstance(payload, Mapping):
        raise SubmissionValidationError("Submission data must be an object")

    for field in fields:
        value = payload.get(field.name)

        if _is_empty(value):
            if field.required:
                raise SubmissionValidationError(f'Field "{field.label}" is required')
            continue

        if field.type == FieldType.EMAIL.value:
            _validate_email(field, value)

        if field.type == FieldType.NUMBER.value:
            _validate_number(field, value)

        if field.validation and not isinstance(value, list):
            _validate_length(field, value)

        if field.type in (FieldType.SELECT.value, FieldType.RADIO.value):
            if not isinstance(value, str) or value not in (field.options or []):
                raise SubmissionValidationError(f'Invalid option for field "{field.label}"')

        if field.type == FieldType.CHECKBOX.value:
            choices = value if isinstance(value, list) else [value]
            for choice in choices:
                if choice not in (field.options or []):
                    raise SubmissionValidationError(
                        f'Invalid option "{choice}" for field "{field.label}"'
                    )


def _validate_email(field: FormField, value: Any) -> None:
    valid = (
        isinstance(value, str)
        and value.isascii()
        and EMAIL_REGEX.fullmatch(value) is not None
    )
    pattern = field.validation.pattern if field.validation else None
    if valid and pattern:
        valid = re.search(pattern, value) is not None
    if not valid:
        raise SubmissionValidationError(f'Invalid email format for field "{field.label}"')


def _validate_number(field: FormField, value: Any) -> None:
    number = parse_number(value)
    if number is None:
        raise SubmissionValidationError(f'Field "{field.label}" must be a valid number')

    validation = field.validation
    if not validation:
        return
    if validation.min is not None and number < validation.min:
        raise SubmissionValidationError(
            f'Field "{field.label}" must be at least {_as_text(validation.min)}'
        )
    if validation.max is not None and number > validation.max:
        raise SubmissionValidationError(
            f'Field "{field.label}" must be at most {_as_text(validation.max)}'
        )


def _validate_length(field: FormField, value: Any) -> None:
    validation = field.validation
    length = len(value if isinstance(value, str) else _as_text(value))
    if validation.min_length is not None and length < validation.min_length:
        raise SubmissionValidationError(
            f'Field "{field.label}" must be at least {validation.min_length} characters long'
        )
    if validation.max_length is not None and length > validation.max_length:
        raise SubmissionValidationError(
            f'Field "{field.label}" must be at most {validation.max_length} characters long'
        )


def parse_number(value: Any) -> float | None:
    """Parse a submitted number; None when it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        # float() also accepts digit separators and non-ASCII digits
        if not text or "_" in text or not text.isascii():
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _as_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _without_scalar_options(field: Mapping[str, Any]) -> Mapping[str, Any]:
    if field.get("type") in FieldType.choice_types():
        return field
    return {key: value for key, value in field.items() if key != "options"}


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False
