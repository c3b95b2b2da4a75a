"""Tests for per-field submission validation."""

import pytest

from formdesk.schemas.forms import FormField
from formdesk.services.validation_service import (
    SubmissionValidationError,
    parse_fields,
    parse_number,
    validate_submission,
)


def _field(**kwargs) -> FormField:
    kwargs.setdefault("label", kwargs["name"].title())
    return FormField.model_validate(kwargs)


def _assert_rejected(fields, payload, message):
    with pytest.raises(SubmissionValidationError) as exc:
        validate_submission(fields, payload)
    assert str(exc.value) == message


# =============================================================================
# Required / optional
# =============================================================================

def test_required_field_missing():
    fields = [_field(type="text", name="name", label="Full name", required=True)]
    _assert_rejected(fields, {}, 'Field "Full name" is required')


@pytest.mark.parametrize("value", [None, ""])
def test_required_field_empty(value):
    fields = [_field(type="text", name="name", required=True)]
    _assert_rejected(fields, {"name": value}, 'Field "Name" is required')


def test_optional_empty_field_skips_other_checks():
    fields = [_field(type="email", name="email"), _field(type="number", name="age")]
    validate_submission(fields, {"email": "", "age": None})


def test_zero_and_false_are_not_empty():
    fields = [_field(type="number", name="count", required=True)]
    validate_submission(fields, {"count": 0})


def test_first_error_wins():
    fields = [
        _field(type="text", name="first", required=True),
        _field(type="email", name="email"),
    ]
    _assert_rejected(fields, {"email": "nope"}, 'Field "First" is required')


def test_unknown_payload_keys_are_ignored():
    fields = [_field(type="text", name="name")]
    validate_submission(fields, {"name": "Ada", "extra": "kept"})


def test_payload_must_be_an_object():
    fields = [_field(type="text", name="name")]
    _assert_rejected(fields, ["name"], "Submission data must be an object")


# =============================================================================
# Email
# =============================================================================

@pytest.mark.parametrize("value", ["ada@example.com", "a.b+c@sub.example.org"])
def test_valid_email(value):
    validate_submission([_field(type="email", name="email")], {"email": value})


@pytest.mark.parametrize(
    "value",
    ["plain", "a@b", "a b@example.com", "@example.com", 42, "a@b.co\n", "ada@example.com\n"],
)
def test_invalid_email(value):
    _assert_rejected(
        [_field(type="email", name="email")],
        {"email": value},
        'Invalid email format for field "Email"',
    )


def test_email_pattern_restricts_domain():
    field = _field(
        type="email", name="email", validation={"pattern": r"@example\.com$"}
    )
    validate_submission([field], {"email": "ada@example.com"})
    _assert_rejected([field], {"email": "ada@other.org"}, 'Invalid email format for field "Email"')


# =============================================================================
# Number
# =============================================================================

@pytest.mark.parametrize("value", [5, 5.5, "5", " 12.5 ", "-3", "1e3"])
def test_valid_numbers(value):
    validate_submission([_field(type="number", name="qty")], {"qty": value})


@pytest.mark.parametrize("value", ["abc", "1_000", "nan", "inf", True, [1]])
def test_invalid_numbers(value):
    _assert_rejected(
        [_field(type="number", name="qty")],
        {"qty": value},
        'Field "Qty" must be a valid number',
    )


def test_number_bounds():
    field = _field(type="number", name="age", validation={"min": 18, "max": 99.5})

    validate_submission([field], {"age": "18"})
    validate_submission([field], {"age": 99.5})
    _assert_rejected([field], {"age": 17}, 'Field "Age" must be at least 18')
    _assert_rejected([field], {"age": "100"}, 'Field "Age" must be at most 99.5')


def test_parse_number():
    assert parse_number("42") == 42.0
    assert parse_number(3) == 3.0
    assert parse_number("") is None
    assert parse_number(False) is None
    assert parse_number("1_0") is None
    assert parse_number("\u0661\u0662") is None


# =============================================================================
# Length
# =============================================================================

def test_text_length_bounds():
    field = _field(
        type="text", name="nickname", validation={"minLength": 2, "maxLength": 5}
    )

    validate_submission([field], {"nickname": "Ada"})
    _assert_rejected(
        [field], {"nickname": "A"}, 'Field "Nickname" must be at least 2 characters long'
    )
    _assert_rejected(
        [field],
        {"nickname": "Adaline"},
        'Field "Nickname" must be at most 5 characters long',
    )


def test_length_applies_to_number_text():
    field = _field(type="number", name="pin", validation={"minLength": 4})
    _assert_rejected([field], {"pin": 123}, 'Field "Pin" must be at least 4 characters long')
    validate_submission([field], {"pin": "1234"})


# =============================================================================
# Choices
# =============================================================================

@pytest.mark.parametrize("field_type", ["select", "radio"])
def test_single_choice(field_type):
    field = _field(type=field_type, name="size", options=["S", "M", "L"])

    validate_submission([field], {"size": "M"})
    _assert_rejected([field], {"size": "XL"}, 'Invalid option for field "Size"')
    _assert_rejected([field], {"size": ["M"]}, 'Invalid option for field "Size"')


def test_checkbox_accepts_subset():
    field = _field(type="checkbox", name="tags", options=["a", "b", "c"])
    validate_submission([field], {"tags": ["a", "c"]})


def test_checkbox_lone_string_is_one_choice():
    field = _field(type="checkbox", name="tags", options=["a", "b"])
    validate_submission([field], {"tags": "b"})
    _assert_rejected([field], {"tags": "z"}, 'Invalid option "z" for field "Tags"')


def test_checkbox_rejects_unknown_element():
    field = _field(type="checkbox", name="tags", options=["a", "b"])
    _assert_rejected([field], {"tags": ["a", "x"]}, 'Invalid option "x" for field "Tags"')


def test_checkbox_required_empty_list_is_allowed():
    field = _field(type="checkbox", name="tags", options=["a"], required=True)
    validate_submission([field], {"tags": []})


def test_parse_fields_reads_stored_json():
    fields = parse_fields(
        [{"type": "select", "label": "Size", "name": "size", "options": ["S"], "required": True}]
    )
    assert fields[0].is_choice
    assert fields[0].required is True
    assert parse_fields(None) == []
