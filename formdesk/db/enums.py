"""Form-related enums."""

from enum import Enum


class FormStatus(str, Enum):
    """Publication state of a form. Only published forms accept submissions."""

    DRAFT = "draft"
    PUBLISHED = "published"


class FieldType(str, Enum):
    """The closed set of field types a form may declare."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"

    @classmethod
    def values(cls) -> list[str]:
        """Field type names in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def choice_types(cls) -> frozenset[str]:
        """Types whose value must come from the field's options."""
        return frozenset({cls.SELECT.value, cls.CHECKBOX.value, cls.RADIO.value})


class StorageBackend(str, Enum):
    """Where staged uploads end up."""

    LOCAL = "local"
    S3 = "s3"


DEFAULT_THANK_YOU_MESSAGE = "Thank you for your submission!"
