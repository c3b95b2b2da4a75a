"""Attachment handling for file fields.

Files reach a submission through one of two channels:

- remote: the client uploaded to object storage itself and posts the result
  back as ``file_<field>`` (URL), ``filename_<field>``, ``filesize_<field>``
  and ``filetype_<field>`` payload keys;
- staged: a multipart upload that the API wrote to a staging directory
  before the pipeline ran.

Both become an ``AttachmentRecord`` before anything is persisted.
"""

import logging
import os
import random
import shutil
import tempfile
import time
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, BinaryIO, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from formdesk.core.config import settings
from formdesk.db.enums import FieldType, StorageBackend
from formdesk.schemas.forms import FormField


logger = logging.getLogger(__name__)

REMOTE_URL_PREFIX = "file_"
REMOTE_FILENAME_PREFIX = "filename_"
REMOTE_FILESIZE_PREFIX = "filesize_"
REMOTE_FILETYPE_PREFIX = "filetype_"
REMOTE_KEY_PREFIXES = (
    REMOTE_URL_PREFIX,
    REMOTE_FILENAME_PREFIX,
    REMOTE_FILESIZE_PREFIX,
    REMOTE_FILETYPE_PREFIX,
)

DEFAULT_ORIGINAL_NAME = "uploaded_file"
DEFAULT_MIME_TYPE = "application/octet-stream"
COPY_CHUNK_SIZE = 1024 * 1024


class AttachmentError(ValueError):
    """An upload could not be accepted or stored."""


@dataclass(frozen=True)
class RemoteFile:
    """File already hosted elsewhere; only its metadata travels with the payload."""

    field_name: str
    url: str
    filename: str
    size: int
    mime_type: str


@dataclass(frozen=True)
class StagedFile:
    """File written to the local staging directory by the upload step."""

    field_name: str
    path: str
    filename: str
    size: int
    mime_type: str


AttachmentSource = Union[RemoteFile, StagedFile]


@dataclass(frozen=True)
class AttachmentRecord:
    field_name: str
    original_name: str
    url: str
    size: int
    mime_type: str
    storage_key: str | None = None


# =============================================================================
# Remote channel
# =============================================================================


def extract_remote_files(
    fields: Sequence[FormField], payload: Mapping[str, Any]
) -> tuple[dict[str, Any], list[RemoteFile]]:
    """Split remote-upload bookkeeping keys out of a payload.

    Returns the payload without those keys and one ``RemoteFile`` per file
    field that carries a URL.
    """
    file_field_names = {field.name for field in fields if field.type == FieldType.FILE.value}
    bookkeeping = {
        f"{prefix}{name}" for name in file_field_names for prefix in REMOTE_KEY_PREFIXES
    }
    data = {key: value for key, value in payload.items() if key not in bookkeeping}

    remote: list[RemoteFile] = []
    for field in fields:
        if field.type != FieldType.FILE.value:
            continue
        url = payload.get(f"{REMOTE_URL_PREFIX}{field.name}")
        if not url or not isinstance(url, str):
            continue
        remote.append(
            RemoteFile(
                field_name=field.name,
                url=url,
                filename=_text_or_default(
                    payload.get(f"{REMOTE_FILENAME_PREFIX}{field.name}"), DEFAULT_ORIGINAL_NAME
                ),
                size=_parse_size(payload.get(f"{REMOTE_FILESIZE_PREFIX}{field.name}")),
                mime_type=_text_or_default(
                    payload.get(f"{REMOTE_FILETYPE_PREFIX}{field.name}"), DEFAULT_MIME_TYPE
                ),
            )
        )
    return data, remote


def _parse_size(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(int(value), 0)
    if isinstance(value, str):
        digits = value.strip()
        try:
            return max(int(float(digits)), 0) if digits else 0
        except ValueError:
            return 0
    return 0


def _text_or_default(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


# =============================================================================
# Staged channel
# =============================================================================


def _get_staging_path() -> str:
    path = settings.UPLOAD_STAGING_PATH or os.path.join(tempfile.gettempdir(), "formdesk-staging")
    os.makedirs(path, exist_ok=True)
    return path


def stage_upload(field_name: str, upload: UploadFile) -> StagedFile:
    """Write a multipart upload to the staging directory."""
    original_name = os.path.basename(upload.filename or "") or DEFAULT_ORIGINAL_NAME
    content_type = (upload.content_type or "").split(";", 1)[0].strip() or DEFAULT_MIME_TYPE

    path = os.path.join(_get_staging_path(), f"{uuid.uuid4().hex}.upload")
    size = 0
    upload.file.seek(0)
    try:
        with open(path, "wb") as out:
            while chunk := upload.file.read(COPY_CHUNK_SIZE):
                size += len(chunk)
                if size > settings.MAX_UPLOAD_FILE_SIZE_BYTES:
                    raise AttachmentError(
                        f'File "{original_name}" exceeds the '
                        f"{settings.MAX_UPLOAD_FILE_SIZE_BYTES // (1024 * 1024)} MB limit"
                    )
                out.write(chunk)
    except AttachmentError:
        os.remove(path)
        raise

    return StagedFile(
        field_name=field_name,
        path=path,
        filename=original_name,
        size=size,
        mime_type=content_type,
    )


def discard_staged(staged_files: Iterable[StagedFile]) -> None:
    for staged in staged_files:
        try:
            os.remove(staged.path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("staged_upload_cleanup_failed path=%s", staged.path, exc_info=True)


# =============================================================================
# Normalization
# =============================================================================


def attachment_placeholders(sources: Iterable[AttachmentSource]) -> dict[str, str]:
    """Map each file field to the original filename of its first attachment."""
    placeholders: dict[str, str] = {}
    for source in sources:
        placeholders.setdefault(source.field_name, source.filename)
    return placeholders


def select_staged_for_fields(
    fields: Sequence[FormField], staged_files: Sequence[StagedFile]
) -> tuple[list[StagedFile], list[StagedFile]]:
    """Split staged uploads into (belonging to a file field, everything else)."""
    file_field_names = {field.name for field in fields if field.type == FieldType.FILE.value}
    matched = [staged for staged in staged_files if staged.field_name in file_field_names]
    unmatched = [staged for staged in staged_files if staged.field_name not in file_field_names]
    return matched, unmatched


def normalize_attachments(
    sources: Sequence[AttachmentSource], submission_key: str
) -> list[AttachmentRecord]:
    """Produce one record per source, storing staged files on the way.

    If storing fails part way, files stored so far are removed again.
    """
    records: list[AttachmentRecord] = []
    try:
        for source in sources:
            if isinstance(source, RemoteFile):
                records.append(
                    AttachmentRecord(
                        field_name=source.field_name,
                        original_name=source.filename,
                        url=source.url,
                        size=source.size,
                        mime_type=source.mime_type,
                    )
                )
                continue

            storage_key = build_storage_key(submission_key, source.filename)
            with open(source.path, "rb") as fh:
                store_file(storage_key, fh, source.mime_type)
            records.append(
                AttachmentRecord(
                    field_name=source.field_name,
                    original_name=source.filename,
                    url=public_url(storage_key),
                    size=source.size,
                    mime_type=source.mime_type,
                    storage_key=storage_key,
                )
            )
    except (OSError, BotoCoreError, ClientError) as exc:
        delete_stored([record.storage_key for record in records if record.storage_key])
        raise AttachmentError("Failed to store uploaded file") from exc
    finally:
        discard_staged(source for source in sources if isinstance(source, StagedFile))
    return records


def build_storage_key(submission_key: str, original_name: str) -> str:
    """``<submission>/<epoch-ms>-<random>-<name>``, unique per stored file."""
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    safe_name = original_name.replace("/", "_").replace("\\", "_")
    return f"{submission_key}/{unique_suffix}-{safe_name}"


# =============================================================================
# Storage Backend
# =============================================================================


def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def _get_storage_backend() -> str:
    return settings.STORAGE_BACKEND


def get_local_storage_path() -> str:
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def store_file(storage_key: str, file: BinaryIO, content_type: str) -> None:
    """Store file to configured backend."""
    if _get_storage_backend() == StorageBackend.S3.value:
        s3 = _get_s3_client()
        s3.upload_fileobj(
            file,
            settings.S3_BUCKET,
            storage_key,
            ExtraArgs={"ContentType": content_type},
        )
        return

    path = os.path.join(get_local_storage_path(), storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as out:
        file.seek(0)
        shutil.copyfileobj(file, out, COPY_CHUNK_SIZE)


def public_url(storage_key: str) -> str:
    if _get_storage_backend() == StorageBackend.S3.value:
        base = settings.S3_PUBLIC_BASE_URL or (
            f"https://{settings.S3_BUCKET}.s3.{settings.S3_REGION}.amazonaws.com"
        )
        return f"{base.rstrip('/')}/{storage_key}"
    return f"{settings.LOCAL_STORAGE_URL_PREFIX.rstrip('/')}/{storage_key}"


def delete_stored(storage_keys: Iterable[str]) -> None:
    """Best-effort removal of files this service stored."""
    backend = _get_storage_backend()
    for storage_key in storage_keys:
        try:
            if backend == StorageBackend.S3.value:
                _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
            else:
                os.remove(os.path.join(get_local_storage_path(), storage_key))
        except FileNotFoundError:
            pass
        except (OSError, BotoCoreError, ClientError):
            logger.warning("stored_file_delete_failed key=%s", storage_key, exc_info=True)
