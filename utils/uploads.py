"""Validation and storage of uploaded document files."""

from __future__ import annotations

import os
from typing import Iterable

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, RequestEntityTooLarge

from storage.local_storage import LocalStorage

MAX_UPLOAD_SIZE_DEFAULT = 10 * 1024 * 1024  # 10 MB
ALLOWED_EXTENSIONS_DEFAULT = {"jpeg", "jpg", "png", "pdf"}


def allowed_extensions() -> set[str]:
    configured = current_app.config.get("ALLOWED_UPLOAD_TYPES")
    if not configured:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized: set[str] = set()
    for raw in values:
        if not isinstance(raw, str):
            continue
        item = raw.strip().lower()
        if "/" in item and not item.startswith("."):
            item = item.rsplit("/", 1)[-1]
        item = item.lstrip(".")
        if item:
            normalized.add(item)

    if not normalized:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if normalized & {"jpg", "jpeg"}:
        normalized.update({"jpg", "jpeg"})
    return normalized


def validate_document(file: object) -> FileStorage:
    """Return the uploaded file or raise 400/413 when it is missing or unacceptable."""

    if not isinstance(file, FileStorage) or not (file.filename or "").strip():
        raise BadRequest("A document file is required.")

    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    allowed = allowed_extensions()
    if extension not in allowed:
        raise BadRequest(f"File type not allowed. Allowed types: {', '.join(sorted(allowed))}.")

    max_size = int(current_app.config.get("MAX_UPLOAD_SIZE", MAX_UPLOAD_SIZE_DEFAULT))
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size > max_size:
        raise RequestEntityTooLarge(
            f"File exceeds the maximum upload size of {max_size // (1024 * 1024)}MB."
        )
    return file


def get_storage() -> LocalStorage:
    return LocalStorage(current_app.config.get("UPLOAD_DIR"))


def store_document(file: object, owner_id: int) -> tuple[str, str]:
    """Validate and persist an upload; return ``(file_ref, original filename)``."""

    document = validate_document(file)
    file_ref = get_storage().save(document, document.filename, owner_id)
    current_app.logger.info("Stored %s for user %s as %s", document.filename, owner_id, file_ref)
    return file_ref, document.filename
