"""Local filesystem storage implementation."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import IO, BinaryIO

from werkzeug.utils import secure_filename

from config import Config

from .abstract_storage import AbstractStorage


class LocalStorage(AbstractStorage):
    """Persist files under ``<upload_dir>/<owner_id>/<random name><suffix>``."""

    def __init__(self, upload_dir: str | None = None):
        self.base_directory = Path(upload_dir or Config.UPLOAD_DIR).resolve()
        os.makedirs(self.base_directory, exist_ok=True)

    def save(self, file_obj: IO[bytes], original_filename: str, owner_id: int) -> str:
        """Save a file and return its reference relative to the upload directory."""

        safe_name = secure_filename(original_filename or "")
        if not safe_name:
            raise ValueError("Filename must contain at least one valid character.")

        owner_directory = self.base_directory / str(int(owner_id))
        os.makedirs(owner_directory, exist_ok=True)
        destination = owner_directory / f"{uuid.uuid4().hex}{Path(safe_name).suffix.lower()}"
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return destination.relative_to(self.base_directory).as_posix()

    def path_for(self, file_ref: str) -> Path:
        """Resolve a reference, refusing anything outside the upload directory."""

        candidate = (self.base_directory / file_ref).resolve()
        if self.base_directory not in candidate.parents:
            raise ValueError("File reference points outside the upload directory.")
        return candidate

    def exists(self, file_ref: str) -> bool:
        try:
            return self.path_for(file_ref).is_file()
        except ValueError:
            return False

    def delete(self, file_ref: str) -> None:
        self.path_for(file_ref).unlink(missing_ok=True)

    def open(self, file_ref: str, mode: str = "rb") -> BinaryIO:
        """Open a stored file using the provided mode."""

        return open(self.path_for(file_ref), mode)
