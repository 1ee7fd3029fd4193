"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, BinaryIO


class AbstractStorage(ABC):
    """Interface for document storage backends.

    Backends hand out opaque file references; callers only store and compare
    them.
    """

    @abstractmethod
    def save(self, file_obj: IO[bytes], original_filename: str, owner_id: int) -> str:
        """Persist a file for ``owner_id`` and return its file reference."""

    @abstractmethod
    def exists(self, file_ref: str) -> bool:
        """Return whether the referenced file exists in storage."""

    @abstractmethod
    def open(self, file_ref: str, mode: str = "rb") -> BinaryIO:
        """Open a stored file and return the file object."""

    @abstractmethod
    def delete(self, file_ref: str) -> None:
        """Remove the referenced file if it exists."""

    @abstractmethod
    def path_for(self, file_ref: str) -> Path:
        """Return the filesystem path used to serve the referenced file."""

    @staticmethod
    def owner_of(file_ref: str) -> int | None:
        """Return the uploader's user id encoded in ``file_ref``."""

        head, _, _ = file_ref.partition("/")
        try:
            return int(head)
        except ValueError:
            return None
