"""
Adapter protocol definition.

Defines the capability set every storage backend implements, allowing the
Filesystem facade to work with any of them interchangeably.

Paths handed to an adapter are already normalized and root-relative
("" is the root). Adapters report a missing entry by raising
FileNotFoundError and may report an existing one with FileExistsError;
any other exception is wrapped by the facade as an AdapterError.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, BinaryIO, Protocol, runtime_checkable

from ..metadata import Metadata
from ..options import VISIBILITY_PRIVATE, VISIBILITY_PUBLIC, Config

MetadataLike = Metadata | Mapping[str, Any]

# POSIX permissions used by adapters that map visibility onto file modes
PERMISSION_MAP = {
    "file": {VISIBILITY_PUBLIC: 0o644, VISIBILITY_PRIVATE: 0o600},
    "dir": {VISIBILITY_PUBLIC: 0o755, VISIBILITY_PRIVATE: 0o700},
}


def mode_for_visibility(visibility: str, is_dir: bool) -> int:
    return PERMISSION_MAP["dir" if is_dir else "file"][visibility]


def visibility_from_mode(mode: int) -> str:
    """Anything readable by group or others counts as public."""
    return VISIBILITY_PUBLIC if mode & 0o044 else VISIBILITY_PRIVATE


@runtime_checkable
class Adapter(Protocol):
    """Protocol defining the storage backend interface."""

    def has(self, path: str) -> bool:
        """Return True if a file or directory exists at path."""
        ...

    def read(self, path: str) -> bytes:
        """
        Read a whole file.

        Raises:
            FileNotFoundError: If path does not exist.
        """
        ...

    def read_stream(self, path: str) -> BinaryIO:
        """Open a file for reading. The caller closes the stream."""
        ...

    def write(self, path: str, contents: bytes, config: Config) -> MetadataLike:
        """Create or overwrite a file, creating parent directories as needed."""
        ...

    def write_stream(self, path: str, stream: BinaryIO, config: Config) -> MetadataLike:
        """Create or overwrite a file from a stream. Must not close the stream."""
        ...

    def update(self, path: str, contents: bytes, config: Config) -> MetadataLike:
        """
        Overwrite an existing file.

        Raises:
            FileNotFoundError: If path does not exist.
        """
        ...

    def update_stream(self, path: str, stream: BinaryIO, config: Config) -> MetadataLike:
        ...

    def rename(self, path: str, new_path: str) -> bool:
        """Rename or move a file/directory."""
        ...

    def copy(self, path: str, new_path: str) -> bool:
        ...

    def delete(self, path: str) -> bool:
        """Delete a file."""
        ...

    def delete_dir(self, path: str) -> bool:
        """Delete a directory and everything below it."""
        ...

    def create_dir(self, path: str, config: Config) -> MetadataLike:
        """Create a directory (recursively if needed)."""
        ...

    def set_visibility(self, path: str, visibility: str) -> bool:
        ...

    def get_metadata(self, path: str) -> MetadataLike:
        ...

    def get_size(self, path: str) -> int | None:
        ...

    def get_mimetype(self, path: str) -> str | None:
        ...

    def get_timestamp(self, path: str) -> int | None:
        ...

    def get_visibility(self, path: str) -> str | None:
        ...

    def list_contents(self, directory: str, recursive: bool) -> Iterable[MetadataLike]:
        """List entries below directory (direct children unless recursive)."""
        ...
