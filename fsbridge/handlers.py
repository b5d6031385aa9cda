"""
File and directory handles returned by Filesystem.get().

A handler pairs a path with the filesystem it lives on so callers can
pass one object around instead of (filesystem, path) tuples.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, BinaryIO

if TYPE_CHECKING:
    from .filesystem import Filesystem
    from .metadata import Listing, Metadata


class Handler:
    def __init__(self, filesystem: Filesystem | None = None, path: str | None = None):
        self.filesystem = filesystem
        self.path = path

    def set_filesystem(self, filesystem: Filesystem) -> None:
        self.filesystem = filesystem

    def set_path(self, path: str) -> None:
        self.path = path

    def _fs(self) -> Filesystem:
        if self.filesystem is None or self.path is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a filesystem and path")
        return self.filesystem

    def get_type(self) -> str:
        return self._fs().get_metadata(self.path).type

    def is_file(self) -> bool:
        return self.get_type() == "file"

    def is_dir(self) -> bool:
        return self.get_type() == "dir"

    def exists(self) -> bool:
        return self._fs().has(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


class File(Handler):
    def read(self) -> bytes:
        return self._fs().read(self.path)

    def read_stream(self) -> BinaryIO:
        return self._fs().read_stream(self.path)

    def write(self, contents: bytes | str, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().write(self.path, contents, config)

    def write_stream(self, stream: BinaryIO, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().write_stream(self.path, stream, config)

    def update(self, contents: bytes | str, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().update(self.path, contents, config)

    def update_stream(self, stream: BinaryIO, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().update_stream(self.path, stream, config)

    def put(self, contents: bytes | str, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().put(self.path, contents, config)

    def put_stream(self, stream: BinaryIO, config: Mapping[str, Any] | None = None) -> Metadata:
        return self._fs().put_stream(self.path, stream, config)

    def rename(self, new_path: str) -> bool:
        """Rename the file; the handler follows it to the new path."""
        result = self._fs().rename(self.path, new_path)
        self.path = self.filesystem.normalize(new_path)
        return result

    def copy(self, new_path: str) -> File:
        """Copy the file and return a handler for the copy."""
        fs = self._fs()
        fs.copy(self.path, new_path)
        return File(fs, fs.normalize(new_path))

    def delete(self) -> bool:
        return self._fs().delete(self.path)

    def get_metadata(self) -> Metadata:
        return self._fs().get_metadata(self.path)

    def get_size(self) -> int | None:
        return self._fs().get_size(self.path)

    def get_mimetype(self) -> str | None:
        return self._fs().get_mimetype(self.path)

    def get_timestamp(self) -> int | None:
        return self._fs().get_timestamp(self.path)

    def get_visibility(self) -> str | None:
        return self._fs().get_visibility(self.path)

    def set_visibility(self, visibility: str) -> bool:
        return self._fs().set_visibility(self.path, visibility)


class Directory(Handler):
    def delete(self) -> bool:
        return self._fs().delete_dir(self.path)

    def get_contents(self, recursive: bool = False) -> Listing:
        return self._fs().list_contents(self.path, recursive)
