"""
In-process adapter keeping every file in a dict.

Useful for tests and as a scratch backend. Directories are created
implicitly when a file is written below them.
"""

import logging
import threading
import time
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO

from ..metadata import TYPE_DIR, TYPE_FILE, Metadata
from ..mimetype import guess_mimetype
from ..options import VISIBILITY_PUBLIC, Config
from ..paths import ROOT, ancestors, dirname, is_within

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    is_dir: bool
    timestamp: int
    visibility: str
    contents: bytes = b""
    mimetype: str | None = None


class MemoryAdapter:
    def __init__(self, default_visibility: str = VISIBILITY_PUBLIC):
        self.default_visibility = default_visibility
        self._lock = threading.Lock()
        self._nodes: dict[str, _Node] = {
            ROOT: _Node(is_dir=True, timestamp=int(time.time()), visibility=default_visibility)
        }

    def _get_node(self, path: str) -> _Node:
        node = self._nodes.get(path)
        if node is None:
            raise FileNotFoundError(f"No such file or directory: {path}")
        return node

    def _get_file(self, path: str) -> _Node:
        node = self._get_node(path)
        if node.is_dir:
            raise IsADirectoryError(f"Is a directory: {path}")
        return node

    def _ensure_parents(self, path: str) -> None:
        for parent in ancestors(path):
            node = self._nodes.get(parent)
            if node is None:
                self._nodes[parent] = _Node(
                    is_dir=True, timestamp=int(time.time()), visibility=self.default_visibility
                )
            elif not node.is_dir:
                raise NotADirectoryError(f"Not a directory: {parent}")

    def _check_target(self, path: str) -> None:
        """A rename or copy may replace a file but never a directory."""
        target = self._nodes.get(path)
        if target is not None and target.is_dir:
            raise IsADirectoryError(f"Cannot overwrite directory: {path}")

    def _to_metadata(self, path: str, node: _Node) -> Metadata:
        if node.is_dir:
            return Metadata(
                path=path, type=TYPE_DIR, timestamp=node.timestamp, visibility=node.visibility
            )
        return Metadata(
            path=path,
            type=TYPE_FILE,
            size=len(node.contents),
            timestamp=node.timestamp,
            visibility=node.visibility,
            mimetype=node.mimetype or guess_mimetype(path, node.contents),
        )

    def _store(self, path: str, contents: bytes, config: Config) -> Metadata:
        existing = self._nodes.get(path)
        if existing is not None and existing.is_dir:
            raise IsADirectoryError(f"Is a directory: {path}")
        self._ensure_parents(path)
        visibility = config.visibility or (
            existing.visibility if existing else self.default_visibility
        )
        node = _Node(
            is_dir=False,
            timestamp=int(config.timestamp or time.time()),
            visibility=visibility,
            contents=bytes(contents),
            mimetype=config.mimetype,
        )
        self._nodes[path] = node
        logger.debug("Stored %d bytes at %s", len(node.contents), path)
        return self._to_metadata(path, node)

    def has(self, path: str) -> bool:
        with self._lock:
            return path in self._nodes

    def read(self, path: str) -> bytes:
        with self._lock:
            return self._get_file(path).contents

    def read_stream(self, path: str) -> BinaryIO:
        return BytesIO(self.read(path))

    def write(self, path: str, contents: bytes, config: Config) -> Metadata:
        with self._lock:
            return self._store(path, contents, config)

    def write_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        return self.write(path, stream.read(), config)

    def update(self, path: str, contents: bytes, config: Config) -> Metadata:
        with self._lock:
            self._get_file(path)
            return self._store(path, contents, config)

    def update_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        return self.update(path, stream.read(), config)

    def rename(self, path: str, new_path: str) -> bool:
        with self._lock:
            self._get_node(path)
            if is_within(path, new_path):
                raise OSError(f"Cannot move {path} into itself")
            self._check_target(new_path)
            self._ensure_parents(new_path)
            moved = {key: node for key, node in self._nodes.items() if is_within(path, key)}
            for key in moved:
                del self._nodes[key]
            for key, node in moved.items():
                self._nodes[new_path + key[len(path):]] = node
        return True

    def copy(self, path: str, new_path: str) -> bool:
        with self._lock:
            node = self._get_file(path)
            self._check_target(new_path)
            self._ensure_parents(new_path)
            self._nodes[new_path] = _Node(
                is_dir=False,
                timestamp=int(time.time()),
                visibility=node.visibility,
                contents=node.contents,
                mimetype=node.mimetype,
            )
        return True

    def delete(self, path: str) -> bool:
        with self._lock:
            self._get_file(path)
            del self._nodes[path]
        return True

    def delete_dir(self, path: str) -> bool:
        with self._lock:
            node = self._get_node(path)
            if not node.is_dir:
                raise NotADirectoryError(f"Not a directory: {path}")
            for key in [key for key in self._nodes if is_within(path, key)]:
                del self._nodes[key]
            if path == ROOT:
                self._nodes[ROOT] = node
        return True

    def create_dir(self, path: str, config: Config) -> Metadata:
        with self._lock:
            existing = self._nodes.get(path)
            if existing is not None and not existing.is_dir:
                raise FileExistsError(f"A file exists at: {path}")
            self._ensure_parents(path)
            if existing is None:
                existing = _Node(
                    is_dir=True,
                    timestamp=int(time.time()),
                    visibility=config.visibility or self.default_visibility,
                )
                self._nodes[path] = existing
            elif config.visibility:
                existing.visibility = config.visibility
            metadata = self._to_metadata(path, existing)
        if config.directory_attributes:
            metadata = Metadata(
                path=metadata.path,
                type=metadata.type,
                timestamp=metadata.timestamp,
                visibility=metadata.visibility,
                extra=dict(config.directory_attributes),
            )
        return metadata

    def set_visibility(self, path: str, visibility: str) -> bool:
        with self._lock:
            self._get_node(path).visibility = visibility
        return True

    def get_metadata(self, path: str) -> Metadata:
        with self._lock:
            return self._to_metadata(path, self._get_node(path))

    def get_size(self, path: str) -> int | None:
        return self.get_metadata(path).size

    def get_mimetype(self, path: str) -> str | None:
        return self.get_metadata(path).mimetype

    def get_timestamp(self, path: str) -> int | None:
        return self.get_metadata(path).timestamp

    def get_visibility(self, path: str) -> str | None:
        return self.get_metadata(path).visibility

    def list_contents(self, directory: str, recursive: bool) -> list[Metadata]:
        with self._lock:
            node = self._get_node(directory)
            if not node.is_dir:
                raise NotADirectoryError(f"Not a directory: {directory}")
            return [
                self._to_metadata(path, entry)
                for path, entry in self._nodes.items()
                if path != directory
                and is_within(directory, path)
                and (recursive or dirname(path) == directory)
            ]
