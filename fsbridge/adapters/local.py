"""
Local disk adapter.

All paths are resolved below a root directory. Visibility is mapped onto
POSIX permission bits (see PERMISSION_MAP).
"""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import BinaryIO

from ..metadata import TYPE_DIR, TYPE_FILE, Metadata
from ..mimetype import guess_mimetype
from ..options import VISIBILITY_PUBLIC, Config
from .base import mode_for_visibility, visibility_from_mode

logger = logging.getLogger(__name__)


class LocalAdapter:
    def __init__(self, root: str | os.PathLike, default_visibility: str = VISIBILITY_PUBLIC):
        self.root = Path(root).resolve()
        self.default_visibility = default_visibility
        if not self.root.exists():
            logger.info("Creating root directory: %s", self.root)
            self.root.mkdir(parents=True, exist_ok=True)
            self.root.chmod(mode_for_visibility(default_visibility, is_dir=True))
        if not self.root.is_dir():
            raise NotADirectoryError(f"Root is not a directory: {self.root}")

    def _full_path(self, path: str) -> Path:
        return self.root / path if path else self.root

    def _relative(self, full: Path) -> str:
        return full.relative_to(self.root).as_posix()

    def _to_metadata(self, path: str, st: os.stat_result) -> Metadata:
        visibility = visibility_from_mode(st.st_mode)
        timestamp = int(st.st_mtime)
        if stat.S_ISDIR(st.st_mode):
            return Metadata(path=path, type=TYPE_DIR, timestamp=timestamp, visibility=visibility)
        return Metadata(
            path=path,
            type=TYPE_FILE,
            size=st.st_size,
            timestamp=timestamp,
            visibility=visibility,
            mimetype=guess_mimetype(path),
        )

    def _ensure_parent(self, full: Path) -> None:
        parent = full.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True)
            parent.chmod(mode_for_visibility(self.default_visibility, is_dir=True))

    def _finish_write(self, path: str, full: Path, config: Config, sniff: bytes | None) -> Metadata:
        if config.visibility:
            full.chmod(mode_for_visibility(config.visibility, is_dir=False))
        if config.timestamp is not None:
            os.utime(full, (config.timestamp, config.timestamp))
        metadata = self._to_metadata(path, full.stat())
        return metadata.merged(mimetype=config.mimetype or guess_mimetype(path, sniff))

    def has(self, path: str) -> bool:
        return self._full_path(path).exists()

    def read(self, path: str) -> bytes:
        return self._full_path(path).read_bytes()

    def read_stream(self, path: str) -> BinaryIO:
        return open(self._full_path(path), "rb")

    def write(self, path: str, contents: bytes, config: Config) -> Metadata:
        full = self._full_path(path)
        self._ensure_parent(full)
        full.write_bytes(contents)
        logger.debug("Wrote %d bytes to %s", len(contents), full)
        return self._finish_write(path, full, config, contents[:1024])

    def write_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        full = self._full_path(path)
        self._ensure_parent(full)
        with open(full, "wb") as f:
            shutil.copyfileobj(stream, f)
        with open(full, "rb") as f:
            head = f.read(1024)
        return self._finish_write(path, full, config, head)

    def update(self, path: str, contents: bytes, config: Config) -> Metadata:
        full = self._full_path(path)
        if not full.is_file():
            raise FileNotFoundError(f"No such file: {path}")
        return self.write(path, contents, config)

    def update_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        full = self._full_path(path)
        if not full.is_file():
            raise FileNotFoundError(f"No such file: {path}")
        return self.write_stream(path, stream, config)

    def rename(self, path: str, new_path: str) -> bool:
        source = self._full_path(path)
        target = self._full_path(new_path)
        if not source.exists():
            raise FileNotFoundError(f"No such file or directory: {path}")
        self._ensure_parent(target)
        os.replace(source, target)
        return True

    def copy(self, path: str, new_path: str) -> bool:
        target = self._full_path(new_path)
        self._ensure_parent(target)
        shutil.copy2(self._full_path(path), target)
        return True

    def delete(self, path: str) -> bool:
        self._full_path(path).unlink()
        return True

    def delete_dir(self, path: str) -> bool:
        full = self._full_path(path)
        if not full.exists():
            raise FileNotFoundError(f"No such directory: {path}")
        shutil.rmtree(full)
        return True

    def create_dir(self, path: str, config: Config) -> Metadata:
        full = self._full_path(path)
        visibility = config.visibility or self.default_visibility
        if full.exists() and not full.is_dir():
            raise FileExistsError(f"A file exists at: {path}")
        full.mkdir(parents=True, exist_ok=True)
        full.chmod(mode_for_visibility(visibility, is_dir=True))
        metadata = self._to_metadata(path, full.stat())
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
        full = self._full_path(path)
        full.chmod(mode_for_visibility(visibility, is_dir=full.is_dir()))
        return True

    def get_metadata(self, path: str) -> Metadata:
        return self._to_metadata(path, self._full_path(path).stat())

    def get_size(self, path: str) -> int | None:
        return self.get_metadata(path).size

    def get_mimetype(self, path: str) -> str | None:
        metadata = self.get_metadata(path)
        if metadata.is_dir:
            return None
        with open(self._full_path(path), "rb") as f:
            return guess_mimetype(path, f.read(1024))

    def get_timestamp(self, path: str) -> int | None:
        return self.get_metadata(path).timestamp

    def get_visibility(self, path: str) -> str | None:
        return self.get_metadata(path).visibility

    def _append_entry(self, results: list[Metadata], full: Path) -> None:
        # Dangling symlinks and entries removed mid-listing are skipped
        try:
            st = full.stat()
        except FileNotFoundError:
            logger.debug("Skipping unreadable entry: %s", full)
            return
        results.append(self._to_metadata(self._relative(full), st))

    def list_contents(self, directory: str, recursive: bool) -> list[Metadata]:
        base = self._full_path(directory)
        if not base.is_dir():
            raise FileNotFoundError(f"No such directory: {directory}")

        results = []
        if recursive:
            for current, dirnames, filenames in os.walk(base):
                current_path = Path(current)
                for name in dirnames + filenames:
                    self._append_entry(results, current_path / name)
        else:
            for full in base.iterdir():
                self._append_entry(results, full)

        logger.debug("Listed %d entries in %s", len(results), base)
        return results
