"""
Filesystem facade.

Wraps one storage adapter behind a uniform contract:
- Paths are normalized before anything reaches the adapter
- Metadata and listings are served from a MetadataCache when possible
- Backend failures surface as fsbridge.errors exceptions, never as False
- Named plugin operations are dispatched through a PluginRegistry
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from functools import wraps
from typing import Any, BinaryIO

from .adapters.base import Adapter
from .cache import MetadataCache
from .config import FilesystemConfig
from .errors import (
    AdapterError,
    FileExists,
    FileNotFound,
    FilesystemError,
    InvalidArgument,
    InvalidConfig,
    InvalidPath,
    ReadAndDeleteError,
)
from .handlers import Directory, File, Handler
from .metadata import (
    FILE_ONLY_KEYS,
    TYPE_DIR,
    TYPE_FILE,
    Listing,
    Metadata,
    coerce_metadata,
    format_listing,
    validate_keys,
)
from .options import Config, ConfigResolver, validate_visibility
from .paths import ROOT, normalize_path
from .plugins import Plugin, PluginRegistry

logger = logging.getLogger(__name__)


def operation(fn):
    """Decorator for facade operations - logs the outcome of each call."""
    name = fn.__name__

    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            result = fn(self, *args, **kwargs)
            logger.debug("%s: OK", name)
            return result
        except Exception as exc:
            logger.debug("%s: FAIL - %s", name, exc)
            raise

    return wrapper


def _ensure_bytes(contents: Any) -> bytes:
    if isinstance(contents, str):
        return contents.encode("utf-8")
    if isinstance(contents, (bytes, bytearray, memoryview)):
        return bytes(contents)
    raise InvalidArgument(f"Contents must be bytes or str, not {type(contents).__name__}")


def _ensure_stream(stream: Any) -> BinaryIO:
    """Check that ``stream`` is readable and rewind it if possible."""
    if not callable(getattr(stream, "read", None)):
        raise InvalidArgument(f"Expected a readable stream, not {type(stream).__name__}")
    seekable = getattr(stream, "seekable", None)
    if callable(seekable) and seekable():
        stream.seek(0)
    return stream


class Filesystem:
    """
    Backend-agnostic filesystem.

    The facade holds no lock around adapter I/O and never retries. The
    cache is its only shared mutable state, so one instance can be used
    from many threads.
    """

    def __init__(
        self,
        adapter: Adapter,
        cache: MetadataCache | None = None,
        config: FilesystemConfig | None = None,
    ):
        self.adapter = adapter
        self.cache = cache if cache is not None else MetadataCache()
        self.config = config or FilesystemConfig()

        defaults = {}
        if self.config.default_visibility:
            defaults["visibility"] = self.config.default_visibility
        self._resolver = ConfigResolver(defaults=defaults, strict=self.config.strict_config)
        self._plugins = PluginRegistry()

        logger.info(
            "Filesystem initialized (adapter=%s, cache=%s, strict_config=%s)",
            type(adapter).__name__,
            "on" if self.cache.enabled else "off",
            self.config.strict_config,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def normalize(self, path) -> str:
        return normalize_path(path)

    def _entry_path(self, path) -> str:
        """Normalize a path that must name an entry below the root."""
        normalized = normalize_path(path)
        if normalized == ROOT:
            raise InvalidPath("The root directory is not a valid target for this operation", path)
        return normalized

    def _call(self, op: str, path: str, func, *args, target: str | None = None):
        """
        Invoke an adapter method and translate its failures.

        ``target`` names the path reported by FileExists when it differs
        from ``path`` (the destination of rename/copy).
        """
        try:
            return func(*args)
        except FilesystemError:
            raise
        except FileNotFoundError as e:
            raise FileNotFound(path) from e
        except FileExistsError as e:
            raise FileExists(target or path) from e
        except Exception as e:
            raise AdapterError(
                f"{op} failed for {path!r}: {e}", path=path, operation=op, original=e
            ) from e

    def _expect(self, result: Any, op: str, path: str) -> None:
        if result is False:
            raise AdapterError(f"{op} reported failure for {path!r}", path=path, operation=op)

    def _coerce(self, op: str, path: str, result: Any, default_type: str) -> Metadata:
        """Turn an adapter result into a Metadata record for ``path``."""
        self._expect(result, op, path)
        if result is None or result is True:
            return Metadata(path=path, type=default_type)
        try:
            metadata = coerce_metadata(result, path)
        except (ValueError, TypeError) as e:
            raise AdapterError(
                f"{op} returned malformed metadata for {path!r}: {e}",
                path=path,
                operation=op,
                original=e,
            ) from e
        if metadata.path != path:
            metadata = replace(metadata, path=path)
        return metadata

    def _overwrite_allowed(self, overwrite: bool | None) -> bool:
        return self.config.allow_overwrite if overwrite is None else overwrite

    def _stored(self, path: str, metadata: Metadata, since: int) -> Metadata:
        """
        Record the outcome of a successful write-like mutation.

        ``since`` is the cache generation seen before the adapter call; if
        another mutation invalidated anything meanwhile the record is not
        cached.
        """
        self.cache.replace(path, metadata, since=since)
        return metadata

    def _write_file(self, op: str, path: str, func, payload, resolved: Config) -> Metadata:
        """Run a validated write/update adapter call and cache its result."""
        since = self.cache.generation
        result = self._call(op, path, func, path, payload, resolved)
        return self._stored(path, self._coerce(op, path, result, TYPE_FILE), since)

    def _get_attribute(self, op: str, path: str, key: str) -> Any:
        metadata = self.get_metadata(path)
        if metadata.has(key):
            return getattr(metadata, key)
        if metadata.is_dir and key in FILE_ONLY_KEYS:
            return None

        since = self.cache.generation
        value = self._call(op, path, getattr(self.adapter, f"get_{key}"), path)
        if isinstance(value, Mapping):
            value = value.get(key)
        if value is not None:
            self.cache.put(path, metadata.merged(**{key: value}), since=since)
        return value

    def _complete(self, op: str, metadata: Metadata, keys: Iterable[str]) -> Metadata:
        """Fill in the requested attributes the record does not carry yet."""
        for key in keys:
            if metadata.has(key) or (metadata.is_dir and key in FILE_ONLY_KEYS):
                continue
            metadata = metadata.merged(**{key: self._get_attribute(op, metadata.path, key)})
        return metadata

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @operation
    def has(self, path) -> bool:
        """Check whether a file or directory exists. Never raises FileNotFound."""
        path = normalize_path(path)
        if path == ROOT:
            return True
        if self.cache.get(path) is not None:
            return True
        return bool(self._call("has", path, self.adapter.has, path))

    @operation
    def read(self, path) -> bytes:
        path = self._entry_path(path)
        return self._call("read", path, self.adapter.read, path)

    @operation
    def read_stream(self, path) -> BinaryIO:
        """Open a file for reading. The caller must close the returned stream."""
        path = self._entry_path(path)
        return self._call("read_stream", path, self.adapter.read_stream, path)

    @operation
    def get_metadata(self, path) -> Metadata:
        """
        Get the metadata record of a file or directory.

        Raises:
            FileNotFound: If nothing exists at path.
        """
        path = normalize_path(path)
        cached = self.cache.get(path)
        if cached is not None:
            return cached

        since = self.cache.generation
        result = self._call("get_metadata", path, self.adapter.get_metadata, path)
        metadata = self._coerce("get_metadata", path, result, TYPE_FILE)
        self.cache.put(path, metadata, since=since)
        return metadata

    @operation
    def get_size(self, path) -> int | None:
        """File size in bytes; None for directories."""
        return self._get_attribute("get_size", normalize_path(path), "size")

    @operation
    def get_mimetype(self, path) -> str | None:
        """File content type; None for directories."""
        return self._get_attribute("get_mimetype", normalize_path(path), "mimetype")

    @operation
    def get_timestamp(self, path) -> int | None:
        return self._get_attribute("get_timestamp", normalize_path(path), "timestamp")

    @operation
    def get_visibility(self, path) -> str | None:
        return self._get_attribute("get_visibility", normalize_path(path), "visibility")

    @operation
    def get_with_metadata(self, path, keys: Iterable[str]) -> dict[str, Any]:
        """
        Get exactly the requested metadata attributes of a path.

        Args:
            path: File or directory path.
            keys: Attribute names, a subset of metadata.METADATA_KEYS.

        Returns:
            Dict with exactly ``keys``; attributes that do not apply are None.

        Raises:
            InvalidArgument: If a key is not a metadata attribute (before any I/O).
        """
        keys = validate_keys(keys)
        path = normalize_path(path)
        metadata = self._complete("get_with_metadata", self.get_metadata(path), keys)
        return metadata.to_dict(keys)

    @operation
    def list_contents(self, directory="", recursive: bool = False) -> Listing:
        """
        List the entries of a directory.

        Returns:
            Listing sorted by path; direct children only unless recursive.
        """
        directory = normalize_path(directory)
        cached = self.cache.get_listing(directory, recursive)
        if cached is not None:
            return cached

        since = self.cache.generation
        records = self._call(
            "list_contents", directory, self.adapter.list_contents, directory, recursive
        )
        self._expect(records, "list_contents", directory)
        try:
            listing = format_listing(directory, recursive, records or ())
        except (ValueError, TypeError) as e:
            raise AdapterError(
                f"list_contents returned malformed records for {directory!r}: {e}",
                path=directory,
                operation="list_contents",
                original=e,
            ) from e

        self.cache.put_listing(directory, recursive, listing, since=since)
        if self.config.cache_listing_entries:
            for entry in listing:
                self.cache.add(entry.path, entry, since=since)
        return listing

    @operation
    def list_files(self, directory="", recursive: bool = False) -> list[Metadata]:
        return self.list_contents(directory, recursive).files()

    @operation
    def list_paths(self, directory="", recursive: bool = False) -> list[str]:
        return self.list_contents(directory, recursive).paths()

    @operation
    def list_with(self, keys: Iterable[str], directory="", recursive: bool = False) -> Listing:
        """
        List a directory with the given attributes present on every record.

        Attributes the listing did not supply are fetched per entry.
        """
        keys = validate_keys(keys)
        listing = self.list_contents(directory, recursive)
        entries = tuple(self._complete("list_with", entry, keys) for entry in listing)
        return Listing(directory=listing.directory, recursive=listing.recursive, entries=entries)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @operation
    def write(self, path, contents, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        """Create or overwrite a file."""
        path = self._entry_path(path)
        contents = _ensure_bytes(contents)
        resolved = self._resolver.resolve(config)
        return self._write_file("write", path, self.adapter.write, contents, resolved)

    @operation
    def write_stream(self, path, stream, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        """Create or overwrite a file from a stream. The stream is left open."""
        path = self._entry_path(path)
        stream = _ensure_stream(stream)
        resolved = self._resolver.resolve(config)
        return self._write_file("write_stream", path, self.adapter.write_stream, stream, resolved)

    @operation
    def update(self, path, contents, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        """
        Overwrite an existing file.

        Raises:
            FileNotFound: If the file does not exist.
        """
        path = self._entry_path(path)
        contents = _ensure_bytes(contents)
        resolved = self._resolver.resolve(config)
        if not self.has(path):
            raise FileNotFound(path)
        return self._write_file("update", path, self.adapter.update, contents, resolved)

    @operation
    def update_stream(self, path, stream, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        path = self._entry_path(path)
        stream = _ensure_stream(stream)
        resolved = self._resolver.resolve(config)
        if not self.has(path):
            raise FileNotFound(path)
        return self._write_file(
            "update_stream", path, self.adapter.update_stream, stream, resolved
        )

    @operation
    def put(self, path, contents, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        """
        Update the file if it exists, write it otherwise.

        The existence check and the write are separate adapter calls; a
        concurrent writer can slip in between them.
        """
        path = self._entry_path(path)
        contents = _ensure_bytes(contents)
        resolved = self._resolver.resolve(config)
        if self.has(path):
            return self._write_file("update", path, self.adapter.update, contents, resolved)
        return self._write_file("write", path, self.adapter.write, contents, resolved)

    @operation
    def put_stream(self, path, stream, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        path = self._entry_path(path)
        stream = _ensure_stream(stream)
        resolved = self._resolver.resolve(config)
        if self.has(path):
            return self._write_file(
                "update_stream", path, self.adapter.update_stream, stream, resolved
            )
        return self._write_file("write_stream", path, self.adapter.write_stream, stream, resolved)

    @operation
    def rename(self, path, new_path, overwrite: bool | None = None) -> bool:
        """
        Rename or move a file or directory.

        Args:
            overwrite: Replace an existing destination. Defaults to
                FilesystemConfig.allow_overwrite.

        Raises:
            FileNotFound: If path does not exist.
            FileExists: If new_path exists and overwriting is not allowed.
        """
        path = self._entry_path(path)
        new_path = self._entry_path(new_path)
        if not self.has(path):
            raise FileNotFound(path)
        if not self._overwrite_allowed(overwrite) and self.has(new_path):
            raise FileExists(new_path)

        result = self._call("rename", path, self.adapter.rename, path, new_path, target=new_path)
        self._expect(result, "rename", path)
        self.cache.invalidate_tree(path)
        self.cache.invalidate_tree(new_path)
        return True

    @operation
    def copy(self, path, new_path, overwrite: bool | None = None) -> bool:
        """Copy a file. Existence rules are the same as for rename()."""
        path = self._entry_path(path)
        new_path = self._entry_path(new_path)
        if not self.has(path):
            raise FileNotFound(path)
        if not self._overwrite_allowed(overwrite) and self.has(new_path):
            raise FileExists(new_path)

        result = self._call("copy", path, self.adapter.copy, path, new_path, target=new_path)
        self._expect(result, "copy", path)
        self.cache.invalidate_tree(new_path)
        return True

    @operation
    def delete(self, path) -> bool:
        """Delete a file."""
        path = self._entry_path(path)
        self._expect(self._call("delete", path, self.adapter.delete, path), "delete", path)
        self.cache.invalidate_tree(path)
        return True

    @operation
    def read_and_delete(self, path) -> bytes:
        """
        Read a file and delete it.

        If the read fails nothing is deleted. If the delete fails the call
        fails too: ReadAndDeleteError carries the contents that were read
        and chains the delete error.
        """
        path = self._entry_path(path)
        contents = self.read(path)
        try:
            self.delete(path)
        except FilesystemError as e:
            logger.error("Read %s but could not delete it: %s", path, e)
            raise ReadAndDeleteError(path, contents, e) from e
        return contents

    @operation
    def create_dir(self, path, config: Mapping[str, Any] | Config | None = None) -> Metadata:
        """
        Create a directory, including missing parents.

        ``directory_attributes`` from the config are attached to the
        returned record's ``extra``.
        """
        path = self._entry_path(path)
        resolved = self._resolver.resolve(config)
        since = self.cache.generation
        result = self._call("create_dir", path, self.adapter.create_dir, path, resolved)
        metadata = self._coerce("create_dir", path, result, TYPE_DIR)
        if resolved.directory_attributes:
            metadata = replace(
                metadata, extra={**metadata.extra, **resolved.directory_attributes}
            )
        return self._stored(path, metadata, since)

    @operation
    def delete_dir(self, path) -> bool:
        """Delete a directory and everything below it."""
        path = self._entry_path(path)
        self._expect(self._call("delete_dir", path, self.adapter.delete_dir, path), "delete_dir", path)
        self.cache.invalidate_tree(path)
        return True

    @operation
    def set_visibility(self, path, visibility: str) -> bool:
        """
        Set a path's visibility ("public" or "private").

        Raises:
            InvalidArgument: If visibility is not recognized (before any I/O).
        """
        try:
            validate_visibility(visibility)
        except InvalidConfig as e:
            raise InvalidArgument(str(e), path) from e
        path = self._entry_path(path)

        since = self.cache.generation
        result = self._call("set_visibility", path, self.adapter.set_visibility, path, visibility)
        self._expect(result, "set_visibility", path)
        cached = self.cache.get(path)
        if cached is None:
            self.cache.invalidate(path)
        else:
            self.cache.replace(path, cached.merged(visibility=visibility), since=since)
        return True

    # -------------------------------------------------------------------------
    # Handlers, cache and plugins
    # -------------------------------------------------------------------------

    @operation
    def get(self, path, handler: Handler | None = None) -> Handler:
        """
        Get a File or Directory handler for a path.

        Without ``handler`` the class is chosen from the path's metadata
        (FileNotFound if it does not exist); a given handler is bound as is.
        """
        path = normalize_path(path)
        if handler is None:
            metadata = self.get_metadata(path)
            handler = Directory() if metadata.is_dir else File()
        handler.set_filesystem(self)
        handler.set_path(path)
        return handler

    def flush_cache(self) -> "Filesystem":
        self.cache.invalidate_all()
        return self

    def add_plugin(self, plugin: Plugin) -> "Filesystem":
        """Bind a plugin to this filesystem and register its method."""
        plugin.set_filesystem(self)
        self._plugins.register(plugin.get_method(), plugin.handle)
        return self

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke a plugin method.

        Raises:
            MethodNotFound: If no plugin registered ``name``.
        """
        return self._plugins.dispatch(name, *args, **kwargs)
