"""
Metadata records and directory listings.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import InvalidArgument
from .paths import ancestors, basename, dirname, is_within, normalize_path

logger = logging.getLogger(__name__)

TYPE_FILE = "file"
TYPE_DIR = "dir"

# Attribute names a caller may ask for in get_with_metadata / list_with
METADATA_KEYS = ("path", "type", "size", "timestamp", "visibility", "mimetype")

# Attributes that only make sense for files
FILE_ONLY_KEYS = frozenset({"size", "mimetype"})


@dataclass(frozen=True)
class Metadata:
    """Attributes of one filesystem entry. Unknown values are None."""

    path: str
    type: str
    size: int | None = None
    timestamp: int | None = None
    visibility: str | None = None
    mimetype: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if self.type not in (TYPE_FILE, TYPE_DIR):
            raise ValueError(f"Invalid entry type: {self.type!r}")
        if self.type == TYPE_DIR and (self.size is not None or self.mimetype is not None):
            raise ValueError(f"Directory metadata cannot carry size or mimetype: {self.path}")

    @property
    def is_file(self) -> bool:
        return self.type == TYPE_FILE

    @property
    def is_dir(self) -> bool:
        return self.type == TYPE_DIR

    @property
    def dirname(self) -> str:
        return dirname(self.path)

    @property
    def basename(self) -> str:
        return basename(self.path)

    @property
    def filename(self) -> str:
        """Basename without its extension."""
        name = self.basename
        if "." in name.lstrip("."):
            return name.rsplit(".", 1)[0]
        return name

    @property
    def extension(self) -> str:
        name = self.basename
        if "." in name.lstrip("."):
            return name.rsplit(".", 1)[1]
        return ""

    def has(self, key: str) -> bool:
        """True if the attribute is known for this entry."""
        return getattr(self, key, None) is not None

    def merged(self, **changes: Any) -> "Metadata":
        """Copy with the given attributes replaced, ignoring None values."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes) if changes else self

    def to_dict(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """
        Dict form of the record.

        With ``keys`` the result holds exactly those keys (None where not
        applicable); without, every known attribute plus ``extra``.
        """
        if keys is not None:
            return {key: getattr(self, key) for key in keys}
        result: dict[str, Any] = {"path": self.path, "type": self.type}
        for key in ("size", "timestamp", "visibility", "mimetype"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self.extra)
        return result

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], path: str | None = None) -> "Metadata":
        """
        Build a record from a loose mapping as returned by some adapters.

        Keys outside the known attributes land in ``extra``.
        """
        data = dict(data)
        raw_path = data.pop("path", path)
        if raw_path is None:
            raise ValueError("Metadata mapping has no path")
        entry_type = data.pop("type", TYPE_FILE)
        known = {key: data.pop(key, None) for key in ("size", "timestamp", "visibility", "mimetype")}
        if entry_type == TYPE_DIR:
            known["size"] = None
            known["mimetype"] = None
        return cls(path=normalize_path(raw_path), type=entry_type, extra=data, **known)


def coerce_metadata(value: Any, path: str | None = None) -> Metadata:
    """Accept a Metadata or a mapping and return a Metadata with a normalized path."""
    if isinstance(value, Metadata):
        normalized = normalize_path(value.path)
        return value if normalized == value.path else replace(value, path=normalized)
    if isinstance(value, Mapping):
        return Metadata.from_mapping(value, path)
    raise ValueError(f"Expected Metadata or mapping, got {type(value).__name__}")


def validate_keys(keys: Iterable[str]) -> list[str]:
    """Return keys as a list, rejecting anything that is not a metadata attribute."""
    if isinstance(keys, str):
        keys = [keys]
    keys = list(keys)
    unknown = [key for key in keys if key not in METADATA_KEYS]
    if unknown:
        raise InvalidArgument(
            f"Unrecognized metadata key(s): {', '.join(map(str, unknown))}. "
            f"Valid keys: {', '.join(METADATA_KEYS)}"
        )
    return keys


@dataclass(frozen=True)
class Listing(Sequence):
    """Ordered records of one directory. No two records share a path."""

    directory: str
    recursive: bool
    entries: tuple[Metadata, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))
        seen = set()
        for entry in self.entries:
            if entry.path in seen:
                raise ValueError(f"Duplicate path in listing of {self.directory!r}: {entry.path}")
            seen.add(entry.path)

    def __getitem__(self, index):
        return self.entries[index]

    def __len__(self) -> int:
        return len(self.entries)

    def files(self) -> list[Metadata]:
        return [entry for entry in self.entries if entry.is_file]

    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]


def format_listing(directory: str, recursive: bool, records: Iterable[Any]) -> Listing:
    """
    Turn raw adapter output into a Listing.

    Record paths are normalized, parent directories implied by nested
    paths (object stores have no real directories) are emulated, records
    outside the requested scope are dropped (a non-recursive listing keeps
    direct children only), duplicates are removed with real records
    winning over emulated ones, and the result is sorted by path.
    """
    found: dict[str, Metadata] = {}
    for record in records:
        entry = coerce_metadata(record)
        if entry.path in found:
            logger.debug("Dropping duplicate listing entry: %s", entry.path)
            continue
        found[entry.path] = entry

    for path in list(found):
        for parent in ancestors(path):
            if parent == directory or not is_within(directory, parent):
                break
            if parent not in found:
                found[parent] = Metadata(path=parent, type=TYPE_DIR)

    entries = []
    for path, entry in found.items():
        if path == directory or not is_within(directory, path):
            continue
        if not recursive and dirname(path) != directory:
            continue
        entries.append(entry)

    entries.sort(key=lambda entry: entry.path)
    return Listing(directory=directory, recursive=recursive, entries=tuple(entries))
