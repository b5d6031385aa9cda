"""
Path normalization.

All paths handled by the facade are root-relative strings with forward
slashes, no leading or trailing slash, and no "." or ".." segments.
The empty string is the root directory.
"""

import os

from .errors import InvalidPath

ROOT = ""


def normalize_path(raw) -> str:
    """
    Canonicalize a caller supplied path.

    Args:
        raw: str, bytes (UTF-8) or os.PathLike.

    Returns:
        The normalized path ("" for the root).

    Raises:
        InvalidPath: On null bytes, undecodable input, or ".." escaping the root.
    """
    try:
        raw = os.fspath(raw)
    except TypeError:
        raise InvalidPath(f"Path must be str, bytes or os.PathLike, not {type(raw).__name__}")

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPath(f"Path is not valid UTF-8: {raw!r}") from e

    if "\0" in raw:
        raise InvalidPath(f"Path contains a null byte: {raw!r}", raw)

    try:
        raw.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPath(f"Path is not encodable as UTF-8: {raw!r}", raw) from e

    parts: list[str] = []
    for segment in raw.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise InvalidPath(f"Path is outside of the defined root: {raw}", raw)
            parts.pop()
            continue
        parts.append(segment)

    return "/".join(parts)


def dirname(path: str) -> str:
    """Parent of a normalized path ("" for top-level entries and the root)."""
    if "/" not in path:
        return ROOT
    return path.rsplit("/", 1)[0]


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def is_within(directory: str, path: str) -> bool:
    """True if ``directory`` is ``path`` itself or one of its ancestors."""
    if directory == ROOT or directory == path:
        return True
    return path.startswith(directory + "/")


def ancestors(path: str) -> list[str]:
    """Ancestor directories of ``path``, nearest first, ending with the root."""
    result = []
    while path:
        path = dirname(path)
        result.append(path)
    return result


def join(directory: str, name: str) -> str:
    return f"{directory}/{name}" if directory else name
