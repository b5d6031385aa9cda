"""
Per-call write options.

Callers pass a plain mapping of overrides; ConfigResolver layers it over
the filesystem defaults and returns an immutable Config. Only the options
listed in RECOGNIZED_OPTIONS exist. What happens to anything else depends
on the resolver's ``strict`` flag.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any

from .errors import InvalidConfig

logger = logging.getLogger(__name__)

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"
VISIBILITIES = (VISIBILITY_PUBLIC, VISIBILITY_PRIVATE)

RECOGNIZED_OPTIONS = frozenset(
    {"visibility", "mimetype", "size", "timestamp", "directory_attributes"}
)


@dataclass(frozen=True)
class Config:
    visibility: str | None = None  # ACL applied by the adapter on write
    mimetype: str | None = None  # Overrides auto-detection
    size: int | None = None  # Known size for stream writes
    timestamp: int | float | None = None
    directory_attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def get(self, key: str, default: Any = None) -> Any:
        if key not in RECOGNIZED_OPTIONS:
            return default
        value = getattr(self, key)
        return default if value is None else value

    def to_dict(self) -> dict[str, Any]:
        """Options that are set, as a plain dict."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "directory_attributes":
                if value:
                    result[f.name] = dict(value)
            elif value is not None:
                result[f.name] = value
        return result


def validate_visibility(value: Any) -> str:
    if value not in VISIBILITIES:
        raise InvalidConfig(
            f"Invalid visibility: {value!r}. Must be one of: {', '.join(VISIBILITIES)}"
        )
    return value


def _validate_option(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "visibility":
        return validate_visibility(value)
    if key == "mimetype":
        if not isinstance(value, str) or not value:
            raise InvalidConfig(f"Invalid mimetype: {value!r}")
        return value
    if key == "size":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidConfig(f"Invalid size: {value!r}. Must be a non-negative integer")
        return value
    if key == "timestamp":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidConfig(f"Invalid timestamp: {value!r}")
        return value
    if key == "directory_attributes":
        if not isinstance(value, Mapping):
            raise InvalidConfig(f"directory_attributes must be a mapping, not {type(value).__name__}")
        return MappingProxyType(dict(value))
    raise InvalidConfig(f"Unrecognized option: {key}")


class ConfigResolver:
    """
    Merges caller overrides into a validated Config.

    In strict mode an unrecognized key raises InvalidConfig. In permissive
    mode it is dropped and logged at debug level. A malformed value for a
    recognized key raises in both modes.
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None, strict: bool = True):
        self.strict = strict
        self._defaults: dict[str, Any] = {}
        for key, value in (defaults or {}).items():
            if key not in RECOGNIZED_OPTIONS:
                raise InvalidConfig(f"Unrecognized default option: {key}")
            validated = _validate_option(key, value)
            if validated is not None:
                self._defaults[key] = validated

    @property
    def defaults(self) -> dict[str, Any]:
        return dict(self._defaults)

    def resolve(self, overrides: Mapping[str, Any] | Config | None = None) -> Config:
        if overrides is None:
            overrides = {}
        elif isinstance(overrides, Config):
            overrides = overrides.to_dict()
        elif not isinstance(overrides, Mapping):
            raise InvalidConfig(
                f"Config must be a mapping or Config, not {type(overrides).__name__}"
            )

        values = dict(self._defaults)
        for key, value in overrides.items():
            if key not in RECOGNIZED_OPTIONS:
                if self.strict:
                    raise InvalidConfig(f"Unrecognized option: {key}")
                logger.debug("Dropping unrecognized option: %s", key)
                continue
            validated = _validate_option(key, value)
            if validated is None:
                values.pop(key, None)
            else:
                values[key] = validated

        return Config(**values)
