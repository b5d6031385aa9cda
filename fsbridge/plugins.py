"""
Plugin registration and dispatch.

A plugin contributes one named operation to a Filesystem. Registration
is an explicit name -> handler mapping; Filesystem.call(name, ...) looks
the name up at call time.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .errors import MethodNotFound

if TYPE_CHECKING:
    from .adapters.base import Adapter
    from .filesystem import Filesystem

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Thread-safe mapping of operation names to handlers."""

    def __init__(self):
        self._handlers: dict[str, Callable[..., Any]] = {}
        self._lock = threading.Lock()

    def register(self, name: str, handler: Callable[..., Any]) -> None:
        """Bind ``name`` to ``handler``, replacing any previous binding."""
        if not callable(handler):
            raise TypeError(f"Plugin handler for {name!r} is not callable")
        with self._lock:
            replaced = name in self._handlers
            self._handlers[name] = handler
        logger.debug("Registered plugin method %s%s", name, " (replaced)" if replaced else "")

    def dispatch(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke the handler bound to ``name``.

        Raises:
            MethodNotFound: If nothing is registered under ``name``.
        """
        with self._lock:
            handler = self._handlers.get(name)
        if handler is None:
            raise MethodNotFound(name)
        return handler(*args, **kwargs)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._handlers

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)


class Plugin(ABC):
    """
    Base class for plugins.

    Filesystem.add_plugin() binds the plugin to that filesystem before
    registering ``handle`` under ``get_method()``, so ``handle`` can reach
    both ``self.filesystem`` and ``self.adapter``.
    """

    filesystem: Filesystem | None = None

    def set_filesystem(self, filesystem: Filesystem) -> None:
        self.filesystem = filesystem

    @property
    def adapter(self) -> Adapter:
        if self.filesystem is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a filesystem")
        return self.filesystem.adapter

    @abstractmethod
    def get_method(self) -> str:
        """Name the plugin is registered under."""

    @abstractmethod
    def handle(self, *args: Any, **kwargs: Any) -> Any:
        ...


class EmptyDir(Plugin):
    """Delete every direct child of a directory, keeping the directory."""

    def get_method(self) -> str:
        return "empty_dir"

    def handle(self, dirname: str = "") -> None:
        for entry in self.filesystem.list_contents(dirname):
            if entry.is_dir:
                self.filesystem.delete_dir(entry.path)
            else:
                self.filesystem.delete(entry.path)


class ForcedCopy(Plugin):
    """Copy even when the destination exists."""

    def get_method(self) -> str:
        return "force_copy"

    def handle(self, path: str, new_path: str) -> bool:
        return self.filesystem.copy(path, new_path, overwrite=True)


class ForcedRename(Plugin):
    """Rename even when the destination exists."""

    def get_method(self) -> str:
        return "force_rename"

    def handle(self, path: str, new_path: str) -> bool:
        return self.filesystem.rename(path, new_path, overwrite=True)
