"""
Exception hierarchy raised by the filesystem facade.

Every failure a caller can observe is one of these classes. Backend
specific exceptions never leak out of the facade unwrapped: they are
either translated (missing file, existing file) or wrapped in
AdapterError with the original chained as ``__cause__``.
"""


class FilesystemError(Exception):
    """Base class for all fsbridge errors."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class InvalidPath(FilesystemError, ValueError):
    """Path normalization rejected the input."""


class InvalidConfig(FilesystemError, ValueError):
    """Unrecognized or malformed configuration option."""


class InvalidArgument(FilesystemError, ValueError):
    """An argument (metadata key, visibility, contents) is not acceptable."""


class FileNotFound(FilesystemError):
    """The operation required an existing file or directory."""

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message or f"File not found at path: {path}", path)


class FileExists(FilesystemError):
    """The operation required absence but an entry already exists."""

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message or f"File already exists at path: {path}", path)


class MethodNotFound(FilesystemError):
    """A plugin method was dispatched but never registered."""

    def __init__(self, name: str):
        super().__init__(f"Plugin method not found: {name}")
        self.name = name


class AdapterError(FilesystemError):
    """
    Opaque wrapper around a backend failure.

    The backend's own exception is kept in ``original`` and chained as
    ``__cause__``; it is not reinterpreted.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
        original: BaseException | None = None,
    ):
        super().__init__(message, path)
        self.operation = operation
        self.original = original


class ReadAndDeleteError(AdapterError):
    """The read succeeded but the delete did not; ``contents`` holds what was read."""

    def __init__(self, path: str, contents: bytes, original: BaseException):
        super().__init__(
            f"Read {path} but could not delete it: {original}",
            path=path,
            operation="read_and_delete",
            original=original,
        )
        self.contents = contents
