"""
MIME type detection used by the bundled adapters.
"""

import mimetypes

DEFAULT_MIMETYPE = "application/octet-stream"
TEXT_MIMETYPE = "text/plain"

# Leading bytes of a few common binary formats
_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
)


def guess_mimetype(path: str, contents: bytes | None = None) -> str:
    """
    Guess a content type from file contents and/or name.

    Known binary signatures in ``contents`` win, then the file extension,
    then a text/binary sniff of ``contents``.
    """
    if contents:
        for signature, mimetype in _SIGNATURES:
            if contents.startswith(signature):
                return mimetype

    guessed, _ = mimetypes.guess_type(path, strict=False)
    if guessed:
        return guessed

    if contents is not None:
        sample = contents[:1024]
        if b"\0" in sample:
            return DEFAULT_MIMETYPE
        try:
            sample.decode("utf-8")
        except UnicodeDecodeError:
            return DEFAULT_MIMETYPE
        return TEXT_MIMETYPE

    return DEFAULT_MIMETYPE
