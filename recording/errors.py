"""Decoder exceptions."""


class FormatError(ValueError):
    """Unsupported recording variant or malformed header field.

    Raised before any partial header is handed out.
    """

    def __init__(self, message: str, *, offset: int | None = None, field: str | None = None):
        self.offset = offset
        self.field = field
        if offset is not None:
            message = f"{message} (header offset {offset})"
        super().__init__(message)


class RangeError(IndexError):
    """Signal index, record index or byte range outside the recording."""
