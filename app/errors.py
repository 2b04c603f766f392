"""
Error taxonomy for the blog content layer.

Every error carries a ``kind`` so callers can branch three ways:
``"not_found"``, ``"validation"`` or ``"retry"`` (something went wrong,
try again).  Store and upload failures keep the driver exception as
``__cause__`` (raise ... from exc).
"""


class BlogError(Exception):
    kind: str = "retry"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BlogError):
    """A required field is missing or an input is unacceptable."""

    kind = "validation"
    status_code = 422


class NotFoundError(BlogError):
    """A lookup by identifier or slug matched nothing."""

    kind = "not_found"
    status_code = 404


class StoreError(BlogError):
    """The relational store failed to execute a query or write."""

    kind = "retry"
    status_code = 503


class UploadError(BlogError):
    """The object store rejected an image upload."""

    kind = "retry"
    status_code = 502
