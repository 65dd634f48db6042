"""
Site CMS - Error types

Every failure a request can hit is one of these.  The application registers
a single handler that renders them as ``{"error": message}`` with the
exception's HTTP status.
"""


class CMSError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class Unauthorized(CMSError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class BadRequest(CMSError):
    status_code = 400


class PayloadTooLarge(CMSError):
    status_code = 413


class NotConfigured(CMSError):
    """A remote backend needed for this operation has no credentials."""

    status_code = 503


class UpstreamFailure(CMSError):
    """JSONBin or Cloudinary rejected the request or was unreachable."""

    status_code = 500


class StorageError(CMSError):
    """Writing to local disk failed."""

    status_code = 500


class ReadFailure(Exception):
    """The content store could not be read.

    Never shown to clients: the content service catches it and serves the
    bundled fallback document instead.
    """
