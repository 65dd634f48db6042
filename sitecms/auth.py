"""
Site CMS - Shared Password Auth

Mutating endpoints require the ``x-admin-password`` header to match the
configured admin password.  There are no sessions and no user identities:
every request carries the secret.

Usage:
    - Add ``Depends(require_admin)`` to protected routes.
"""

import hmac

from fastapi import Request
from loguru import logger

from sitecms.errors import Unauthorized

ADMIN_PASSWORD_HEADER = "x-admin-password"


def check_password(supplied: str | None, expected: str) -> bool:
    """Compare a supplied password against the configured one in constant time."""
    if supplied is None or not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def require_admin(request: Request) -> None:
    """FastAPI dependency that rejects requests without the admin password."""
    settings = request.app.state.settings
    supplied = request.headers.get(ADMIN_PASSWORD_HEADER)

    if not check_password(supplied, settings.admin_password):
        logger.warning(
            "🔒 Rejected {} {} — {} admin password",
            request.method,
            request.url.path,
            "missing" if supplied is None else "wrong",
        )
        raise Unauthorized()
