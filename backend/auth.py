"""Admin authentication — shared secret via header or form field."""

import secrets

from fastapi import Request

from config import Settings
from errors import Unauthorized

ADMIN_HEADER = "X-Admin-Pass"


def authorize(supplied: str | None, settings: Settings) -> None:
    """Raise Unauthorized unless ``supplied`` matches the admin secret.

    With no secret configured every mutating request is refused.
    """
    if not settings.admin_enabled or not supplied:
        raise Unauthorized()
    if not secrets.compare_digest(supplied.encode(), settings.drop_admin_pass.encode()):
        raise Unauthorized()


def is_admin(request: Request, settings: Settings) -> bool:
    """Check the admin header on an API request."""
    try:
        authorize(request.headers.get(ADMIN_HEADER), settings)
    except Unauthorized:
        return False
    return True
