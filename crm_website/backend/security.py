"""
Bearer-token access control.

``parse_bearer`` and ``authenticate`` are plain functions so they can be
used outside FastAPI; the ``get_*`` callables below are the FastAPI
dependencies that protected routes declare.
"""
from typing import Optional

from fastapi import Depends, Header

from .config import get_settings
from .domain import MalformedTokenError, MissingTokenError
from .services import CRM, AuthService


def parse_bearer(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        MissingTokenError: if the header is absent or blank
        MalformedTokenError: if it is not a single Bearer credential
    """
    if authorization is None or not authorization.strip():
        raise MissingTokenError()
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise MalformedTokenError()
    return parts[1]


def authenticate(authorization: Optional[str], auth: AuthService) -> str:
    """Resolve a raw header value to the id of the user it belongs to."""
    return auth.resolve(parse_bearer(authorization))


_crm: Optional[CRM] = None


def get_crm() -> CRM:
    """Application-wide CRM instance; tests override this dependency."""
    global _crm
    if _crm is None:
        _crm = CRM(get_settings())
    return _crm


def get_current_user(authorization: Optional[str] = Header(None), crm: CRM = Depends(get_crm)) -> str:
    """FastAPI dependency returning the authenticated user's id."""
    return authenticate(authorization, crm.auth)


def get_optional_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Like ``parse_bearer`` but returns None instead of raising."""
    try:
        return parse_bearer(authorization)
    except (MissingTokenError, MalformedTokenError):
        return None
