"""Tests for Authorization header parsing and resolution."""
import os

import pytest

from crm_website.backend.domain import MalformedTokenError, MissingTokenError, UnauthenticatedError
from crm_website.backend.security import authenticate, get_optional_token, parse_bearer


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_header(header):
    with pytest.raises(MissingTokenError):
        parse_bearer(header)


@pytest.mark.parametrize("header", ["abc123", "Basic abc123", "Bearer", "Bearer a b", "Token abc"])
def test_malformed_header(header):
    with pytest.raises(MalformedTokenError):
        parse_bearer(header)


@pytest.mark.parametrize("header", ["Bearer abc123", "bearer abc123", "  Bearer   abc123 "])
def test_bearer_header(header):
    assert parse_bearer(header) == "abc123"


def test_optional_token_never_raises():
    assert get_optional_token(None) is None
    assert get_optional_token("junk") is None
    assert get_optional_token("Bearer tok") == "tok"


def test_authenticate_resolves_live_session(crm):
    user, token = crm.auth.signup("Ann", "ann@x.com", "pw1")
    assert authenticate(f"Bearer {token}", crm.auth) == user["id"]


def test_authenticate_rejects_unknown_token(crm):
    with pytest.raises(UnauthenticatedError):
        authenticate("Bearer nope", crm.auth)


def test_authenticate_checks_header_before_touching_store(crm, settings):
    with pytest.raises(MissingTokenError):
        authenticate(None, crm.auth)
    with pytest.raises(MalformedTokenError):
        authenticate("nope", crm.auth)
    assert not os.path.exists(settings.DATA_FILE)
