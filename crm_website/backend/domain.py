from enum import Enum
from typing import Any, Dict, Optional


class Collection(str, Enum):
    """Owner-scoped record kinds, one JSON collection each."""

    CONTACTS = "contacts"
    LEADS = "leads"
    TASKS = "tasks"
    EVENTS = "events"
    DOCUMENTS = "documents"
    EMAILS = "emails"

    @property
    def id_prefix(self) -> str:
        return {
            Collection.CONTACTS: "contact",
            Collection.LEADS: "lead",
            Collection.TASKS: "task",
            Collection.EVENTS: "event",
            Collection.DOCUMENTS: "doc",
            Collection.EMAILS: "email",
        }[self]


USERS = "users"
SESSIONS = "sessions"
ALL_COLLECTIONS = (USERS, SESSIONS) + tuple(c.value for c in Collection)


class User:
    """Represents a registered account."""

    def __init__(self, id: str, name: str, email: str, hashed_password: str, created_at: str,
                 title: str = "", avatar_url: str = ""):
        self.id = id
        self.name = name
        self.email = email
        self.hashed_password = hashed_password
        self.title = title
        self.avatar_url = avatar_url
        self.created_at = created_at

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data["email"],
            hashed_password=data.get("hashed_password", ""),
            created_at=data.get("created_at", ""),
            title=data.get("title", ""),
            avatar_url=data.get("avatar_url", ""),
        )

    def to_dict(self) -> Dict[str, str]:
        """Stored representation, including the password digest."""
        return {**self.to_public_dict(), "hashed_password": self.hashed_password}

    def to_public_dict(self) -> Dict[str, str]:
        """Convert user to the dictionary sent to clients (no password digest)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "title": self.title,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at,
        }


class Session:
    """A bearer token bound to a user until ``expires_at``."""

    def __init__(self, token: str, user_id: str, created_at: str, expires_at: str):
        self.token = token
        self.user_id = user_id
        self.created_at = created_at
        self.expires_at = expires_at

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(data["token"], data["user_id"], data.get("created_at", ""), data["expires_at"])

    def to_dict(self) -> Dict[str, str]:
        return {
            "token": self.token,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }


class CRMError(Exception):
    """Base class for every error the services raise; carries its HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(CRMError):
    status_code = 400
    default_message = "Invalid request"


class DuplicateEmailError(CRMError):
    status_code = 400
    default_message = "Email already exists"


class AuthError(CRMError):
    """Authentication failures. Messages stay generic to avoid leaking which part was wrong."""

    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentialsError(AuthError):
    default_message = "Invalid email or password"


class MissingTokenError(AuthError):
    default_message = "Authorization header is required"


class MalformedTokenError(AuthError):
    default_message = "Authorization header must be a Bearer token"


class UnauthenticatedError(AuthError):
    default_message = "Invalid or expired session token"


class NotFoundError(CRMError):
    status_code = 404
    default_message = "Not found"


class StoreError(CRMError):
    status_code = 500
    default_message = "Storage failure"


class StoreCorruptError(StoreError):
    default_message = "Data file is unreadable"


class StoreWriteError(StoreError):
    default_message = "Failed to write data file"
