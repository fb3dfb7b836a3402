import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from .config import Settings
from .domain import (
    SESSIONS,
    USERS,
    Collection,
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    Session,
    StoreError,
    UnauthenticatedError,
    User,
    ValidationError,
)
from .store import DocumentStore
from .utils import (
    generate_token,
    hash_password,
    make_id,
    normalize_email,
    parse_iso,
    to_iso,
    utc_now,
    verify_password,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Fields only the server may set on a record. userId/createdAt are the
# camelCase names older clients send.
PROTECTED_FIELDS = frozenset({"id", "owner_user_id", "created_at", "updated_at", "userId", "createdAt"})
PROFILE_FIELDS = ("name", "title", "avatar_url")


class AuthService:
    """Handles signup, login, session resolution and profile updates."""

    def __init__(self, store: DocumentStore, session_ttl: timedelta = timedelta(hours=24),
                 password_min_length: int = 1, hash_iterations: int = 200_000,
                 clock: Clock = utc_now):
        self.store = store
        self.session_ttl = session_ttl
        self.password_min_length = password_min_length
        self.hash_iterations = hash_iterations
        self.clock = clock

    def _new_session(self, user_id: str) -> Session:
        now = self.clock()
        return Session(generate_token(), user_id, to_iso(now), to_iso(now + self.session_ttl))

    def signup(self, name: str, email: str, password: str) -> Tuple[Dict[str, str], str]:
        """
        Register a new user and log them in.

        Returns:
            (public user dict, session token)

        Raises:
            ValidationError: if a field is missing, the email is malformed or the password is too short
            DuplicateEmailError: if the email is already registered
        """
        name = (name or "").strip()
        email = normalize_email(email or "")
        if not name:
            raise ValidationError("Name is required")
        if not email:
            raise ValidationError("Email is required")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("Invalid email address") from e
        if len(password or "") < self.password_min_length:
            raise ValidationError(f"Password must be at least {self.password_min_length} characters long")

        with self.store.transaction() as doc:
            if any(u.get("email") == email for u in doc[USERS]):
                raise DuplicateEmailError()
            user = User(
                id=make_id("usr"),
                name=name,
                email=email,
                hashed_password=hash_password(password, iterations=self.hash_iterations),
                created_at=to_iso(self.clock()),
            )
            session = self._new_session(user.id)
            doc[USERS].append(user.to_dict())
            doc[SESSIONS].append(session.to_dict())

        logger.info(f"Registered user {user.id}")
        return user.to_public_dict(), session.token

    def login(self, email: str, password: str) -> Tuple[Dict[str, str], str]:
        """Check credentials and open a new session alongside any existing ones."""
        email = normalize_email(email or "")
        with self.store.transaction() as doc:
            match = next((u for u in doc[USERS] if u.get("email") == email), None)
            if match is None or not verify_password(password or "", match.get("hashed_password", "")):
                raise InvalidCredentialsError()
            user = User.from_dict(match)
            session = self._new_session(user.id)
            doc[SESSIONS].append(session.to_dict())

        logger.info(f"User {user.id} logged in")
        return user.to_public_dict(), session.token

    def logout(self, token: Optional[str]) -> bool:
        """
        Drop the session for ``token``.

        Always succeeds from the caller's point of view: unknown tokens are a
        no-op, and a store failure (unreadable file or failed write) is logged
        rather than raised.
        """
        if not token:
            return True
        try:
            with self.store.transaction() as doc:
                before = len(doc[SESSIONS])
                doc[SESSIONS] = [s for s in doc[SESSIONS] if s.get("token") != token]
                removed = before - len(doc[SESSIONS])
        except StoreError as e:
            logger.warning(f"Logout could not be persisted: {e}")
            return True
        if removed:
            logger.info("Session logged out")
        return True

    def purge_expired(self, doc: Dict[str, List[Dict[str, Any]]]) -> int:
        """Remove expired sessions from ``doc`` in place and return how many were dropped."""
        now = self.clock()
        live = [s for s in doc[SESSIONS] if parse_iso(s["expires_at"]) > now]
        purged = len(doc[SESSIONS]) - len(live)
        doc[SESSIONS] = live
        return purged

    def resolve(self, token: str) -> str:
        """
        Return the user id owning ``token``.

        Expired sessions are purged first, so an expired token never resolves.

        Raises:
            UnauthenticatedError: if no live session has this token
        """
        with self.store.lock:
            doc = self.store.load()
            purged = self.purge_expired(doc)
            if purged:
                self.store.save(doc)
                logger.info(f"Purged {purged} expired session(s)")

        for session in doc[SESSIONS]:
            if session.get("token") == token:
                return session["user_id"]
        raise UnauthenticatedError()

    def get_user(self, user_id: str) -> Dict[str, str]:
        for data in self.store.read()[USERS]:
            if data.get("id") == user_id:
                return User.from_dict(data).to_public_dict()
        raise NotFoundError("User not found")

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Dict[str, str]:
        """Apply name/title/avatar changes. Email and password cannot change here."""
        updates = {k: changes[k] for k in PROFILE_FIELDS if changes.get(k) is not None}
        if "name" in updates and not str(updates["name"]).strip():
            raise ValidationError("Name cannot be empty")

        with self.store.transaction() as doc:
            for index, data in enumerate(doc[USERS]):
                if data.get("id") == user_id:
                    doc[USERS][index] = {**data, **updates}
                    user = User.from_dict(doc[USERS][index])
                    break
            else:
                raise NotFoundError("User not found")
        return user.to_public_dict()


class RecordService:
    """Create/read/update/delete over any owner-scoped collection."""

    def __init__(self, store: DocumentStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    @staticmethod
    def _clean(payload: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}

    @staticmethod
    def _find(records: List[Dict[str, Any]], owner: str, record_id: str) -> int:
        for index, record in enumerate(records):
            if record.get("id") == record_id and record.get("owner_user_id") == owner:
                return index
        # Missing and owned-by-someone-else look the same to the caller
        raise NotFoundError("Not found or access denied")

    def list(self, collection: Collection, owner: str) -> List[Dict[str, Any]]:
        records = self.store.read()[collection.value]
        return [r for r in records if r.get("owner_user_id") == owner]

    def get(self, collection: Collection, owner: str, record_id: str) -> Dict[str, Any]:
        records = self.store.read()[collection.value]
        return records[self._find(records, owner, record_id)]

    def create(self, collection: Collection, owner: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = {
            "id": make_id(collection.id_prefix),
            "owner_user_id": owner,
            "created_at": to_iso(self.clock()),
            **self._clean(payload),
        }
        with self.store.transaction() as doc:
            doc[collection.value].append(record)
        logger.debug(f"Created {collection.value} record {record['id']}")
        return record

    def update(self, collection: Collection, owner: str, record_id: str,
               payload: Dict[str, Any]) -> Dict[str, Any]:
        with self.store.transaction() as doc:
            records = doc[collection.value]
            index = self._find(records, owner, record_id)
            current = records[index]
            records[index] = {
                **current,
                **self._clean(payload),
                "id": current["id"],
                "owner_user_id": current["owner_user_id"],
                "created_at": current.get("created_at"),
                "updated_at": to_iso(self.clock()),
            }
            updated = records[index]
        return updated

    def delete(self, collection: Collection, owner: str, record_id: str) -> bool:
        with self.store.transaction() as doc:
            records = doc[collection.value]
            del records[self._find(records, owner, record_id)]
        logger.debug(f"Deleted {collection.value} record {record_id}")
        return True


class CRM:
    """Wires the store and services together from settings."""

    def __init__(self, settings: Settings, clock: Clock = utc_now):
        self.settings = settings
        self.store = DocumentStore(settings.DATA_FILE)
        self.auth = AuthService(
            self.store,
            session_ttl=timedelta(hours=settings.SESSION_TTL_HOURS),
            password_min_length=settings.PASSWORD_MIN_LENGTH,
            hash_iterations=settings.PASSWORD_HASH_ITERATIONS,
            clock=clock,
        )
        self.records = RecordService(self.store, clock=clock)
