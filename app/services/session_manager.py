"""Account and session management for in-memory storage."""

import os
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import bcrypt
from cuid2 import cuid_wrapper

from app.models.errors import ErrorKind, RegistryError
from app.models.session import Session, UserAccount
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


@dataclass
class SessionConfig:
    """Configuration for issued sessions."""

    session_timeout_minutes: int = field(
        default_factory=lambda: int(os.getenv("SESSION_TIMEOUT_MINUTES", "60"))
    )


@dataclass
class _UserRecord:
    account: UserAccount
    password_hash: str


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class InMemorySessionManager:
    """In-memory account store and session issuer."""

    def __init__(self, config: SessionConfig | None = None):
        """Initialize session manager.

        Args:
            config: Session configuration (timeouts)
        """
        self.config = config or SessionConfig()
        self.session_timeout = timedelta(minutes=self.config.session_timeout_minutes)
        self.users: dict[str, _UserRecord] = {}
        self.sessions: dict[str, Session] = {}

    def sign_up(self, email: str, password: str, full_name: str) -> UserAccount:
        """Register a new account.

        Raises:
            RegistryError: If the email is already registered
        """
        email = email.strip().lower()
        if email in self.users:
            logger.warning(f"Sign-up rejected, email already registered: {email}")
            raise RegistryError(ErrorKind.DUPLICATE_KEY, "User already registered")

        account = UserAccount(id=cuid(), email=email, full_name=full_name.strip(), created_at=datetime.now(UTC))
        self.users[email] = _UserRecord(account=account, password_hash=_hash_password(password))
        logger.info(f"Registered user {account.id}")
        return account

    def sign_in(self, email: str, password: str) -> Session:
        """Check credentials and issue a new session.

        Raises:
            RegistryError: If the credentials do not match an account
        """
        record = self.users.get(email.strip().lower())
        if not record or not _verify_password(password, record.password_hash):
            logger.warning("Sign-in rejected: invalid credentials")
            raise RegistryError(ErrorKind.UNAUTHORIZED, "Invalid login credentials")

        self._cleanup_expired_sessions()
        session = Session(
            access_token=self._generate_token(),
            user_id=record.account.id,
            email=record.account.email,
            full_name=record.account.full_name,
        )
        self.sessions[session.access_token] = session
        logger.info(f"Issued session for user {session.user_id}")
        return session

    def get_session(self, access_token: str) -> Session | None:
        """Get a live session by token.

        Args:
            access_token: Token issued at sign-in

        Returns:
            Session if found and not expired, None otherwise
        """
        self._cleanup_expired_sessions()

        session = self.sessions.get(access_token)
        if session:
            session.update_activity()
        return session

    def get_account(self, user_id: str) -> UserAccount | None:
        """Look up a registered account by id."""
        for record in self.users.values():
            if record.account.id == user_id:
                return record.account
        return None

    def sign_out(self, access_token: str) -> bool:
        """End a session.

        Returns:
            True if the session was ended, False if it was not found
        """
        session = self.sessions.pop(access_token, None)
        if session:
            logger.info(f"Signed out user {session.user_id}")
            return True
        return False

    def _generate_token(self) -> str:
        """Generate an opaque access token."""
        return f"{cuid()}{secrets.token_urlsafe(24)}"

    def _cleanup_expired_sessions(self) -> None:
        """Remove expired sessions from memory."""
        current_time = datetime.now(UTC)
        expired_tokens = [
            token
            for token, session in self.sessions.items()
            if current_time - session.last_activity > self.session_timeout
        ]

        for token in expired_tokens:
            del self.sessions[token]

    def get_session_count(self) -> int:
        """Get current number of active sessions."""
        self._cleanup_expired_sessions()
        return len(self.sessions)
