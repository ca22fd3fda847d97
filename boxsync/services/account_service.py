"""
User and client-session helpers around the file index.
"""
import secrets
from typing import Optional, Tuple

import bcrypt
from loguru import logger

from ..exceptions import AuthenticationError
from ..models.data_models import User, Client
from .database_manager import DatabaseManager

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode("utf-8")
    if not password_bytes:
        raise ValueError("Password cannot be empty")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def new_client_key(num_bytes: int = 32) -> str:
    """Generate a hex session key from the OS random source."""
    return secrets.token_hex(num_bytes)


class AccountService:
    """Creates users and client sessions, and checks their credentials."""

    def __init__(self, database_manager: DatabaseManager, bcrypt_rounds: int = 12,
                 session_key_bytes: int = 32):
        self.db_manager = database_manager
        self.bcrypt_rounds = bcrypt_rounds
        self.session_key_bytes = session_key_bytes
        self._dummy_password_hash: Optional[str] = None

    def _get_dummy_password_hash(self) -> str:
        """Hash checked for unknown emails, at the same cost as real hashes."""
        if self._dummy_password_hash is None:
            self._dummy_password_hash = hash_password("boxsync-dummy-password", self.bcrypt_rounds)
        return self._dummy_password_hash

    def create_user(self, email: str, password: str) -> User:
        """
        Register a new user.

        Raises:
            ValueError: If the email or password is empty
            DuplicateAccountError: If the email is already registered
        """
        email = email.strip().lower()
        if not email:
            raise ValueError("Email is required")

        user = self.db_manager.insert_user(User(
            email=email,
            hashed_password=hash_password(password, self.bcrypt_rounds)
        ))
        logger.info(f"Created user {user.id} ({user.email})")
        return user

    def create_client(self, user: User) -> Client:
        """Open a new client session for a user."""
        client = self.db_manager.insert_client(Client(
            user_id=user.id,
            session_key=new_client_key(self.session_key_bytes)
        ))
        logger.info(f"Created client {client.id} for user {user.id}")
        return client

    def validate_user_password(self, email: str, password: str) -> User:
        """
        Check an email/password pair.

        Raises:
            AuthenticationError: If the user is unknown or the password is wrong
        """
        user = self.db_manager.get_user_by_email(email.strip().lower())
        if user is None:
            # Keep the unknown-user path as slow as a real check
            verify_password(password, self._get_dummy_password_hash())
            logger.warning("Login attempt for unknown email")
            raise AuthenticationError("Invalid email or password")

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Invalid password for user {user.id}")
            raise AuthenticationError("Invalid email or password")

        return user

    def authenticate_client(self, session_key: str) -> Tuple[User, Client]:
        """
        Resolve a session key to its client and owning user.

        Raises:
            AuthenticationError: If the key is unknown
        """
        client = self.db_manager.get_client_by_session_key(session_key) if session_key else None
        if client is None:
            raise AuthenticationError("Invalid session key")

        user = self.db_manager.get_user(client.user_id)
        if user is None:
            raise AuthenticationError("Session key has no owner")

        return user, client
