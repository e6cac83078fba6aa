"""
User Registry

Maps username → User. Each user owns exactly one wallet.

The transfer orchestrator only needs lookup(); registration and
authentication are for the account flow. Usernames are unique and
case-sensitive.

DESIGN DECISION: authenticate() answers None for both "no such user" and
"wrong password", and spends the same hashing work in both cases, so
neither the return value nor the timing reveals which usernames exist.
"""

import threading
from contextlib import ExitStack
from typing import Callable, Optional

import structlog

from pocketledger.config import get_settings
from pocketledger.ledger.errors import UserAlreadyExistsError
from pocketledger.ledger.wallet import Wallet
from pocketledger.models.ledger import (
    ErrorCode,
    OperationResult,
    RegistrySnapshot,
    UserSnapshot,
)
from pocketledger.services.registry.passwords import PasswordHasher
from pocketledger.services.storage.interface import (
    RegistryStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class User:
    """A registered user and their wallet."""

    def __init__(
        self,
        username: str,
        password_hash: str,
        wallet: Optional[Wallet] = None,
    ):
        self._username = username
        self._password_hash = password_hash
        self._wallet = wallet or Wallet()

    @property
    def username(self) -> str:
        return self._username

    @property
    def password_hash(self) -> str:
        return self._password_hash

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    def verify_password(self, password: str, hasher: PasswordHasher) -> bool:
        return hasher.verify(password, self._password_hash)

    def to_snapshot(self) -> UserSnapshot:
        return UserSnapshot(
            username=self._username,
            password_hash=self._password_hash,
            wallet=self._wallet.to_snapshot(),
        )

    @classmethod
    def from_snapshot(cls, snapshot: UserSnapshot) -> "User":
        return cls(
            username=snapshot.username,
            password_hash=snapshot.password_hash,
            wallet=Wallet.from_snapshot(snapshot.wallet),
        )

    def __repr__(self) -> str:
        return f"User(username={self._username!r})"


class Registry:
    """
    All users, keyed by username.

    Thread safety: insertion and lookup hold the registry lock. Snapshots
    additionally hold every wallet lock, taken in username order (the same
    order transfers use), so a snapshot never sees half a transfer.
    """

    def __init__(
        self,
        hasher: Optional[PasswordHasher] = None,
        min_password_length: Optional[int] = None,
    ):
        self._users: dict[str, User] = {}
        self._lock = threading.RLock()
        self._hasher = hasher or PasswordHasher()
        self._min_password_length = (
            min_password_length
            if min_password_length is not None
            else get_settings().security.min_password_length
        )
        self._dummy_hash: Optional[str] = None

    @property
    def hasher(self) -> PasswordHasher:
        return self._hasher

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, username: object) -> bool:
        with self._lock:
            return username in self._users

    def usernames(self) -> list[str]:
        with self._lock:
            return sorted(self._users)

    # =========================================================================
    # CORE OPERATIONS
    # =========================================================================

    def register(self, username: str, password: str) -> OperationResult:
        """
        Create a user with a fresh, empty wallet.

        Returns a declined result (not an error) if the name is taken
        or the credentials are unusable.
        """
        if not username or not username.strip() or any(c.isspace() for c in username):
            return OperationResult.declined(
                ErrorCode.INVALID_CREDENTIALS,
                "Username must be non-empty and contain no spaces.",
            )
        if not password or len(password) < self._min_password_length:
            return OperationResult.declined(
                ErrorCode.INVALID_CREDENTIALS,
                f"Password must be at least {self._min_password_length} characters.",
            )

        # Hash outside the lock - it is deliberately slow
        password_hash = self._hasher.hash(password)

        with self._lock:
            if username in self._users:
                return OperationResult.declined(
                    ErrorCode.USER_ALREADY_EXISTS,
                    "A user with this name already exists.",
                )
            self._users[username] = User(username, password_hash)

        return OperationResult.ok("User registered successfully.")

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user only if the username exists and the password matches."""
        user = self.lookup(username)

        if user is None:
            self._hasher.verify(password, self._get_dummy_hash())
            return None

        if user.verify_password(password, self._hasher):
            return user
        return None

    def lookup(self, username: str) -> Optional[User]:
        with self._lock:
            return self._users.get(username)

    def add_user(self, user: User) -> None:
        """
        Insert an existing user (e.g. restored from storage).

        Raises:
            UserAlreadyExistsError: if the username is taken
        """
        with self._lock:
            if user.username in self._users:
                raise UserAlreadyExistsError(user.username)
            self._users[user.username] = user

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash("pocketledger-dummy-password")
        return self._dummy_hash

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            users = [self._users[name] for name in sorted(self._users)]
            with ExitStack() as stack:
                for user in users:
                    stack.enter_context(user.wallet.lock)
                return RegistrySnapshot(users=[user.to_snapshot() for user in users])

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RegistrySnapshot,
        hasher: Optional[PasswordHasher] = None,
        min_password_length: Optional[int] = None,
    ) -> "Registry":
        """
        Rebuild a registry from a snapshot.

        Raises:
            ValueError: if any wallet breaks the ledger invariants
        """
        registry = cls(hasher=hasher, min_password_length=min_password_length)
        for user_snapshot in snapshot.users:
            registry.add_user(User.from_snapshot(user_snapshot))
        return registry

    @classmethod
    def load(
        cls,
        storage: RegistryStorageInterface,
        hasher: Optional[PasswordHasher] = None,
        min_password_length: Optional[int] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> "Registry":
        """
        Load from storage, degrading to an empty registry on any failure.

        A missing, unreadable or corrupt store is never fatal. on_error, if
        given, receives the failure message.
        """
        try:
            snapshot = storage.load()
            if snapshot is None:
                logger.info("registry_not_found", location=storage.location)
                return cls(hasher=hasher, min_password_length=min_password_length)
            registry = cls.from_snapshot(
                snapshot, hasher=hasher, min_password_length=min_password_length
            )
        except (StorageError, ValueError) as e:
            logger.error(
                "registry_load_failed",
                location=storage.location,
                error=str(e),
            )
            if on_error:
                on_error(str(e))
            return cls(hasher=hasher, min_password_length=min_password_length)

        logger.info("registry_loaded", location=storage.location, users=len(registry))
        return registry

    def save(self, storage: RegistryStorageInterface) -> bool:
        """
        Persist the registry.

        Returns False (and logs) on failure instead of raising.
        """
        snapshot = self.snapshot()
        try:
            saved = storage.save(snapshot)
        except StorageError as e:
            logger.error("registry_save_failed", location=storage.location, error=str(e))
            return False

        if saved:
            logger.info("registry_saved", location=storage.location, users=len(snapshot.users))
        return saved
