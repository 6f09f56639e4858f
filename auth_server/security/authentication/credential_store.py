"""
Credential Store - User records with bcrypt password hashes

Module: security.authentication.credential_store
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - In-memory ordered table of UserRecord
  - Email uniqueness on insert
  - bcrypt hashing / verification (configurable cost)
  - Lookup and removal by identity, name or email
  - Whole-file load/save against a JSON snapshot

ARCHITECTURE:
CredentialStore provides:
  - insert(): uniqueness check + hash + append, serialized by a lock
  - verify(): lock-free lookup + password check
  - find()/remove(): Selector based lookup (identity > name > email)
  - load()/save(): wholesale snapshot replace / overwrite

Blocking work (bcrypt, file I/O) runs in the default executor so the
event loop keeps serving other requests.

SECURITY NOTES:
- Plaintext passwords are never stored or logged
- Hashing only happens after the uniqueness check passes
- NotFound and InvalidCredentials stay distinct here; callers decide
  whether to collapse them
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import bcrypt

from ...core.constants import BCRYPT_MAX_ROUNDS, BCRYPT_MIN_ROUNDS, BCRYPT_ROUNDS
from ...persistence.json_store import JSONStore, JSONStoreError


class CredentialStoreError(Exception):
    """Base credential store error"""
    pass


class AlreadyExistsError(CredentialStoreError):
    """A user with this email already exists"""
    pass


class UserNotFoundError(CredentialStoreError):
    """No user matches"""
    pass


class InvalidCredentialsError(CredentialStoreError):
    """Password does not match"""
    pass


class InvalidSelectorError(CredentialStoreError):
    """Selector has no field set"""
    pass


class SnapshotError(CredentialStoreError):
    """Snapshot file cannot be read or written"""
    pass


class SnapshotFormatError(SnapshotError):
    """Snapshot file content is not a list of user records"""
    pass


@dataclass(frozen=True)
class UserRecord:
    """Stored user. Immutable once created."""
    id: str
    name: str
    email: str
    hashed_password: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the snapshot file"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "hashedPassword": self.hashed_password,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        """Create from a snapshot entry"""
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            hashed_password=data["hashedPassword"],
        )


@dataclass
class Credential:
    """Email/password pair supplied by a caller. Never persisted."""
    email: str
    password: str
    name: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credential(email={self.email!r}, name={self.name!r})"


@dataclass
class Selector:
    """Lookup key: exactly one field is used (identity, then name, then email)"""
    identity: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None

    def resolve(self) -> tuple:
        """
        Pick the field to match on

        Returns:
            (attribute name on UserRecord, value)

        Raises:
            InvalidSelectorError: If no field is set
        """
        if self.identity:
            return "id", self.identity
        if self.name:
            return "name", self.name
        if self.email:
            return "email", self.email
        raise InvalidSelectorError("Selector needs an identity, name or email")


class CredentialStore:
    """
    In-memory user table synchronized to a single snapshot file.

    Mutations (insert/remove) and persistence (load/save) share one
    asyncio.Lock. Reads (find/verify) do not take it.
    """

    def __init__(self, snapshot_path: str = "./db.json", rounds: int = BCRYPT_ROUNDS):
        """
        Initialize credential store

        Args:
            snapshot_path: Path of the JSON snapshot file
            rounds: bcrypt cost factor
        """
        self.logger = logging.getLogger("security.credential_store")
        self.snapshot = JSONStore(snapshot_path, default_data=[])
        self.rounds = rounds
        self._users: List[UserRecord] = []
        self._loaded = False
        self._lock = asyncio.Lock()

        self.logger.info(f"CredentialStore initialized (file={self.snapshot.file_path})")

    @property
    def rounds(self) -> int:
        """bcrypt cost factor used for new hashes"""
        return self._rounds

    @rounds.setter
    def rounds(self, value: int) -> None:
        if not BCRYPT_MIN_ROUNDS <= value <= BCRYPT_MAX_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be between {BCRYPT_MIN_ROUNDS} and {BCRYPT_MAX_ROUNDS}"
            )
        self._rounds = value

    @property
    def loaded(self) -> bool:
        """True once the snapshot has been loaded"""
        return self._loaded

    def __len__(self) -> int:
        return len(self._users)

    def list_users(self) -> List[UserRecord]:
        """Copy of the current table, in insertion order"""
        return list(self._users)

    # ------------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------------

    async def insert(self, candidate: Credential) -> UserRecord:
        """
        Register a new user

        Args:
            candidate: Email, password and display name

        Returns:
            The new UserRecord

        Raises:
            AlreadyExistsError: If the email is taken
        """
        await self.ensure_loaded()

        async with self._lock:
            if self._find_by("email", candidate.email) is not None:
                raise AlreadyExistsError(f"User '{candidate.email}' already exists")

            hashed = await self._run(self._hash_password, candidate.password, self.rounds)

            record = UserRecord(
                id=uuid.uuid4().hex,
                name=candidate.name or "",
                email=candidate.email,
                hashed_password=hashed,
            )
            self._users.append(record)

        self.logger.info(f"User created: {record.email} ({record.id[:8]}...)")
        return record

    async def verify(self, candidate: Credential) -> UserRecord:
        """
        Check an email/password pair

        Args:
            candidate: Email and plaintext password

        Returns:
            Matching UserRecord

        Raises:
            UserNotFoundError: If no user has this email
            InvalidCredentialsError: If the password is wrong
        """
        await self.ensure_loaded()

        record = self._find_by("email", candidate.email)
        if record is None:
            raise UserNotFoundError(f"User '{candidate.email}' not found")

        valid = await self._run(
            self._verify_password, candidate.password, record.hashed_password
        )
        if not valid:
            self.logger.warning(f"Password mismatch for {candidate.email}")
            raise InvalidCredentialsError("Invalid credentials")

        return record

    # ------------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------------

    async def find(self, selector: Selector) -> UserRecord:
        """
        Find a user by identity, name or email

        Raises:
            InvalidSelectorError: If the selector is empty
            UserNotFoundError: If nothing matches
        """
        attribute, value = selector.resolve()
        await self.ensure_loaded()

        record = self._find_by(attribute, value)
        if record is None:
            raise UserNotFoundError(f"No user with {attribute}={value!r}")
        return record

    async def remove(self, selector: Selector) -> None:
        """
        Delete the first user matching the selector

        Raises:
            InvalidSelectorError: If the selector is empty
            UserNotFoundError: If nothing matches
        """
        attribute, value = selector.resolve()
        await self.ensure_loaded()

        async with self._lock:
            for index, record in enumerate(self._users):
                if getattr(record, attribute) == value:
                    del self._users[index]
                    self.logger.info(f"User deleted: {record.email} ({record.id[:8]}...)")
                    return

        raise UserNotFoundError(f"No user with {attribute}={value!r}")

    # ------------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------------

    async def ensure_loaded(self) -> None:
        """Load the snapshot on first access"""
        if self._loaded:
            return
        async with self._lock:
            # Another task may have loaded (and mutated) while we waited
            if not self._loaded:
                await self._load_locked()

    async def load(self) -> List[UserRecord]:
        """
        Replace the table with the snapshot file contents

        A missing file loads as an empty table.

        Returns:
            The loaded records

        Raises:
            SnapshotFormatError: If the file is not a list of user records
            SnapshotError: If the file cannot be read
        """
        async with self._lock:
            return await self._load_locked()

    async def save(self) -> None:
        """
        Overwrite the snapshot file with the whole table

        Raises:
            SnapshotError: If the file cannot be written
        """
        # Never overwrite a snapshot that was not read yet
        await self.ensure_loaded()

        async with self._lock:
            data = [record.to_dict() for record in self._users]
            try:
                await self._run(self.snapshot.save, data)
            except JSONStoreError as e:
                raise SnapshotError(str(e))

        self.logger.info(f"Saved {len(data)} users to {self.snapshot.file_path}")

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    async def _load_locked(self) -> List[UserRecord]:
        try:
            data = await self._run(self.snapshot.load)
        except JSONStoreError as e:
            raise SnapshotError(str(e))

        if not isinstance(data, list):
            raise SnapshotFormatError(f"{self.snapshot.file_path} must contain a JSON array")
        try:
            users = [UserRecord.from_dict(entry) for entry in data]
        except (KeyError, TypeError) as e:
            raise SnapshotFormatError(f"Invalid user record in snapshot: {e!r}")

        self._users = users
        self._loaded = True

        self.logger.info(f"Loaded {len(users)} users from {self.snapshot.file_path}")
        return list(users)

    def _find_by(self, attribute: str, value: str) -> Optional[UserRecord]:
        for record in self._users:
            if getattr(record, attribute) == value:
                return record
        return None

    @staticmethod
    async def _run(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    @staticmethod
    def _hash_password(password: str, rounds: int) -> str:
        """
        Hash password using bcrypt

        Args:
            password: Plaintext password
            rounds: Cost factor

        Returns:
            bcrypt hash (bytes decoded to string)
        """
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(password.encode(), salt).decode()

    @staticmethod
    def _verify_password(password: str, password_hash: str) -> bool:
        """
        Verify password against hash

        Returns:
            True if password matches, False otherwise (including unusable hashes)
        """
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            return False
