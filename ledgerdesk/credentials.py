"""
Credential Store Module

Username -> secret mapping loaded once from a flat file, appended to on
registration and never mutated otherwise. Secrets are compared as plain
strings (no hashing) but in constant time, and a failed login never reveals
whether the username exists.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
import hmac
import threading

from .errors import (
    AlreadyExistsError, AuthenticationError, StorageError, ValidationError
)
from .logging_config import get_logger, log_action
from .storage import RecordStorage, check_field_lengths


class IdentityKind(Enum):
    """Who an identity was authenticated against"""
    USER = "user"        # Credential store (reservations)
    ACCOUNT = "account"  # Account ledger (ATM)


@dataclass(frozen=True)
class Identity:
    """Authenticated username or account id of a session"""
    subject: str
    kind: IdentityKind = IdentityKind.USER


@dataclass(frozen=True)
class Credential:
    username: str
    secret: str

    def to_row(self) -> list:
        return [self.username, self.secret]


class CredentialStore:
    """
    Registered users backed by a two-column flat file
    """

    def __init__(self, storage: RecordStorage,
                 default_credential: Optional[Tuple[str, str]] = ("admin", "admin123")):
        self.storage = storage
        self.default_credential = default_credential
        self.logger = get_logger("ledgerdesk.credentials")
        self._credentials: Dict[str, str] = {}
        self._lock = threading.RLock()

    def initialize(self) -> bool:
        """Create the credential file with the default credential if absent"""
        default_rows = [list(self.default_credential)] if self.default_credential else []
        created = self.storage.initialize(default_rows)
        if created:
            log_action(
                self.logger, "info", "Created default credential file",
                action="initialize_credentials"
            )
        return created

    def load(self) -> int:
        """
        Load all credentials into memory, replacing what was loaded before

        Rows without both a username and a secret are skipped. A storage
        failure leaves the store empty and is reported once.

        Returns:
            Number of credentials loaded
        """
        with self._lock:
            self._credentials = {}
            try:
                rows = self.storage.read_rows()
            except StorageError as e:
                log_action(
                    self.logger, "error", f"Could not read credential file: {e}",
                    action="load_credentials"
                )
                return 0

            for row in rows:
                if len(row) < 2:
                    continue
                username = row[0].strip()
                # Unquoted legacy lines split on the first comma only
                secret = ",".join(row[1:]).strip()
                if not username:
                    continue
                self._credentials[username] = secret

            return len(self._credentials)

    def authenticate(self, username: str, secret: str) -> Identity:
        """
        Authenticate a user

        Raises:
            AuthenticationError: For every failure, with the same message
        """
        username = (username or "").strip()
        secret = (secret or "").strip()
        stored = self._credentials.get(username)

        if stored is None or not hmac.compare_digest(stored.encode("utf-8"), secret.encode("utf-8")):
            log_action(
                self.logger, "warning", "Login failed",
                user_id=username or None, action="login_failed"
            )
            raise AuthenticationError()

        log_action(self.logger, "info", "Login successful", user_id=username, action="login")
        return Identity(subject=username, kind=IdentityKind.USER)

    def register(self, username: str, secret: str) -> Credential:
        """
        Register a new user

        Raises:
            ValidationError: If username or secret is empty
            AlreadyExistsError: If the username is taken
            StorageError: If the credential could not be persisted
        """
        username = (username or "").strip()
        secret = (secret or "").strip()

        if not username:
            raise ValidationError("Username cannot be empty")
        if not secret:
            raise ValidationError("Password cannot be empty")
        check_field_lengths([username, secret])

        with self._lock:
            if username in self._credentials:
                raise AlreadyExistsError("Username already exists")

            credential = Credential(username=username, secret=secret)
            # Persist first so a failed write leaves memory untouched
            self.storage.append_row(credential.to_row())
            self._credentials[username] = secret

        log_action(self.logger, "info", "User registered", user_id=username, action="register")
        return credential

    def exists(self, username: str) -> bool:
        return username in self._credentials

    def count(self) -> int:
        return len(self._credentials)
