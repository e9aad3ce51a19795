"""Credential persistence.

CredentialStore keeps a single Credentials record in a SecureStorage backend:
    KeyringStorage - OS keyring (macOS Keychain, Windows Credential Locker,
                     Linux Secret Service) via the keyring library
    FileStorage    - JSON token file readable only by the owner
    MemoryStorage  - in-process, for tests and throwaway sessions

Storage failures never raise from CredentialStore: a failed load reads as
"signed out" and a failed save or delete is logged and ignored.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

import keyring
from keyring.errors import PasswordDeleteError

from google_drive_client.auth.credentials import Credentials
from google_drive_client.config import KEYRING_SERVICE

logger = logging.getLogger(__name__)


class SecureStorage(ABC):
    """Key-value store for binary blobs."""

    @abstractmethod
    def load(self, key: str) -> bytes | None:
        pass

    @abstractmethod
    def save(self, key: str, data: bytes) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class KeyringStorage(SecureStorage):
    """Store blobs in the OS keyring, base64-encoded as the password field."""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def load(self, key: str) -> bytes | None:
        value = keyring.get_password(self.service, key)
        if value is None:
            return None
        return base64.b64decode(value)

    def save(self, key: str, data: bytes) -> None:
        keyring.set_password(self.service, key, base64.b64encode(data).decode("ascii"))

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except PasswordDeleteError:
            # Nothing stored under this key
            pass


class FileStorage(SecureStorage):
    """Store blobs in a single JSON file, one entry per key."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def _write(self, entries: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(entries, f, indent=2)

    def load(self, key: str) -> bytes | None:
        value = self._read().get(key)
        if value is None:
            return None
        return base64.b64decode(value)

    def save(self, key: str, data: bytes) -> None:
        entries = self._read()
        entries[key] = base64.b64encode(data).decode("ascii")
        self._write(entries)

    def delete(self, key: str) -> None:
        entries = self._read()
        if entries.pop(key, None) is None:
            return
        if entries:
            self._write(entries)
        else:
            self.path.unlink()


class MemoryStorage(SecureStorage):
    """Store blobs in a dict."""

    def __init__(self):
        self.entries: dict[str, bytes] = {}

    def load(self, key: str) -> bytes | None:
        return self.entries.get(key)

    def save(self, key: str, data: bytes) -> None:
        self.entries[key] = data

    def delete(self, key: str) -> None:
        self.entries.pop(key, None)


class CredentialStore:
    """Single-slot Credentials store on top of a SecureStorage backend.

    Example:
        >>> store = CredentialStore(KeyringStorage())
        >>> store.save(credentials)
        >>> store.load()
        Credentials(access_token='...', ...)
    """

    def __init__(self, storage: SecureStorage, key: str = "credentials"):
        self.storage = storage
        self.key = key

    def load(self) -> Credentials | None:
        """Load stored credentials, or None if absent or unreadable."""
        try:
            data = self.storage.load(self.key)
        except Exception as e:
            logger.error(f"Failed to read credentials from storage: {e}")
            return None

        if data is None:
            return None

        try:
            return Credentials.from_dict(json.loads(data))
        except Exception as e:
            logger.error(f"Failed to decode stored credentials: {e}")
            return None

    def save(self, credentials: Credentials) -> None:
        # TODO: surface save failures once callers can show a storage error
        try:
            self.storage.save(self.key, json.dumps(credentials.to_dict()).encode("utf-8"))
        except Exception as e:
            logger.warning(f"Failed to save credentials: {e}")
            return
        logger.info("Credentials saved")

    def delete(self) -> None:
        try:
            self.storage.delete(self.key)
        except Exception as e:
            logger.warning(f"Failed to delete credentials: {e}")
            return
        logger.info("Credentials deleted")
