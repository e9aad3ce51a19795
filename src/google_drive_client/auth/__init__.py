"""Google OAuth sign-in, token refresh and credential storage."""

from google_drive_client.auth.controller import (
    AuthController,
    AuthorizationState,
    AuthState,
    SignInStateBroadcaster,
)
from google_drive_client.auth.credentials import Credentials
from google_drive_client.auth.exceptions import (
    AuthError,
    ExchangeFailedError,
    InvalidRedirectError,
    NoRefreshTokenError,
    NotSignedInError,
    RefreshFailedError,
    StateMismatchError,
    TokenDecodeError,
)
from google_drive_client.auth.refresher import TokenRefresher
from google_drive_client.auth.storage import (
    CredentialStore,
    FileStorage,
    KeyringStorage,
    MemoryStorage,
    SecureStorage,
)

__all__ = [
    "AuthController",
    "AuthorizationState",
    "AuthState",
    "SignInStateBroadcaster",
    "Credentials",
    "TokenRefresher",
    "CredentialStore",
    "SecureStorage",
    "KeyringStorage",
    "FileStorage",
    "MemoryStorage",
    "AuthError",
    "InvalidRedirectError",
    "StateMismatchError",
    "ExchangeFailedError",
    "NotSignedInError",
    "NoRefreshTokenError",
    "RefreshFailedError",
    "TokenDecodeError",
]
