"""OAuth credentials model."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from google.oauth2.credentials import Credentials as GoogleCredentials

from google_drive_client.auth.exceptions import TokenDecodeError
from google_drive_client.config import Config

TOKEN_URL = "https://oauth2.googleapis.com/token"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """Tokens obtained from the Google OAuth token endpoint."""

    access_token: str
    refresh_token: str | None
    expiry_date: datetime

    def is_expired(self, now: datetime | None = None, leeway: timedelta = timedelta(0)) -> bool:
        """Check whether the access token expires within ``leeway`` of ``now``."""
        now = now or utcnow()
        return self.expiry_date <= now + leeway

    def refreshed(self, access_token: str, expiry_date: datetime, refresh_token: str | None = None):
        """Return a copy with a new access token, keeping the refresh token unless replaced."""
        return replace(
            self,
            access_token=access_token,
            expiry_date=expiry_date,
            refresh_token=refresh_token or self.refresh_token,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry_date": self.expiry_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credentials:
        """Parse credentials previously produced by ``to_dict``.

        Raises:
            KeyError, TypeError, ValueError: If the data is malformed.
        """
        expiry = datetime.fromisoformat(data["expiry_date"].replace("Z", "+00:00"))
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("access_token must be a non-empty string")
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expiry_date=expiry,
        )

    def to_google_credentials(self, config: Config) -> GoogleCredentials:
        """Convert to google-auth credentials for use with Google client libraries."""
        return GoogleCredentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=TOKEN_URL,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=config.auth_scope.split(),
            # google-auth compares expiry against naive UTC
            expiry=self.expiry_date.astimezone(timezone.utc).replace(tzinfo=None),
        )


def parse_token_response(payload: Any, now: datetime) -> tuple[str, str | None, datetime]:
    """Extract access token, refresh token and expiry from a token response.

    Args:
        payload: Decoded JSON body of a token endpoint response.
        now: Time the response was received.

    Returns:
        Tuple of (access_token, refresh_token or None, expiry datetime).

    Raises:
        TokenDecodeError: If required fields are missing or mistyped.
    """
    if not isinstance(payload, dict):
        raise TokenDecodeError(f"Expected JSON object, got {type(payload).__name__}")

    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise TokenDecodeError("Token response missing access_token")

    expires_in = payload.get("expires_in")
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float, str)):
        raise TokenDecodeError("Token response missing expires_in")
    try:
        seconds = float(expires_in)
        if not math.isfinite(seconds) or seconds < 0:
            raise ValueError("not a finite, non-negative number")
        expiry = now + timedelta(seconds=seconds)
    except (ValueError, OverflowError) as e:
        raise TokenDecodeError(f"Invalid expires_in: {expires_in!r}") from e

    refresh_token = payload.get("refresh_token")
    if refresh_token is not None and not isinstance(refresh_token, str):
        raise TokenDecodeError("Token response refresh_token is not a string")

    return access_token, refresh_token or None, expiry


def credentials_from_token_response(payload: Any, now: datetime) -> Credentials:
    """Build new credentials from a code-exchange token response."""
    access_token, refresh_token, expiry = parse_token_response(payload, now)
    return Credentials(access_token=access_token, refresh_token=refresh_token, expiry_date=expiry)
