"""Access token refresh against the Google OAuth token endpoint."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

import httpx
from authlib.oauth2.rfc6749.parameters import prepare_token_request

from google_drive_client.auth.credentials import TOKEN_URL, Credentials, parse_token_response, utcnow
from google_drive_client.auth.exceptions import (
    NoRefreshTokenError,
    RefreshFailedError,
    TokenDecodeError,
)
from google_drive_client.config import Config

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class TokenRefresher:
    """Exchanges a refresh token for a new access token."""

    def __init__(
        self,
        config: Config,
        http: httpx.AsyncClient,
        clock: Callable[[], datetime] = utcnow,
        token_url: str = TOKEN_URL,
    ):
        self.config = config
        self.http = http
        self.clock = clock
        self.token_url = token_url

    async def refresh(self, credentials: Credentials) -> Credentials:
        """Refresh the access token.

        Args:
            credentials: Current credentials.

        Returns:
            Credentials with a new access token and expiry. The refresh token
            is kept unless the provider issued a new one.

        Raises:
            NoRefreshTokenError: If the credentials carry no refresh token.
            RefreshFailedError: If the token endpoint is unreachable or rejects the request.
            TokenDecodeError: If the response body is not a token response.
        """
        if not credentials.refresh_token:
            raise NoRefreshTokenError("Credentials have no refresh token; sign in again")

        body = prepare_token_request(
            "refresh_token",
            refresh_token=credentials.refresh_token,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
        )
        request = self.http.build_request("POST", self.token_url, content=body, headers=FORM_HEADERS)

        logger.info("Refreshing access token")
        try:
            response = await self.http.send(request)
        except httpx.HTTPError as e:
            raise RefreshFailedError(None, str(e)) from e

        if not response.is_success:
            raise RefreshFailedError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenDecodeError(f"Token response is not JSON: {e}") from e

        access_token, refresh_token, expiry = parse_token_response(payload, self.clock())
        logger.info(f"Access token refreshed, expires at {expiry.isoformat()}")
        return credentials.refreshed(access_token, expiry, refresh_token)
