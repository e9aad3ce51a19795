"""Client configuration.

Configuration can be built three ways:
    Config(client_id=..., auth_scope=..., redirect_uri=...)
    Config.from_env()                          - GOOGLE_DRIVE_* env vars
    Config.from_client_secrets_file(path, ...) - credentials.json from Cloud Console

This module auto-loads a .env file from the current directory on import, so
GOOGLE_DRIVE_* values can live next to the app instead of in the shell.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_DIR = Path.home() / ".config" / "google-drive-client"
ENV_FILE = Path.cwd() / ".env"
TOKEN_FILE = CONFIG_DIR / "token.json"
KEYRING_SERVICE = "google-drive-client"

# Drive-related Google OAuth scopes
SCOPES = {
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
    "drive_appdata": "https://www.googleapis.com/auth/drive.appdata",
    "drive_metadata": "https://www.googleapis.com/auth/drive.metadata",
    "drive_metadata_readonly": "https://www.googleapis.com/auth/drive.metadata.readonly",
}


class ConfigError(Exception):
    """Raised when client configuration is missing or invalid."""

    pass


def resolve_scope(scope: str) -> str:
    """Resolve space-separated scope names to full URLs.

    Args:
        scope: Scope names (e.g., "drive_appdata") or full URLs.

    Returns:
        Space-separated scope URLs.
    """
    resolved = []
    for item in scope.split():
        if item.startswith("https://"):
            resolved.append(item)
        elif item in SCOPES:
            resolved.append(SCOPES[item])
        else:
            raise ValueError(f"Unknown scope: {item}. Use full URL or one of: {list(SCOPES.keys())}")
    return " ".join(resolved)


@dataclass(frozen=True)
class Config:
    """OAuth client configuration, fixed for the life of the process."""

    client_id: str
    auth_scope: str
    redirect_uri: str
    client_secret: str | None = None

    def __post_init__(self):
        if not self.client_id:
            raise ConfigError("client_id is required")
        if not self.redirect_uri:
            raise ConfigError("redirect_uri is required")
        object.__setattr__(self, "auth_scope", resolve_scope(self.auth_scope))

    @property
    def redirect_scheme(self) -> str:
        """URI scheme the host registers for the OAuth callback."""
        return self.redirect_uri.split(":", 1)[0].lower()

    @classmethod
    def from_env(cls) -> Config:
        """Build configuration from GOOGLE_DRIVE_* environment variables.

        Raises:
            ConfigError: If client ID or redirect URI is not set.
        """
        client_id = os.environ.get("GOOGLE_DRIVE_CLIENT_ID")
        redirect_uri = os.environ.get("GOOGLE_DRIVE_REDIRECT_URI")
        if not client_id or not redirect_uri:
            raise ConfigError(
                "GOOGLE_DRIVE_CLIENT_ID and GOOGLE_DRIVE_REDIRECT_URI must be set "
                "in the environment or in .env"
            )
        return cls(
            client_id=client_id,
            auth_scope=os.environ.get("GOOGLE_DRIVE_AUTH_SCOPE", "drive_appdata"),
            redirect_uri=redirect_uri,
            client_secret=os.environ.get("GOOGLE_DRIVE_CLIENT_SECRET") or None,
        )

    @classmethod
    def from_client_secrets_file(
        cls,
        path: str | Path,
        redirect_uri: str | None = None,
        auth_scope: str = "drive_appdata",
    ) -> Config:
        """Build configuration from a Google Cloud Console credentials file.

        Args:
            path: Path to credentials.json.
            redirect_uri: Redirect URI. Defaults to the first one in the file.
            auth_scope: Scope names or URLs.

        Raises:
            ConfigError: If the file is missing or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(
                f"Credentials file not found at {path}. "
                "Please download OAuth credentials from Google Cloud Console."
            )

        with open(path) as f:
            creds = json.load(f)

        # Handle both web and installed app credential formats
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise ConfigError("Invalid credentials.json format. Expected 'installed' or 'web' key.")

        if redirect_uri is None:
            redirect_uris = app_creds.get("redirect_uris") or []
            if not redirect_uris:
                raise ConfigError("No redirect_uri given and none listed in credentials file")
            redirect_uri = redirect_uris[0]

        return cls(
            client_id=app_creds["client_id"],
            auth_scope=auth_scope,
            redirect_uri=redirect_uri,
            client_secret=app_creds.get("client_secret"),
        )


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


# Auto-load .env on import
_loaded = _load_env_file(ENV_FILE)
