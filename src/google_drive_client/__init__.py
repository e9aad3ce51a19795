"""Google Drive REST client with OAuth sign-in and secure token storage."""

from google_drive_client.auth import AuthController, CredentialStore, Credentials
from google_drive_client.config import Config
from google_drive_client.drive import DriveClient, File, FilesList

__version__ = "0.1.0"
__all__ = [
    "AuthController",
    "Config",
    "Credentials",
    "CredentialStore",
    "DriveClient",
    "File",
    "FilesList",
]
