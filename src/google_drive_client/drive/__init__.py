"""Google Drive v3 REST client.

Manage Google Drive files with OAuth 2.0 authentication.

Usage:
    from google_drive_client.drive import DriveClient

    async with DriveClient.from_config(config) as client:
        # List files in the app-private folder
        files = await client.list_files(query="trashed=false", spaces=["appDataFolder"])

        # Upload a file
        file = await client.create_file(
            name="notes.txt",
            spaces="appDataFolder",
            mime_type="text/plain",
            parents=["appDataFolder"],
            data=b"Hello, World!",
        )

        # Download its content
        data = await client.get_file_data(file.id)

OAuth Setup:
    1. Create an OAuth client (iOS/desktop type) in Google Cloud Console
    2. Set GOOGLE_DRIVE_CLIENT_ID and GOOGLE_DRIVE_REDIRECT_URI in .env
    3. Authorize: gdrive-client login
"""

from __future__ import annotations

from google_drive_client.drive.client import DriveClient
from google_drive_client.drive.exceptions import (
    DecodeError,
    DriveAPIError,
    HTTPError,
    TransportError,
)
from google_drive_client.drive.models import APP_DATA_FOLDER, DRIVE_SPACE, File, FilesList

__all__ = [
    "DriveClient",
    "File",
    "FilesList",
    "APP_DATA_FOLDER",
    "DRIVE_SPACE",
    "DriveAPIError",
    "HTTPError",
    "DecodeError",
    "TransportError",
]
