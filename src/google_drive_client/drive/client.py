"""Google Drive v3 REST client implementation."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx
from authlib.common.security import generate_token

from google_drive_client.auth import AuthController, CredentialStore, KeyringStorage
from google_drive_client.config import Config
from google_drive_client.drive.exceptions import DecodeError, HTTPError, TransportError
from google_drive_client.drive.models import FILE_FIELDS, FILES_LIST_FIELDS, File, FilesList

logger = logging.getLogger(__name__)


class DriveClient:
    """Google Drive API client authenticated through an AuthController.

    Every call fetches a valid access token first, refreshing it if needed.
    Nothing is retried; retry policy belongs to the caller.

    Usage:
        async with DriveClient.from_config(config) as client:
            if not await client.auth.is_signed_in():
                await client.auth.sign_in()
                await client.auth.handle_redirect(redirect_url)

            files = await client.list_files(query="trashed=false", spaces=["appDataFolder"])
            data = await client.get_file_data(files.files[0].id)
    """

    BASE_URL = "https://www.googleapis.com/drive/v3"
    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

    def __init__(self, auth: AuthController, http: httpx.AsyncClient | None = None) -> None:
        """Initialize Drive client.

        Args:
            auth: Supplies access tokens.
            http: HTTP client for API calls. Defaults to the one auth uses.
        """
        self.auth = auth
        self.http = http or auth.http
        self._owns_http = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: CredentialStore | None = None,
        **auth_kwargs: Any,
    ) -> DriveClient:
        """Build a client with its own HTTP client and a keyring credential store.

        The HTTP client is closed by aclose() or when leaving ``async with``.
        """
        http = httpx.AsyncClient()
        store = store or CredentialStore(KeyringStorage())
        client = cls(AuthController(config, store, http, **auth_kwargs), http)
        client._owns_http = True
        return client

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> DriveClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request.

        Raises:
            AuthError: If no valid access token is available.
            TransportError: If the request fails without a response.
            HTTPError: If the API returns a non-2xx status.
        """
        token = await self.auth.valid_access_token()
        request_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            request_headers.update(headers)

        request = self.http.build_request(
            method, url, params=params, content=content, headers=request_headers
        )
        try:
            response = await self.http.send(request)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not response.is_success:
            logger.debug(f"{method} {url} -> {response.status_code}")
            raise HTTPError(response.status_code, response.text)

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Response is not JSON: {e}") from e

    # =========================================================================
    # Files
    # =========================================================================

    async def list_files(
        self,
        query: str | None = None,
        spaces: list[str] | None = None,
        page_token: str | None = None,
        page_size: int | None = None,
        order_by: str | None = None,
        corpora: str | None = None,
        drive_id: str | None = None,
        include_items_from_all_drives: bool | None = None,
        supports_all_drives: bool | None = None,
    ) -> FilesList:
        """List one page of files.

        Args:
            query: Search query (Drive query syntax), e.g. "trashed=false".
            spaces: Spaces to search, e.g. ["appDataFolder"].
            page_token: Continuation token from a previous FilesList.
            page_size: Maximum files per page.
            order_by: Sort order (e.g., "name", "modifiedTime desc").
            corpora: Bodies of items to search ("user", "drive", "allDrives").
            drive_id: Shared drive to search.
            include_items_from_all_drives: Include shared drive items.
            supports_all_drives: Whether the caller supports shared drives.

        Returns:
            FilesList with the page's files and the next page token, if any.
        """
        params: dict[str, Any] = {"fields": FILES_LIST_FIELDS}
        if query is not None:
            params["q"] = query
        if spaces is not None:
            params["spaces"] = ",".join(spaces)
        if page_token is not None:
            params["pageToken"] = page_token
        if page_size is not None:
            params["pageSize"] = page_size
        if order_by is not None:
            params["orderBy"] = order_by
        if corpora is not None:
            params["corpora"] = corpora
        if drive_id is not None:
            params["driveId"] = drive_id
        if include_items_from_all_drives is not None:
            params["includeItemsFromAllDrives"] = str(include_items_from_all_drives).lower()
        if supports_all_drives is not None:
            params["supportsAllDrives"] = str(supports_all_drives).lower()

        response = await self._request("GET", f"{self.BASE_URL}/files", params=params)
        return FilesList.from_dict(self._json(response))

    async def create_file(
        self,
        name: str,
        spaces: str | list[str],
        mime_type: str,
        parents: list[str],
        data: bytes,
    ) -> File:
        """Upload a new file with metadata and content in one request.

        Args:
            name: Name for the file in Drive.
            spaces: Space(s) the file lives in, e.g. "appDataFolder".
            mime_type: MIME type of the content.
            parents: Parent folder IDs, e.g. ["appDataFolder"].
            data: File content.

        Returns:
            Created File.
        """
        if isinstance(spaces, str):
            spaces = [s for s in spaces.split(",") if s]
        metadata = {
            "name": name,
            "spaces": spaces,
            "mimeType": mime_type,
            "parents": parents,
        }
        boundary = generate_token(32)
        body = _multipart_related(boundary, metadata, data, mime_type)

        response = await self._request(
            "POST",
            f"{self.UPLOAD_URL}/files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        file = File.from_dict(self._json(response))
        logger.info(f"Created file {file.id} ({file.name})")
        return file

    async def get_file(self, file_id: str) -> File:
        """Get a file's metadata.

        Args:
            file_id: Drive file ID.
        """
        response = await self._request(
            "GET", f"{self.BASE_URL}/files/{_quote(file_id)}", params={"fields": FILE_FIELDS}
        )
        return File.from_dict(self._json(response))

    async def get_file_data(self, file_id: str) -> bytes:
        """Download a file's content.

        Args:
            file_id: Drive file ID.

        Returns:
            Raw file content.
        """
        response = await self._request(
            "GET", f"{self.BASE_URL}/files/{_quote(file_id)}", params={"alt": "media"}
        )
        return response.content

    async def update_file(
        self,
        file_id: str,
        data: bytes,
        mime_type: str | None = None,
    ) -> File:
        """Replace a file's content.

        Args:
            file_id: Drive file ID.
            data: New content.
            mime_type: MIME type of the new content.

        Returns:
            Updated File.
        """
        response = await self._request(
            "PATCH",
            f"{self.UPLOAD_URL}/files/{_quote(file_id)}",
            params={"uploadType": "media", "fields": FILE_FIELDS},
            content=data,
            headers={"Content-Type": mime_type or "application/octet-stream"},
        )
        file = File.from_dict(self._json(response))
        logger.info(f"Updated file {file.id}")
        return file

    async def delete_file(self, file_id: str) -> None:
        """Permanently delete a file, skipping the trash.

        Args:
            file_id: Drive file ID.
        """
        await self._request("DELETE", f"{self.BASE_URL}/files/{_quote(file_id)}")
        logger.info(f"Deleted file {file_id}")


def _multipart_related(boundary: str, metadata: dict[str, Any], data: bytes, mime_type: str) -> bytes:
    """Encode a metadata + media body for uploadType=multipart."""
    delimiter = f"--{boundary}\r\n".encode()
    return b"".join(
        [
            delimiter,
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            json.dumps(metadata).encode("utf-8"),
            b"\r\n",
            delimiter,
            f"Content-Type: {mime_type}\r\n\r\n".encode(),
            data,
            f"\r\n--{boundary}--\r\n".encode(),
        ]
    )


def _quote(file_id: str) -> str:
    """Escape a file ID for use as a single path segment."""
    return quote(file_id, safe="")
