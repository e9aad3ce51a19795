"""Tests for the Drive REST client."""

import json
from datetime import datetime, timezone

import httpx
import pytest
from conftest import FILES_URL, TOKEN_URL, UPLOAD_URL

from google_drive_client.auth import NotSignedInError, RefreshFailedError
from google_drive_client.drive import (
    APP_DATA_FOLDER,
    DecodeError,
    DriveClient,
    File,
    FilesList,
    HTTPError,
    TransportError,
)

FILE_RESOURCE = {
    "id": "f1",
    "name": "test.txt",
    "mimeType": "text/plain",
    "createdTime": "2026-01-01T10:00:00.000Z",
    "modifiedTime": "2026-01-01T11:30:00.000Z",
    "parents": ["appDataFolder"],
    "spaces": ["appDataFolder"],
    "trashed": False,
}


@pytest.fixture
def drive(auth, store, valid_credentials):
    store.save(valid_credentials)
    return DriveClient(auth)


def _multipart_parts(request: httpx.Request) -> list[bytes]:
    boundary = request.headers["Content-Type"].split("boundary=")[1]
    chunks = request.content.split(f"--{boundary}".encode())
    # First chunk is empty preamble, last is the closing "--\r\n"
    return [chunk.strip(b"\r\n") for chunk in chunks[1:-1]]


class TestListFiles:
    """Test files.list."""

    @pytest.mark.asyncio
    async def test_query_and_spaces(self, drive, google):
        """Should send the query and spaces and parse the files array."""
        google.on(
            "GET",
            FILES_URL,
            httpx.Response(200, json={"files": [FILE_RESOURCE], "nextPageToken": "next"}),
        )

        result = await drive.list_files(query="trashed=false", spaces=[APP_DATA_FOLDER])

        request = google.calls("GET", FILES_URL)[0]
        assert request.url.params["q"] == "trashed=false"
        assert request.url.params["spaces"] == "appDataFolder"
        assert "pageToken" not in request.url.params
        assert request.headers["Authorization"] == "Bearer stored-access-token"

        assert isinstance(result, FilesList)
        assert result.next_page_token == "next"
        assert [f.id for f in result.files] == ["f1"]
        assert result.files[0].created_time == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_optional_parameters(self, drive, google):
        """Should only send parameters that were given."""
        google.on("GET", FILES_URL, httpx.Response(200, json={"files": []}))

        result = await drive.list_files(
            page_token="tok",
            page_size=10,
            order_by="name",
            spaces=["drive", APP_DATA_FOLDER],
            supports_all_drives=True,
        )

        params = google.requests[0].url.params
        assert params["pageToken"] == "tok"
        assert params["pageSize"] == "10"
        assert params["orderBy"] == "name"
        assert params["spaces"] == "drive,appDataFolder"
        assert params["supportsAllDrives"] == "true"
        assert "q" not in params
        assert "corpora" not in params
        assert result.files == []
        assert result.next_page_token is None

    @pytest.mark.asyncio
    async def test_does_not_paginate(self, drive, google):
        google.on(
            "GET", FILES_URL, httpx.Response(200, json={"files": [], "nextPageToken": "more"})
        )

        await drive.list_files()
        assert len(google.requests) == 1

    @pytest.mark.asyncio
    async def test_bad_shape(self, drive, google):
        google.on("GET", FILES_URL, httpx.Response(200, json={"files": [{"name": "no id"}]}))

        with pytest.raises(DecodeError):
            await drive.list_files()


class TestCreateFile:
    """Test multipart upload."""

    @pytest.mark.asyncio
    async def test_multipart_upload(self, drive, google):
        """Should send metadata and content as multipart/related."""
        google.on("POST", UPLOAD_URL, httpx.Response(200, json=FILE_RESOURCE))

        file = await drive.create_file(
            name="test.txt",
            spaces="appDataFolder",
            mime_type="text/plain",
            parents=["appDataFolder"],
            data=b"Hello, World!",
        )

        assert file.id == "f1"
        request = google.calls("POST", UPLOAD_URL)[0]
        assert request.url.params["uploadType"] == "multipart"
        assert request.headers["Content-Type"].startswith("multipart/related; boundary=")

        metadata_part, media_part = _multipart_parts(request)
        metadata_headers, metadata_body = metadata_part.split(b"\r\n\r\n", 1)
        assert b"application/json" in metadata_headers
        assert json.loads(metadata_body) == {
            "name": "test.txt",
            "spaces": ["appDataFolder"],
            "mimeType": "text/plain",
            "parents": ["appDataFolder"],
        }

        media_headers, media_body = media_part.split(b"\r\n\r\n", 1)
        assert media_headers == b"Content-Type: text/plain"
        assert media_body == b"Hello, World!"

    @pytest.mark.asyncio
    async def test_http_error(self, drive, google):
        google.on("POST", UPLOAD_URL, httpx.Response(403, text="insufficient scope"))

        with pytest.raises(HTTPError) as exc_info:
            await drive.create_file("a", "appDataFolder", "text/plain", ["appDataFolder"], b"")
        assert exc_info.value.status_code == 403
        assert exc_info.value.body == "insufficient scope"


class TestGetFile:
    """Test files.get."""

    @pytest.mark.asyncio
    async def test_get_metadata(self, drive, google):
        google.on("GET", f"{FILES_URL}/f1", httpx.Response(200, json=FILE_RESOURCE))

        file = await drive.get_file("f1")

        assert file == File.from_dict(FILE_RESOURCE)
        assert "alt" not in google.requests[0].url.params
        assert "fields" in google.requests[0].url.params

    @pytest.mark.asyncio
    async def test_not_found(self, drive, google):
        google.on("GET", f"{FILES_URL}/missing", httpx.Response(404, json={"error": "notFound"}))

        with pytest.raises(HTTPError) as exc_info:
            await drive.get_file("missing")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_non_json(self, drive, google):
        google.on("GET", f"{FILES_URL}/f1", httpx.Response(200, text="<html>"))

        with pytest.raises(DecodeError):
            await drive.get_file("f1")

    @pytest.mark.asyncio
    async def test_get_data(self, drive, google):
        """Should request alt=media and return raw bytes."""
        google.on("GET", f"{FILES_URL}/f1", httpx.Response(200, content=b"\x00\x01raw"))

        data = await drive.get_file_data("f1")

        assert data == b"\x00\x01raw"
        assert google.requests[0].url.params["alt"] == "media"


class TestUpdateFile:
    """Test content replacement."""

    @pytest.mark.asyncio
    async def test_replaces_content(self, drive, google):
        google.on("PATCH", f"{UPLOAD_URL}/f1", httpx.Response(200, json=FILE_RESOURCE))

        file = await drive.update_file("f1", b"new content", mime_type="text/plain")

        assert file.id == "f1"
        request = google.requests[0]
        assert request.url.params["uploadType"] == "media"
        assert request.headers["Content-Type"] == "text/plain"
        assert request.content == b"new content"

    @pytest.mark.asyncio
    async def test_default_mime_type(self, drive, google):
        google.on("PATCH", f"{UPLOAD_URL}/f1", httpx.Response(200, json=FILE_RESOURCE))

        await drive.update_file("f1", b"bytes")
        assert google.requests[0].headers["Content-Type"] == "application/octet-stream"


class TestDeleteFile:
    """Test files.delete."""

    @pytest.mark.asyncio
    async def test_delete_no_content(self, drive, google):
        """Should complete without a value on 204."""
        google.on("DELETE", f"{FILES_URL}/f1", httpx.Response(204))

        assert await drive.delete_file("f1") is None
        assert len(google.calls("DELETE", f"{FILES_URL}/f1")) == 1

    @pytest.mark.asyncio
    async def test_file_id_escaped_in_path(self, drive, google):
        """Should send the file ID as one path segment."""
        google.on("DELETE", f"{FILES_URL}/a?x=1", httpx.Response(204))

        await drive.delete_file("a?x=1")
        url = google.requests[0].url
        assert url.raw_path == b"/drive/v3/files/a%3Fx%3D1"
        assert url.query == b""

    @pytest.mark.asyncio
    async def test_delete_failure_not_retried(self, drive, google):
        google.on("DELETE", f"{FILES_URL}/f1", httpx.Response(500, text="backend error"))

        with pytest.raises(HTTPError):
            await drive.delete_file("f1")
        assert len(google.requests) == 1


class TestAuthentication:
    """Test token handling around API calls."""

    @pytest.mark.asyncio
    async def test_not_signed_in(self, auth, google):
        """Should propagate NotSignedInError without calling the API."""
        with pytest.raises(NotSignedInError):
            await DriveClient(auth).get_file("f1")
        assert google.requests == []

    @pytest.mark.asyncio
    async def test_refreshes_before_call(self, auth, store, google, expired_credentials):
        """Should refresh an expired token and use it."""
        store.save(expired_credentials)
        google.on(
            "POST", TOKEN_URL, httpx.Response(200, json={"access_token": "AT2", "expires_in": 3600})
        )
        google.on("GET", f"{FILES_URL}/f1", httpx.Response(200, json=FILE_RESOURCE))

        await DriveClient(auth).get_file("f1")

        api_request = google.calls("GET", f"{FILES_URL}/f1")[0]
        assert api_request.headers["Authorization"] == "Bearer AT2"

    @pytest.mark.asyncio
    async def test_refresh_failure_propagates(self, auth, store, google, expired_credentials):
        store.save(expired_credentials)
        google.on("POST", TOKEN_URL, httpx.Response(400, json={"error": "invalid_grant"}))

        with pytest.raises(RefreshFailedError):
            await DriveClient(auth).list_files()
        assert google.calls("GET", FILES_URL) == []

    @pytest.mark.asyncio
    async def test_transport_error(self, drive, google):
        def fail(request):
            raise httpx.ConnectError("no network", request=request)

        google.on("GET", f"{FILES_URL}/f1", handler=fail)

        with pytest.raises(TransportError):
            await drive.get_file("f1")


class TestClientLifecycle:
    """Test ownership of the HTTP client."""

    @pytest.mark.asyncio
    async def test_from_config_closes_own_client(self, config, store):
        async with DriveClient.from_config(config, store) as client:
            assert client.auth.store is store
            assert client.http is client.auth.http
        assert client.http.is_closed

    @pytest.mark.asyncio
    async def test_does_not_close_injected_client(self, auth, http):
        async with DriveClient(auth) as client:
            pass
        assert not http.is_closed
        assert client.http is http


class TestFileModel:
    """Test parsing of file resources."""

    def test_minimal_resource(self):
        file = File.from_dict({"id": "x", "name": "n", "mimeType": "application/vnd.google-apps.folder"})
        assert file.is_folder
        assert file.created_time is None
        assert file.parents == []

    def test_invalid_timestamp(self):
        with pytest.raises(DecodeError):
            File.from_dict({**FILE_RESOURCE, "createdTime": "yesterday"})

    def test_parents_must_be_list(self):
        with pytest.raises(DecodeError):
            File.from_dict({**FILE_RESOURCE, "parents": "appDataFolder"})
