"""Google Drive resource models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from google_drive_client.drive.exceptions import DecodeError

# Spaces
DRIVE_SPACE = "drive"
APP_DATA_FOLDER = "appDataFolder"

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Fields requested for every file resource
FILE_FIELDS = "id, name, mimeType, createdTime, modifiedTime, parents, spaces, trashed"
FILES_LIST_FIELDS = f"nextPageToken, incompleteSearch, files({FILE_FIELDS})"


def _parse_time(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DecodeError(f"{key} is not a string: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise DecodeError(f"Invalid {key}: {value!r}") from e


def _parse_str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise DecodeError(f"{key} is not a list of strings: {value!r}")
    return value


@dataclass
class File:
    """Represents a Google Drive file."""

    id: str
    name: str
    mime_type: str
    created_time: datetime | None = None
    modified_time: datetime | None = None
    parents: list[str] = field(default_factory=list)
    spaces: list[str] = field(default_factory=list)
    trashed: bool = False

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_dict(cls, data: Any) -> File:
        """Parse a file resource from an API response.

        Raises:
            DecodeError: If required fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise DecodeError(f"Expected file object, got {type(data).__name__}")

        for key in ("id", "name", "mimeType"):
            if not isinstance(data.get(key), str):
                raise DecodeError(f"File resource missing {key}")

        return cls(
            id=data["id"],
            name=data["name"],
            mime_type=data["mimeType"],
            created_time=_parse_time(data, "createdTime"),
            modified_time=_parse_time(data, "modifiedTime"),
            parents=_parse_str_list(data, "parents"),
            spaces=_parse_str_list(data, "spaces"),
            trashed=bool(data.get("trashed", False)),
        )


@dataclass
class FilesList:
    """One page of a files.list query."""

    files: list[File]
    next_page_token: str | None = None
    incomplete_search: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> FilesList:
        if not isinstance(data, dict):
            raise DecodeError(f"Expected files list object, got {type(data).__name__}")

        files = data.get("files", [])
        if not isinstance(files, list):
            raise DecodeError("files is not a list")

        next_page_token = data.get("nextPageToken")
        if next_page_token is not None and not isinstance(next_page_token, str):
            raise DecodeError("nextPageToken is not a string")

        return cls(
            files=[File.from_dict(item) for item in files],
            next_page_token=next_page_token,
            incomplete_search=bool(data.get("incompleteSearch", False)),
        )
