"""CLI for google-drive-client - sign in and exercise the Drive API.

Usage:
    gdrive-client status                       # Show sign-in and token status
    gdrive-client login                        # Interactive OAuth login
    gdrive-client logout                       # Revoke token and clear storage
    gdrive-client list [--query Q] [--space S] # List files
    gdrive-client create NAME [--text T]       # Create a text file
    gdrive-client get ID                       # Show file metadata
    gdrive-client get-data ID                  # Print file content
    gdrive-client update ID [--append T]       # Append a line to a file
    gdrive-client delete ID                    # Delete a file

Configuration comes from GOOGLE_DRIVE_* environment variables (or .env),
or from a Cloud Console credentials file passed with --credentials.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

from google_drive_client.auth import AuthError, CredentialStore, FileStorage, KeyringStorage
from google_drive_client.config import TOKEN_FILE, Config, ConfigError
from google_drive_client.drive import APP_DATA_FOLDER, DriveAPIError, DriveClient, File

logger = logging.getLogger(__name__)


def _build_client(args: argparse.Namespace, no_browser: bool = False) -> DriveClient:
    if args.credentials:
        config = Config.from_client_secrets_file(args.credentials, redirect_uri=args.redirect_uri)
    else:
        config = Config.from_env()

    if args.storage == "file":
        store = CredentialStore(FileStorage(args.token_file))
    else:
        store = CredentialStore(KeyringStorage())

    auth_kwargs = {}
    if no_browser:
        auth_kwargs["open_url"] = lambda url: None
    return DriveClient.from_config(config, store, **auth_kwargs)


def _guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type is None:
        mime_type = "application/octet-stream"
    return mime_type


def _print_file(file: File) -> None:
    print(f"ID            : {file.id}")
    print(f"Name          : {file.name}")
    print(f"MIME type     : {file.mime_type}")
    print(f"Created time  : {file.created_time.isoformat() if file.created_time else 'unknown'}")
    print(f"Modified time : {file.modified_time.isoformat() if file.modified_time else 'unknown'}")
    if file.parents:
        print(f"Parents       : {', '.join(file.parents)}")


async def cmd_status(client: DriveClient) -> int:
    """Show sign-in and token status."""
    info = client.auth.get_token_info()

    if info["status"] == "no_token":
        print("You are signed out - run 'gdrive-client login'")
        return 1

    print("You are signed in")
    print(f"Status     : {info['status']}")
    print(f"Scopes     : {', '.join(info['scopes'])}")
    print(f"Expires in : {info['expires_in']}")
    print(f"Refresh    : {'yes' if info['has_refresh_token'] else 'no'}")
    return 0


async def cmd_login(client: DriveClient) -> int:
    """Interactive OAuth login."""
    print("=" * 60)
    print("GOOGLE DRIVE LOGIN")
    print("=" * 60)

    if await client.auth.is_signed_in():
        print("\nAlready signed in")
        return await cmd_status(client)

    print("\nA browser window will open for Google consent.")
    print("After granting access, copy the redirect URL back here.\n")

    url = await client.auth.sign_in()
    print(f"Authorization URL:\n{url}\n")

    redirect_url = input("Paste redirect URL: ").strip()
    if not redirect_url:
        print("No URL provided; aborting.")
        return 1

    await client.auth.handle_redirect(redirect_url)
    print("\nSigned in successfully!")
    return await cmd_status(client)


async def cmd_logout(client: DriveClient) -> int:
    """Revoke the token and clear stored credentials."""
    await client.auth.sign_out()
    print("Signed out and local credentials cleared")
    return 0


async def cmd_list(client: DriveClient, query: str, spaces: list[str], page_token: str | None) -> int:
    """List one page of files."""
    files_list = await client.list_files(query=query, spaces=spaces, page_token=page_token)

    if not files_list.files:
        print("No files")
    for file in files_list.files:
        modified = file.modified_time.isoformat() if file.modified_time else "-"
        print(f"{file.id}  {modified}  {file.name}")

    if files_list.next_page_token:
        print(f"\nMore files available: --page-token {files_list.next_page_token}")
    return 0


async def cmd_create(client: DriveClient, name: str, text: str | None, path: str | None) -> int:
    """Create a file in the app data folder."""
    if path:
        data = Path(path).read_bytes()
        mime_type = _guess_mime_type(path)
    else:
        text = text or f"Hello, World!\nCreated at {datetime.now().isoformat()}"
        data = text.encode("utf-8")
        mime_type = "text/plain"

    file = await client.create_file(
        name=name,
        spaces=APP_DATA_FOLDER,
        mime_type=mime_type,
        parents=[APP_DATA_FOLDER],
        data=data,
    )
    print("Created file")
    _print_file(file)
    return 0


async def cmd_get(client: DriveClient, file_id: str) -> int:
    """Show file metadata."""
    _print_file(await client.get_file(file_id))
    return 0


async def cmd_get_data(client: DriveClient, file_id: str) -> int:
    """Print file content, base64-encoded if it is not UTF-8 text."""
    data = await client.get_file_data(file_id)
    try:
        print(data.decode("utf-8"))
    except UnicodeDecodeError:
        print(base64.b64encode(data).decode("ascii"))
    return 0


async def cmd_update(client: DriveClient, file_id: str, text: str | None, path: str | None) -> int:
    """Append a line to a file, or replace its content from a local file."""
    if path:
        data = Path(path).read_bytes()
        mime_type = _guess_mime_type(path)
    else:
        data = await client.get_file_data(file_id)
        text = text or f"Updated at {datetime.now().isoformat()}"
        data += f"\n{text}".encode()
        mime_type = "text/plain"

    file = await client.update_file(file_id, data, mime_type=mime_type)
    print("Updated file")
    _print_file(file)
    return 0


async def cmd_delete(client: DriveClient, file_id: str) -> int:
    """Delete a file."""
    await client.delete_file(file_id)
    print(f"Deleted {file_id}")
    return 0


async def run(args: argparse.Namespace) -> int:
    """Dispatch a parsed command."""
    async with _build_client(args, no_browser=getattr(args, "no_browser", False)) as client:
        try:
            if args.command == "status":
                return await cmd_status(client)
            if args.command == "login":
                return await cmd_login(client)
            if args.command == "logout":
                return await cmd_logout(client)
            if args.command == "list":
                return await cmd_list(client, args.query, args.space, args.page_token)
            if args.command == "create":
                return await cmd_create(client, args.name, args.text, args.file)
            if args.command == "get":
                return await cmd_get(client, args.file_id)
            if args.command == "get-data":
                return await cmd_get_data(client, args.file_id)
            if args.command == "update":
                return await cmd_update(client, args.file_id, args.append, args.file)
            if args.command == "delete":
                return await cmd_delete(client, args.file_id)
        except AuthError as e:
            logger.error(f"{args.command} failed: {e!r}")
            print(f"\nAuth error: {e}")
            return 1
        except DriveAPIError as e:
            logger.error(f"{args.command} failed: {e!r}")
            print(f"\nDrive error: {e}")
            return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gdrive-client",
        description="Google Drive client with OAuth sign-in",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--storage",
        choices=["keyring", "file"],
        default="keyring",
        help="Where credentials are stored (default: keyring)",
    )
    parser.add_argument(
        "--token-file",
        type=Path,
        default=TOKEN_FILE,
        help=f"Token file for --storage file (default: {TOKEN_FILE})",
    )
    parser.add_argument("--credentials", type=str, help="Path to OAuth client credentials.json")
    parser.add_argument("--redirect-uri", type=str, help="Redirect URI (with --credentials)")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("status", help="Show sign-in status")

    login_parser = subparsers.add_parser("login", help="Interactive OAuth login")
    login_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    subparsers.add_parser("logout", help="Revoke token and clear credentials")

    list_parser = subparsers.add_parser("list", help="List files")
    list_parser.add_argument("--query", type=str, default="trashed=false", help="Drive query")
    list_parser.add_argument(
        "--space",
        action="append",
        help=f"Space to search; repeatable (default: {APP_DATA_FOLDER})",
    )
    list_parser.add_argument("--page-token", type=str, help="Continuation token")

    create_parser = subparsers.add_parser("create", help="Create a file in the app data folder")
    create_parser.add_argument("name", help="File name")
    create_parser.add_argument("--text", type=str, help="File content")
    create_parser.add_argument("--file", type=str, help="Upload content from a local file")

    get_parser = subparsers.add_parser("get", help="Show file metadata")
    get_parser.add_argument("file_id", help="Drive file ID")

    get_data_parser = subparsers.add_parser("get-data", help="Print file content")
    get_data_parser.add_argument("file_id", help="Drive file ID")

    update_parser = subparsers.add_parser("update", help="Update file content")
    update_parser.add_argument("file_id", help="Drive file ID")
    update_parser.add_argument("--append", type=str, help="Line to append")
    update_parser.add_argument("--file", type=str, help="Replace content from a local file")

    delete_parser = subparsers.add_parser("delete", help="Delete a file")
    delete_parser.add_argument("file_id", help="Drive file ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "list" and not args.space:
        args.space = [APP_DATA_FOLDER]

    try:
        return asyncio.run(run(args))
    except ConfigError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
