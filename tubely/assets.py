"""Naming and locating uploaded media assets."""

from __future__ import annotations

import base64
import os
import secrets


def media_type_to_ext(media_type: str) -> str:
    """Return a file extension for a ``type/subtype`` media type."""
    parts = media_type.split("/")
    if len(parts) != 2:
        return ".bin"
    return "." + parts[1]


def get_asset_path(media_type: str) -> str:
    """Return a fresh random file name with an extension for the media type."""
    identifier = base64.urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=")
    return identifier.decode("ascii") + media_type_to_ext(media_type)


def ensure_assets_dir(assets_root: str | os.PathLike[str]) -> None:
    """Create the assets directory if it does not exist yet."""
    if not os.path.exists(assets_root):
        os.mkdir(assets_root, 0o755)


def asset_disk_path(assets_root: str | os.PathLike[str], asset_path: str) -> str:
    """Return where an asset is stored on disk."""
    return os.path.join(assets_root, asset_path)


def asset_url(port: str | int, asset_path: str) -> str:
    """Return the URL the local server serves an asset under."""
    return f"http://localhost:{port}/assets/{asset_path}"


def object_url(bucket: str, region: str, asset_path: str) -> str:
    """Return the public URL of an object in an S3 bucket."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{asset_path}"