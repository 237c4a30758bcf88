import base64
import os

import pytest

from tubely.assets import (
    asset_disk_path,
    asset_url,
    ensure_assets_dir,
    get_asset_path,
    media_type_to_ext,
    object_url,
)


@pytest.mark.parametrize(
    ("media_type", "expected"),
    [
        ("image/png", ".png"),
        ("image/jpeg", ".jpeg"),
        ("video/mp4", ".mp4"),
        ("invalid", ".bin"),
        ("a/b/c", ".bin"),
    ],
)
def test_media_type_to_ext(media_type, expected):
    assert media_type_to_ext(media_type) == expected


def test_asset_path_has_extension_and_random_id():
    name = get_asset_path("image/png")
    stem, ext = os.path.splitext(name)
    assert ext == ".png"
    padded = stem + "=" * (-len(stem) % 4)
    assert len(base64.urlsafe_b64decode(padded)) == 32
    assert not set("+/=") & set(stem)


def test_asset_paths_are_unique():
    names = {get_asset_path("video/mp4") for _ in range(20)}
    assert len(names) == 20


def test_asset_path_unknown_type_uses_bin():
    assert get_asset_path("nonsense").endswith(".bin")


def test_ensure_assets_dir_creates_once(tmp_path):
    root = tmp_path / "assets"
    ensure_assets_dir(root)
    assert root.is_dir()
    (root / "keep.txt").write_text("x")
    ensure_assets_dir(root)
    assert (root / "keep.txt").read_text() == "x"


def test_asset_disk_path(tmp_path):
    assert asset_disk_path(str(tmp_path), "x.png") == str(tmp_path / "x.png")


def test_asset_url():
    assert asset_url("8091", "x.png") == "http://localhost:8091/assets/x.png"


def test_object_url():
    assert (
        object_url("bucket", "us-east-1", "landscape/x.mp4")
        == "https://bucket.s3.us-east-1.amazonaws.com/landscape/x.mp4"
    )