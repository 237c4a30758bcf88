import json
import subprocess
from unittest import mock

import pytest

from tubely.media import (
    MediaError,
    aspect_ratio_from_probe,
    aspect_ratio_prefix,
    get_video_aspect_ratio,
    process_video_for_fast_start,
)


def _probe(width, height):
    return {"streams": [{"width": width, "height": height}]}


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (1920, 1080, "16:9"),
        (1080, 1920, "9:16"),
        (1000, 1000, "other"),
    ],
)
def test_aspect_ratio_from_probe(width, height, expected):
    assert aspect_ratio_from_probe(_probe(width, height)) == expected


def test_aspect_ratio_from_json_text():
    assert aspect_ratio_from_probe(json.dumps(_probe(1280, 720))) == "16:9"


def test_aspect_ratio_uses_first_stream():
    probe = {"streams": [{"width": 720, "height": 1280}, {"width": 1920, "height": 1080}]}
    assert aspect_ratio_from_probe(probe) == "9:16"


def test_no_streams_is_an_error():
    with pytest.raises(MediaError, match="no video streams found"):
        aspect_ratio_from_probe({"streams": []})


def test_invalid_json_is_an_error():
    with pytest.raises(MediaError):
        aspect_ratio_from_probe("not json")


@pytest.mark.parametrize(
    ("ratio", "prefix"),
    [("16:9", "landscape"), ("9:16", "portrait"), ("other", "other"), ("4:3", "other")],
)
def test_aspect_ratio_prefix(ratio, prefix):
    assert aspect_ratio_prefix(ratio) == prefix


def test_get_video_aspect_ratio_runs_ffprobe():
    output = json.dumps(_probe(1080, 1920)).encode()
    completed = subprocess.CompletedProcess([], 0, stdout=output, stderr=b"")
    with mock.patch("tubely.media.subprocess.run", return_value=completed) as run:
        assert get_video_aspect_ratio("clip.mp4") == "9:16"
    command = run.call_args.args[0]
    assert command[0] == "ffprobe"
    assert command[-1] == "clip.mp4"
    assert "-show_streams" in command


def test_get_video_aspect_ratio_failure():
    completed = subprocess.CompletedProcess([], 1, stdout=b"", stderr=b"bad input")
    with mock.patch("tubely.media.subprocess.run", return_value=completed):
        with pytest.raises(MediaError):
            get_video_aspect_ratio("clip.mp4")


def test_get_video_aspect_ratio_missing_tool():
    with mock.patch("tubely.media.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
        with pytest.raises(MediaError):
            get_video_aspect_ratio("clip.mp4")


def _fake_ffmpeg(content):
    def run(command, **kwargs):
        with open(command[-1], "wb") as handle:
            handle.write(content)
        return subprocess.CompletedProcess(command, 0, stdout=b"", stderr=b"")

    return run


def test_process_video_for_fast_start(tmp_path):
    source = tmp_path / "in.mp4"
    source.write_bytes(b"video")
    with mock.patch("tubely.media.subprocess.run", side_effect=_fake_ffmpeg(b"moov")) as run:
        result = process_video_for_fast_start(str(source))
    assert result == str(source) + ".processing"
    with open(result, "rb") as handle:
        assert handle.read() == b"moov"
    command = run.call_args.args[0]
    assert command[0] == "ffmpeg"
    assert "faststart" in command


def test_process_video_empty_output(tmp_path):
    source = tmp_path / "in.mp4"
    with mock.patch("tubely.media.subprocess.run", side_effect=_fake_ffmpeg(b"")):
        with pytest.raises(MediaError, match="processed file is empty"):
            process_video_for_fast_start(str(source))


def test_process_video_missing_output(tmp_path):
    completed = subprocess.CompletedProcess([], 0, stdout=b"", stderr=b"")
    with mock.patch("tubely.media.subprocess.run", return_value=completed):
        with pytest.raises(MediaError, match="could not stat processed file"):
            process_video_for_fast_start(str(tmp_path / "in.mp4"))


def test_process_video_ffmpeg_failure(tmp_path):
    completed = subprocess.CompletedProcess([], 1, stdout=b"", stderr=b"broken")
    with mock.patch("tubely.media.subprocess.run", return_value=completed):
        with pytest.raises(MediaError, match="Error processing video: broken"):
            process_video_for_fast_start(str(tmp_path / "in.mp4"))