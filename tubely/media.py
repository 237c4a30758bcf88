"""Video inspection and processing with ffprobe and ffmpeg."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


class MediaError(Exception):
    """A video could not be inspected or processed."""


def aspect_ratio_from_probe(probe: Mapping[str, Any] | str | bytes) -> str:
    """Classify the first stream of ffprobe output as "16:9", "9:16" or "other"."""
    if isinstance(probe, (str, bytes)):
        try:
            probe = json.loads(probe)
        except ValueError as exc:
            raise MediaError(f"invalid probe output: {exc}") from exc
    streams = probe.get("streams") or []
    if not streams:
        raise MediaError("no video streams found")
    first = streams[0]
    width = int(first.get("width") or 0)
    height = int(first.get("height") or 0)
    if width == 16 * height // 9:
        return "16:9"
    if height == 16 * width // 9:
        return "9:16"
    return "other"


def aspect_ratio_prefix(aspect_ratio: str) -> str:
    """Return the storage prefix used for videos of this aspect ratio."""
    return {"16:9": "landscape", "9:16": "portrait"}.get(aspect_ratio, "other")


def get_video_aspect_ratio(file_path: str) -> str:
    """Run ffprobe on a file and classify its aspect ratio."""
    command = [
        "ffprobe", "-v", "error", "-print_format", "json", "-show_streams", file_path,
    ]
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except OSError as exc:
        raise MediaError(f"could not run ffprobe: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")
        logger.error("Command error: %s", stderr)
        raise MediaError(f"ffprobe exited with status {result.returncode}")
    return aspect_ratio_from_probe(result.stdout)


def process_video_for_fast_start(file_path: str) -> str:
    """Rewrite an MP4 with its index at the front; return the new file's path."""
    output_path = f"{file_path}.processing"
    command = [
        "ffmpeg", "-i", file_path, "-c", "copy",
        "-movflags", "faststart", "-f", "mp4", output_path,
    ]
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except OSError as exc:
        logger.error("FFmpeg error processing video: %s", exc)
        raise MediaError(f"Error processing video: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")
        logger.error("FFmpeg error processing video: exit status %s", result.returncode)
        raise MediaError(
            f"Error processing video: {stderr}, exit status {result.returncode}"
        )
    try:
        size = os.stat(output_path).st_size
    except OSError as exc:
        raise MediaError(f"could not stat processed file: {exc}") from exc
    if size == 0:
        raise MediaError("processed file is empty")
    return output_path