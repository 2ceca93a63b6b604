"""
HLS playlist -> mp4 via ffmpeg stream copy.

ffmpeg pulls every segment of the playlist and remuxes it into a single
container without re-encoding (`-c copy`), overwriting the output (`-y`).
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional


FFMPEG_BINARY = "ffmpeg"

# Lines of ffmpeg stderr kept in error messages
STDERR_TAIL_LINES = 5

logger = logging.getLogger(__name__)


class TranscodeError(Exception):
    """ffmpeg could not produce the output file."""

    def __init__(self, message: str, *, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


def build_stream_copy_command(
    playlist_url: str,
    output_path: Path,
    *,
    binary: str = FFMPEG_BINARY,
) -> list[str]:
    """Build the ffmpeg argv for a stream copy of `playlist_url` into `output_path`."""
    return [
        binary,
        "-i", playlist_url,
        "-c", "copy",  # No re-encoding
        "-y",          # Overwrite output file
        str(output_path),
    ]


def _stderr_tail(stderr: Optional[str]) -> str:
    if not stderr:
        return ""
    lines = [line for line in stderr.strip().splitlines() if line.strip()]
    return " | ".join(lines[-STDERR_TAIL_LINES:])


def stream_copy(
    playlist_url: str,
    output_path: Path,
    *,
    binary: str = FFMPEG_BINARY,
    timeout_s: Optional[float] = None,
) -> None:
    """
    Download an HLS stream into `output_path` with ffmpeg.

    Raises:
        TranscodeError: On non-zero exit, missing binary or timeout.
    """
    cmd = build_stream_copy_command(playlist_url, output_path, binary=binary)
    logger.debug("Running: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout_s,
        )
    except FileNotFoundError as exc:
        raise TranscodeError(f"ffmpeg not found: {binary}") from exc
    except subprocess.TimeoutExpired as exc:
        raise TranscodeError(f"ffmpeg timed out after {timeout_s}s") from exc

    if result.returncode != 0:
        tail = _stderr_tail(result.stderr)
        message = f"ffmpeg failed with code {result.returncode}"
        if tail:
            message = f"{message}: {tail}"
        raise TranscodeError(message, returncode=result.returncode)
