"""Container prober: extracts one attachment stream from a media container.

The extraction subsystem treats the prober as a black box that writes the
bytes of an attachment to a destination file or fails. The default
implementation shells out to ffprobe (to enumerate attachment streams) and
ffmpeg (to dump the requested one).
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Protocol

from mediastash.attachment.errors import AttachmentIndexError, ProbeError
from mediastash.attachment.models import ProbedAttachment

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 60

# ffmpeg reports these after a successful dump because no output stream was mapped
BENIGN_DUMP_ERRORS = ("does not contain any stream",)


class ContainerProber(Protocol):
    """Protocol for container probers.

    Example:
        class StaticProber:
            def extract(self, file_path: Path, index: int, destination: Path) -> ProbedAttachment:
                destination.write_bytes(b"WEBVTT")
                return ProbedAttachment(mime_type="text/vtt")
    """

    def extract(self, file_path: Path, index: int, destination: Path) -> ProbedAttachment:
        """Write attachment ``index`` of ``file_path`` to ``destination``.

        Args:
            file_path: Container file to read.
            index: Zero-based attachment ordinal.
            destination: File to write the attachment bytes to (may already exist, empty).

        Returns:
            Metadata reported by the container for the attachment.

        Raises:
            AttachmentIndexError: If the container has no attachment at index.
            ProbeError: If extraction fails for any other reason.
        """
        ...


class FfmpegProber:
    """Prober backed by the ffmpeg and ffprobe command line tools.

    Args:
        ffmpeg_path: ffmpeg executable.
        ffprobe_path: ffprobe executable.
        timeout: Seconds allowed for each tool invocation.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def list_attachments(self, file_path: Path) -> list[dict[str, Any]]:
        """Return the attachment streams of a container as reported by ffprobe."""
        completed = self._run(
            [
                self.ffprobe_path,
                "-v",
                "error",
                "-select_streams",
                "t",
                "-show_entries",
                "stream=index,codec_name:stream_tags=filename,mimetype",
                "-of",
                "json",
                str(file_path),
            ]
        )
        try:
            parsed = json.loads(completed.stdout or b"{}")
        except ValueError as e:
            raise ProbeError(f"Unparseable ffprobe output for '{file_path}'") from e
        streams = parsed.get("streams", []) if isinstance(parsed, dict) else None
        if not isinstance(streams, list):
            raise ProbeError(f"Unexpected ffprobe output for '{file_path}'")
        return streams

    def extract(self, file_path: Path, index: int, destination: Path) -> ProbedAttachment:
        streams = self.list_attachments(file_path)
        if index < 0 or index >= len(streams):
            raise AttachmentIndexError(index, len(streams))

        tags = streams[index].get("tags") or {}
        completed = self._run(
            [
                self.ffmpeg_path,
                "-hide_banner",
                "-loglevel",
                "error",
                "-y",
                f"-dump_attachment:t:{index}",
                str(destination),
                "-i",
                str(file_path),
                "-t",
                "0",
                "-f",
                "null",
                "-",
            ],
            check=False,
        )

        if not destination.exists() or destination.stat().st_size == 0:
            raise ProbeError(f"ffmpeg produced no output for attachment {index} of '{file_path}'")
        if completed.returncode != 0 and not _is_benign_dump_failure(completed):
            stderr = _decode(completed.stderr) or "no error output"
            raise ProbeError(
                f"ffmpeg failed to dump attachment {index} of '{file_path}' "
                f"(exit code {completed.returncode}): {stderr}"
            )

        logger.debug("Extracted attachment %d of '%s' to '%s'", index, file_path, destination)
        return ProbedAttachment(mime_type=tags.get("mimetype"), filename=tags.get("filename"))

    def _run(
        self, command: list[str], check: bool = True
    ) -> subprocess.CompletedProcess[bytes]:
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ProbeError(f"Executable '{command[0]}' not found") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(f"'{command[0]}' timed out after {self.timeout}s") from e

        if check and completed.returncode != 0:
            stderr = _decode(completed.stderr)
            raise ProbeError(f"'{command[0]}' exited with code {completed.returncode}: {stderr}")
        return completed


def _decode(output: bytes) -> str:
    return output.decode("utf-8", errors="replace").strip()


def _is_benign_dump_failure(completed: subprocess.CompletedProcess[bytes]) -> bool:
    """True if every error ffmpeg reported is one it raises after a complete dump."""
    if completed.returncode < 0:
        # Killed by a signal
        return False
    lines = [line for line in _decode(completed.stderr).splitlines() if line.strip()]
    return bool(lines) and all(
        any(marker in line for marker in BENIGN_DUMP_ERRORS) for line in lines
    )
