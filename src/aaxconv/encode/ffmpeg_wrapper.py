"""Wrapper for the ffprobe/ffmpeg/AtomicParsley command lines."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from aaxconv.config import AaxconvConfig
from aaxconv.error_handling import DependencyError, ExternalToolError
from aaxconv.system_check import ToolPaths

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Outcome of one external tool invocation."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class FFmpegTranscoder:
    """Builds and runs every external command aaxconv needs.

    All invocations block until the tool exits and never read from stdin, so
    a child process cannot swallow input meant for the batch.
    """

    def __init__(self, config: AaxconvConfig, tools: ToolPaths, activation_bytes: str):
        self.config = config
        self.tools = tools
        self.activation_bytes = activation_bytes

    def build_probe_command(self, input_file: Path, *, loglevel: str | None = None) -> list[str]:
        """ffprobe invocation; metadata is reported on stderr."""
        cmd = [str(self.tools.ffprobe)]
        if loglevel:
            cmd.extend(["-loglevel", loglevel])
        cmd.extend(["-activation_bytes", self.activation_bytes, "-i", str(input_file)])
        return cmd

    def build_decode_check_command(self, input_file: Path) -> list[str]:
        """Full decode with no output, used for thorough validation."""
        return [
            str(self.tools.ffmpeg),
            "-nostdin",
            "-loglevel",
            "error",
            "-activation_bytes",
            self.activation_bytes,
            "-i",
            str(input_file),
            "-f",
            "null",
            "-",
        ]

    def build_transcode_command(
        self,
        input_file: Path,
        output_file: Path,
        bitrate: str,
        metadata: dict[str, str],
    ) -> list[str]:
        """Audio-only transcode that replaces all container metadata."""
        cmd = [
            str(self.tools.ffmpeg),
            "-nostdin",
            "-loglevel",
            "error",
            "-activation_bytes",
            self.activation_bytes,
            "-i",
            str(input_file),
            "-vn",
            "-codec:a",
            self.config.audio_codec,
            "-ab",
            bitrate,
            "-map_metadata",
            "-1",
        ]
        for key, value in metadata.items():
            cmd.extend(["-metadata", f"{key}={value}"])
        cmd.extend(["-y", str(output_file)])
        return cmd

    def build_cover_command(self, input_file: Path, cover_file: Path) -> list[str]:
        """Copy the embedded cover image stream out without touching audio."""
        return [
            str(self.tools.ffmpeg),
            "-nostdin",
            "-loglevel",
            "error",
            "-activation_bytes",
            self.activation_bytes,
            "-i",
            str(input_file),
            "-an",
            "-codec:v",
            "copy",
            "-y",
            str(cover_file),
        ]

    def build_embed_command(self, output_file: Path, cover_file: Path) -> list[str]:
        if self.tools.atomicparsley is None:
            msg = "AtomicParsley is not available"
            raise RuntimeError(msg)
        return [
            str(self.tools.atomicparsley),
            str(output_file),
            "--artwork",
            str(cover_file),
            "--overWrite",
        ]

    def probe(self, input_file: Path, *, loglevel: str | None = None) -> ToolResult:
        return self._run(self.build_probe_command(input_file, loglevel=loglevel), "ffprobe")

    def check_decode(self, input_file: Path) -> ToolResult:
        return self._run(self.build_decode_check_command(input_file), "ffmpeg")

    def transcode(
        self,
        input_file: Path,
        output_file: Path,
        bitrate: str,
        metadata: dict[str, str],
    ) -> ToolResult:
        """Run the audio transcode, raising ExternalToolError on a non-zero exit."""
        cmd = self.build_transcode_command(input_file, output_file, bitrate, metadata)
        result = self._run(cmd, "ffmpeg")
        if not result.success:
            raise ExternalToolError(
                "ffmpeg",
                exit_code=result.returncode,
                stderr=result.stderr.strip() or None,
            )
        return result

    def extract_cover(self, input_file: Path, cover_file: Path) -> ToolResult:
        return self._run(self.build_cover_command(input_file, cover_file), "ffmpeg")

    def embed_cover(self, output_file: Path, cover_file: Path) -> ToolResult:
        return self._run(self.build_embed_command(output_file, cover_file), "AtomicParsley")

    def _run(self, cmd: list[str], tool: str) -> ToolResult:
        logger.debug("Running: %s", " ".join(self._redact(cmd)))
        try:
            completed = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                errors="replace",
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise DependencyError(
                tool,
                details=f"Could not execute {cmd[0]}: {e}",
                original_error=e,
            ) from e

        result = ToolResult(
            command=cmd,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.success:
            logger.debug(f"{tool} exited with {result.returncode}")
        return result

    def _redact(self, cmd: list[str]) -> list[str]:
        return ["<activation-bytes>" if part == self.activation_bytes else part for part in cmd]
