"""Capture ffprobe's metadata report and look up tag values in it."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"\d+")


def _key_pattern(key: str) -> re.Pattern[str]:
    # The key must start a word so "artist" never matches "album_artist"
    return re.compile(rf"(?<![\w]){re.escape(key)}\s*:\s*(.*)")


@dataclass(frozen=True)
class MetadataSnapshot:
    """The probe report for one input file."""

    text: str

    def lookup(self, key: str) -> str:
        """Raw value of the first ``key: value`` line, or "" when absent."""
        pattern = _key_pattern(key)
        for line in self.text.splitlines():
            match = pattern.search(line)
            if match:
                return match.group(1).rstrip("\r\n")
        return ""

    def bitrate_kbps(self) -> str:
        """Leading number of the reported bitrate ("64 kb/s" -> "64")."""
        match = _DIGITS_RE.search(self.lookup("bitrate"))
        return match.group(0) if match else ""


class MetadataExtractor:
    """Keeps the current file's probe report in the scratch workspace.

    Only one report exists at a time; ``extract`` overwrites it.
    """

    def __init__(self, transcoder: FFmpegTranscoder, metadata_file: Path):
        self.transcoder = transcoder
        self.metadata_file = metadata_file

    def extract(self, input_file: Path) -> None:
        """Probe ``input_file`` and replace the stored report with its output.

        A probe that cannot be launched raises DependencyError from the
        transcoder and is not handled here.
        """
        result = self.transcoder.probe(input_file)
        self.metadata_file.write_text(result.stderr)
        logger.debug(f"Captured probe output for {input_file}:\n{result.stderr}")

    def snapshot(self) -> MetadataSnapshot:
        """Immutable view of the stored report (empty if nothing was extracted)."""
        try:
            text = self.metadata_file.read_text()
        except FileNotFoundError:
            text = ""
        return MetadataSnapshot(text=text)

    def lookup(self, key: str) -> str:
        return self.snapshot().lookup(key)

    def bitrate_kbps(self) -> str:
        return self.snapshot().bitrate_kbps()

    def clear(self) -> None:
        """Delete the stored report."""
        self.metadata_file.unlink(missing_ok=True)
