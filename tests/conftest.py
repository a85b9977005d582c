"""Shared test configuration and fixtures."""

import logging
import subprocess
from pathlib import Path

import pytest

from aaxconv.cli import cleanup_logging
from aaxconv.config import AaxconvConfig
from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder
from aaxconv.storage.workspace import ScratchWorkspace
from aaxconv.system_check import ToolPaths

ACTIVATION_BYTES = "1a2b3c4d"

SAMPLE_PROBE_OUTPUT = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'b.aax':
  Metadata:
    major_brand     : aax
    minor_version   : 1
    compatible_brands: aax M4B mp42isom
    creation_time   : 2019-03-01T00:00:00.000000Z
    title           : My Book (Unabridged)
    artist          : Jane  Doe
    album_artist    : Read by/John Smith
    album           : My Book: A Novel
    genre           : Audiobook
    copyright       : (c)2019 Jane Doe
    date            : 2019
  Duration: 10:12:34.56, start: 0.000000, bitrate: 64 kb/s
    Stream #0:0(eng): Audio: aac (LC) (aavd / 0x64766161), 44100 Hz, stereo, fltp, 62 kb/s (default)
    Stream #0:1: Video: mjpeg (Baseline), yuvj420p(pc), 500x500, 90k tbr, 90k tbn (attached pic)
"""


class FakeMediaEngine:
    """Stand-in for subprocess.run that imitates ffprobe, ffmpeg and AtomicParsley."""

    def __init__(self, probe_output: str = SAMPLE_PROBE_OUTPUT):
        self.probe_output = probe_output
        self.calls: list[list[str]] = []
        self.invalid_files: set[str] = set()
        self.undecodable_files: set[str] = set()
        self.failing_transcodes: set[str] = set()
        self.cover_available = True
        self.embed_ok = True

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        tool = Path(cmd[0]).name
        input_name = cmd[cmd.index("-i") + 1] if "-i" in cmd else ""

        if tool == "ffprobe":
            if Path(input_name).name in self.invalid_files:
                return self._result(cmd, 1, stderr="Invalid data found when processing input")
            return self._result(cmd, 0, stderr=self.probe_output)

        if tool == "ffmpeg":
            if "null" in cmd:
                code = 1 if Path(input_name).name in self.undecodable_files else 0
                return self._result(cmd, code)
            if "-vn" in cmd:
                if Path(input_name).name in self.failing_transcodes:
                    return self._result(cmd, 1, stderr="Error while decoding stream")
                Path(cmd[-1]).write_bytes(b"audio")
                return self._result(cmd, 0)
            if "-an" in cmd:
                if not self.cover_available:
                    return self._result(cmd, 1, stderr="Output file #0 does not contain any stream")
                Path(cmd[-1]).write_bytes(b"\xff\xd8jpeg")
                return self._result(cmd, 0)

        if tool == "AtomicParsley":
            return self._result(cmd, 0 if self.embed_ok else 1)

        msg = f"Unexpected command {cmd}"
        raise AssertionError(msg)

    def calls_for(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name == tool]

    @staticmethod
    def _result(cmd, returncode, stdout="", stderr=""):
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


@pytest.fixture
def config():
    return AaxconvConfig(activation_bytes=ACTIVATION_BYTES)


@pytest.fixture
def tools():
    return ToolPaths(
        ffprobe=Path("/usr/bin/ffprobe"),
        ffmpeg=Path("/usr/bin/ffmpeg"),
        atomicparsley=Path("/usr/bin/AtomicParsley"),
    )


@pytest.fixture
def transcoder(config, tools):
    return FFmpegTranscoder(config, tools, ACTIVATION_BYTES)


@pytest.fixture
def workspace():
    with ScratchWorkspace(handle_signals=False) as ws:
        yield ws


@pytest.fixture
def engine(monkeypatch):
    """Patch subprocess.run with a fake media engine."""
    fake = FakeMediaEngine()
    monkeypatch.setattr("aaxconv.encode.ffmpeg_wrapper.subprocess.run", fake)
    return fake


@pytest.fixture
def aax_file(tmp_path):
    """A readable (fake) AAX input."""
    path = tmp_path / "books" / "b.aax"
    path.parent.mkdir()
    path.write_bytes(b"aax")
    return path
