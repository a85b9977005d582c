"""Tests for sequential batch processing."""

import logging
import os
import signal

import pytest

from aaxconv.config import AaxconvConfig
from aaxconv.core.batch import BatchDriver
from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder
from aaxconv.error_handling import DependencyError, ExternalToolError, MediaError
from aaxconv.storage.workspace import ScratchWorkspace
from conftest import ACTIVATION_BYTES


@pytest.fixture
def books(tmp_path):
    a = tmp_path / "a.aax"
    b = tmp_path / "b.aax"
    a.write_bytes(b"aax")
    b.write_bytes(b"aax")
    return a, b


def make_driver(config, tools, workspace):
    return BatchDriver(config, FFmpegTranscoder(config, tools, ACTIVATION_BYTES), workspace)


class TestBatchDriver:
    """Test per-file isolation and validate-only mode."""

    def test_validate_only_unreadable_file(self, config, tools, workspace, engine, tmp_path, caplog):
        missing = tmp_path / "a.aax"

        summary = make_driver(config, tools, workspace).run([missing], validate_only=True)

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "a.aax" in errors[0].getMessage()
        assert summary.invalid == [missing]
        assert list(tmp_path.iterdir()) == []

    def test_validate_only_writes_nothing(self, config, tools, workspace, engine, books, tmp_path):
        summary = make_driver(config, tools, workspace).run(books, validate_only=True)

        assert summary.validated == list(books)
        assert summary.converted == []
        assert sorted(p.suffix for p in tmp_path.iterdir()) == [".aax", ".aax"]
        assert engine.calls_for("AtomicParsley") == []
        assert not any("-vn" in c for c in engine.calls_for("ffmpeg"))

    def test_invalid_file_does_not_stop_siblings(self, config, tools, workspace, engine, books):
        a, b = books
        engine.invalid_files.add("a.aax")

        summary = make_driver(config, tools, workspace).run([a, b])

        assert summary.invalid == [a]
        assert summary.converted == [b.with_suffix(".m4a")]
        assert b.with_suffix(".m4a").exists()
        assert not a.with_suffix(".m4a").exists()

    def test_transcode_failure_is_isolated(self, config, tools, workspace, engine, books, caplog):
        a, b = books
        engine.failing_transcodes.add("a.aax")

        summary = make_driver(config, tools, workspace).run([a, b])

        assert summary.failed == [a]
        assert summary.converted == [b.with_suffix(".m4a")]
        assert f"Failed to convert {a}" in caplog.text

    def test_strict_mode_aborts_batch(self, tools, workspace, engine, books):
        a, b = books
        engine.failing_transcodes.add("a.aax")
        config = AaxconvConfig(activation_bytes=ACTIVATION_BYTES, strict=True)

        with pytest.raises(ExternalToolError):
            make_driver(config, tools, workspace).run([a, b])

        assert not b.with_suffix(".m4a").exists()

    def test_dependency_error_is_never_isolated(self, config, tools, workspace, books, monkeypatch):
        def missing(*args, **kwargs):
            raise FileNotFoundError("ffprobe")

        monkeypatch.setattr("aaxconv.encode.ffmpeg_wrapper.subprocess.run", missing)

        with pytest.raises(DependencyError):
            make_driver(config, tools, workspace).run(books)

    def test_alternate_container_end_to_end(self, tools, engine, tmp_path):
        book = tmp_path / "b.aax"
        book.write_bytes(b"aax")
        engine.probe_output = "    title           : My Book (Unabridged)\n  Duration: 01:00:00.00, bitrate: 64 kb/s\n"
        config = AaxconvConfig(activation_bytes=ACTIVATION_BYTES, container="m4b")

        with ScratchWorkspace(handle_signals=False) as workspace:
            scratch = workspace.path
            summary = make_driver(config, tools, workspace).run([book])

        assert summary.converted == [tmp_path / "b.m4b"]
        assert (tmp_path / "b.m4b").exists()
        assert not (tmp_path / "b.m4a").exists()
        assert not scratch.exists()
        transcode = next(c for c in engine.calls_for("ffmpeg") if "-vn" in c)
        assert "title=My Book" in transcode

    def test_summary_counts(self, config, tools, workspace, engine, books, tmp_path, caplog):
        missing = tmp_path / "missing.aax"

        with caplog.at_level(logging.INFO):
            summary = make_driver(config, tools, workspace).run([*books, missing])

        assert summary.total == 3
        assert "2 converted, 1 invalid, 0 failed" in caplog.text

    def test_strict_mode_wraps_os_errors(self, tools, workspace, engine, books, monkeypatch):
        a, b = books
        config = AaxconvConfig(activation_bytes=ACTIVATION_BYTES, strict=True)
        driver = make_driver(config, tools, workspace)

        def unwritable(input_file):
            raise PermissionError("scratch directory is read-only")

        monkeypatch.setattr(driver.orchestrator.extractor, "extract", unwritable)

        with pytest.raises(MediaError) as exc_info:
            driver.run([a, b])

        assert exc_info.value.input_file == a
        assert isinstance(exc_info.value.original_error, PermissionError)


def test_interrupt_during_transcode_removes_workspace(config, tools, engine, books, monkeypatch):
    def interrupting(cmd, **kwargs):
        if "-vn" in cmd:
            os.kill(os.getpid(), signal.SIGINT)
        return engine(cmd, **kwargs)

    monkeypatch.setattr("aaxconv.encode.ffmpeg_wrapper.subprocess.run", interrupting)

    with pytest.raises(KeyboardInterrupt):
        with ScratchWorkspace() as workspace:
            scratch = workspace.path
            make_driver(config, tools, workspace).run(books)

    assert not scratch.exists()
    assert not books[1].with_suffix(".m4a").exists()
