"""Tests for tiered input validation."""

import logging

from aaxconv.probe.validator import FileValidator, TierOutcome, ValidationReport


class TestFileValidator:
    """Test existence, structure and decode tiers."""

    def test_missing_file_stops_at_tier_one(self, transcoder, engine, tmp_path, caplog):
        missing = tmp_path / "a.aax"

        with caplog.at_level(logging.INFO):
            report = FileValidator(transcoder).validate(missing, full_check=True)

        assert report.tier1 is TierOutcome.FAILED
        assert report.tier2 is TierOutcome.SKIPPED
        assert report.tier3 is TierOutcome.SKIPPED
        assert not report.transcodable
        assert engine.calls == []
        assert "a.aax" in caplog.text

    def test_directory_is_not_a_readable_file(self, transcoder, engine, tmp_path):
        report = FileValidator(transcoder).validate(tmp_path)

        assert report.tier1 is TierOutcome.FAILED
        assert engine.calls == []

    def test_structural_failure(self, transcoder, engine, aax_file, caplog):
        engine.invalid_files.add(aax_file.name)

        report = FileValidator(transcoder).validate(aax_file, full_check=True)

        assert report.tier1 is TierOutcome.PASSED
        assert report.tier2 is TierOutcome.FAILED
        assert report.tier3 is TierOutcome.SKIPPED
        assert not report.transcodable
        assert engine.calls_for("ffmpeg") == []
        assert f"Invalid file: {aax_file}" in caplog.text

    def test_quick_check_skips_decode(self, transcoder, engine, aax_file, caplog):
        with caplog.at_level(logging.INFO):
            report = FileValidator(transcoder).validate(aax_file)

        assert report.tier2 is TierOutcome.PASSED
        assert report.tier3 is TierOutcome.SKIPPED
        assert report.transcodable
        assert engine.calls_for("ffmpeg") == []
        assert "check passed" not in caplog.text

    def test_probe_uses_warning_loglevel(self, transcoder, engine, aax_file):
        FileValidator(transcoder).validate(aax_file)

        cmd = engine.calls_for("ffprobe")[0]
        assert cmd[cmd.index("-loglevel") + 1] == "warning"
        assert "-activation_bytes" in cmd

    def test_full_check_passes(self, transcoder, engine, aax_file, caplog):
        with caplog.at_level(logging.INFO):
            report = FileValidator(transcoder).validate(aax_file, full_check=True)

        assert report.tier3 is TierOutcome.PASSED
        assert report.transcodable
        assert "Structure check passed" in caplog.text
        assert "Decode check passed" in caplog.text
        decode = engine.calls_for("ffmpeg")[0]
        assert decode[-3:] == ["-f", "null", "-"]

    def test_full_check_decode_failure_uses_same_message(self, transcoder, engine, aax_file, caplog):
        engine.undecodable_files.add(aax_file.name)

        report = FileValidator(transcoder).validate(aax_file, full_check=True)

        assert report.tier3 is TierOutcome.FAILED
        assert not report.transcodable
        assert f"Invalid file: {aax_file}" in caplog.text


class TestValidationReport:
    def test_transcodable_requires_first_two_tiers(self, tmp_path):
        path = tmp_path / "x.aax"

        assert ValidationReport(path, TierOutcome.PASSED, TierOutcome.PASSED).transcodable
        assert not ValidationReport(path, TierOutcome.PASSED, TierOutcome.FAILED).transcodable
        assert not ValidationReport(path, TierOutcome.FAILED).transcodable
