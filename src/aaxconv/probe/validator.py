"""Tiered checks that decide whether an input file can be transcoded."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder, ToolResult

logger = logging.getLogger(__name__)


class TierOutcome(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ValidationReport:
    """Per-tier results for one input file."""

    input_file: Path
    tier1: TierOutcome
    tier2: TierOutcome = TierOutcome.SKIPPED
    tier3: TierOutcome = TierOutcome.SKIPPED

    @property
    def transcodable(self) -> bool:
        return (
            self.tier1 is TierOutcome.PASSED
            and self.tier2 is TierOutcome.PASSED
            and self.tier3 is not TierOutcome.FAILED
        )


class FileValidator:
    """Existence, structure and (optionally) full decode checks.

    Failures are logged, never raised, so one bad file cannot stop a batch.
    """

    def __init__(self, transcoder: FFmpegTranscoder):
        self.transcoder = transcoder

    def validate(self, input_file: Path, full_check: bool = False) -> ValidationReport:
        if not self._is_readable(input_file):
            logger.error(f"File not found or not readable: {input_file}")
            return ValidationReport(input_file, tier1=TierOutcome.FAILED)

        probe = self.transcoder.probe(input_file, loglevel="warning")
        if not probe.success:
            self._report_invalid(input_file, probe)
            return ValidationReport(
                input_file,
                tier1=TierOutcome.PASSED,
                tier2=TierOutcome.FAILED,
            )
        if not full_check:
            return ValidationReport(
                input_file,
                tier1=TierOutcome.PASSED,
                tier2=TierOutcome.PASSED,
            )
        logger.info(f"Structure check passed: {input_file}")

        decode = self.transcoder.check_decode(input_file)
        if not decode.success:
            self._report_invalid(input_file, decode)
            tier3 = TierOutcome.FAILED
        else:
            logger.info(f"Decode check passed: {input_file}")
            tier3 = TierOutcome.PASSED

        return ValidationReport(
            input_file,
            tier1=TierOutcome.PASSED,
            tier2=TierOutcome.PASSED,
            tier3=tier3,
        )

    def _is_readable(self, input_file: Path) -> bool:
        try:
            return input_file.is_file() and os.access(input_file, os.R_OK)
        except OSError:
            return False

    def _report_invalid(self, input_file: Path, result: ToolResult) -> None:
        # Structural and decode failures share one message
        logger.error(f"Invalid file: {input_file}")
        if result.stderr.strip():
            logger.debug(result.stderr.strip())
