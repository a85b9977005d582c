"""Sequential batch processing of input files."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from aaxconv.config import AaxconvConfig
from aaxconv.core.orchestrator import TranscodeOrchestrator
from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder
from aaxconv.error_handling import AaxconvError, DependencyError, MediaError
from aaxconv.probe.extractor import MetadataExtractor
from aaxconv.probe.validator import FileValidator
from aaxconv.storage.workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """What happened to each file in a run."""

    converted: list[Path] = field(default_factory=list)
    validated: list[Path] = field(default_factory=list)
    invalid: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.converted) + len(self.validated) + len(self.invalid) + len(self.failed)


class BatchDriver:
    """Validate and convert files one after another.

    Each file is handled on its own: an invalid file is skipped, and a failed
    transcode is logged and skipped unless ``config.strict`` is set, in which
    case the error propagates and ends the run.
    """

    def __init__(
        self,
        config: AaxconvConfig,
        transcoder: FFmpegTranscoder,
        workspace: ScratchWorkspace,
    ):
        self.config = config
        self.transcoder = transcoder
        self.workspace = workspace
        self.validator = FileValidator(transcoder)
        self.extractor = MetadataExtractor(transcoder, workspace.metadata_file)
        self.orchestrator = TranscodeOrchestrator(config, transcoder, workspace, self.extractor)

    def run(self, input_files: Iterable[Path], validate_only: bool = False) -> BatchSummary:
        summary = BatchSummary()

        for input_file in input_files:
            input_file = Path(input_file)
            report = self.validator.validate(input_file, full_check=validate_only)

            if validate_only:
                self.workspace.reset()
                if report.transcodable:
                    summary.validated.append(input_file)
                else:
                    summary.invalid.append(input_file)
                continue

            if not report.transcodable:
                summary.invalid.append(input_file)
                continue

            try:
                summary.converted.append(self.orchestrator.process(input_file))
            except DependencyError:
                raise
            except (AaxconvError, OSError) as e:
                if self.config.strict:
                    if isinstance(e, OSError):
                        raise MediaError(
                            f"Failed to convert {input_file}: {e}",
                            input_file=input_file,
                            original_error=e,
                        ) from e
                    raise
                logger.error(f"Failed to convert {input_file}: {e}")
                if isinstance(e, AaxconvError) and e.details:
                    logger.debug(e.details)
                summary.failed.append(input_file)

        self._log_summary(summary, validate_only)
        return summary

    def _log_summary(self, summary: BatchSummary, validate_only: bool) -> None:
        if validate_only:
            logger.info(
                f"Validated {summary.total} file(s): {len(summary.validated)} valid, {len(summary.invalid)} invalid",
            )
            return
        logger.info(
            f"Processed {summary.total} file(s): {len(summary.converted)} converted, "
            f"{len(summary.invalid)} invalid, {len(summary.failed)} failed",
        )
