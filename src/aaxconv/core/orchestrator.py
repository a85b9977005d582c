"""Per-file transcode workflow."""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from aaxconv.config import AaxconvConfig
from aaxconv.encode.ffmpeg_wrapper import FFmpegTranscoder
from aaxconv.error_handling import MediaError
from aaxconv.probe.extractor import MetadataExtractor, MetadataSnapshot
from aaxconv.probe.sanitizer import sanitize, sanitize_title
from aaxconv.storage.workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedParameters:
    """Sanitized values computed from one metadata snapshot."""

    output_file: Path
    title: str
    artist: str
    album_artist: str
    album: str
    date: str
    genre: str
    copyright: str
    bitrate: str

    def metadata_tags(self) -> dict[str, str]:
        """Tags written to the output, in ffmpeg argument order."""
        return {
            "title": self.title,
            "artist": self.artist,
            "album_artist": self.album_artist,
            "album": self.album,
            "date": self.date,
            "track": "1/1",
            "genre": self.genre,
            "copyright": self.copyright,
        }

    def as_log_fields(self) -> dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}


class TranscodeOrchestrator:
    """Runs the probe, transcode, cover and rename steps for one audiobook."""

    def __init__(
        self,
        config: AaxconvConfig,
        transcoder: FFmpegTranscoder,
        workspace: ScratchWorkspace,
        extractor: MetadataExtractor | None = None,
    ):
        self.config = config
        self.transcoder = transcoder
        self.workspace = workspace
        self.cover_file = workspace.cover_file
        self.extractor = extractor or MetadataExtractor(transcoder, workspace.metadata_file)

    def process(self, input_file: Path) -> Path:
        """Transcode one validated file and return the finished artifact path."""
        logger.info(f"Decoding {input_file.name}")
        logger.info(f"Source: {input_file}")
        try:
            self.extractor.extract(input_file)
            params = self.derive_parameters(input_file, self.extractor.snapshot())
            self._log_parameters(params)

            self._prepare_output_dir(params.output_file.parent)

            self.transcoder.transcode(
                input_file,
                params.output_file,
                params.bitrate,
                params.metadata_tags(),
            )
            if not params.output_file.exists():
                raise MediaError(
                    f"ffmpeg reported success but {params.output_file} was not written",
                    input_file=input_file,
                )
            logger.info(f"Created {params.output_file}")

            cover = self._extract_cover(input_file)
            if cover and self.config.is_aac_family and self.transcoder.tools.has_atomicparsley:
                self._embed_cover(params.output_file, cover)

            final_file = self._apply_container(params.output_file)
            logger.info(f"Complete: {final_file}")
            return final_file
        finally:
            self.extractor.clear()
            self.cover_file.unlink(missing_ok=True)

    def derive_parameters(self, input_file: Path, snapshot: MetadataSnapshot) -> DerivedParameters:
        """Turn the probe report into output path, tags and bitrate."""
        bitrate = snapshot.bitrate_kbps() or str(self.config.default_bitrate)
        return DerivedParameters(
            output_file=self.output_path(input_file),
            title=sanitize_title(snapshot.lookup("title")),
            artist=sanitize(snapshot.lookup("artist")),
            album_artist=sanitize(snapshot.lookup("album_artist")),
            album=sanitize(snapshot.lookup("album")),
            date=sanitize(snapshot.lookup("date")),
            genre=sanitize(snapshot.lookup("genre")),
            copyright=sanitize(snapshot.lookup("copyright")),
            bitrate=f"{bitrate}k",
        )

    def output_path(self, input_file: Path) -> Path:
        """Same base name as the input, in the target directory, with the encoder's extension."""
        directory = self.config.target_dir or input_file.parent
        return directory / f"{input_file.stem}.{self.config.output_extension}"

    def _prepare_output_dir(self, directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaError(
                f"Cannot create output directory {directory}: {e}",
                solution="Check permissions on the target directory",
                original_error=e,
            ) from e

    def _extract_cover(self, input_file: Path) -> Path | None:
        """Best effort: many books carry no artwork."""
        cover_file = self.cover_file
        logger.info(f"Extracting cover art to {cover_file.name}")
        result = self.transcoder.extract_cover(input_file, cover_file)
        if not result.success:
            logger.warning(f"No cover art extracted from {input_file.name}")
            return None
        if not cover_file.exists() or cover_file.stat().st_size == 0:
            logger.warning(f"Cover art for {input_file.name} is empty")
            return None
        return cover_file

    def _embed_cover(self, output_file: Path, cover_file: Path) -> None:
        result = self.transcoder.embed_cover(output_file, cover_file)
        if result.success:
            logger.info(f"Embedded cover art in {output_file.name}")
        else:
            logger.warning(
                f"AtomicParsley could not embed cover art in {output_file.name} (exit {result.returncode})",
            )

    def _apply_container(self, output_file: Path) -> Path:
        """Relabel m4a output as m4b when that container was requested."""
        final_extension = self.config.final_extension
        if output_file.suffix == f".{final_extension}":
            return output_file

        target = output_file.with_suffix(f".{final_extension}")
        try:
            output_file.replace(target)
        except OSError as e:
            raise MediaError(
                f"Cannot rename {output_file} to {target}: {e}",
                original_error=e,
            ) from e
        logger.debug(f"Renamed {output_file.name} -> {target.name}")
        return target

    def _log_parameters(self, params: DerivedParameters) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        for key, value in params.as_log_fields().items():
            logger.debug(f"{key:>13}: {value}")
