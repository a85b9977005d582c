"""Configuration management for aaxconv."""

import os
import re
from pathlib import Path

import tomli
from pydantic import BaseModel, Field, field_validator, model_validator

# codec -> (ffmpeg audio codec, primary extension, aac family)
CODECS: dict[str, tuple[str, str, bool]] = {
    "copy": ("copy", "m4a", True),
    "aac": ("aac", "m4a", True),
    "mp3": ("libmp3lame", "mp3", False),
    "flac": ("flac", "flac", False),
    "opus": ("libopus", "ogg", False),
}

AAC_CONTAINERS = ("m4a", "m4b")

ACTIVATION_BYTES_ENV = "AAX_ACTIVATION_BYTES"
AUTHCODE_FILENAME = ".authcode"

_ACTIVATION_BYTES_RE = re.compile(r"^[0-9a-fA-F]{8}$")


def normalize_activation_bytes(value: str | None) -> str | None:
    """Return lowercase activation bytes, None when blank, ValueError when malformed."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if not _ACTIVATION_BYTES_RE.match(value):
        msg = "activation_bytes must be exactly 8 hexadecimal characters"
        raise ValueError(msg)
    return value.lower()


class AaxconvConfig(BaseModel):
    """Main configuration for aaxconv."""

    # Secret required by ffmpeg to open the encrypted audio stream
    activation_bytes: str | None = None

    # Output policy
    codec: str = Field(default="copy")
    container: str = Field(default="m4a")
    target_dir: Path | None = None
    default_bitrate: int = Field(default=64)  # kb/s when the probe reports none

    # Abort the whole batch on the first transcode failure
    strict: bool = Field(default=False)

    log_dir: Path | None = None

    # External tools
    ffprobe_binary: str = Field(default="ffprobe")
    ffmpeg_binary: str = Field(default="ffmpeg")
    atomicparsley_binary: str = Field(default="AtomicParsley")

    @field_validator("target_dir", "log_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: Path | str | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @field_validator("activation_bytes", mode="before")
    @classmethod
    def check_activation_bytes(cls, v: str | None) -> str | None:
        """Activation bytes are eight hex characters."""
        return normalize_activation_bytes(v)

    @field_validator("codec", "container", mode="before")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return str(v).strip().lower()

    @field_validator("codec")
    @classmethod
    def known_codec(cls, v: str) -> str:
        if v not in CODECS:
            msg = f"Unsupported codec '{v}' (choose from {', '.join(CODECS)})"
            raise ValueError(msg)
        return v

    @field_validator("default_bitrate")
    @classmethod
    def positive_bitrate(cls, v: int) -> int:
        if v <= 0:
            msg = "default_bitrate must be a positive number of kb/s"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def container_matches_codec(self) -> "AaxconvConfig":
        """The m4a/m4b container choice only applies to AAC output."""
        if self.container not in AAC_CONTAINERS:
            msg = f"Unsupported container '{self.container}' (choose m4a or m4b)"
            raise ValueError(msg)
        if self.container == "m4b" and not self.is_aac_family:
            msg = f"Container 'm4b' requires an AAC codec, not '{self.codec}'"
            raise ValueError(msg)
        return self

    @property
    def audio_codec(self) -> str:
        """Value passed to ffmpeg's -codec:a."""
        return CODECS[self.codec][0]

    @property
    def output_extension(self) -> str:
        """Extension ffmpeg writes the audio transcode to."""
        return CODECS[self.codec][1]

    @property
    def is_aac_family(self) -> bool:
        return CODECS[self.codec][2]

    @property
    def final_extension(self) -> str:
        """Extension of the finished artifact after any container rename."""
        if self.is_aac_family:
            return self.container
        return self.output_extension

    def resolve_activation_bytes(self) -> str | None:
        """Find the activation bytes from config, environment or an authcode file."""
        if self.activation_bytes:
            return self.activation_bytes

        env_value = os.getenv(ACTIVATION_BYTES_ENV)
        if env_value and env_value.strip():
            return normalize_activation_bytes(env_value)

        for candidate in (Path.cwd() / AUTHCODE_FILENAME, Path.home() / AUTHCODE_FILENAME):
            if candidate.is_file():
                lines = candidate.read_text().splitlines()
                if lines and lines[0].strip():
                    return normalize_activation_bytes(lines[0])

        return None

    def ensure_directories(self) -> None:
        """Create configured directories if they don't exist."""
        for dir_path in [self.target_dir, self.log_dir]:
            if dir_path is not None:
                dir_path.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> AaxconvConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        possible_paths = [
            Path.home() / ".config" / "aaxconv" / "config.toml",  # User config
            Path.cwd() / "aaxconv.toml",  # Current directory
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)
        return AaxconvConfig(**config_data)
    return AaxconvConfig()


def create_sample_config(path: Path) -> None:
    """Create a sample configuration file."""
    sample_config = """# aaxconv Configuration
# =====================

# Activation bytes for your Audible account (8 hex characters).
# Can also be given with --authcode, the AAX_ACTIVATION_BYTES environment
# variable, or a .authcode file in the current or home directory.
# activation_bytes = "1a2b3c4d"

# Output
codec = "copy"                 # copy, aac, mp3, flac, opus
container = "m4b"              # m4a or m4b (AAC codecs only)
# target_dir = "~/Audiobooks"  # Default: next to each input file
default_bitrate = 64           # kb/s used when the input reports no bitrate

# Stop the whole batch on the first failed transcode
strict = false

# Log file directory (optional)
# log_dir = "~/.local/share/aaxconv/logs"

# External tools
ffprobe_binary = "ffprobe"
ffmpeg_binary = "ffmpeg"
atomicparsley_binary = "AtomicParsley"
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(sample_config)
