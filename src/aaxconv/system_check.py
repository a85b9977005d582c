"""External tool discovery and install guidance."""

import logging
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from .config import AaxconvConfig
from .error_handling import DependencyError

logger = logging.getLogger(__name__)


@dataclass
class SystemDependency:
    """Represents an external tool with install instructions."""

    name: str
    binary: str
    required: bool
    description: str
    debian_package: str | None = None
    rhel_package: str | None = None
    arch_package: str | None = None
    brew_package: str | None = None


@dataclass(frozen=True)
class ToolPaths:
    """Resolved executables and the capabilities they imply."""

    ffprobe: Path
    ffmpeg: Path
    atomicparsley: Path | None = None

    @property
    def has_atomicparsley(self) -> bool:
        return self.atomicparsley is not None


def build_dependencies(config: AaxconvConfig) -> list[SystemDependency]:
    """Describe the tools aaxconv shells out to."""
    return [
        SystemDependency(
            name="ffprobe",
            binary=config.ffprobe_binary,
            required=True,
            description="Reads AAX metadata and checks container structure",
            debian_package="ffmpeg",
            rhel_package="ffmpeg",
            arch_package="ffmpeg",
            brew_package="ffmpeg",
        ),
        SystemDependency(
            name="ffmpeg",
            binary=config.ffmpeg_binary,
            required=True,
            description="Decrypts and transcodes the audio stream",
            debian_package="ffmpeg",
            rhel_package="ffmpeg",
            arch_package="ffmpeg",
            brew_package="ffmpeg",
        ),
        SystemDependency(
            name="AtomicParsley",
            binary=config.atomicparsley_binary,
            required=False,
            description="Embeds cover art into m4a/m4b output",
            debian_package="atomicparsley",
            rhel_package="AtomicParsley",
            arch_package="atomicparsley",
            brew_package="atomicparsley",
        ),
    ]


class ToolLocator:
    """Resolve external tools once at startup."""

    def __init__(self, config: AaxconvConfig) -> None:
        self.config = config
        self.dependencies = build_dependencies(config)
        self.platform_info = self._detect_platform()

    def locate(self) -> ToolPaths:
        """Return resolved tool paths or raise DependencyError for the first missing required tool."""
        found: dict[str, Path | None] = {}

        for dep in self.dependencies:
            resolved = shutil.which(dep.binary)
            found[dep.name] = Path(resolved) if resolved else None

            if resolved:
                logger.debug(f"Found {dep.name}: {resolved}")
                continue

            if dep.required:
                logger.error(f"Missing required tool {dep.name}: {dep.description}")
                raise DependencyError(
                    dep.name,
                    install_command=self.install_hint(dep),
                    details=dep.description,
                )

            logger.warning(
                f"Optional tool {dep.name} not found, cover art will not be embedded",
            )
            hint = self.install_hint(dep)
            if hint:
                logger.info(f"    Install with: {hint}")

        return ToolPaths(
            ffprobe=found["ffprobe"],
            ffmpeg=found["ffmpeg"],
            atomicparsley=found["AtomicParsley"],
        )

    def install_hint(self, dep: SystemDependency) -> str | None:
        """Platform-specific install command for a dependency."""
        system = self.platform_info.get("system", "")
        distro = self.platform_info.get("distro", "").lower()
        distro_like = self.platform_info.get("distro_like", "").lower()

        if system == "Darwin" and dep.brew_package:
            return f"brew install {dep.brew_package}"

        if "debian" in distro or "ubuntu" in distro or "debian" in distro_like:
            if dep.debian_package:
                return f"sudo apt install {dep.debian_package}"
        elif (
            "rhel" in distro
            or "centos" in distro
            or "rocky" in distro
            or "fedora" in distro
        ):
            if dep.rhel_package:
                return f"sudo dnf install {dep.rhel_package}"
        elif "arch" in distro or "manjaro" in distro:
            if dep.arch_package:
                return f"sudo pacman -S {dep.arch_package}"

        return None

    def _detect_platform(self) -> dict[str, str]:
        """Detect platform information."""
        info = {
            "system": platform.system(),
            "machine": platform.machine(),
        }

        if info["system"] == "Linux":
            try:
                with open("/etc/os-release") as f:
                    for line in f:
                        if line.startswith("ID="):
                            info["distro"] = line.split("=")[1].strip().strip('"')
                        elif line.startswith("ID_LIKE="):
                            info["distro_like"] = line.split("=")[1].strip().strip('"')
            except FileNotFoundError:
                info["distro"] = "unknown"

        return info


def locate_tools(config: AaxconvConfig) -> ToolPaths:
    """Resolve the external toolchain for this run."""
    return ToolLocator(config).locate()
