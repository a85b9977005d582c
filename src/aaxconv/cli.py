"""Command-line interface for aaxconv."""

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from .config import AAC_CONTAINERS, CODECS, AaxconvConfig, create_sample_config, load_config
from .core.batch import BatchDriver
from .encode.ffmpeg_wrapper import FFmpegTranscoder
from .error_handling import AaxconvError, ConfigurationError, graceful_exit, handle_error
from .storage.workspace import ScratchWorkspace
from .system_check import locate_tools

console = Console()

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(
    *,
    verbose: bool = False,
    config: AaxconvConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_dir / "aaxconv.log")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


def _write_sample_config(ctx: click.Context, param: click.Parameter, value: Path | None) -> None:
    if value is None or ctx.resilient_parsing:
        return
    try:
        create_sample_config(value)
    except OSError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        ctx.exit(1)
    console.print(f"[green]Created sample configuration at {value}[/green]")
    ctx.exit(0)


def build_config(config_path: Path | None, overrides: dict[str, object]) -> AaxconvConfig:
    """Load the config file and apply command-line overrides."""
    try:
        base = load_config(config_path)
        settings = base.model_dump()
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return AaxconvConfig(**settings)
    except (OSError, ValueError, ValidationError) as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config_path,
        ) from e


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.option("--debug", "-d", is_flag=True, help="Show debug output, including captured tool output")
@click.option("--validate", "-V", "validate_only", is_flag=True, help="Only validate the files, write nothing")
@click.option("--authcode", "-A", help="Activation bytes (8 hex characters)")
@click.option(
    "--codec",
    type=click.Choice(list(CODECS), case_sensitive=False),
    help="Audio codec for the output (default: copy the AAC stream)",
)
@click.option(
    "--container",
    type=click.Choice(list(AAC_CONTAINERS), case_sensitive=False),
    help="Container for AAC output",
)
@click.option(
    "--target-dir",
    "-t",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write output here instead of next to each input file",
)
@click.option("--strict/--no-strict", default=None, help="Stop the whole batch on the first failed file")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--init-config",
    type=click.Path(dir_okay=False, path_type=Path),
    callback=_write_sample_config,
    expose_value=False,
    is_eager=True,
    help="Write a sample configuration file and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    files: tuple[Path, ...],
    debug: bool,
    validate_only: bool,
    authcode: str | None,
    codec: str | None,
    container: str | None,
    target_dir: Path | None,
    strict: bool | None,
    config_path: Path | None,
) -> None:
    """aaxconv - convert Audible AAX audiobooks with FFmpeg.

    FILES are processed one after another. Use -- before file names that
    start with a dash.
    """
    if not files:
        click.echo(ctx.get_usage(), err=True)
        click.echo("Error: at least one input file is required", err=True)
        ctx.exit(1)

    try:
        config = build_config(
            config_path,
            {
                "activation_bytes": authcode,
                "codec": codec,
                "container": container,
                "target_dir": target_dir,
                "strict": strict,
            },
        )
        setup_logging(verbose=debug, config=config)

        tools = locate_tools(config)

        try:
            activation_bytes = config.resolve_activation_bytes()
        except ValueError as e:
            raise ConfigurationError(str(e), config_path=config_path) from e
        if not activation_bytes:
            raise ConfigurationError(
                "No activation bytes configured",
                solution="Pass --authcode, set AAX_ACTIVATION_BYTES, or put them in ~/.authcode",
            )

        config.ensure_directories()

        with ScratchWorkspace() as workspace:
            transcoder = FFmpegTranscoder(config, tools, activation_bytes)
            driver = BatchDriver(config, transcoder, workspace)
            driver.run(files, validate_only=validate_only)

    except AaxconvError as e:
        e.display_to_user()
        graceful_exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        handle_error(e)
        graceful_exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
