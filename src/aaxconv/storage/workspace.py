"""Process-lifetime scratch directory for probe text and extracted covers."""

import logging
import shutil
import signal
import sys
import tempfile
import threading
from pathlib import Path
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.txt"
COVER_FILENAME = "cover.jpg"


class ScratchWorkspace:
    """Temporary directory removed on exit, exception, SIGINT or SIGTERM.

    Use as a context manager. While active, SIGINT and SIGTERM are turned into
    an exception so the ``with`` block unwinds and the directory is removed
    before the process terminates.
    """

    def __init__(self, parent: Path | None = None, *, handle_signals: bool = True):
        self.parent = parent
        self.handle_signals = handle_signals
        self.path: Path | None = None
        self._previous_handlers: dict[int, Any] = {}

    @property
    def metadata_file(self) -> Path:
        return self._require_path() / METADATA_FILENAME

    @property
    def cover_file(self) -> Path:
        return self._require_path() / COVER_FILENAME

    def __enter__(self) -> "ScratchWorkspace":
        self.path = Path(tempfile.mkdtemp(prefix="aaxconv-", dir=self.parent))
        logger.debug(f"Created scratch workspace {self.path}")
        if self.handle_signals:
            self._install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.cleanup()
        finally:
            self._restore_signal_handlers()

    def reset(self) -> None:
        """Remove per-file artifacts so the next file starts clean."""
        if self.path is None:
            return
        for artifact in (self.metadata_file, self.cover_file):
            artifact.unlink(missing_ok=True)

    def cleanup(self) -> None:
        """Remove the whole workspace. Safe to call more than once."""
        if self.path is None:
            return
        shutil.rmtree(self.path, ignore_errors=True)
        logger.debug(f"Removed scratch workspace {self.path}")
        self.path = None

    def _require_path(self) -> Path:
        if self.path is None:
            msg = "Scratch workspace is not active"
            raise RuntimeError(msg)
        return self.path

    def _install_signal_handlers(self) -> None:
        # signal.signal only works from the main thread
        if threading.current_thread() is not threading.main_thread():
            return

        def signal_handler(signum: int, frame: FrameType | None) -> None:
            logger.warning("Received signal %s, cleaning up", signum)
            self.cleanup()
            if signum == signal.SIGINT:
                raise KeyboardInterrupt
            sys.exit(128 + signum)

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, signal_handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
