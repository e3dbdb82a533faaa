from __future__ import annotations

import logging
import os
import threading
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterable

LOGGER = logging.getLogger(__name__)


def sweep_expired_files(
    roots: Iterable[Path],
    *,
    max_age: timedelta,
    now: Callable[[], float] = time.time,
) -> list[Path]:
    """Delete files older than ``max_age`` under every root.

    Directories emptied by the sweep are removed too, but never the roots
    themselves. Files are judged by modification time only, so anything
    still being written is far younger than the cutoff and left alone.
    """
    cutoff = now() - max_age.total_seconds()
    removed: list[Path] = []
    for root in roots:
        root = Path(root)
        if not root.is_dir():
            continue
        for dirpath, dirnames, filenames in os.walk(root, topdown=False):
            current = Path(dirpath)
            stale_dir = _is_stale(current, cutoff)
            for filename in filenames:
                path = current / filename
                try:
                    if path.stat().st_mtime < cutoff:
                        path.unlink()
                        removed.append(path)
                        LOGGER.info("Cleaned up old file: %s", path)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    LOGGER.error("Error cleaning up %s: %s", path, exc)
            if current != root and stale_dir:
                _remove_empty_dir(current)
    return removed


def _is_stale(path: Path, cutoff: float) -> bool:
    # Read before the sweep touches the directory: unlinking bumps its mtime.
    try:
        return path.stat().st_mtime < cutoff
    except OSError:
        return False


def _remove_empty_dir(directory: Path) -> None:
    try:
        directory.rmdir()
        LOGGER.info("Removed empty directory: %s", directory)
    except OSError:
        # Missing or still holding fresh files.
        return


class CleanupScheduler:
    """Runs the sweep on a daemon thread until stopped."""

    def __init__(
        self,
        roots: Iterable[Path],
        *,
        max_age: timedelta,
        interval_seconds: float,
    ) -> None:
        self._roots = [Path(root) for root in roots]
        self._max_age = max_age
        self._interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="verticlip-cleanup", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> list[Path]:
        return sweep_expired_files(self._roots, max_age=self._max_age)

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                LOGGER.exception("Cleanup sweep failed")
            self._stop.wait(self._interval_seconds)
