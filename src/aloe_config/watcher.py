from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

from watchfiles import Change, watch

from aloe_config.file_access import FileAccess

logger = logging.getLogger(__name__)

Fingerprint = Tuple[bool, int, int]


class FileWatcher:
    """
    Watches a single file through a FileAccess and calls back when it changes.

    Files on disk are watched with OS file-system events through watchfiles, on the
    directory that holds them. Other accesses (in-memory, or a directory that does not
    exist yet) are polled: a change is any difference in (exists, mtime_ns, size_bytes).
    Either way the callback waits reload_delay_seconds so that writers have a chance to
    finish.
    """

    def __init__(
        self,
        file_access: FileAccess,
        subpath: str,
        callback: Callable[[], None],
        *,
        poll_interval_seconds: float = 1.0,
        reload_delay_seconds: float = 0.25,
        initial_fingerprint: Optional[Fingerprint] = None,
    ) -> None:
        self._file_access = file_access
        self._subpath = subpath
        self._callback = callback
        self._poll_interval_seconds = poll_interval_seconds
        self._reload_delay_seconds = reload_delay_seconds
        self._last: Fingerprint = initial_fingerprint if initial_fingerprint is not None else self._snapshot()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def subpath(self) -> str:
        return self._subpath

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _physical_directory(self) -> Optional[Path]:
        physical_path = self._file_access.get_file_info(self._subpath).physical_path
        if physical_path is None or not physical_path.parent.is_dir():
            return None
        return physical_path.parent

    @property
    def mechanism(self) -> str:
        return "watchfiles" if self._physical_directory() is not None else "polling"

    def _snapshot(self) -> Fingerprint:
        return self._file_access.get_file_info(self._subpath).fingerprint

    def _changed(self) -> bool:
        current = self._snapshot()
        if current == self._last:
            return False
        logger.debug(
            "Watched configuration file changed. path=%s previous=%s current=%s",
            self._subpath,
            self._last,
            current,
        )
        self._last = current
        return True

    def poll_once(self) -> bool:
        """Compare against the last snapshot and call back immediately on change."""
        if not self._changed():
            return False
        self._callback()
        return True

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        mechanism = self.mechanism
        self._thread = threading.Thread(
            target=self._run_events if mechanism == "watchfiles" else self._run_polling,
            name=f"aloe-config-watch:{self._subpath}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(
            "File watcher started. path=%s mechanism=%s poll_interval_seconds=%s",
            self._subpath,
            mechanism,
            self._poll_interval_seconds,
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if not self._thread:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.debug("File watcher stopped. path=%s", self._subpath)

    def _run_events(self) -> None:
        info = self._file_access.get_file_info(self._subpath)
        target = info.physical_path
        if target is None:
            return

        def _is_target(_change: Change, changed_path: str) -> bool:
            return Path(changed_path).resolve() == target

        try:
            for changes in watch(
                target.parent,
                watch_filter=_is_target,
                debounce=max(50, int(self._reload_delay_seconds * 1000)),
                stop_event=self._stop_event,
                recursive=False,
            ):
                logger.debug("Watched configuration file changed. path=%s changes=%s", self._subpath, len(changes))
                try:
                    self._last = self._snapshot()
                    self._callback()
                except Exception:
                    logger.exception("File watcher callback failed. path=%s", self._subpath)
        except Exception:
            logger.exception("File watcher stopped unexpectedly. path=%s", self._subpath)

    def _run_polling(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                if self._changed():
                    if self._stop_event.wait(timeout=self._reload_delay_seconds):
                        return
                    # Fold in writes that landed during the delay.
                    self._last = self._snapshot()
                    self._callback()
            except Exception:
                logger.exception("File watcher tick failed. path=%s", self._subpath)
            elapsed = time.monotonic() - started
            sleep_seconds = max(0.0, self._poll_interval_seconds - elapsed)
            self._stop_event.wait(timeout=sleep_seconds)
