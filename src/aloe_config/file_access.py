from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union


@dataclass(frozen=True, slots=True)
class FileInfo:
    """Point-in-time snapshot of a file as seen through a FileAccess."""

    subpath: str
    exists: bool
    size_bytes: int = 0
    mtime_ns: int = 0
    physical_path: Optional[Path] = None

    @property
    def fingerprint(self) -> Tuple[bool, int, int]:
        return (self.exists, self.mtime_ns, self.size_bytes)


class FileAccess(Protocol):
    """Resolves configuration files from some location (a directory, memory, an archive...)."""

    def get_file_info(self, subpath: str) -> FileInfo:
        """Return a snapshot for subpath. Missing files are reported with exists=False."""

    def read_text(self, subpath: str) -> str:
        """Return the decoded file content or raise FileNotFoundError."""


def _normalize_subpath(subpath: str) -> str:
    parts = [p for p in PurePosixPath(subpath.replace("\\", "/")).parts if p not in ("", ".", "/")]
    return "/".join(parts)


class PhysicalFileAccess:
    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, subpath: str) -> Optional[Path]:
        candidate = (self._root / _normalize_subpath(subpath)).resolve()
        if not candidate.is_relative_to(self._root):
            return None
        return candidate

    def get_file_info(self, subpath: str) -> FileInfo:
        path = self._resolve(subpath)
        if path is None:
            return FileInfo(subpath=subpath, exists=False)
        try:
            stat = path.stat()
        except OSError:
            return FileInfo(subpath=subpath, exists=False, physical_path=path)
        if not path.is_file():
            return FileInfo(subpath=subpath, exists=False, physical_path=path)
        return FileInfo(
            subpath=subpath,
            exists=True,
            size_bytes=int(stat.st_size),
            mtime_ns=int(stat.st_mtime_ns),
            physical_path=path,
        )

    def read_text(self, subpath: str) -> str:
        path = self._resolve(subpath)
        if path is None or not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self._root / subpath}")
        return path.read_text(encoding="utf-8-sig")

    def __repr__(self) -> str:
        return f"PhysicalFileAccess(root={str(self._root)!r})"


class InMemoryFileAccess:
    """
    File access backed by a dict of path -> text.

    Every write or delete bumps a version counter that is reported as mtime_ns, so
    watchers polling this access observe changes exactly like they do on disk.
    """

    def __init__(self, files: Optional[Mapping[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._files: Dict[str, Tuple[str, int]] = {}
        self._version = 0
        for path, text in (files or {}).items():
            self.write(path, text)

    def write(self, subpath: str, text: str) -> None:
        with self._lock:
            self._version += 1
            self._files[_normalize_subpath(subpath)] = (text, self._version)

    def delete(self, subpath: str) -> None:
        with self._lock:
            self._version += 1
            self._files.pop(_normalize_subpath(subpath), None)

    def get_file_info(self, subpath: str) -> FileInfo:
        with self._lock:
            entry = self._files.get(_normalize_subpath(subpath))
        if entry is None:
            return FileInfo(subpath=subpath, exists=False)
        text, version = entry
        return FileInfo(
            subpath=subpath,
            exists=True,
            size_bytes=len(text.encode("utf-8")),
            mtime_ns=version,
        )

    def read_text(self, subpath: str) -> str:
        with self._lock:
            entry = self._files.get(_normalize_subpath(subpath))
        if entry is None:
            raise FileNotFoundError(f"Configuration file not found in memory: {subpath}")
        return entry[0]


class NullFileAccess:
    def get_file_info(self, subpath: str) -> FileInfo:
        return FileInfo(subpath=subpath, exists=False)

    def read_text(self, subpath: str) -> str:
        raise FileNotFoundError(f"Configuration file not found: {subpath}")
