from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aloe_config.errors import ConfigurationFormatError
from aloe_config.file_access import FileAccess, FileInfo, PhysicalFileAccess

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"


def combine_key(*segments: str) -> str:
    return KEY_DELIMITER.join(s for s in segments if s)


def split_key(key: str) -> List[str]:
    return key.split(KEY_DELIMITER)


def _format_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Mapping[str, Any], *, source_name: Optional[str] = None) -> Dict[str, str]:
    """
    Flatten nested mappings and sequences into ``parent:child`` keys.

    Sequences use their index as the key segment. Keys that collide case-insensitively
    are rejected, since lookups cannot tell them apart.
    """
    flat: Dict[str, str] = {}
    seen: Dict[str, str] = {}

    def _visit(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            if not value and prefix:
                _emit(prefix, "")
            for k, v in value.items():
                _visit(combine_key(prefix, str(k)), v)
            return
        if isinstance(value, (list, tuple)):
            if not value and prefix:
                _emit(prefix, "")
            for index, item in enumerate(value):
                _visit(combine_key(prefix, str(index)), item)
            return
        _emit(prefix, _format_scalar(value))

    def _emit(key: str, value: str) -> None:
        folded = key.casefold()
        if folded in seen:
            raise ConfigurationFormatError(f"Duplicate configuration key: {key}", path=source_name)
        seen[folded] = key
        flat[key] = value

    _visit("", data)
    return flat


@dataclass(frozen=True, slots=True)
class WatchTarget:
    file_access: FileAccess
    subpath: str
    reload_delay_seconds: float = 0.25
    # Snapshot taken when the provider last read the file.
    fingerprint: Optional[Tuple[bool, int, int]] = None


class ConfigurationProvider:
    """
    Holds the flat key/value data of one source.

    Keys are matched case-insensitively; the spelling of the first write is kept for
    enumeration.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, Optional[str]]] = {}

    def load(self) -> None:
        """Populate data from the backing store. The base provider holds no store."""

    def set_data(self, data: Mapping[str, Optional[str]]) -> None:
        new_data: Dict[str, Tuple[str, Optional[str]]] = {}
        for key, value in data.items():
            new_data[key.casefold()] = (key, value)
        self._data = new_data

    @property
    def data(self) -> Dict[str, Optional[str]]:
        return {key: value for key, value in self._data.values()}

    def try_get(self, key: str) -> Tuple[bool, Optional[str]]:
        entry = self._data.get(key.casefold())
        if entry is None:
            return False, None
        return True, entry[1]

    def set(self, key: str, value: Optional[str]) -> None:
        folded = key.casefold()
        existing = self._data.get(folded)
        self._data[folded] = (existing[0] if existing else key, value)

    def get_child_keys(self, parent_path: Optional[str] = None) -> List[str]:
        """Return the immediate child segments below parent_path (all top-level segments when None)."""
        children: List[str] = []
        prefix = parent_path + KEY_DELIMITER if parent_path else ""
        for original, _ in self._data.values():
            if prefix and original[: len(prefix)].casefold() != prefix.casefold():
                continue
            remainder = original[len(prefix) :]
            segment = remainder.split(KEY_DELIMITER, 1)[0]
            children.append(segment)
        return children

    def watch_targets(self) -> Sequence[WatchTarget]:
        """Files this provider wants watched for reload-on-change."""
        return ()

    def describe(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return self.describe()


class ConfigurationSource(ABC):
    @abstractmethod
    def build(self, builder: "ConfigurationBuilder") -> ConfigurationProvider:
        ...

    def describe(self) -> str:
        return type(self).__name__


class FileConfigurationSource(ConfigurationSource):
    """Common shape of sources backed by a single file."""

    def __init__(
        self,
        path: str,
        *,
        optional: bool = False,
        reload_on_change: bool = False,
        file_access: Optional[FileAccess] = None,
        reload_delay_seconds: float = 0.25,
    ) -> None:
        if not path or not str(path).strip():
            raise ValueError("File configuration source requires a non-empty path.")
        self.path = str(path)
        self.optional = optional
        self.reload_on_change = reload_on_change
        self.file_access = file_access
        self.reload_delay_seconds = reload_delay_seconds

    def resolve_file_access(self, builder: "ConfigurationBuilder") -> Tuple[FileAccess, str]:
        if self.file_access is not None:
            return self.file_access, self.path
        path = Path(self.path)
        if path.is_absolute():
            return PhysicalFileAccess(path.parent), path.name
        return builder.get_file_access(), self.path

    def describe(self) -> str:
        flags = []
        if self.optional:
            flags.append("optional")
        if self.reload_on_change:
            flags.append("reload_on_change")
        suffix = f" ({', '.join(flags)})" if flags else ""
        return f"{type(self).__name__}: {self.path}{suffix}"


class FileConfigurationProvider(ConfigurationProvider, ABC):
    def __init__(self, source: FileConfigurationSource, file_access: FileAccess, subpath: str) -> None:
        super().__init__()
        self.source = source
        self.file_access = file_access
        self.subpath = subpath
        self._loaded_fingerprint: Optional[Tuple[bool, int, int]] = None

    @abstractmethod
    def parse(self, text: str) -> Mapping[str, Optional[str]]:
        """Turn file text into flat configuration data."""

    def load(self) -> None:
        info: FileInfo = self.file_access.get_file_info(self.subpath)
        self._loaded_fingerprint = info.fingerprint
        if not info.exists:
            if not self.source.optional:
                raise FileNotFoundError(f"Configuration file not found and is not optional: {self.subpath}")
            logger.debug("Optional configuration file not found. path=%s", self.subpath)
            self.set_data({})
            return

        text = self.file_access.read_text(self.subpath)
        data = self.parse(text)
        self.set_data(data)
        logger.debug("Configuration file loaded. path=%s keys=%s", self.subpath, len(data))

    def watch_targets(self) -> Sequence[WatchTarget]:
        if not self.source.reload_on_change:
            return ()
        return (
            WatchTarget(
                self.file_access,
                self.subpath,
                self.source.reload_delay_seconds,
                fingerprint=self._loaded_fingerprint,
            ),
        )

    def describe(self) -> str:
        return f"{type(self).__name__}: {self.subpath}"


def normalize_env_style_keys(items: Iterable[Tuple[str, Optional[str]]]) -> Dict[str, Optional[str]]:
    """Map ``A__B`` style names onto ``A:B`` keys. Later items win on collisions."""
    data: Dict[str, Optional[str]] = {}
    folded: Dict[str, str] = {}
    for name, value in items:
        key = name.replace("__", KEY_DELIMITER)
        previous = folded.get(key.casefold())
        if previous is not None:
            del data[previous]
        folded[key.casefold()] = key
        data[key] = value
    return data
