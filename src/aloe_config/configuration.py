from __future__ import annotations

import logging
import threading
import types
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

from aloe_config.sources.base import KEY_DELIMITER, ConfigurationProvider, combine_key
from aloe_config.watcher import FileWatcher

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ChangeCallback = Callable[["Configuration"], None]

CONNECTION_STRINGS_SECTION = "ConnectionStrings"


def _segment_sort_key(segment: str) -> Tuple[int, int, str]:
    if segment.isdigit():
        return (0, int(segment), "")
    return (1, 0, segment.casefold())


def _has_prefix(key: str, prefix: str) -> bool:
    return key[: len(prefix)].casefold() == prefix.casefold()


def _existing_spelling(node: Dict[str, Any], segment: str) -> str:
    folded = segment.casefold()
    for existing in node:
        if existing.casefold() == folded:
            return existing
    return segment


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {k: _listify(v) for k, v in node.items()}
    keys = list(converted.keys())
    if keys and all(k.isdigit() for k in keys) and sorted(int(k) for k in keys) == list(range(len(keys))):
        return [converted[str(i)] for i in range(len(keys))]
    return converted


def unflatten(flat: Dict[str, Optional[str]], *, lists: bool = True) -> Dict[str, Any]:
    """
    Rebuild nested dicts from ``parent:child`` keys.

    A key that has both a value and children keeps only its children. With lists=True,
    dicts whose keys are exactly 0..n-1 become lists.
    """
    root: Dict[str, Any] = {}
    for key in sorted(flat.keys(), key=lambda k: [_segment_sort_key(s) for s in k.split(KEY_DELIMITER)]):
        segments = key.split(KEY_DELIMITER)
        cur = root
        for segment in segments[:-1]:
            segment = _existing_spelling(cur, segment)
            nxt = cur.get(segment)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[segment] = nxt
            cur = nxt
        leaf = _existing_spelling(cur, segments[-1])
        if isinstance(cur.get(leaf), dict):
            continue
        cur[leaf] = flat[key]
    if not lists:
        return root
    return {k: _listify(v) for k, v in root.items()}


def _align_keys(model_type: Type[BaseModel], data: Any) -> Any:
    """
    Respell the keys of data to the field aliases of model_type.

    Configuration keys are case-insensitive while pydantic aliases are not, so
    ``APPLICATION:NAME`` must still populate the ``Name`` field.
    """
    if not isinstance(data, dict):
        return data
    fields: Dict[str, Tuple[str, Any]] = {}
    for name, info in model_type.model_fields.items():
        alias = info.alias or name
        fields[alias.casefold()] = (alias, info.annotation)
        fields.setdefault(name.casefold(), (alias, info.annotation))

    aligned: Dict[str, Any] = {}
    for key, value in data.items():
        match = fields.get(key.casefold())
        if match is None:
            aligned[key] = value
            continue
        alias, annotation = match
        aligned[alias] = _align_value(annotation, value)
    return aligned


def _is_model(annotation: Any) -> bool:
    return get_origin(annotation) is None and isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _align_value(annotation: Any, value: Any) -> Any:
    if _is_model(annotation):
        return _align_keys(annotation, value)
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is list and args and isinstance(value, list):
        return [_align_value(args[0], item) for item in value]
    if origin in (Union, types.UnionType):
        for arg in args:
            if _is_model(arg):
                return _align_keys(arg, value)
    return value


class _SectionAccess:
    """Key access relative to a path. Shared by Configuration and ConfigurationSection."""

    def _root(self) -> "Configuration":
        raise NotImplementedError

    def _path(self) -> str:
        raise NotImplementedError

    def _full_key(self, key: str) -> str:
        return combine_key(self._path(), key)

    def __getitem__(self, key: str) -> Optional[str]:
        """Value of key, or None when no provider has it."""
        _, value = self._root()._lookup(self._full_key(key))
        return value

    def __setitem__(self, key: str, value: Optional[str]) -> None:
        self._root()._assign(self._full_key(key), value)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        found, _ = self._root()._lookup(self._full_key(key))
        return found

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        found, value = self._root()._lookup(self._full_key(key))
        return value if found else default

    def get_section(self, key: str) -> "ConfigurationSection":
        return ConfigurationSection(self._root(), self._full_key(key))

    def get_children(self) -> List["ConfigurationSection"]:
        root = self._root()
        path = self._path()
        return [ConfigurationSection(root, combine_key(path, child)) for child in root._child_keys(path or None)]

    def as_dict(self, *, nested: bool = True) -> Dict[str, Any]:
        flat = self._root()._flat_subtree(self._path())
        if not nested:
            return flat
        return unflatten(flat)

    def bind(self, model_type: Type[M], section: Optional[str] = None) -> M:
        """Validate the (optionally nested) section into a pydantic model."""
        target: _SectionAccess = self.get_section(section) if section else self
        return model_type.model_validate(_align_keys(model_type, target.as_dict()))


class ConfigurationSection(_SectionAccess):
    def __init__(self, root: "Configuration", path: str) -> None:
        self._root_config = root
        self._section_path = path

    def _root(self) -> "Configuration":
        return self._root_config

    def _path(self) -> str:
        return self._section_path

    @property
    def path(self) -> str:
        return self._section_path

    @property
    def key(self) -> str:
        return self._section_path.rsplit(KEY_DELIMITER, 1)[-1]

    @property
    def value(self) -> Optional[str]:
        _, value = self._root_config._lookup(self._section_path)
        return value

    @value.setter
    def value(self, value: Optional[str]) -> None:
        self._root_config._assign(self._section_path, value)

    def exists(self) -> bool:
        found, _ = self._root_config._lookup(self._section_path)
        return found or bool(self._root_config._child_keys(self._section_path))

    def __repr__(self) -> str:
        return f"ConfigurationSection(path={self._section_path!r}, value={self.value!r})"


class Configuration(_SectionAccess):
    """
    Effective configuration composed from an ordered list of providers.

    Later providers override earlier ones for the same key. Keys are ``:``-separated and
    case-insensitive.
    """

    def __init__(self, providers: Sequence[ConfigurationProvider]) -> None:
        self._providers: List[ConfigurationProvider] = list(providers)
        self._lock = threading.RLock()
        self._callbacks: List[ChangeCallback] = []
        self._watchers: List[FileWatcher] = []

    def _root(self) -> "Configuration":
        return self

    def _path(self) -> str:
        return ""

    @property
    def providers(self) -> Tuple[ConfigurationProvider, ...]:
        return tuple(self._providers)

    @property
    def watchers(self) -> Tuple[FileWatcher, ...]:
        return tuple(self._watchers)

    def _lookup(self, key: str) -> Tuple[bool, Optional[str]]:
        for provider in reversed(self._providers):
            found, value = provider.try_get(key)
            if found:
                return True, value
        return False, None

    def _assign(self, key: str, value: Optional[str]) -> None:
        if not self._providers:
            raise KeyError(f"Configuration has no providers to store key: {key}")
        for provider in self._providers:
            provider.set(key, value)

    def _child_keys(self, path: Optional[str]) -> List[str]:
        seen: Dict[str, str] = {}
        for provider in self._providers:
            for child in provider.get_child_keys(path):
                seen.setdefault(child.casefold(), child)
        return sorted(seen.values(), key=_segment_sort_key)

    def _flat_subtree(self, path: str) -> Dict[str, Optional[str]]:
        merged: Dict[str, Tuple[str, Optional[str]]] = {}
        for provider in self._providers:
            for key, value in provider.data.items():
                folded = key.casefold()
                existing = merged.get(folded)
                merged[folded] = (existing[0] if existing else key, value)

        prefix = path + KEY_DELIMITER if path else ""
        result: Dict[str, Optional[str]] = {}
        for key, value in merged.values():
            if not prefix:
                result[key] = value
            elif _has_prefix(key, prefix) and len(key) > len(prefix):
                result[key[len(prefix) :]] = value
        return result

    def get_connection_string(self, name: str) -> Optional[str]:
        return self.get(combine_key(CONNECTION_STRINGS_SECTION, name))

    def load(self) -> None:
        with self._lock:
            for provider in self._providers:
                provider.load()

    def reload(self) -> None:
        self.load()
        logger.info("Configuration reloaded. providers=%s", len(self._providers))
        self._notify()

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register callback for reloads. Returns a function that unregisters it."""
        with self._lock:
            self._callbacks.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _unsubscribe

    def _notify(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Configuration change callback failed. callback=%r", callback)

    def _reload_provider(self, provider: ConfigurationProvider) -> None:
        with self._lock:
            try:
                provider.load()
            except Exception:
                logger.exception("Configuration reload failed; keeping previous values. provider=%s", provider.describe())
                return
        logger.info("Configuration source reloaded. provider=%s", provider.describe())
        self._notify()

    def start_watching(self, *, poll_interval_seconds: float = 1.0, background: bool = True) -> None:
        """
        Create a watcher for every file a provider asked to watch.

        With background=False the watchers are created but not started; call
        poll_watchers() to drive them.
        """
        with self._lock:
            if self._watchers:
                return
            for provider in self._providers:
                for target in provider.watch_targets():
                    watcher = FileWatcher(
                        target.file_access,
                        target.subpath,
                        lambda p=provider: self._reload_provider(p),
                        poll_interval_seconds=poll_interval_seconds,
                        reload_delay_seconds=target.reload_delay_seconds,
                        initial_fingerprint=target.fingerprint,
                    )
                    self._watchers.append(watcher)
            if background:
                for watcher in self._watchers:
                    watcher.start()
        if self._watchers and background:
            logger.info("Watching configuration files for changes. files=%s", len(self._watchers))

    def poll_watchers(self) -> bool:
        """Run one synchronous check on every watcher. Returns True when any file changed."""
        changed = False
        for watcher in self.watchers:
            changed = watcher.poll_once() or changed
        return changed

    def close(self) -> None:
        with self._lock:
            watchers = list(self._watchers)
            self._watchers = []
        for watcher in watchers:
            watcher.stop()

    def __enter__(self) -> "Configuration":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[Tuple[str, Optional[str]]]:
        return iter(sorted(self._flat_subtree("").items(), key=lambda kv: kv[0].casefold()))

    def debug_view(self) -> str:
        """Render every effective key with the provider that supplied it."""
        lines: List[str] = []
        for key, value in self:
            origin = "?"
            for provider in reversed(self._providers):
                found, _ = provider.try_get(key)
                if found:
                    origin = provider.describe()
                    break
            lines.append(f"{key}={value} ({origin})")
        return "\n".join(lines)
