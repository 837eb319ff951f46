from __future__ import annotations

import os
from typing import TYPE_CHECKING, Iterator, Mapping, Optional, Tuple

from aloe_config.sources.base import ConfigurationProvider, ConfigurationSource, combine_key, normalize_env_style_keys

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder

CONNECTION_STRINGS_SECTION = "ConnectionStrings"

# Hosting platforms expose connection strings under these prefixes.
CONNECTION_STRING_PREFIXES = (
    "MYSQLCONNSTR_",
    "SQLAZURECONNSTR_",
    "SQLCONNSTR_",
    "CUSTOMCONNSTR_",
    "POSTGRESQLCONNSTR_",
)


def _has_prefix(name: str, prefix: str) -> bool:
    return name[: len(prefix)].casefold() == prefix.casefold()


class EnvironmentVariablesProvider(ConfigurationProvider):
    def __init__(self, *, prefix: str = "", environ: Optional[Mapping[str, str]] = None) -> None:
        super().__init__()
        self._prefix = prefix
        self._environ = environ

    def _normalize_name(self, name: str) -> Optional[str]:
        for conn_prefix in CONNECTION_STRING_PREFIXES:
            if not _has_prefix(name, conn_prefix):
                continue
            conn_name = name[len(conn_prefix) :]
            if not _has_prefix(conn_name, self._prefix):
                return None
            conn_name = conn_name[len(self._prefix) :]
            return combine_key(CONNECTION_STRINGS_SECTION, conn_name) if conn_name else None

        if not _has_prefix(name, self._prefix):
            return None
        return name[len(self._prefix) :] or None

    def _iter_entries(self, environ: Mapping[str, str]) -> Iterator[Tuple[str, str]]:
        for name, value in environ.items():
            key = self._normalize_name(name)
            if key is not None:
                yield key, value

    def load(self) -> None:
        environ = os.environ if self._environ is None else self._environ
        self.set_data(normalize_env_style_keys(self._iter_entries(environ)))

    def describe(self) -> str:
        return f"EnvironmentVariablesProvider: prefix={self._prefix!r}"


class EnvironmentVariablesSource(ConfigurationSource):
    def __init__(self, prefix: str = "", *, environ: Optional[Mapping[str, str]] = None) -> None:
        self.prefix = prefix or ""
        self.environ = environ

    def build(self, builder: "ConfigurationBuilder") -> EnvironmentVariablesProvider:
        return EnvironmentVariablesProvider(prefix=self.prefix, environ=self.environ)

    def describe(self) -> str:
        if self.prefix:
            return f"EnvironmentVariablesSource: prefix={self.prefix}"
        return "EnvironmentVariablesSource"
