from __future__ import annotations

import io
from typing import TYPE_CHECKING, Mapping, Optional

from dotenv import dotenv_values

from aloe_config.sources.base import FileConfigurationProvider, FileConfigurationSource, normalize_env_style_keys

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder


class DotEnvFileProvider(FileConfigurationProvider):
    """Reads ``NAME=value`` files; ``Section__Key`` names map to ``Section:Key``."""

    def parse(self, text: str) -> Mapping[str, Optional[str]]:
        values = dotenv_values(stream=io.StringIO(text), interpolate=True)
        return normalize_env_style_keys((name, value) for name, value in values.items())


class DotEnvFileSource(FileConfigurationSource):
    def build(self, builder: "ConfigurationBuilder") -> DotEnvFileProvider:
        file_access, subpath = self.resolve_file_access(builder)
        return DotEnvFileProvider(self, file_access, subpath)
