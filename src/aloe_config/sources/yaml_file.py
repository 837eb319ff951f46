from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Optional

import yaml

from aloe_config.errors import ConfigurationFormatError
from aloe_config.sources.base import FileConfigurationProvider, FileConfigurationSource, flatten

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder


class YamlFileProvider(FileConfigurationProvider):
    def parse(self, text: str) -> Mapping[str, Optional[str]]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationFormatError(f"Invalid YAML: {e}", path=self.subpath) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationFormatError(
                f"Top-level YAML must be a mapping, got: {type(data).__name__}",
                path=self.subpath,
            )
        return flatten(data, source_name=self.subpath)


class YamlFileSource(FileConfigurationSource):
    def build(self, builder: "ConfigurationBuilder") -> YamlFileProvider:
        file_access, subpath = self.resolve_file_access(builder)
        return YamlFileProvider(self, file_access, subpath)
