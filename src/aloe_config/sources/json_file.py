from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from aloe_config.errors import ConfigurationFormatError
from aloe_config.sources.base import FileConfigurationProvider, FileConfigurationSource, flatten

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    seen: Dict[str, str] = {}
    for key, value in pairs:
        folded = key.casefold()
        if folded in seen:
            raise ConfigurationFormatError(f"Duplicate JSON key: {key}")
        seen[folded] = key
        result[key] = value
    return result


class JsonFileProvider(FileConfigurationProvider):
    def parse(self, text: str) -> Mapping[str, Optional[str]]:
        if not text.strip():
            return {}
        try:
            payload = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
        except json.JSONDecodeError as e:
            raise ConfigurationFormatError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})", path=self.subpath) from e
        except ConfigurationFormatError as e:
            raise ConfigurationFormatError(str(e), path=self.subpath) from e
        if not isinstance(payload, dict):
            raise ConfigurationFormatError(
                f"Top-level JSON must be an object, got: {type(payload).__name__}",
                path=self.subpath,
            )
        return flatten(payload, source_name=self.subpath)


class JsonFileSource(FileConfigurationSource):
    def build(self, builder: "ConfigurationBuilder") -> JsonFileProvider:
        file_access, subpath = self.resolve_file_access(builder)
        return JsonFileProvider(self, file_access, subpath)
