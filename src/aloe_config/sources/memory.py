from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

from aloe_config.sources.base import ConfigurationProvider, ConfigurationSource, flatten

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder


class MemoryProvider(ConfigurationProvider):
    def __init__(self, initial: Mapping[str, Any]) -> None:
        super().__init__()
        self.set_data(flatten(initial, source_name="memory"))


class MemorySource(ConfigurationSource):
    """In-memory key/value pairs. Nested mappings are flattened like file content."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self.data = dict(data or {})

    def build(self, builder: "ConfigurationBuilder") -> MemoryProvider:
        return MemoryProvider(self.data)

    def describe(self) -> str:
        return f"MemorySource: {len(self.data)} keys"
