from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class FileRotationSettings(BaseModel):
    """Log files roll over at midnight; backup_count old files are kept."""

    model_config = ConfigDict(frozen=True, extra="forbid", alias_generator=to_pascal, populate_by_name=True)

    backup_count: int = 5


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", alias_generator=to_pascal, populate_by_name=True)

    path: Optional[str] = None
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", alias_generator=to_pascal, populate_by_name=True)

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)


class ApplicationSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", alias_generator=to_pascal, populate_by_name=True)

    name: Optional[str] = None
    version: Optional[str] = None


class SampleSettings(BaseModel):
    """
    Settings the bundled sample reads from the composed configuration.

    Keys follow the appsettings.json convention (``Application:Name``,
    ``ConnectionStrings:DefaultConnection``, ``Logging:Level``). Everything else in the
    configuration, such as unrelated environment variables, is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", alias_generator=to_pascal, populate_by_name=True)

    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    connection_strings: Dict[str, str] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@dataclass(frozen=True, slots=True)
class DefaultSourcesRequest:
    """Inputs for composing the default sources outside of library code (the CLI)."""

    args: Sequence[str] = field(default_factory=tuple)
    base_path: Optional[str] = None
    user_secrets_id: Optional[str] = None
    reload_on_change: bool = True
