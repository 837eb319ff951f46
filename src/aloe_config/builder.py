from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from aloe_config.configuration import Configuration
from aloe_config.defaults import add_default, add_default_with_file_access
from aloe_config.environment import EnvironmentNameResolver
from aloe_config.errors import MissingArgumentError
from aloe_config.file_access import FileAccess, PhysicalFileAccess
from aloe_config.sources.base import ConfigurationSource
from aloe_config.sources.command_line import CommandLineSource
from aloe_config.sources.dotenv_file import DotEnvFileSource
from aloe_config.sources.env_vars import EnvironmentVariablesSource
from aloe_config.sources.json_file import JsonFileSource
from aloe_config.sources.memory import MemorySource
from aloe_config.sources.yaml_file import YamlFileSource
from aloe_config.user_secrets import UserSecretsStore, add_user_secrets

logger = logging.getLogger(__name__)

FILE_ACCESS_PROPERTY = "FileAccess"


class ConfigurationBuilder:
    """
    Ordered list of configuration sources.

    Sources are only read by build(); adding a source performs no I/O. Every add_*
    helper returns the builder so calls can be chained.
    """

    def __init__(self) -> None:
        self.sources: List[ConfigurationSource] = []
        self.properties: Dict[str, Any] = {}

    def add(self, source: ConfigurationSource) -> "ConfigurationBuilder":
        if source is None:
            raise MissingArgumentError("source")
        self.sources.append(source)
        return self

    def set_file_access(self, file_access: FileAccess) -> "ConfigurationBuilder":
        if file_access is None:
            raise MissingArgumentError("file_access")
        self.properties[FILE_ACCESS_PROPERTY] = file_access
        return self

    def set_base_path(self, base_path: Union[str, Path]) -> "ConfigurationBuilder":
        if base_path is None:
            raise MissingArgumentError("base_path")
        return self.set_file_access(PhysicalFileAccess(base_path))

    def get_file_access(self) -> FileAccess:
        """File access used by file sources that did not get one explicitly (default: cwd)."""
        file_access = self.properties.get(FILE_ACCESS_PROPERTY)
        if file_access is None:
            file_access = PhysicalFileAccess(Path.cwd())
        return file_access

    def add_json_file(
        self,
        path: str,
        *,
        optional: bool = False,
        reload_on_change: bool = False,
        file_access: Optional[FileAccess] = None,
    ) -> "ConfigurationBuilder":
        return self.add(
            JsonFileSource(path, optional=optional, reload_on_change=reload_on_change, file_access=file_access)
        )

    def add_yaml_file(
        self,
        path: str,
        *,
        optional: bool = False,
        reload_on_change: bool = False,
        file_access: Optional[FileAccess] = None,
    ) -> "ConfigurationBuilder":
        return self.add(
            YamlFileSource(path, optional=optional, reload_on_change=reload_on_change, file_access=file_access)
        )

    def add_dotenv_file(
        self,
        path: str = ".env",
        *,
        optional: bool = True,
        reload_on_change: bool = False,
        file_access: Optional[FileAccess] = None,
    ) -> "ConfigurationBuilder":
        return self.add(
            DotEnvFileSource(path, optional=optional, reload_on_change=reload_on_change, file_access=file_access)
        )

    def add_environment_variables(
        self,
        prefix: str = "",
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigurationBuilder":
        return self.add(EnvironmentVariablesSource(prefix, environ=environ))

    def add_command_line(
        self,
        args: Optional[Sequence[str]],
        switch_mappings: Optional[Mapping[str, str]] = None,
    ) -> "ConfigurationBuilder":
        return self.add(CommandLineSource(args, switch_mappings))

    def add_in_memory_collection(self, data: Optional[Mapping[str, Any]] = None) -> "ConfigurationBuilder":
        return self.add(MemorySource(data))

    def add_user_secrets(
        self,
        secrets_id: Optional[str],
        *,
        optional: bool = True,
        reload_on_change: bool = False,
        store: Optional[UserSecretsStore] = None,
    ) -> "ConfigurationBuilder":
        return add_user_secrets(
            self,
            secrets_id,
            optional=optional,
            reload_on_change=reload_on_change,
            store=store,
        )

    def add_default(
        self,
        args: Optional[Sequence[str]] = None,
        reload_on_change: bool = True,
        *,
        file_access: Optional[FileAccess] = None,
        user_secrets_id: Optional[str] = None,
        environment: Optional[EnvironmentNameResolver] = None,
        user_secrets_store: Optional[UserSecretsStore] = None,
    ) -> "ConfigurationBuilder":
        if file_access is not None:
            return add_default_with_file_access(
                self,
                args,
                file_access,
                reload_on_change,
                user_secrets_id=user_secrets_id,
                environment=environment,
                user_secrets_store=user_secrets_store,
            )
        return add_default(
            self,
            args,
            reload_on_change,
            user_secrets_id=user_secrets_id,
            environment=environment,
            user_secrets_store=user_secrets_store,
        )

    def build(self, *, poll_interval_seconds: float = 1.0, watch: bool = True) -> Configuration:
        """
        Load every source in order and return the composed configuration.

        Sources that asked for reload-on-change get a polling watcher. With watch=False
        the watchers exist but are not started (see Configuration.poll_watchers).
        """
        providers = [source.build(self) for source in self.sources]
        configuration = Configuration(providers)
        configuration.load()
        logger.debug("Configuration built. sources=%s", len(providers))
        configuration.start_watching(poll_interval_seconds=poll_interval_seconds, background=watch)
        return configuration
