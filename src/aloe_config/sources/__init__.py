"""Configuration sources and the providers they build."""

from aloe_config.sources.base import (
    KEY_DELIMITER,
    ConfigurationProvider,
    ConfigurationSource,
    FileConfigurationProvider,
    FileConfigurationSource,
    WatchTarget,
    flatten,
)
from aloe_config.sources.command_line import CommandLineSource, parse_command_line
from aloe_config.sources.dotenv_file import DotEnvFileSource
from aloe_config.sources.env_vars import EnvironmentVariablesSource
from aloe_config.sources.json_file import JsonFileSource
from aloe_config.sources.memory import MemorySource
from aloe_config.sources.yaml_file import YamlFileSource

__all__ = [
    "KEY_DELIMITER",
    "CommandLineSource",
    "ConfigurationProvider",
    "ConfigurationSource",
    "DotEnvFileSource",
    "EnvironmentVariablesSource",
    "FileConfigurationProvider",
    "FileConfigurationSource",
    "JsonFileSource",
    "MemorySource",
    "WatchTarget",
    "YamlFileSource",
    "flatten",
    "parse_command_line",
]
