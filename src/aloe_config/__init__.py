"""Layered default configuration: appsettings files, user secrets, environment and command line."""

from aloe_config.builder import ConfigurationBuilder
from aloe_config.configuration import Configuration, ConfigurationSection
from aloe_config.defaults import add_default, add_default_with_file_access
from aloe_config.environment import (
    ProcessEnvironmentNameResolver,
    StaticEnvironmentNameResolver,
    is_development,
)
from aloe_config.errors import (
    ConfigurationError,
    ConfigurationFormatError,
    MissingArgumentError,
    UserSecretsNotConfiguredError,
)
from aloe_config.file_access import FileAccess, InMemoryFileAccess, NullFileAccess, PhysicalFileAccess
from aloe_config.user_secrets import DefaultUserSecretsStore, UserSecretsSource

__all__ = [
    "Configuration",
    "ConfigurationBuilder",
    "ConfigurationError",
    "ConfigurationFormatError",
    "ConfigurationSection",
    "DefaultUserSecretsStore",
    "FileAccess",
    "InMemoryFileAccess",
    "MissingArgumentError",
    "NullFileAccess",
    "PhysicalFileAccess",
    "ProcessEnvironmentNameResolver",
    "StaticEnvironmentNameResolver",
    "UserSecretsNotConfiguredError",
    "UserSecretsSource",
    "add_default",
    "add_default_with_file_access",
    "is_development",
]
