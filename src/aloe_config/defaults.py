"""
The standard source layering for applications that compose configuration by hand.

Sources are appended in this order, later ones overriding earlier ones:

1. ``appsettings.json`` (optional)
2. ``appsettings.<environment>.json`` (optional, only when an environment is set)
3. user secrets (only in Development, and only when a secrets store is available)
4. environment variables
5. command-line arguments
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from aloe_config.environment import (
    EnvironmentNameResolver,
    ProcessEnvironmentNameResolver,
    is_development,
    normalize_environment_name,
)
from aloe_config.errors import MissingArgumentError
from aloe_config.file_access import FileAccess
from aloe_config.sources.command_line import CommandLineSource
from aloe_config.sources.env_vars import EnvironmentVariablesSource
from aloe_config.sources.json_file import JsonFileSource
from aloe_config.user_secrets import DefaultUserSecretsStore, UserSecretsSource, UserSecretsStore

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder

logger = logging.getLogger(__name__)

APPSETTINGS_FILE = "appsettings.json"


def environment_settings_file(environment_name: str) -> str:
    return f"appsettings.{environment_name}.json"


def add_default(
    builder: "ConfigurationBuilder",
    args: Optional[Sequence[str]],
    reload_on_change: bool = True,
    *,
    user_secrets_id: Optional[str] = None,
    environment: Optional[EnvironmentNameResolver] = None,
    user_secrets_store: Optional[UserSecretsStore] = None,
) -> "ConfigurationBuilder":
    """
    Append the standard sources to builder and return the same builder.

    Files resolve through the builder's file access (see ConfigurationBuilder.set_base_path).
    A None args is treated as no arguments. Nothing is read until the builder is built.
    """
    if builder is None:
        raise MissingArgumentError("builder")
    return _compose(
        builder,
        args,
        None,
        reload_on_change,
        user_secrets_id=user_secrets_id,
        environment=environment,
        user_secrets_store=user_secrets_store,
    )


def add_default_with_file_access(
    builder: "ConfigurationBuilder",
    args: Optional[Sequence[str]],
    file_access: FileAccess,
    reload_on_change: bool = True,
    *,
    user_secrets_id: Optional[str] = None,
    environment: Optional[EnvironmentNameResolver] = None,
    user_secrets_store: Optional[UserSecretsStore] = None,
) -> "ConfigurationBuilder":
    """Same as add_default, but both appsettings files resolve through file_access."""
    if builder is None:
        raise MissingArgumentError("builder")
    if file_access is None:
        raise MissingArgumentError("file_access")
    return _compose(
        builder,
        args,
        file_access,
        reload_on_change,
        user_secrets_id=user_secrets_id,
        environment=environment,
        user_secrets_store=user_secrets_store,
    )


def _compose(
    builder: "ConfigurationBuilder",
    args: Optional[Sequence[str]],
    file_access: Optional[FileAccess],
    reload_on_change: bool,
    *,
    user_secrets_id: Optional[str],
    environment: Optional[EnvironmentNameResolver],
    user_secrets_store: Optional[UserSecretsStore],
) -> "ConfigurationBuilder":
    resolver = environment or ProcessEnvironmentNameResolver()
    environment_name = normalize_environment_name(resolver())

    builder.add(
        JsonFileSource(
            APPSETTINGS_FILE,
            optional=True,
            reload_on_change=reload_on_change,
            file_access=file_access,
        )
    )

    if environment_name is not None:
        builder.add(
            JsonFileSource(
                environment_settings_file(environment_name),
                optional=True,
                reload_on_change=reload_on_change,
                file_access=file_access,
            )
        )

        if is_development(environment_name):
            _try_add_user_secrets(
                builder,
                user_secrets_id,
                reload_on_change=reload_on_change,
                store=user_secrets_store or DefaultUserSecretsStore(),
            )

    builder.add(EnvironmentVariablesSource())
    builder.add(CommandLineSource(args or ()))

    logger.debug(
        "Default configuration sources added. environment=%s reload_on_change=%s sources=%s",
        environment_name,
        reload_on_change,
        len(builder.sources),
    )
    return builder


def _try_add_user_secrets(
    builder: "ConfigurationBuilder",
    user_secrets_id: Optional[str],
    *,
    reload_on_change: bool,
    store: UserSecretsStore,
) -> None:
    try:
        secrets_path = store.locate(user_secrets_id)
    except ValueError as e:
        logger.debug("User secrets identifier rejected; skipping. user_secrets_id=%s error=%s", user_secrets_id, e)
        return
    if secrets_path is None:
        logger.debug("User secrets are not available; skipping. user_secrets_id=%s", user_secrets_id)
        return
    builder.add(
        UserSecretsSource(
            secrets_path,
            secrets_id=user_secrets_id,
            optional=True,
            reload_on_change=reload_on_change,
        )
    )
