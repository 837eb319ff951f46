"""
Per-user secrets store.

Secrets live outside the project tree, in a ``secrets.json`` file under a directory
named after the secrets identifier. The locations match the dotnet user-secrets tool,
so both can share a store:

- ``%APPDATA%/Microsoft/UserSecrets/<id>/secrets.json`` whenever APPDATA is set,
- otherwise ``<root>/.microsoft/usersecrets/<id>/secrets.json``, where root is
  HOME, then the user's home directory, then DOTNET_USER_SECRETS_FALLBACK_DIR.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional, Protocol, Union

from aloe_config.errors import UserSecretsNotConfiguredError
from aloe_config.file_access import PhysicalFileAccess
from aloe_config.sources.json_file import JsonFileSource

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder

logger = logging.getLogger(__name__)

SECRETS_FILE_NAME = "secrets.json"
USER_SECRETS_FALLBACK_VARIABLE = "DOTNET_USER_SECRETS_FALLBACK_DIR"

_INVALID_ID_CHARS = re.compile(r"[\\/:*?\"<>|\x00-\x1f]")


class UserSecretsStore(Protocol):
    def locate(self, secrets_id: Optional[str]) -> Optional[Path]:
        """
        Return the secrets file path for secrets_id, or None when user secrets are not
        available (no identifier configured, or no per-user location on this platform).

        The returned file does not have to exist yet.
        """


def validate_secrets_id(secrets_id: str) -> str:
    candidate = secrets_id.strip()
    if candidate in (".", "..") or _INVALID_ID_CHARS.search(candidate):
        raise ValueError(f"Invalid user secrets identifier: {secrets_id!r}")
    return candidate


class DefaultUserSecretsStore:
    def __init__(
        self,
        *,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Union[str, Path]] = None,
    ) -> None:
        self._environ = environ
        self._home = Path(home) if home is not None else None

    def _user_home(self) -> Optional[Path]:
        if self._home is not None:
            return self._home
        try:
            return Path.home()
        except RuntimeError:
            return None

    def _base_directory(self) -> Optional[Path]:
        environ = os.environ if self._environ is None else self._environ

        appdata = (environ.get("APPDATA") or "").strip()
        if appdata:
            return Path(appdata) / "Microsoft" / "UserSecrets"

        raw_home = (environ.get("HOME") or "").strip()
        root = Path(raw_home) if raw_home else self._user_home()
        if root is None:
            fallback = (environ.get(USER_SECRETS_FALLBACK_VARIABLE) or "").strip()
            if not fallback:
                return None
            root = Path(fallback)
        return root / ".microsoft" / "usersecrets"

    def locate(self, secrets_id: Optional[str]) -> Optional[Path]:
        if secrets_id is None or not secrets_id.strip():
            return None
        secrets_id = validate_secrets_id(secrets_id)
        base = self._base_directory()
        if base is None:
            logger.debug("User secrets base directory could not be determined. secrets_id=%s", secrets_id)
            return None
        return base / secrets_id / SECRETS_FILE_NAME


class UserSecretsSource(JsonFileSource):
    def __init__(
        self,
        secrets_path: Union[str, Path],
        *,
        secrets_id: Optional[str] = None,
        optional: bool = True,
        reload_on_change: bool = False,
    ) -> None:
        secrets_path = Path(secrets_path)
        super().__init__(
            secrets_path.name,
            optional=optional,
            reload_on_change=reload_on_change,
            file_access=PhysicalFileAccess(secrets_path.parent),
        )
        self.secrets_path = secrets_path
        self.secrets_id = secrets_id

    def describe(self) -> str:
        return f"UserSecretsSource: {self.secrets_id or self.secrets_path}"


def add_user_secrets(
    builder: "ConfigurationBuilder",
    secrets_id: Optional[str],
    *,
    optional: bool = True,
    reload_on_change: bool = False,
    store: Optional[UserSecretsStore] = None,
) -> "ConfigurationBuilder":
    """
    Append a user-secrets source for secrets_id.

    Raises UserSecretsNotConfiguredError when the store reports that secrets are not
    available. Callers that treat secrets as best-effort should ask the store first.
    """
    store = store or DefaultUserSecretsStore()
    secrets_path = store.locate(secrets_id)
    if secrets_path is None:
        raise UserSecretsNotConfiguredError(secrets_id)
    builder.add(
        UserSecretsSource(
            secrets_path,
            secrets_id=secrets_id,
            optional=optional,
            reload_on_change=reload_on_change,
        )
    )
    return builder
