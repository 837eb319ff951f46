from __future__ import annotations

from typing import Optional


class ConfigurationError(Exception):
    """Base class for configuration composition and loading failures."""


class MissingArgumentError(ConfigurationError, ValueError):
    def __init__(self, param_name: str, message: Optional[str] = None) -> None:
        self.param_name = param_name
        super().__init__(message or f"Required argument is missing: {param_name}")


class ConfigurationFormatError(ConfigurationError, ValueError):
    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.path = path
        if path is not None:
            message = f"{message} path={path}"
        super().__init__(message)


class UserSecretsNotConfiguredError(ConfigurationError):
    def __init__(self, secrets_id: Optional[str]) -> None:
        self.secrets_id = secrets_id
        if not secrets_id or not secrets_id.strip():
            message = "User secrets identifier is not configured."
        else:
            message = f"User secrets store could not be located. secrets_id={secrets_id}"
        super().__init__(message)
