from __future__ import annotations

import os
from typing import Mapping, Optional, Protocol, Sequence

ENVIRONMENT_VARIABLES: Sequence[str] = ("DOTNET_ENVIRONMENT", "ASPNETCORE_ENVIRONMENT")

DEVELOPMENT = "Development"
STAGING = "Staging"
PRODUCTION = "Production"


class EnvironmentNameResolver(Protocol):
    def __call__(self) -> Optional[str]:
        """Return the effective environment name, or None when no environment is set."""


def normalize_environment_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def is_development(name: Optional[str]) -> bool:
    if name is None:
        return False
    return name.casefold() == DEVELOPMENT.casefold()


class ProcessEnvironmentNameResolver:
    """
    Reads the environment name from process environment variables.

    The first variable that is present wins, even when its value is blank. A blank
    value therefore disables the environment instead of falling through to the next
    variable.
    """

    def __init__(
        self,
        variables: Sequence[str] = ENVIRONMENT_VARIABLES,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._variables = tuple(variables)
        self._environ = environ

    def __call__(self) -> Optional[str]:
        environ = os.environ if self._environ is None else self._environ
        for name in self._variables:
            if name in environ:
                return normalize_environment_name(environ[name])
        return None


class StaticEnvironmentNameResolver:
    def __init__(self, name: Optional[str]) -> None:
        self._name = name

    def __call__(self) -> Optional[str]:
        return normalize_environment_name(self._name)
