from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Sequence

from aloe_config.errors import ConfigurationFormatError
from aloe_config.sources.base import ConfigurationProvider, ConfigurationSource

if TYPE_CHECKING:
    from aloe_config.builder import ConfigurationBuilder

logger = logging.getLogger(__name__)


def _validate_switch_mappings(switch_mappings: Mapping[str, str]) -> Dict[str, str]:
    validated: Dict[str, str] = {}
    for switch, key in switch_mappings.items():
        if not switch.startswith("-"):
            raise ValueError(f"Switch mapping must start with '-' or '--'. switch={switch}")
        folded = switch.casefold()
        if folded in validated:
            raise ValueError(f"Duplicate switch mapping (switches are case-insensitive). switch={switch}")
        validated[folded] = key
    return validated


def parse_command_line(
    args: Sequence[str],
    switch_mappings: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Parse configuration overrides from command-line tokens.

    Accepted forms: ``--key=value``, ``--key value``, ``/key=value``, ``/key value`` and
    ``key=value``. Single-dash switches are only honoured when they appear in
    switch_mappings. Tokens that match no form, and a trailing switch without a value,
    are skipped.
    """
    mappings = _validate_switch_mappings(switch_mappings or {})
    data: Dict[str, str] = {}
    tokens = list(args)
    index = 0
    while index < len(tokens):
        current = tokens[index]
        index += 1

        key_start = 0
        if current.startswith("--"):
            key_start = 2
        elif current.startswith("-"):
            key_start = 1
        elif current.startswith("/"):
            current = "--" + current[1:]
            key_start = 2

        separator = current.find("=")
        if separator < 0:
            if key_start == 0:
                logger.debug("Ignoring command-line token without a key. token=%s", current)
                continue
            mapped = mappings.get(current.casefold())
            if mapped is not None:
                key = mapped
            elif key_start == 1:
                logger.debug("Ignoring unmapped short switch. token=%s", current)
                continue
            else:
                key = current[key_start:]
            if index >= len(tokens):
                logger.debug("Ignoring trailing switch without a value. token=%s", current)
                continue
            value = tokens[index]
            index += 1
        else:
            segment = current[:separator]
            mapped = mappings.get(segment.casefold())
            if mapped is not None:
                key = mapped
            elif key_start == 1:
                raise ConfigurationFormatError(f"Short switch is not defined in the switch mappings. switch={segment}")
            else:
                key = current[key_start:separator]
            value = current[separator + 1 :]

        if not key:
            continue
        # Later tokens win, including keys differing only in case.
        for existing in [k for k in data if k.casefold() == key.casefold()]:
            del data[existing]
        data[key] = value
    return data


class CommandLineProvider(ConfigurationProvider):
    def __init__(self, args: Sequence[str], switch_mappings: Optional[Mapping[str, str]] = None) -> None:
        super().__init__()
        self._args = tuple(args)
        self._switch_mappings = dict(switch_mappings) if switch_mappings else None

    def load(self) -> None:
        self.set_data(dict(parse_command_line(self._args, self._switch_mappings)))


class CommandLineSource(ConfigurationSource):
    def __init__(
        self,
        args: Optional[Sequence[str]] = None,
        switch_mappings: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.args = tuple(args or ())
        self.switch_mappings = dict(switch_mappings) if switch_mappings else None
        if self.switch_mappings:
            _validate_switch_mappings(self.switch_mappings)

    def build(self, builder: "ConfigurationBuilder") -> CommandLineProvider:
        return CommandLineProvider(self.args, self.switch_mappings)

    def describe(self) -> str:
        return f"CommandLineSource: {len(self.args)} args"
