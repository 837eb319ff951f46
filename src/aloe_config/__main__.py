from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from aloe_config.builder import ConfigurationBuilder
from aloe_config.configuration import Configuration
from aloe_config.errors import ConfigurationError
from aloe_config.logging import init_logging
from aloe_config.models import DefaultSourcesRequest, SampleSettings

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aloe-config",
        allow_abbrev=False,
        description=(
            "Compose configuration from appsettings.json, appsettings.<env>.json, user secrets, "
            "environment variables and command-line overrides. Unrecognized --Key=value tokens "
            "are passed through as command-line overrides."
        ),
    )
    parser.add_argument(
        "--base-path",
        default=None,
        help="Directory holding appsettings*.json (default: current directory)",
    )
    parser.add_argument(
        "--user-secrets-id",
        default=None,
        help="User secrets identifier, used when the environment is Development",
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Register file sources without reload-on-change",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override Logging:Level from the composed configuration",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: show
    show_parser = subparsers.add_parser("show", help="Print the effective configuration")
    show_parser.add_argument(
        "--format",
        choices=("text", "json", "debug"),
        default="text",
        help="text: key=value lines; json: nested document; debug: key=value with the providing source",
    )

    # Command: get
    get_parser = subparsers.add_parser("get", help="Print a single configuration value")
    get_parser.add_argument("key", help="Key path, e.g. Application:Name")

    # Command: sources
    subparsers.add_parser("sources", help="List the registered sources in override order")

    # Command: sample
    subparsers.add_parser("sample", help="Print application settings and the DefaultConnection string")

    return parser


def _compose(request: DefaultSourcesRequest) -> Tuple[ConfigurationBuilder, Configuration]:
    builder = ConfigurationBuilder()
    if request.base_path:
        builder.set_base_path(request.base_path)
    builder.add_default(
        request.args,
        request.reload_on_change,
        user_secrets_id=request.user_secrets_id,
    )
    # One-shot process: watchers are registered but never started.
    configuration = builder.build(watch=False)
    return builder, configuration


def _init_logging_from(configuration: Configuration, level_override: Optional[str]) -> SampleSettings:
    settings = configuration.bind(SampleSettings)
    logging_settings = settings.logging
    if level_override:
        logging_settings = logging_settings.model_copy(update={"level": level_override})
    init_logging(logging_settings)
    return settings


def _show(configuration: Configuration, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(configuration.as_dict(), indent=2, sort_keys=True))
    elif output_format == "debug":
        print(configuration.debug_view())
    else:
        for key, value in configuration:
            print(f"{key}={'' if value is None else value}")


def _sample(settings: SampleSettings) -> None:
    print("=== Application Settings ===")
    print(f"Name:    {settings.application.name}")
    print(f"Version: {settings.application.version}")
    print()
    print("=== ConnectionStrings:DefaultConnection ===")
    print(settings.connection_strings.get("DefaultConnection"))
    print()


def run(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args, overrides = parser.parse_known_args(argv)

    request = DefaultSourcesRequest(
        args=tuple(overrides),
        base_path=args.base_path,
        user_secrets_id=args.user_secrets_id,
        reload_on_change=not args.no_reload,
    )
    try:
        builder, configuration = _compose(request)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        settings = _init_logging_from(configuration, args.log_level)
    except (ValidationError, ValueError) as e:
        configuration.close()
        print(f"error: {e}", file=sys.stderr)
        return 1
    logger.debug("Configuration composed. sources=%s overrides=%s", len(builder.sources), len(overrides))

    if args.command == "show":
        _show(configuration, args.format)
    elif args.command == "get":
        if args.key not in configuration:
            print(f"error: key not found: {args.key}", file=sys.stderr)
            return 1
        value = configuration[args.key]
        print("" if value is None else value)
    elif args.command == "sources":
        lines: List[str] = [f"{index}. {source.describe()}" for index, source in enumerate(builder.sources, start=1)]
        print("\n".join(lines))
    elif args.command == "sample":
        _sample(settings)
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
