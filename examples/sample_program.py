from __future__ import annotations

import logging
import sys
from pathlib import Path

from aloe_config import ConfigurationBuilder
from aloe_config.logging import init_logging
from aloe_config.models import SampleSettings


def main() -> None:
    # 1. Compose the default sources next to this file.
    builder = (
        ConfigurationBuilder()
        .set_base_path(Path(__file__).resolve().parent)
        .add_default(sys.argv[1:], reload_on_change=True, user_secrets_id="aloe-config-sample")
    )

    # 2. Build the configuration.
    with builder.build() as configuration:
        settings = configuration.bind(SampleSettings)
        init_logging(settings.logging)
        logger = logging.getLogger("sample")
        logger.info("Configuration loaded. sources=%s", len(builder.sources))

        # 3. Read values.
        print("=== Application Settings ===")
        print(f"Name:    {configuration.get('Application:Name')}")
        print(f"Version: {configuration.get('Application:Version')}")
        print()

        print("=== ConnectionStrings:DefaultConnection ===")
        print(configuration.get_connection_string("DefaultConnection"))
        print()


if __name__ == "__main__":
    main()
