# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""A single entrypoint into the volscope commands.

This file is intentionally lightweight and should not include any complex logic.
"""

import click

from volscope._version import __version__
from volscope.monitoring.cli import path, volumes
from volscope.monitoring.click import toml_config_option


@click.group(epilog=f"volscope Version: {__version__}")
@toml_config_option("volscope")
@click.version_option(__version__)
def main() -> None:
    """Point-in-time view of the mounted volumes of a Linux machine."""


main.add_command(volumes.main, name="volumes")
main.add_command(path.main, name="path")

if __name__ == "__main__":
    main()
