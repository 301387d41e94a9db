"""Entry-point for launching the CLI application."""
from __future__ import annotations

import logging

from .config import load_config
from .presentation.cli.app import main as cli_main


def main() -> None:
    """Configure logging and run the CLI presentation layer."""
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli_main(config)


if __name__ == "__main__":
    main()
