"""
Command-line entry point.
"""
import logging

import click
import uvicorn

from .config import settings
from .logger import TRACE, level_for_verbosity, setup_logging


UVICORN_LEVELS = {TRACE: "trace", logging.DEBUG: "debug"}


@click.command(context_settings={"help_option_names": ["--help"]})
@click.version_option(settings.app_version, prog_name="shook")
@click.option("-h", "--host", default=None, help="Host to bind to.")
@click.option("-p", "--port", type=int, default=None, help="Port to listen on.")
@click.option("-c", "--config", "config_file", type=click.Path(dir_okay=False), default=None,
              help="Projects configuration file to load.")
@click.option("-v", "--verbose", count=True, help="Verbose output.")
def main(host, port, config_file, verbose):
    """Git webhook handler that deploys merged changes."""
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if config_file is not None:
        settings.config_file = config_file
    if verbose:
        settings.debug = True

    level = level_for_verbosity(verbose)
    setup_logging(level)

    from .main import app

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=UVICORN_LEVELS.get(level, "info"),
    )


if __name__ == "__main__":
    main()
