"""Main entry point for the gamemeta application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from gamemeta.core.command_handler import CommandHandler

# --- Domain Layer ---
from gamemeta.domain.exceptions import ConfigurationError
from gamemeta.domain.models.metadata import MetadataSource

# --- Infrastructure Layer ---
from gamemeta.infrastructure.cache.image_cache import ImageCacheResolver
from gamemeta.infrastructure.cli.display import ConsoleDisplay
from gamemeta.infrastructure.config.settings import (
    get_debug_logging, get_http_timeout, get_igdb_client_id, get_igdb_secret,
    get_image_cache_dir, get_log_file, get_log_format, get_metadata_source,
    load_configuration,
)
from gamemeta.infrastructure.download.http_downloader import HttpAssetDownloader
from gamemeta.infrastructure.metadata.factory import create_backend
from gamemeta.infrastructure.monitoring.logger_setup import setup_logging
from gamemeta.infrastructure.resilience.query_client import MetadataQueryClient
from gamemeta.infrastructure.resilience.rate_governor import RateLimitGovernor

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

# Holds the single instances of our services once built
_dependencies: Dict[str, Any] = {}
# Global CLI options captured by the callback before any command runs
_cli_options: Dict[str, Any] = {}


def create_dependencies(source_override: Optional[MetadataSource] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If the selected metadata source cannot be set up.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First, then logging
    load_configuration()
    setup_logging(
        log_level=logging.DEBUG if get_debug_logging() else logging.INFO,
        log_file=get_log_file(),
        log_format_type=get_log_format(),
    )
    logger.debug("Configuration and logging initialized.")

    # 2. Instantiate Infrastructure Adapters & Services
    dependencies['ui'] = ConsoleDisplay()
    source = source_override or get_metadata_source()
    timeout = get_http_timeout()

    dependencies['governor'] = RateLimitGovernor(source=source)
    backend = create_backend(
        source,
        client_id=get_igdb_client_id(),
        secret=get_igdb_secret(),
        timeout=timeout,
    )
    dependencies['query_client'] = MetadataQueryClient(
        governor=dependencies['governor'],
        backend=backend,
        source=source,
    )
    dependencies['downloader'] = HttpAssetDownloader(timeout=timeout)
    dependencies['image_resolver'] = ImageCacheResolver(downloader=dependencies['downloader'])

    # 3. Instantiate Command Handler
    dependencies['command_handler'] = CommandHandler(
        query_client=dependencies['query_client'],
        image_resolver=dependencies['image_resolver'],
        image_root=get_image_cache_dir(),
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


def get_dependencies() -> Dict[str, Any]:
    """Builds the dependencies on first use."""
    if not _dependencies:
        try:
            _dependencies.update(create_dependencies(_cli_options.get('source')))
        except ConfigurationError as e:
            logger.error(f"Application initialization failed: {e}")
            print(f"Error: {e}", file=sys.stderr)
            raise typer.Exit(code=1)
    return _dependencies


def _handler() -> CommandHandler:
    return get_dependencies()['command_handler']


def _exit_with(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


# --- Typer App Definition ---
app = typer.Typer(
    name="gamemeta",
    help="Rate-limit aware game metadata client with a local image cache.",
    add_completion=False,
)


@app.callback()
def main_callback(
    source: Annotated[
        Optional[str],
        typer.Option("--source", "-s", help="Metadata source override ('None', 'IGDB'). Uses configuration if not set."),
    ] = None,
):
    """Global options."""
    if source is None:
        _cli_options.pop('source', None)
    else:
        try:
            _cli_options['source'] = MetadataSource.parse(source)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--source")


@app.command()
def query(
    endpoint: Annotated[str, typer.Argument(help="API endpoint, e.g. 'games' or 'platforms'.")],
    fields: Annotated[str, typer.Option("--fields", "-f", help="Field selection fragment.")] = "fields *",
    where: Annotated[str, typer.Option("--where", "-w", help="Filter fragment, e.g. 'where id = 1942'.")] = "",
):
    """Run a metadata query and print the records as JSON."""
    _exit_with(_handler().handle_query(endpoint, fields, where))


@app.command()
def image(
    image_id: Annotated[str, typer.Argument(help="Upstream image id (hash), e.g. 'co1wyy'.")],
    size: Annotated[str, typer.Option("--size", help="Requested size tag.")] = "cover_big",
    fallback: Annotated[
        Optional[List[str]],
        typer.Option("--fallback", help="Alternate size tried when the requested one is missing. Repeatable."),
    ] = None,
    root: Annotated[
        Optional[Path],
        typer.Option("--root", file_okay=False, dir_okay=True, help="Image cache root. Defaults to configuration."),
    ] = None,
):
    """Resolve an image into the local cache and print its path."""
    _exit_with(_handler().handle_image(image_id, size, fallback or [], root))


@app.command()
def sizes():
    """List the image size tags."""
    _exit_with(_handler().handle_sizes())


@app.command()
def status():
    """Show the active metadata source and rate limit state."""
    _exit_with(_handler().handle_status())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
