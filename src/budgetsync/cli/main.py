"""Main CLI entry point."""

import logging
from pathlib import Path

import click

from budgetsync.config import ConfigValidationError, load_config
from budgetsync.database.factories import create_sqlite_database
from budgetsync.domain.events import EventDispatcher

# Import and register all commands at module level
from budgetsync.cli.commands import (
    account,
    category,
    import_cmd,
    categorize,
    submit,
    status,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level_name: str = "WARNING") -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _log_event(event) -> None:
    logger.info("Event %s: %s", event.name, event)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BUDGETSYNC_DB_PATH environment variable)",
    envvar="BUDGETSYNC_DB_PATH",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to YAML config file (overrides BUDGETSYNC_CONFIG environment variable)",
    envvar="BUDGETSYNC_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, db_path: str | None, config_path: str | None, verbose: bool):
    """budgetsync - Bank transaction pipeline.

    Import transactions from bank exports, categorize them with keyword
    rules or by hand, and submit them to your budgeting app.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigValidationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    setup_logging(verbose, config.log_level)

    db = create_sqlite_database(
        database_path=db_path or config.database_path,
        lock_shards=config.pipeline.lock_shards,
    )
    db.connect()
    db.initialize_schema()

    dispatcher = EventDispatcher()
    dispatcher.subscribe(_log_event)

    ctx.obj["db"] = db
    ctx.obj["config"] = config
    ctx.obj["events"] = dispatcher


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
import_cmd.register_commands(cli)
categorize.register_commands(cli)
submit.register_commands(cli)
status.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
