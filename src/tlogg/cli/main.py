"""Main CLI application."""

import logging
import sys
from datetime import datetime, timedelta
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.table import Table

from tlogg import __version__
from tlogg.cli.config_commands import config
from tlogg.core.config import ConfigManager
from tlogg.core.database import Database
from tlogg.core.errors import ConfigError, TloggError
from tlogg.core.paths import get_database_path
from tlogg.core.repository import LogRepository
from tlogg.core.schema import SCHEMA_VERSION, SchemaStore
from tlogg.export_import import FORMATTERS

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_CODES_HELP = """\b
Exit codes:
  0  success
  1  configuration error
  2  usage error
  3  validation error (empty name, non-positive duration)
  4  project or entry not found
  5  conflict (duplicate project, project still in use)
  6  schema migration error
  7  storage error
"""


def setup_logging(verbose: bool, level_name: str = "WARNING") -> None:
    """Send log records to standard error.

    Args:
        verbose: Log everything down to DEBUG
        level_name: Level used when not verbose
    """
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_tlogg", False):
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._tlogg = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)


def handle_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Report tlogg errors on stderr and exit with their exit code."""

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except TloggError as e:
            logger.debug("Command failed", exc_info=True)
            error_console.print(f"[red]Error:[/red] {e}")
            sys.exit(e.exit_code)

    return wrapper


def get_repository(ctx: click.Context) -> LogRepository:
    """Open the dataset, migrate it and return a repository.

    The database is registered with the root context so it is closed when
    the command finishes, whether it succeeds or fails.
    """
    root = ctx.find_root()
    if "repository" in root.obj:
        return root.obj["repository"]

    config_mgr: ConfigManager = root.obj["config"]
    database = root.with_resource(
        Database(
            root.obj["db_path"],
            busy_timeout=config_mgr.get("storage.busy_timeout", 1.0),
            lock_retry_delay=config_mgr.get("storage.lock_retry_delay", 0.25),
        )
    )

    store = SchemaStore(database)
    version = store.current_version()
    logger.debug("Database schema version: %d", version)
    store.migrate(SCHEMA_VERSION)

    root.obj["database"] = database
    root.obj["repository"] = LogRepository(database)
    return root.obj["repository"]


def parse_date(value: str, date_format: str = "%Y-%m-%d") -> datetime:
    """Parse a --from style date into midnight of that day.

    Accepts 'today', 'yesterday' or a date in date_format.

    Raises:
        click.BadParameter: If the value cannot be parsed
    """
    today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    if value.lower() == "today":
        return today
    if value.lower() == "yesterday":
        return today - timedelta(days=1)
    try:
        parsed = datetime.strptime(value, date_format)
    except ValueError:
        raise click.BadParameter(
            f"Invalid date '{value}'. Use {date_format}, 'today' or 'yesterday'"
        )
    return parsed.replace(hour=0, minute=0, second=0, microsecond=0)


@click.group(epilog=EXIT_CODES_HELP)
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Print debug information to stderr")
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("--config", "config_path", help="Custom config file", type=click.Path())
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    data_dir: Optional[str],
    config_path: Optional[str],
) -> None:
    """tlogg - Log hours spent on projects.

    Record time against named projects and export it as Markdown or CSV.
    """
    ctx.ensure_object(dict)

    try:
        config_mgr = ConfigManager(Path(config_path) if config_path else None)
    except ConfigError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e}")
        config_mgr = ConfigManager(Path(config_path) if config_path else None)

    setup_logging(verbose, config_mgr.get("advanced.log_level", "WARNING"))

    data_dir = data_dir or config_mgr.get("general.data_dir")
    db_path = get_database_path(Path(data_dir) if data_dir else None)
    logger.debug("Using database %s", db_path)

    ctx.obj["config"] = config_mgr
    ctx.obj["verbose"] = verbose
    ctx.obj["db_path"] = db_path


@cli.command()
@click.option("-d", "--duration", required=True, type=float, help="Number of hours spent")
@click.option(
    "-m",
    "--message",
    required=True,
    help="Description of the work. Preferably less than 70 characters.",
)
@click.option(
    "-p",
    "--project",
    help="Project to log the hours on. Defaults to the project of the last entry.",
)
@click.pass_context
@handle_errors
def add(ctx: click.Context, duration: float, message: str, project: Optional[str]) -> None:
    """Add a new time log entry to an existing project.

    Example:
        tlogg add -d 2.5 -m "Fix login bug" -p work
        tlogg add -d 1 -m "Code review"
    """
    repository = get_repository(ctx)
    entry = repository.add_entry(duration, message, project)

    console.print(f"[green]✓[/green] Logged {entry.duration}h on {entry.project_name}")
    console.print(f"  Entry ID: {entry.id}")
    if len(message) > 70:
        error_console.print(
            "[yellow]Warning:[/yellow] Message is longer than 70 characters"
        )


@cli.command()
@click.argument("entry_id", metavar="ID", type=int)
@click.pass_context
@handle_errors
def rm(ctx: click.Context, entry_id: int) -> None:
    """Remove a time log entry by its ID.

    Example:
        tlogg rm 12
    """
    repository = get_repository(ctx)
    repository.remove_entry(entry_id)
    console.print(f"[green]✓[/green] Removed entry {entry_id}")


@cli.command("add-project")
@click.option("-n", "--name", required=True, help="Name of the new project")
@click.option("-D", "--description", default="", help="Description of the project")
@click.pass_context
@handle_errors
def add_project(ctx: click.Context, name: str, description: str) -> None:
    """Add a new project to log hours on.

    Example:
        tlogg add-project -n work -D "Day job"
    """
    repository = get_repository(ctx)
    project = repository.add_project(name, description)
    console.print(f"[green]✓[/green] Added project: {project.name}")


@cli.command("rm-project")
@click.argument("name")
@click.pass_context
@handle_errors
def rm_project(ctx: click.Context, name: str) -> None:
    """Remove a project by name.

    Projects that still have log entries cannot be removed.

    Example:
        tlogg rm-project work
    """
    repository = get_repository(ctx)
    repository.remove_project(name)
    console.print(f"[green]✓[/green] Removed project: {name}")


@cli.command()
@click.pass_context
@handle_errors
def projects(ctx: click.Context) -> None:
    """List all projects.

    Example:
        tlogg projects
    """
    repository = get_repository(ctx)
    project_list = repository.list_projects()

    if not project_list:
        console.print("[yellow]No projects found[/yellow]")
        console.print('\nAdd one with: [cyan]tlogg add-project -n NAME -D "Description"[/cyan]')
        return

    last = repository.last_project()

    table = Table(title=f"Projects ({len(project_list)})")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Created", style="cyan")

    for project in project_list:
        marker = " [green]●[/green]" if last is not None and last.id == project.id else ""
        table.add_row(
            f"{project.name}{marker}",
            project.description or "-",
            project.created_at.strftime("%Y-%m-%d"),
        )

    console.print(table)


@cli.command("print")
@click.argument("format_name", metavar="FORMAT", type=click.Choice(sorted(FORMATTERS)))
@click.option(
    "-f",
    "--from",
    "from_date",
    required=True,
    help="First day to include (YYYY-MM-DD, 'today' or 'yesterday')",
)
@click.option("-p", "--project", help="Only entries of this project")
@click.option("-o", "--output", type=click.Path(), help="Write to file instead of stdout")
@click.pass_context
@handle_errors
def print_(
    ctx: click.Context,
    format_name: str,
    from_date: str,
    project: Optional[str],
    output: Optional[str],
) -> None:
    """Export the logs as markdown or csv.

    Example:
        tlogg print --from 2026-10-01 markdown
        tlogg print --from today csv -o today.csv
    """
    config_mgr: ConfigManager = ctx.find_root().obj["config"]
    since = parse_date(from_date, config_mgr.get("general.date_format", "%Y-%m-%d"))

    repository = get_repository(ctx)
    entries = repository.list_entries(since=since, project_name=project)
    logger.debug("Exporting %d entries as %s", len(entries), format_name)

    formatter = FORMATTERS[format_name]()
    options = {
        "since": since,
        "hours_precision": config_mgr.get("display.hours_precision", 2),
    }

    if output:
        path = formatter.export(entries, Path(output), **options)
        console.print(f"[green]✓[/green] Exported {len(entries)} entries to {path}")
    else:
        click.echo(formatter.render(entries, **options), nl=False)


@cli.command()
@click.pass_context
@handle_errors
def info(ctx: click.Context) -> None:
    """Show the database location and schema version.

    Example:
        tlogg info
    """
    root = ctx.find_root()
    get_repository(ctx)
    store = SchemaStore(root.obj["database"])

    console.print(f"Database: {root.obj['db_path']}")
    console.print(f"Schema version: {store.current_version()} (supported: {SCHEMA_VERSION})")
    console.print(f"Config file: {root.obj['config'].config_path}")


cli.add_command(config)


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
