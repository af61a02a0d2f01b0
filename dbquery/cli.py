"""
dbquery CLI

Command-line interface for asking databases questions in natural language.

Usage:
    dbquery ask "users created in the last 10 days" --db-type sqlite --db-url ./app.db
    dbquery chat --profile dev             # Interactive REPL mode
    dbquery history --output table         # Recent requests
    dbquery set llm-key sk-...             # Save default API key
    dbquery set db postgres://localhost/app
    dbquery show settings                  # Stored defaults (key masked)
    dbquery reset all -y                   # Remove stored state
"""

import asyncio
import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import sqlparse
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape

from dbquery import __version__
from dbquery.config import (
    CHAT_MODE,
    QUERY_MODE,
    QueryConfig,
    get_settings,
    resolve_query_config,
)
from dbquery.connectors.base import ConnectorError
from dbquery.connectors.factory import detect_dialect, normalize_dialect
from dbquery.errors import DBQueryError, UnsupportedDialectError
from dbquery.history import history_rows, read_history_entries
from dbquery.pipeline.orchestrator import QueryPipeline
from dbquery.profiles import load_profiles
from dbquery.render import render
from dbquery.reset import RESET_TARGETS, reset_items, run_reset
from dbquery.settings_store import load_settings, mask_secret, save_settings

err_console = Console(stderr=True)


# Command-line option name -> QueryConfig field name
_OPTION_FIELDS = {
    "db_type": "dialect",
}


def configure_cli_logging(verbose: bool = False) -> None:
    """Silence library logging unless --verbose asks for debug output."""
    if verbose:
        logging.disable(logging.NOTSET)
        get_settings().logging.model_copy(update={"level": "DEBUG"}).configure()
        return

    logging.disable(logging.CRITICAL)
    for logger_name in ("dbquery", "httpx", "openai", "asyncio", "asyncpg"):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)


def _fail(error: Exception) -> None:
    err_console.print(f"[red]Error: {escape(str(error))}[/red]")
    sys.exit(1)


def _print_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ============================================================================
# Query Options
# ============================================================================


def query_options(func):
    """Options shared by `ask` and `chat`."""
    options = [
        click.option("--db-type", help="Database type: sqlite, postgres, mysql."),
        click.option("--db-url", help="Database connection URL or sqlite file path."),
        click.option("--output", help="Output format: table or json."),
        click.option("--output-file", help="Write rendered result to file."),
        click.option("--limit", type=int, help="Default max rows to return."),
        click.option("--tables", help="Comma-separated table names to scope the schema."),
        click.option("--schema-file", help="Extra schema/context file for SQL generation."),
        click.option(
            "--schema-max-tables", type=int, help="Maximum tables in the schema context."
        ),
        click.option("--model", help="LLM model name."),
        click.option("--api-key", help="LLM API key (or `dbquery set llm-key`)."),
        click.option("--llm-base-url", help="OpenAI-compatible base URL."),
        click.option("--temperature", type=float, help="LLM temperature."),
        click.option("--max-tokens", type=int, help="LLM max completion tokens."),
        click.option("--timeout", help="Timeout per query (e.g. 45s, 2m)."),
        click.option("--dry-run", is_flag=True, help="Generate SQL only, do not execute."),
        click.option("--show-sql", is_flag=True, help="Print generated SQL to stderr."),
        click.option("--verbose", is_flag=True, help="Print debug logs."),
        click.option("--allow-write", is_flag=True, help="Allow non-read-only SQL."),
        click.option("--no-auto-limit", is_flag=True, help="Do not append LIMIT when missing."),
        click.option("--profile", help="Load settings from a saved profile."),
        click.option("--save-profile", help="Save the resolved settings under this name."),
        click.option("--profiles-file", help="Path to profiles JSON file."),
        click.option("--settings-file", help="Path to stored settings JSON file."),
        click.option("--history-file", help="Path to history JSONL file."),
        click.option("--no-history", is_flag=True, help="Disable history recording."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def explicit_options(ctx: click.Context, options: dict[str, Any]) -> dict[str, Any]:
    """Keep only options typed on the command line, keyed by config field."""
    explicit = {}
    for name, value in options.items():
        if ctx.get_parameter_source(name) != ParameterSource.COMMANDLINE:
            continue
        explicit[_OPTION_FIELDS.get(name, name)] = value
    return explicit


def _resolve(ctx: click.Context, mode: str, question: str | None, options: dict) -> QueryConfig:
    configure_cli_logging(verbose=bool(options.get("verbose")))

    explicit = explicit_options(ctx, options)
    if question:
        explicit["question"] = question

    try:
        return resolve_query_config(mode, explicit)
    except DBQueryError as e:
        _fail(e)


def _print_sql(config: QueryConfig, sql: str) -> None:
    err_console.print("Generated SQL:", highlight=False)
    err_console.print(sql, markup=False, highlight=False, soft_wrap=True)
    if config.verbose:
        formatted = sqlparse.format(sql, reindent=True, keyword_case="upper")
        err_console.print(f"[dim]{escape(formatted)}[/dim]", soft_wrap=True)


async def _answer(pipeline: QueryPipeline, question: str) -> None:
    result = await pipeline.run(
        question,
        on_sql=functools.partial(_print_sql, pipeline.config),
    )
    if result.rendered is not None:
        click.echo(result.rendered)


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="dbquery")
def cli():
    """dbquery - natural language SQL for sqlite, postgres and mysql."""
    configure_cli_logging()


@cli.command()
@click.argument("question", required=False)
@query_options
@click.pass_context
def ask(ctx: click.Context, question: str | None, **options):
    """Ask a single question and exit."""
    config = _resolve(ctx, QUERY_MODE, question, options)

    if not config.question:
        if options.get("save_profile"):
            err_console.print("Profile saved. No query provided, skipping execution.")
        return

    async def run_query():
        async with QueryPipeline.from_config(config) as pipeline:
            await pipeline.prepare_schema()
            await _answer(pipeline, config.question)

    try:
        asyncio.run(run_query())
    except (DBQueryError, ConnectorError) as e:
        _fail(e)


def _print_chat_help() -> None:
    err_console.print("Commands:")
    err_console.print("  :help        Show help")
    err_console.print("  :exit        Exit chat mode")
    err_console.print("  :quit        Exit chat mode")
    err_console.print("Enter any other text to run it as a natural-language database query.")


@cli.command()
@click.argument("question", required=False)
@query_options
@click.pass_context
def chat(ctx: click.Context, question: str | None, **options):
    """Interactive REPL mode; one connection serves every question."""
    config = _resolve(ctx, CHAT_MODE, question, options)

    async def run_chat():
        async with QueryPipeline.from_config(config) as pipeline:
            await pipeline.prepare_schema()
            err_console.print("Entering interactive mode. Type :help for commands.")

            pending = config.question
            while True:
                if pending:
                    try:
                        await _answer(pipeline, pending)
                    except (DBQueryError, ConnectorError) as e:
                        err_console.print(f"[red]error: {escape(str(e))}[/red]")

                try:
                    line = err_console.input("dbquery> ")
                except (EOFError, KeyboardInterrupt):
                    break

                pending = line.strip()
                if pending in (":exit", ":quit"):
                    break
                if pending == ":help":
                    _print_chat_help()
                    pending = ""

    try:
        asyncio.run(run_chat())
    except (DBQueryError, ConnectorError) as e:
        _fail(e)


@cli.command()
@click.option("--history-file", help="Path to history JSONL file.")
@click.option("--limit", default=20, show_default=True, type=int, help="Entries to show.")
@click.option(
    "--output",
    type=click.Choice(["json", "table"], case_sensitive=False),
    default="json",
    show_default=True,
)
@click.option("--full", is_flag=True, help="Include generated SQL in table output.")
def history(history_file: str | None, limit: int, output: str, full: bool):
    """Show recent requests from the history log."""
    if limit <= 0:
        _fail(click.BadParameter("--limit must be > 0"))

    path = history_file or get_settings().history_file
    try:
        entries = read_history_entries(path)
    except DBQueryError as e:
        _fail(e)

    if not entries:
        click.echo("No history entries found.")
        return

    entries = entries[-limit:]
    if output.lower() == "json":
        _print_json([entry.to_json_dict() for entry in entries])
        return

    columns, rows = history_rows(entries, full=full)
    click.echo(render("table", columns, rows))


@cli.group(name="set")
@click.option("--settings-file", help="Path to stored settings JSON file.")
@click.pass_context
def set_(ctx: click.Context, settings_file: str | None):
    """Save default LLM key or database connection."""
    ctx.obj = Path(settings_file) if settings_file else get_settings().settings_file


@set_.command(name="llm-key")
@click.argument("key")
@click.pass_obj
def set_llm_key(settings_file: Path, key: str):
    """Save the default LLM API key."""
    if not key.strip():
        _fail(click.BadParameter("llm-key cannot be empty"))

    try:
        settings = load_settings(settings_file)
        settings.api_key = key.strip()
        save_settings(settings_file, settings)
    except DBQueryError as e:
        _fail(e)
    click.echo(f"Saved default LLM key to {settings_file}")


def parse_db_target(parts: tuple[str, ...]) -> tuple[str, str]:
    """
    Interpret `set db` arguments as (dialect, location).

    Accepts LOCATION, TYPE LOCATION, or TYPE NAME LOCATION.
    """
    if len(parts) == 1:
        location = parts[0].strip()
        return detect_dialect(location), location

    if len(parts) == 2:
        try:
            dialect = normalize_dialect(parts[0])
        except UnsupportedDialectError as e:
            raise UnsupportedDialectError(
                parts[0],
                f"unable to detect db type from {parts[0]!r}; provide explicit db type: "
                "dbquery set db <sqlite|postgres|mysql> <db-url-or-path>",
            ) from e
        location = parts[1].strip()
    elif len(parts) == 3:
        dialect = normalize_dialect(parts[0])
        location = parts[2].strip()
    else:
        raise click.UsageError(
            "usage: dbquery set db <db-url-or-path> OR dbquery set db <db-type> <db-url-or-path>"
        )

    if not location:
        raise UnsupportedDialectError(dialect, "db url/path cannot be empty")
    return dialect, location


@set_.command(name="db")
@click.argument("parts", nargs=-1, required=True)
@click.pass_obj
def set_db(settings_file: Path, parts: tuple[str, ...]):
    """Save the default database: LOCATION | TYPE LOCATION | TYPE NAME LOCATION."""
    try:
        dialect, location = parse_db_target(parts)
        settings = load_settings(settings_file)
        settings.db_type = dialect
        settings.db_url = location
        save_settings(settings_file, settings)
    except DBQueryError as e:
        _fail(e)
    click.echo(f"Saved default DB settings ({dialect}) to {settings_file}")


@cli.command()
@click.argument(
    "target",
    required=False,
    default="all",
    type=click.Choice(["all", "settings", "profiles"], case_sensitive=False),
)
@click.option("--settings-file", help="Path to stored settings JSON file.")
@click.option("--profiles-file", help="Path to profiles JSON file.")
def show(target: str, settings_file: str | None, profiles_file: str | None):
    """Show stored settings and profiles as JSON (API key masked)."""
    target = target.lower()
    settings = get_settings()
    payload: dict[str, Any] = {"target": target}

    try:
        if target in ("all", "settings"):
            path = settings_file or str(settings.settings_file)
            stored = load_settings(path)
            stored.api_key = mask_secret(stored.api_key)
            payload["settings_file"] = str(path)
            payload["settings"] = stored.to_json_dict()

        if target in ("all", "profiles"):
            path = profiles_file or str(settings.profiles_file)
            profiles = load_profiles(path)
            payload["profiles_file"] = str(path)
            payload["profiles"] = [
                {"name": name, "profile": profiles[name].to_json_dict()}
                for name in sorted(profiles)
            ]
    except DBQueryError as e:
        _fail(e)

    _print_json(payload)


@cli.command()
@click.argument(
    "target",
    required=False,
    default="all",
    type=click.Choice(list(RESET_TARGETS), case_sensitive=False),
)
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@click.option("--dry-run", is_flag=True, help="Preview without deleting files.")
@click.option("--settings-file", help="Path to stored settings JSON file.")
@click.option("--profiles-file", help="Path to profiles JSON file.")
@click.option("--history-file", help="Path to history JSONL file.")
def reset(
    target: str,
    yes: bool,
    dry_run: bool,
    settings_file: str | None,
    profiles_file: str | None,
    history_file: str | None,
):
    """Remove stored settings, profiles and/or history."""
    settings = get_settings()
    try:
        items = reset_items(
            target,
            settings_file or settings.settings_file,
            profiles_file or settings.profiles_file,
            history_file or settings.history_file,
        )
    except DBQueryError as e:
        _fail(e)

    if not yes:
        err_console.print(f"Reset {target.lower()}? This will delete:")
        for item in items:
            err_console.print(f"- {item.describe()}", markup=False, highlight=False)
        try:
            confirmed = click.confirm("Continue?", default=True, err=True)
        except click.Abort:
            confirmed = False
        if not confirmed:
            err_console.print("Reset cancelled.")
            return

    try:
        report = run_reset(items, dry_run=dry_run)
    except DBQueryError as e:
        _fail(e)

    for line in report.lines():
        click.echo(line)


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
