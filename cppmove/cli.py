"""Typer-based CLI for cppmove."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .config_manager import load_config, save_config
from .models import MoveSpec
from .orchestrator import MoveOrchestrator, MoveResult
from .parser import TreeSitterParser
from .writer import ChangeWriter

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="cppmove: move C++ classes and functions between source files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="Configuration: defaults for style, include dirs and backups.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"cppmove v{__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log classification details."),
):
    """cppmove: relocate declarations from one header/implementation pair to another."""
    _setup_logging(verbose)


def _split_names(values: Optional[List[str]]) -> List[str]:
    """``--names a,b --names c`` -> ``["a", "b", "c"]``."""
    names: List[str] = []
    for value in values or []:
        names.extend(n.strip() for n in value.split(",") if n.strip())
    return names


def _make_parser(include_dirs: List[str]) -> TreeSitterParser:
    parser = TreeSitterParser(include_dirs=include_dirs)
    if not parser.supports_language("cpp"):
        err_console.print(
            "[red]The C++ grammar is not available.[/red] "
            "Install with: pip install tree-sitter tree-sitter-cpp"
        )
        raise typer.Exit(code=1)
    return parser


def _check_style(style: str) -> str:
    if style.lower() not in config.SUPPORTED_STYLES:
        raise typer.BadParameter(
            f"Unknown style '{style}'. Choose from: {', '.join(config.SUPPORTED_STYLES)}",
            param_hint="--style",
        )
    return style


def _report_diagnostics(result: MoveResult) -> None:
    errors = [d for d in result.diagnostics if d.level == "error"]
    if result.diagnostics:
        err_console.print(
            f"[yellow]{len(result.diagnostics)} diagnostic(s), {len(errors)} error(s)[/yellow]"
        )
    for path in result.conflicts:
        err_console.print(f"[red]Edits dropped for {path} (overlapping replacements)[/red]")


@app.command("move")
def move(
    names: Optional[List[str]] = typer.Option(
        None, "--names", "-n", help="Qualified names to move; repeat or separate with commas."
    ),
    old_header: str = typer.Option("", "--old-header", help="Donor header."),
    old_cc: str = typer.Option("", "--old-cc", help="Donor implementation file."),
    new_header: str = typer.Option("", "--new-header", help="Destination header."),
    new_cc: str = typer.Option("", "--new-cc", help="Destination implementation file."),
    old_depend_on_new: bool = typer.Option(
        False, "--old-depend-on-new", help="Make the donor header include the destination header."
    ),
    new_depend_on_old: bool = typer.Option(
        False, "--new-depend-on-old", help="Make the destination header include the donor header."
    ),
    style: Optional[str] = typer.Option(None, "--style", help="Cleanup style; 'none' disables cleanup."),
    include_dirs: Optional[List[str]] = typer.Option(
        None, "--include-dir", "-I", help="Directory searched for includes."
    ),
    backup: Optional[bool] = typer.Option(None, "--backup/--no-backup", help="Back up touched files."),
):
    """Move declarations and their definitions to new files."""
    if style is not None:
        _check_style(style)
    settings = load_config()
    spec = MoveSpec(
        names=_split_names(names),
        old_header=old_header,
        old_cc=old_cc,
        new_header=new_header,
        new_cc=new_cc,
        old_depend_on_new=old_depend_on_new,
        new_depend_on_old=new_depend_on_old,
        fallback_style=style or settings["fallback_style"],
    )
    if not spec.symbol_names:
        raise typer.BadParameter("No symbols being moved.", param_hint="--names")
    if not (old_header or old_cc):
        raise typer.BadParameter("Give at least one of --old-header / --old-cc.")

    parser = _make_parser(list(include_dirs or []) + settings["include_dirs"])
    result = MoveOrchestrator(spec, parser=parser).execute()
    _report_diagnostics(result)

    if not result.changed:
        typer.echo("Nothing to move.")
        return

    applied = ChangeWriter().apply(result.edits, backup=settings["backup"] if backup is None else backup)
    if not applied.success:
        err_console.print(f"[red]{applied}[/red]")
        raise typer.Exit(code=1)

    if result.whole_file:
        typer.echo("Moved whole files.")
    for path in applied.files_changed:
        typer.echo(f"Updated {path}")
    if applied.backup_id:
        typer.echo(f"Backup: {applied.backup_id}")


@app.command("dump-decls")
def dump_decls(
    old_header: str = typer.Option("", "--old-header", help="Header to inspect."),
    old_cc: str = typer.Option("", "--old-cc", help="Implementation file to inspect."),
    include_dirs: Optional[List[str]] = typer.Option(
        None, "--include-dir", "-I", help="Directory searched for includes."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
):
    """List the functions and classes declared in a header."""
    settings = load_config()
    spec = MoveSpec(old_header=old_header, old_cc=old_cc, dump_decls=True)
    parser = _make_parser(list(include_dirs or []) + settings["include_dirs"])
    result = MoveOrchestrator(spec, parser=parser).execute()

    if as_json:
        payload = [
            {"DeclarationName": name, "DeclarationType": kind}
            for name, kind in result.declarations
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not result.declarations:
        typer.echo("No declarations found.")
        return
    table = Table(title=old_header or old_cc, show_header=True)
    table.add_column("Declaration", style="cyan")
    table.add_column("Type")
    for name, kind in result.declarations:
        table.add_row(name, kind)
    console.print(table)


@app.command("backups")
def backups():
    """List the backups taken before each move."""
    entries = ChangeWriter().list_backups()
    if not entries:
        typer.echo("No backups yet.")
        return
    table = Table(show_header=True)
    table.add_column("Backup ID", style="cyan", no_wrap=True)
    table.add_column("Time")
    table.add_column("Files", justify="right")
    for entry in entries:
        table.add_row(entry["backup_id"], entry["timestamp"], str(len(entry["files"])))
    console.print(table)


@app.command("rollback")
def rollback(backup_id: str = typer.Argument(..., help="ID shown by 'cppmove backups'.")):
    """Restore the files touched by a move."""
    if not ChangeWriter().rollback(backup_id):
        err_console.print(f"[red]Backup '{backup_id}' not found or could not be restored.[/red]")
        raise typer.Exit(code=1)
    typer.echo(f"Restored backup {backup_id}.")


@config_app.command("show")
def config_show():
    """Show the effective settings."""
    settings = load_config()
    table = Table(title="\n[move]", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("config file", str(config.CONFIG_FILE))
    table.add_row("fallback_style", settings["fallback_style"])
    table.add_row("include_dirs", ", ".join(settings["include_dirs"]) or "-")
    table.add_row("backup", str(settings["backup"]).lower())
    console.print(table)


@config_app.command("set")
def config_set(
    style: Optional[str] = typer.Option(None, "--style", help="Default cleanup style."),
    include_dirs: Optional[List[str]] = typer.Option(
        None, "--include-dir", "-I", help="Default include directories."
    ),
    backup: Optional[bool] = typer.Option(None, "--backup/--no-backup", help="Back up by default."),
):
    """Store defaults in the user config file."""
    updates = {}
    if style is not None:
        updates["fallback_style"] = _check_style(style)
    if include_dirs:
        updates["include_dirs"] = [str(Path(d).resolve()) for d in include_dirs]
    if backup is not None:
        updates["backup"] = backup
    if not updates:
        typer.echo("Nothing to set.")
        return
    if not save_config(updates):
        raise typer.Exit(code=1)
    typer.echo(f"Saved {', '.join(sorted(updates))} to {config.CONFIG_FILE}")
