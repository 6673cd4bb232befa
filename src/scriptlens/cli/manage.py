"""
ScriptLens command line.

- find:    fuzzy search across every function and run the one you pick
- list:    browse scripts, a script's functions, or one function
- run:     run a function by script and name, forwarding arguments
- again:   run the last function again
- default: choose what a bare 'scriptlens' does (fuzzy or list)
- doctor:  show problems found while scanning

A function picked from the fuzzy menu is also written to the shell history
as the equivalent 'scriptlens run' command. The function's exit status
becomes scriptlens's exit status.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from scriptlens.bridge import ExecutionBridge, render_wrapper
from scriptlens.catalog import CatalogBuilder
from scriptlens.consts import EXECUTABLE_ONLY, PICKER_LINES, SHELL, SHOW_PRIVATE, TEMP_DIR, WRITE_HISTORY
from scriptlens.errors import ConfigurationError, SpawnError, WrapperIOError
from scriptlens.models import Catalog, Function
from scriptlens.resolver import find_function, find_scripts, rank

from .display import (
    print_ambiguous,
    print_bad_function_name,
    print_bad_script_name,
    print_diagnostics,
    print_function,
    print_run_banner,
    print_script,
    print_scripts,
)
from .history import add_to_history
from .logs import configure_logging
from .picker import FunctionPicker
from .workspace import MODES, get_workspace_manager

logger = logging.getLogger(__name__)

# Let functions receive options such as --force untouched
PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}

app = typer.Typer(
    help="🔍 ScriptLens - Find and run the functions in your bash scripts",
    no_args_is_help=False,
    invoke_without_command=True
)
console = Console()
err_console = Console(stderr=True)


@dataclass
class Options:
    """Global options shared by every command."""
    roots: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    show_all: bool = SHOW_PRIVATE
    executable_only: bool = EXECUTABLE_ONLY
    verbose: bool = False


def _options(ctx: typer.Context) -> Options:
    return ctx.obj if isinstance(ctx.obj, Options) else Options()


def _load_catalog(opts: Options) -> Catalog:
    """Build a fresh catalog for this invocation."""
    roots = get_workspace_manager().get_roots(opts.roots)
    builder = CatalogBuilder(ignore_paths=opts.ignore, executable_only=opts.executable_only)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            progress.add_task("[cyan]Scanning scripts...", total=None)
            catalog = builder.build(roots)
    except ConfigurationError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=2)
    return catalog


def _execute(function: Function, args: Sequence[str], dry_run: bool = False):
    """Run a function and exit with its status."""
    if dry_run:
        console.print(render_wrapper(function, args, SHELL), markup=False, highlight=False, soft_wrap=True)
        raise typer.Exit()

    get_workspace_manager().save_last_run(function.script.path, function.name)
    print_run_banner(err_console, function)

    bridge = ExecutionBridge(shell=SHELL, temp_dir=TEMP_DIR)
    try:
        code = bridge.run(function, list(args))
    except WrapperIOError as e:
        logger.error(f"Wrapper error: {e}")
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    except SpawnError as e:
        logger.error(f"Spawn error: {e}")
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=127)
    raise typer.Exit(code=code)


@app.callback()
def main(
    ctx: typer.Context,
    root: Optional[List[str]] = typer.Option(
        None, "--root", "-r", help="Directory to search (repeatable; defaults to config, then the current directory)"
    ),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", "-i", help="Path to leave out of the search (repeatable)"),
    show_all: bool = typer.Option(SHOW_PRIVATE, "--all", "-a", help="Include private functions (names starting with '_')"),
    executable_only: bool = typer.Option(
        EXECUTABLE_ONLY, "--executable-only", "-x", help="Only consider files with an execute bit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also log to stderr"),
):
    """
    Explore and run the functions defined in the bash scripts under a directory.

    Without a command, runs the default mode (see 'scriptlens default').
    """
    configure_logging(verbose)
    ctx.obj = Options(
        roots=list(root or []),
        ignore=list(ignore or []),
        show_all=show_all,
        executable_only=executable_only,
        verbose=verbose,
    )

    if ctx.invoked_subcommand is None:
        mode = get_workspace_manager().get_default_mode()
        logger.info(f"No command given, using default mode '{mode}'")
        if mode == "fuzzy":
            _find(ctx.obj, "", [], PICKER_LINES)
        else:
            _list(ctx.obj, None, None)


def _find(opts: Options, query: str, args: Sequence[str], lines: int, first: bool = False, dry_run: bool = False):
    catalog = _load_catalog(opts)
    if catalog.is_empty():
        print_scripts(console, catalog, opts.show_all)
        raise typer.Exit()

    if first:
        matches = rank(catalog, query, include_private=opts.show_all)
        if not matches:
            console.print(f"[yellow]No matching function for '{escape(query)}'.[/yellow]")
            raise typer.Exit(code=1)
        function = matches[0].function
    else:
        function = FunctionPicker(console, lines=lines, include_private=opts.show_all).pick(catalog, query)
        if function is None:
            raise typer.Exit()
        if WRITE_HISTORY and not dry_run:
            add_to_history(function)

    _execute(function, args, dry_run)


@app.command(context_settings=PASSTHROUGH)
def find(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Fuzzy query over names, descriptions and file names"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments for the chosen function"),
    lines: int = typer.Option(PICKER_LINES, "--lines", "-n", help="Number of candidates to show"),
    first: bool = typer.Option(False, "--first", help="Run the best match without asking"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the wrapper script instead of running it"),
):
    """Fuzzy search for a function and run it."""
    _find(_options(ctx), query or "", list(args or []) + list(ctx.args), lines, first, dry_run)


def _list(opts: Options, script: Optional[str], function: Optional[str]):
    catalog = _load_catalog(opts)
    if script is None:
        print_scripts(console, catalog, opts.show_all)
        return

    scripts = find_scripts(catalog, script)
    if not scripts:
        print_bad_script_name(console, script, catalog, opts.show_all)
        raise typer.Exit(code=1)

    if function is None:
        for found in scripts:
            print_script(console, found, opts.show_all)
        return

    functions = find_function(catalog, function, script)
    if not functions:
        print_bad_function_name(console, scripts[0], function, opts.show_all)
        raise typer.Exit(code=1)
    for found in functions:
        print_function(console, found)


@app.command("list")
def list_(
    ctx: typer.Context,
    script: Optional[str] = typer.Argument(None, help="Script to describe (file name, stem or path)"),
    function: Optional[str] = typer.Argument(None, help="Function to describe"),
):
    """List scripts, the functions in a script, or one function."""
    _list(_options(ctx), script, function)


@app.command(context_settings=PASSTHROUGH)
def run(
    ctx: typer.Context,
    script: str = typer.Argument(..., help="Script holding the function (file name, stem or path)"),
    function: str = typer.Argument(..., help="Function to run"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments for the function"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the wrapper script instead of running it"),
):
    """Run a function from a script, forwarding any arguments."""
    opts = _options(ctx)
    catalog = _load_catalog(opts)

    scripts = find_scripts(catalog, script)
    if not scripts:
        print_bad_script_name(console, script, catalog, opts.show_all)
        raise typer.Exit(code=1)

    candidates = find_function(catalog, function, script)
    if not candidates:
        print_bad_function_name(console, scripts[0], function, opts.show_all)
        raise typer.Exit(code=1)
    if len(candidates) > 1:
        print_ambiguous(console, function, candidates)
        raise typer.Exit(code=1)

    _execute(candidates[0], list(args or []) + list(ctx.args), dry_run)


@app.command(context_settings=PASSTHROUGH)
def again(
    ctx: typer.Context,
    args: Optional[List[str]] = typer.Argument(None, help="Arguments for the function"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the wrapper script instead of running it"),
):
    """Run the last function again. Arguments are not remembered, pass them again."""
    last = get_workspace_manager().get_last_run()
    if not last:
        console.print("[yellow]Nothing has been run yet.[/yellow]")
        raise typer.Exit(code=1)

    opts = _options(ctx)
    if not opts.roots:
        opts.roots = [os.path.dirname(last['script'])]
    catalog = _load_catalog(opts)

    wanted = os.path.realpath(last['script'])
    function = next((
        f for f in catalog.functions
        if f.name == last['function'] and os.path.realpath(f.script.path) == wanted
    ), None)
    if function is None:
        console.print(
            f"[red]Function '{escape(last['function'])}' is no longer defined in "
            f"{escape(last['script'])}.[/red]"
        )
        raise typer.Exit(code=1)

    _execute(function, list(args or []) + list(ctx.args), dry_run)


@app.command()
def default(mode: str = typer.Argument(..., help="fuzzy or list")):
    """Set what a bare 'scriptlens' does."""
    if mode not in MODES:
        console.print("[red]Unknown default![/red] Please specify either [green]fuzzy[/green] or [green]list[/green].")
        raise typer.Exit(code=2)

    get_workspace_manager().set_default_mode(mode)
    console.print(f"Setting default mode to [green]{mode}[/green]")


@app.command()
def doctor(
    ctx: typer.Context,
    skips: bool = typer.Option(False, "--skips", help="Also show skipped binary, empty and non-executable files"),
):
    """Show problems found while scanning: malformed functions, bad names, collisions."""
    catalog = _load_catalog(_options(ctx))
    console.print(
        f"\n[bold]{len(catalog.scripts)}[/bold] scripts, [bold]{len(catalog)}[/bold] functions "
        f"[dim]under {escape(', '.join(catalog.roots))}[/dim]\n"
    )
    print_diagnostics(console, catalog.diagnostics, include_skips=skips)
