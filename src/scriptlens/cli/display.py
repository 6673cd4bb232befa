"""
Rich rendering of scripts, functions and diagnostics.
"""

import os
from typing import List, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scriptlens.errors import Diagnostic, DiagnosticKind
from scriptlens.models import Catalog, Function, ScriptFile
from scriptlens.resolver import Match


def relative(path: str) -> str:
    """Path relative to the working directory when that is shorter."""
    try:
        rel = os.path.relpath(path)
    except ValueError:
        return path
    return rel if len(rel) < len(path) else path


def visible_functions(script: ScriptFile, show_all: bool = False) -> List[Function]:
    return [f for f in script.functions if show_all or not f.is_private]


def print_scripts(console: Console, catalog: Catalog, show_all: bool = False):
    """List every script that offers at least one function."""
    scripts = [s for s in catalog.scripts if visible_functions(s, show_all)]
    if not scripts:
        console.print("[yellow]No scripts with functions found.[/yellow]")
        console.print(f"[dim]Searched: {escape(', '.join(catalog.roots))}[/dim]")
        return

    console.print("[bold]ScriptLens found these scripts.[/bold] "
                  "[dim]Run 'scriptlens list <script>' to see what a script offers.[/dim]\n")
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Script", style="green")
    table.add_column("Functions", justify="right")
    table.add_column("Path", style="dim")
    table.add_column("Description")

    for script in scripts:
        table.add_row(
            escape(script.name),
            str(len(visible_functions(script, show_all))),
            escape(relative(script.directory) or "."),
            escape(script.description or ""),
        )
    console.print(table)


def print_script(console: Console, script: ScriptFile, show_all: bool = False):
    """Header comment and functions of one script."""
    console.print(f"\n[bold green]{escape(script.name)}[/bold green] [dim]{escape(relative(script.path))}[/dim]")
    if script.description:
        console.print(f"  {escape(script.description)}")
    console.print()

    functions = visible_functions(script, show_all)
    if not functions:
        console.print("  [yellow]This script has no functions.[/yellow]")
        console.print("  [dim]Functions look like 'name() {' or 'function name {'; "
                      "comment lines directly above one become its description.[/dim]\n")
        return

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Function", style="bold green", justify="right")
    table.add_column("Description")
    for function in functions:
        table.add_row(escape(function.name), escape(function.description or ""))
    console.print(table)
    console.print()


def print_function(console: Console, function: Function):
    location = f"{relative(function.script.path)}:{function.start_line}-{function.end_line}"
    usage = f"scriptlens run {function.script.name} {function.name} [ARGS...]"
    body = (
        f"{escape(function.description or 'No description.')}\n\n"
        f"[dim]{escape(location)}\n"
        f"Run it with: {escape(usage)}[/dim]"
    )
    console.print(Panel(body, title=f"[bold green]{escape(function.name)}[/bold green]", expand=False))


def print_matches(console: Console, matches: Sequence[Match], title: str = ""):
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2), title=title or None)
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Function", style="bold green")
    table.add_column("Script")
    table.add_column("Description", style="dim")
    for i, match in enumerate(matches, 1):
        function = match.function
        table.add_row(str(i), escape(function.name), escape(relative(function.script.path)), escape(function.description or ""))
    console.print(table)


def print_bad_script_name(console: Console, name: str, catalog: Catalog, show_all: bool = False):
    console.print(f"[red]Couldn't find a script called '{escape(name)}'.[/red]\n")
    print_scripts(console, catalog, show_all)


def print_bad_function_name(console: Console, script: ScriptFile, name: str, show_all: bool = False):
    console.print(f"[red]Function '{escape(name)}' does not exist in {escape(script.name)}.[/red]")
    print_script(console, script, show_all)


def print_ambiguous(console: Console, name: str, candidates: Sequence[Function]):
    console.print(f"[yellow]'{escape(name)}' is defined in more than one script:[/yellow]")
    for function in candidates:
        console.print(f"  [green]{escape(function.script.name)}[/green] [dim]{escape(relative(function.script.path))}[/dim]")
    console.print("[dim]Name the script too: scriptlens run <script> <function>[/dim]")


def print_run_banner(console: Console, function: Function):
    console.print(f"[white on blue] scriptlens: {escape(relative(function.script.path))} -> {escape(function.name)} [/white on blue]")


_SEVERITY = {
    DiagnosticKind.MALFORMED_FUNCTION: "red",
    DiagnosticKind.INVALID_NAME: "red",
    DiagnosticKind.UNREADABLE_FILE: "red",
    DiagnosticKind.DUPLICATE_FUNCTION: "yellow",
    DiagnosticKind.NAME_COLLISION: "yellow",
}


def print_diagnostics(console: Console, diagnostics: Sequence[Diagnostic], include_skips: bool = False):
    shown = [
        d for d in diagnostics
        if include_skips or d.kind in _SEVERITY
    ]
    if not shown:
        console.print("[green]✓ No problems found.[/green]")
        return

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Kind")
    table.add_column("Location", style="dim")
    table.add_column("Message")
    for d in shown:
        style = _SEVERITY.get(d.kind, "dim")
        location = relative(d.path) + (f":{d.line}" if d.line else "")
        table.add_row(f"[{style}]{d.kind.value}[/{style}]", escape(location), escape(d.message))
    console.print(table)
    console.print(f"\n[bold]{len(shown)}[/bold] diagnostic(s)")
