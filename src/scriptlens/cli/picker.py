"""
Line-based fuzzy picker built on rich prompts.

Shows the best ranked candidates; the user picks one by number, presses
Enter for the top match, types new text to re-rank, or quits.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from scriptlens.consts import PICKER_LINES
from scriptlens.models import Catalog, Function
from scriptlens.resolver import rank

from .display import print_matches

QUIT = ("q", "quit", "exit")


class FunctionPicker:
    """Interactive selection of one function from a catalog."""

    def __init__(self, console: Console, lines: int = PICKER_LINES, include_private: bool = False):
        self.console = console
        self.lines = max(1, lines)
        self.include_private = include_private

    def pick(self, catalog: Catalog, query: str = "") -> Optional[Function]:
        """Returns the chosen function, or None when the user gives up."""
        while True:
            matches = rank(catalog, query, include_private=self.include_private)
            if not matches:
                self.console.print(f"[yellow]No matching function for '{escape(query)}'.[/yellow]")
                query = self._ask("Search again (empty to quit)", default="")
                if not query or query.lower() in QUIT:
                    return None
                continue

            shown = matches[:self.lines]
            title = f"Matches for '{escape(query)}'" if query else "All functions"
            self.console.print()
            print_matches(self.console, shown, title=f"{title} ({len(matches)})")

            answer = self._ask(
                "[bold]Pick a number[/bold] [dim](Enter for 1, text to refine, q to quit)[/dim]",
                default="1",
            )
            if answer is None or answer.lower() in QUIT:
                return None
            if answer.isdigit():
                index = int(answer)
                if 1 <= index <= len(shown):
                    return shown[index - 1].function
                self.console.print(f"[red]Pick a number between 1 and {len(shown)}.[/red]")
                continue
            query = answer

    def _ask(self, prompt: str, default: str) -> Optional[str]:
        try:
            return Prompt.ask(prompt, default=default, show_default=False, console=self.console).strip()
        except EOFError:
            return None
