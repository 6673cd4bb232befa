"""
Shell history integration.

After a function is picked from the fuzzy menu, the equivalent
'scriptlens run <script> <function>' command is appended to the user's shell
history so it can be recalled with the usual history keys.
"""

import logging
import os
import shlex
import time
from pathlib import Path
from typing import Mapping, Optional

from scriptlens.models import Function

logger = logging.getLogger(__name__)

SHELLS = ("bash", "zsh", "fish")


def history_command(function: Function) -> str:
    """The command line that runs this function directly."""
    return f"scriptlens run {shlex.quote(function.script.name)} {function.name}"


class ShellHistory:
    """Appends commands to one shell's history file."""

    def __init__(self, shell: str, path: Path):
        if shell not in SHELLS:
            raise ValueError(f"Unsupported shell {shell!r}, expected one of {', '.join(SHELLS)}")
        self.shell = shell
        self.path = Path(path)

    @classmethod
    def detect(cls, environ: Optional[Mapping[str, str]] = None) -> Optional["ShellHistory"]:
        """
        Work out the user's shell from $SHELL and where it keeps history.

        Returns None for shells we don't know how to write to.
        """
        env = os.environ if environ is None else environ
        shell = os.path.basename(env.get("SHELL", ""))
        home = Path(env.get("HOME") or Path.home())

        if shell == "bash":
            return cls(shell, Path(env.get("HISTFILE") or home / ".bash_history"))
        if shell == "zsh":
            return cls(shell, Path(env.get("HISTFILE") or home / ".zsh_history"))
        if shell == "fish":
            data_home = Path(env.get("XDG_DATA_HOME") or home / ".local" / "share")
            return cls(shell, data_home / "fish" / "fish_history")
        return None

    def format(self, command: str, timestamp: Optional[int] = None) -> str:
        when = int(time.time()) if timestamp is None else timestamp
        if self.shell == "zsh":
            # EXTENDED_HISTORY format; zsh reads plain lines too
            return f": {when}:0;{command}\n"
        if self.shell == "fish":
            return f"- cmd: {command}\n  when: {when}\n"
        return f"{command}\n"

    def add_command(self, command: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a') as f:
                f.write(self.format(command))
        except OSError as e:
            # Not critical, the function still runs
            logger.warning(f"Unable to write to history file {self.path}: {e}")
            return False

        logger.info(f"Added '{command}' to {self.path}")
        return True


def add_to_history(function: Function, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Record a picked function in the detected shell's history."""
    history = ShellHistory.detect(environ)
    if history is None:
        logger.warning("Unable to write to history file because the shell could not be identified")
        return False
    return history.add_command(history_command(function))
