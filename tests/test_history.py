"""Tests for writing picked functions to the shell history."""

from pathlib import Path

import pytest

from scriptlens.cli.history import ShellHistory, add_to_history, history_command
from scriptlens.models import Function, ScriptFile


def make_function(path="/scripts/deploy.sh", name="deploy"):
    return Function(name=name, script=ScriptFile(path=path))


def test_history_command_names_script_and_function():
    assert history_command(make_function()) == "scriptlens run deploy.sh deploy"
    assert history_command(make_function("/scripts/my tasks.sh", "go")) == "scriptlens run 'my tasks.sh' go"


@pytest.mark.parametrize("shell, expected", [
    ("/bin/bash", "home/.bash_history"),
    ("/usr/bin/zsh", "home/.zsh_history"),
    ("/usr/local/bin/fish", "home/.local/share/fish/fish_history"),
])
def test_detect_history_file(tmp_path, shell, expected):
    history = ShellHistory.detect({"SHELL": shell, "HOME": str(tmp_path / "home")})

    assert history.path == tmp_path / expected


def test_histfile_overrides_default(tmp_path):
    history = ShellHistory.detect({"SHELL": "/bin/bash", "HOME": str(tmp_path), "HISTFILE": str(tmp_path / "h")})

    assert history.path == tmp_path / "h"


def test_unknown_shell_is_not_detected(tmp_path):
    assert ShellHistory.detect({"SHELL": "/bin/tcsh", "HOME": str(tmp_path)}) is None
    assert ShellHistory.detect({}) is None
    with pytest.raises(ValueError):
        ShellHistory("tcsh", tmp_path / "history")


def test_entry_formats(tmp_path):
    command = "scriptlens run deploy.sh deploy"

    assert ShellHistory("bash", tmp_path / "h").format(command, 1700000000) == f"{command}\n"
    assert ShellHistory("zsh", tmp_path / "h").format(command, 1700000000) == f": 1700000000:0;{command}\n"
    assert ShellHistory("fish", tmp_path / "h").format(command, 1700000000) == (
        f"- cmd: {command}\n  when: 1700000000\n"
    )


def test_commands_are_appended(tmp_path):
    path = tmp_path / "history"
    path.write_text("ls\n")
    history = ShellHistory("bash", path)

    assert history.add_command("scriptlens run a.sh a")
    assert history.add_command("scriptlens run b.sh b")

    assert path.read_text().splitlines() == ["ls", "scriptlens run a.sh a", "scriptlens run b.sh b"]


def test_unwritable_history_is_not_fatal(tmp_path):
    history = ShellHistory("zsh", tmp_path)

    assert history.add_command("scriptlens run a.sh a") is False


def test_add_to_history_uses_detected_shell(tmp_path):
    env = {"SHELL": "/bin/zsh", "HOME": str(tmp_path)}

    assert add_to_history(make_function(), env)
    assert Path(tmp_path / ".zsh_history").read_text().endswith(";scriptlens run deploy.sh deploy\n")
    assert add_to_history(make_function(), {"SHELL": "/bin/sh"}) is False
