"""Tests for running a function through a transient wrapper script."""

import os
import signal
import stat
import subprocess
import sys
import time
from pathlib import Path

import pytest

from scriptlens.bridge import BridgeState, ExecutionBridge, WrapperScript, render_wrapper, run_function
from scriptlens.catalog import build_catalog
from scriptlens.errors import SpawnError, WrapperIOError
from scriptlens.models import Function, ScriptFile

from conftest import BASH, DEPLOY_SH, requires_bash, write_script


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "tmp"
    path.mkdir()
    return str(path)


def wrappers(temp_dir):
    return [name for name in os.listdir(temp_dir) if name.startswith("scriptlens_")]


def load(tmp_path, content, name="tasks.sh"):
    write_script(tmp_path / "scripts", name, content)
    return build_catalog([str(tmp_path / "scripts")])


def get(catalog, name):
    return next(f for f in catalog.functions if f.name == name)


def test_wrapper_sources_script_and_quotes_each_argument():
    function = Function(name="deploy", script=ScriptFile(path="/opt/my scripts/deploy.sh"))

    text = render_wrapper(function, ["plain", "two words", "$HOME", "a;b"], shell="/bin/bash")
    lines = text.splitlines()

    assert lines[0] == "#!/bin/bash"
    assert "source '/opt/my scripts/deploy.sh'" in lines
    assert lines[-1] == "deploy plain 'two words' '$HOME' 'a;b'"


def test_wrapper_refuses_invalid_names():
    function = Function(name="rm -rf", script=ScriptFile(path="/tmp/x.sh"))

    with pytest.raises(ValueError):
        render_wrapper(function)


def test_wrapper_file_lifecycle(temp_dir):
    wrapper = WrapperScript("echo hi\n", temp_dir)

    with wrapper:
        assert os.path.exists(wrapper.path)
        assert stat.S_IMODE(os.stat(wrapper.path).st_mode) == 0o700
        assert os.path.basename(wrapper.path) == f"scriptlens_{wrapper.suffix}.sh"
    assert not os.path.exists(wrapper.path)
    assert wrapper.remove()


@requires_bash
def test_deploy_end_to_end(tmp_path, temp_dir, capfd):
    catalog = load(tmp_path, DEPLOY_SH, "deploy.sh")

    code = run_function(get(catalog, "deploy"), ["staging"], shell=BASH, temp_dir=temp_dir)

    assert code == 0
    assert "deploying staging" in capfd.readouterr().out
    assert wrappers(temp_dir) == []


@requires_bash
def test_exit_code_is_returned_and_wrapper_removed(tmp_path, temp_dir):
    catalog = load(tmp_path, "fail() {\n    exit 3\n}\n")
    bridge = ExecutionBridge(shell=BASH, temp_dir=temp_dir)

    assert bridge.run(get(catalog, "fail")) == 3
    assert wrappers(temp_dir) == []
    assert bridge.state is BridgeState.FAILED
    assert bridge.transitions == [
        BridgeState.IDLE,
        BridgeState.WRAPPER_WRITTEN,
        BridgeState.EXECUTING,
        BridgeState.CLEANED,
        BridgeState.FAILED,
    ]


@requires_bash
def test_success_state(tmp_path, temp_dir):
    catalog = load(tmp_path, "ok() { :; }\n")
    bridge = ExecutionBridge(shell=BASH, temp_dir=temp_dir)

    assert bridge.run(get(catalog, "ok")) == 0
    assert bridge.state is BridgeState.SUCCEEDED
    assert bridge.transitions[-2:] == [BridgeState.CLEANED, BridgeState.SUCCEEDED]


@requires_bash
def test_arguments_arrive_literally(tmp_path, temp_dir, capfd):
    catalog = load(tmp_path, "show() { printf '%s\\n' \"$@\"; }\n")
    args = ["two words", "$HOME", "a;b", "it's", "*"]

    assert run_function(get(catalog, "show"), args, shell=BASH, temp_dir=temp_dir) == 0
    assert capfd.readouterr().out.splitlines() == args


@requires_bash
def test_runs_in_requested_directory(tmp_path, temp_dir, capfd):
    catalog = load(tmp_path, "here() { pwd -P; }\n")
    workdir = tmp_path / "work"
    workdir.mkdir()

    assert run_function(get(catalog, "here"), cwd=str(workdir), shell=BASH, temp_dir=temp_dir) == 0
    assert capfd.readouterr().out.strip() == os.path.realpath(workdir)


@requires_bash
def test_false_guard_at_end_of_script_does_not_block_the_call(tmp_path, temp_dir, capfd):
    script = 'greet() { echo hello; }\n[[ "${BASH_SOURCE[0]}" == "$0" ]] && greet\n'
    catalog = load(tmp_path, script)

    assert run_function(get(catalog, "greet"), shell=BASH, temp_dir=temp_dir) == 0
    assert capfd.readouterr().out == "hello\n"


@requires_bash
def test_killed_by_signal_reports_shell_convention(tmp_path, temp_dir):
    catalog = load(tmp_path, "die() { kill -TERM $$; }\n")

    assert run_function(get(catalog, "die"), shell=BASH, temp_dir=temp_dir) == 143
    assert wrappers(temp_dir) == []


def test_missing_interpreter_raises_and_removes_wrapper(tmp_path, temp_dir):
    catalog = load(tmp_path, DEPLOY_SH, "deploy.sh")
    bridge = ExecutionBridge(shell="/nonexistent/bash", temp_dir=temp_dir)

    with pytest.raises(SpawnError) as excinfo:
        bridge.run(get(catalog, "deploy"), ["staging"])

    assert excinfo.value.path == "/nonexistent/bash"
    assert wrappers(temp_dir) == []
    assert bridge.wrapper_path is not None
    assert bridge.state is BridgeState.FAILED
    assert BridgeState.CLEANED in bridge.transitions
    assert BridgeState.EXECUTING not in bridge.transitions


def test_missing_working_directory_raises(tmp_path, temp_dir):
    catalog = load(tmp_path, DEPLOY_SH, "deploy.sh")

    with pytest.raises(SpawnError, match="no such directory"):
        run_function(get(catalog, "deploy"), cwd=str(tmp_path / "gone"), temp_dir=temp_dir)
    assert wrappers(temp_dir) == []


def test_unwritable_temp_dir_raises_before_spawning(tmp_path):
    catalog = load(tmp_path, DEPLOY_SH, "deploy.sh")
    bridge = ExecutionBridge(temp_dir=str(tmp_path / "missing"))

    with pytest.raises(WrapperIOError):
        bridge.run(get(catalog, "deploy"))

    assert bridge.wrapper_path is None
    assert bridge.transitions == [BridgeState.IDLE, BridgeState.FAILED]


# Ctrl-C at a terminal signals the whole foreground process group, so these
# tests run the bridge in its own session and signal that group.

SRC = str(Path(__file__).parent.parent / "src")

RUNNER = """\
import sys
from scriptlens.bridge import run_function
from scriptlens.catalog import build_catalog

scripts, work, temp_dir, shell = sys.argv[1:]
function = next(f for f in build_catalog([scripts]).functions if f.name == "slow")
sys.exit(run_function(function, cwd=work, shell=shell, temp_dir=temp_dir))
"""

TRAPPED_SH = """\
slow() {
    trap 'echo hit >> hits' INT
    echo $$ > pid
    touch started
    for i in $(seq 30); do sleep 0.1; done
    touch finished
}
"""


def wait_for(path, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not path.exists():
        assert time.monotonic() < deadline, f"{path.name} never appeared"
        time.sleep(0.05)


@pytest.fixture
def session(tmp_path, temp_dir):
    """Start the slow function through the bridge in a new session."""
    started = []

    def start():
        write_script(tmp_path / "scripts", "tasks.sh", TRAPPED_SH)
        work = tmp_path / "work"
        work.mkdir()
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(p for p in (SRC, os.environ.get("PYTHONPATH")) if p)
        process = subprocess.Popen(
            [sys.executable, "-c", RUNNER, str(tmp_path / "scripts"), str(work), temp_dir, BASH],
            env=env,
            start_new_session=True,
        )
        started.append(process)
        wait_for(work / "started")
        return process, work

    yield start

    for process in started:
        if process.poll() is None:
            os.killpg(process.pid, signal.SIGKILL)
            process.wait()


@requires_bash
def test_interrupt_reaches_the_function_once(session, temp_dir):
    process, work = session()

    os.killpg(process.pid, signal.SIGINT)

    assert process.wait(timeout=30) == 0
    assert (work / "hits").read_text().splitlines() == ["hit"]
    assert (work / "finished").exists()
    assert wrappers(temp_dir) == []


@requires_bash
def test_second_interrupt_kills_the_function(session, temp_dir):
    process, work = session()
    pid = int((work / "pid").read_text())

    os.killpg(process.pid, signal.SIGINT)
    wait_for(work / "hits")
    time.sleep(0.2)
    os.killpg(process.pid, signal.SIGINT)

    assert process.wait(timeout=30) != 0
    assert not (work / "finished").exists()
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
    assert wrappers(temp_dir) == []
