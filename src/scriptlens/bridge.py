"""
Execution bridge: runs one catalog function in a child shell.

A function can only be called once its script has been sourced, so each run
writes a small wrapper script that sources the file and calls the function
with the user's arguments. The wrapper lives in the temp directory for
exactly one execution and is removed on every way out, including a failed
spawn and an interrupted wait.

    IDLE -> WRAPPER_WRITTEN -> EXECUTING -> CLEANED -> SUCCEEDED | FAILED
"""

import logging
import os
import shlex
import signal
import subprocess
import tempfile
import threading
from contextlib import contextmanager
from enum import Enum
from typing import List, Optional, Sequence

from .consts import SHELL, TEMP_DIR, WRAPPER_PREFIX
from .errors import SpawnError, WrapperIOError
from .models import Function
from .parsing.base import IDENTIFIER

logger = logging.getLogger(__name__)

WRAPPER_SUFFIX = ".sh"

WRAPPER_HEADER = """#
# Temporary ScriptLens file used to run a function from one of your scripts.
# If you see it here you can delete it.
"""


class BridgeState(str, Enum):
    IDLE = "idle"
    WRAPPER_WRITTEN = "wrapper_written"
    EXECUTING = "executing"
    CLEANED = "cleaned"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def render_wrapper(function: Function, args: Sequence[str] = (), shell: str = SHELL) -> str:
    """
    Wrapper script text: source the owning file, then call the function.

    Every argument is quoted on its own so spaces, quotes and metacharacters
    reach the function literally.
    """
    if not IDENTIFIER.match(function.name):
        raise ValueError(f"Refusing to call invalid function name {function.name!r}")
    call = " ".join([function.name] + [shlex.quote(arg) for arg in args])
    return (
        f"#!{shell}\n"
        f"{WRAPPER_HEADER}\n"
        f"source {shlex.quote(function.script.path)}\n"
        f"{call}\n"
    )


class WrapperScript:
    """
    A uniquely named, owner-only script in the temp directory.

    Use as a context manager: the file exists inside the block and is
    removed when the block exits, however it exits.
    """

    def __init__(self, contents: str, temp_dir: str = TEMP_DIR, prefix: str = WRAPPER_PREFIX):
        self.contents = contents
        self.temp_dir = temp_dir
        self.prefix = prefix
        self.path: Optional[str] = None

    @property
    def suffix(self) -> Optional[str]:
        """The random part of the file name."""
        if self.path is None:
            return None
        return os.path.basename(self.path)[len(self.prefix):-len(WRAPPER_SUFFIX)]

    def write(self) -> str:
        try:
            # mkstemp creates the file exclusively, so concurrent runs never collide
            fd, path = tempfile.mkstemp(prefix=self.prefix, suffix=WRAPPER_SUFFIX, dir=self.temp_dir)
        except OSError as e:
            raise WrapperIOError("create a wrapper script in", self.temp_dir, e.strerror or str(e)) from e

        self.path = path
        try:
            with os.fdopen(fd, "w") as f:
                f.write(self.contents)
            os.chmod(path, 0o700)
        except OSError as e:
            self.remove()
            raise WrapperIOError("write wrapper script", path, e.strerror or str(e)) from e

        logger.debug(f"Wrote wrapper {path}")
        return path

    def remove(self) -> bool:
        """Best-effort delete; a failure is logged, never raised."""
        if self.path is None:
            return True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Unable to remove temporary file {self.path}: {e}")
            return False
        logger.debug(f"Removed wrapper {self.path}")
        return True

    def __enter__(self) -> "WrapperScript":
        self.write()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.remove()
        return False


@contextmanager
def _forward_signals(process: subprocess.Popen):
    """Pass SIGTERM/SIGHUP received by this process on to the child."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    forwarded = [s for s in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if s]
    previous = {}

    def forward(signum, frame):
        if process.poll() is None:
            process.send_signal(signum)

    for signum in forwarded:
        previous[signum] = signal.signal(signum, forward)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _exit_code(returncode: int) -> int:
    # Killed by signal N: report it the way a shell would
    if returncode < 0:
        return 128 - returncode
    return returncode


class ExecutionBridge:
    """
    Runs catalog functions through a transient wrapper script.

    The child inherits stdin/stdout/stderr, the environment and (unless told
    otherwise) the caller's working directory, so the function behaves as if
    the user had sourced the script and called it by hand.
    """

    def __init__(self, shell: str = SHELL, temp_dir: str = TEMP_DIR):
        self.shell = shell
        self.temp_dir = temp_dir
        self.state = BridgeState.IDLE
        self.transitions: List[BridgeState] = []
        self.wrapper_path: Optional[str] = None

    def _enter(self, state: BridgeState):
        logger.debug(f"Bridge state: {self.state.value} -> {state.value}")
        self.state = state
        self.transitions.append(state)

    def run(self, function: Function, args: Sequence[str] = (), cwd: Optional[str] = None) -> int:
        """
        Run a function to completion and return its exit code.

        Raises WrapperIOError or SpawnError when the run cannot start; a
        non-zero exit from the function itself is just returned.
        """
        self.state = BridgeState.IDLE
        self.transitions = [BridgeState.IDLE]
        self.wrapper_path = None

        contents = render_wrapper(function, args, self.shell)
        wrapper = WrapperScript(contents, self.temp_dir)
        code: Optional[int] = None
        logger.info(f"Running {function.label} ({function.script.path}) with {len(args)} argument(s)")

        try:
            with wrapper:
                self.wrapper_path = wrapper.path
                self._enter(BridgeState.WRAPPER_WRITTEN)
                code = self._execute(wrapper.path, cwd)
        finally:
            if self.wrapper_path is not None:
                self._enter(BridgeState.CLEANED)
            self._enter(BridgeState.SUCCEEDED if code == 0 else BridgeState.FAILED)

        logger.info(f"{function.label} exited with status {code}")
        return code

    def _execute(self, wrapper_path: str, cwd: Optional[str]) -> int:
        argv = shlex.split(self.shell) + [wrapper_path]
        workdir = cwd or os.getcwd()
        if not os.path.isdir(workdir):
            raise SpawnError("change directory to", workdir, "no such directory")

        try:
            process = subprocess.Popen(argv, cwd=workdir)
        except OSError as e:
            raise SpawnError("start shell", argv[0], e.strerror or str(e)) from e

        self._enter(BridgeState.EXECUTING)
        with _forward_signals(process):
            return self._wait(process)

    @staticmethod
    def _wait(process: subprocess.Popen) -> int:
        interrupted = False
        while True:
            try:
                return _exit_code(process.wait())
            except KeyboardInterrupt:
                if interrupted:
                    logger.warning("Interrupted twice, killing child process")
                    process.kill()
                    process.wait()
                    raise
                interrupted = True
                # A Ctrl-C at the terminal already reached a child in our
                # process group; only a child outside it needs the signal
                if process.poll() is None and not _shares_process_group(process):
                    process.send_signal(signal.SIGINT)


def _shares_process_group(process: subprocess.Popen) -> bool:
    try:
        return os.getpgid(process.pid) == os.getpgrp()
    except OSError:
        return True


def run_function(
    function: Function,
    args: Sequence[str] = (),
    cwd: Optional[str] = None,
    shell: str = SHELL,
    temp_dir: str = TEMP_DIR,
) -> int:
    """Convenience function to run a function with a fresh bridge."""
    return ExecutionBridge(shell=shell, temp_dir=temp_dir).run(function, args, cwd)
