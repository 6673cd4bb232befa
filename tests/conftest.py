"""
Shared fixtures: script trees on disk and an isolated ScriptLens home.
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Config, workspace and log files must never touch the real home directory
os.environ["SCRIPTLENS_HOME"] = tempfile.mkdtemp(prefix="scriptlens-home-")
for _var in ("SCRIPTLENS_CONFIG", "SCRIPTLENS_ROOTS", "SCRIPTLENS_SHELL", "SCRIPTLENS_DEFAULT_MODE"):
    os.environ.pop(_var, None)
os.environ["SCRIPTLENS_WRITE_HISTORY"] = "false"

from scriptlens.cli import workspace as workspace_module  # noqa: E402
from scriptlens.cli.workspace import WorkspaceManager  # noqa: E402

BASH = shutil.which("bash")
requires_bash = pytest.mark.skipif(BASH is None, reason="bash is not installed")

DEPLOY_SH = """\
#!/usr/bin/env bash
# Deploys the app
deploy() {
    echo "deploying $1"
}
"""

BUILD_SH = """\
#!/usr/bin/env bash
# Build helpers for the project.

# Compile everything
build() {
    echo "building"
}

# Remove build output
clean() {
    echo "cleaning"
}

_helper() {
    echo "private"
}
"""

RELEASE_SH = """\
#!/usr/bin/env bash
# Release tooling.

# Tag and push a release
release() {
    echo "releasing $1"
}

# Deploy from the release branch
deploy() {
    echo "release deploy"
}
"""


def write_script(directory: Path, name: str, content: str, executable: bool = True) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(content)
    path.chmod(0o755 if executable else 0o644)
    return path


@pytest.fixture(autouse=True)
def workspace(tmp_path_factory, monkeypatch):
    """A fresh workspace file for every test."""
    manager = WorkspaceManager(tmp_path_factory.mktemp("home"))
    monkeypatch.setattr(workspace_module, "_workspace_manager", manager)
    return manager


@pytest.fixture
def script_tree(tmp_path):
    """
    scripts/
        build.sh          build, clean, _helper
        deploy.sh         deploy
        notes.txt         no functions
        bin/tool          binary
        .git/hooks.sh     ignored directory
    """
    root = tmp_path / "scripts"
    write_script(root, "deploy.sh", DEPLOY_SH)
    write_script(root, "build.sh", BUILD_SH)
    write_script(root, "notes.txt", "Just some notes.\n", executable=False)
    (root / "bin").mkdir()
    (root / "bin" / "tool").write_bytes(b"\x7fELF\x02\x01\x01\x00\x00\x00")
    write_script(root / ".git", "hooks.sh", "hook() { :; }\n")
    return root


@pytest.fixture
def colliding_tree(script_tree):
    """script_tree plus release/release.sh, which also defines deploy()."""
    write_script(script_tree / "release", "release.sh", RELEASE_SH)
    return script_tree
