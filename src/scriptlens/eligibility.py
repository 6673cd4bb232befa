"""
Decides which filesystem entries are parseable scripts.

Binary detection sniffs file content rather than trusting extensions, so
compiled tools sitting next to scripts are skipped.
"""

import os
import stat
from dataclasses import dataclass
from typing import Iterable, Optional

from .consts import BINARY_SNIFF_BYTES, IGNORED_DIRS
from .errors import DiagnosticKind

_TEXT_BOMS = (
    b"\xef\xbb\xbf",          # UTF-8
    b"\xff\xfe\x00\x00",      # UTF-32 LE
    b"\x00\x00\xfe\xff",      # UTF-32 BE
    b"\xff\xfe",              # UTF-16 LE
    b"\xfe\xff",              # UTF-16 BE
)


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: Optional[str] = None
    kind: Optional[DiagnosticKind] = None

    def __bool__(self) -> bool:
        return self.eligible


ELIGIBLE = Eligibility(True)


def is_binary(chunk: bytes) -> bool:
    """Content heuristic: a BOM means text, otherwise any NUL byte means binary."""
    if chunk.startswith(_TEXT_BOMS):
        return False
    return b"\x00" in chunk


def check_path(
    path: str,
    executable_only: bool = False,
    sniff_bytes: int = BINARY_SNIFF_BYTES,
) -> Eligibility:
    """
    Check whether a path is a script worth parsing.

    Never raises: anything unreadable comes back as ineligible with a reason.
    """
    try:
        st = os.stat(path)
    except OSError as e:
        return Eligibility(False, f"cannot stat: {e.strerror or e}", DiagnosticKind.UNREADABLE_FILE)

    if stat.S_ISDIR(st.st_mode):
        return Eligibility(False, "is a directory")
    if not stat.S_ISREG(st.st_mode):
        return Eligibility(False, "not a regular file")
    if st.st_size == 0:
        return Eligibility(False, "empty file", DiagnosticKind.EMPTY_FILE)
    if executable_only and not st.st_mode & 0o111:
        return Eligibility(False, "not executable", DiagnosticKind.NOT_EXECUTABLE)

    try:
        with open(path, "rb") as f:
            chunk = f.read(sniff_bytes)
    except OSError as e:
        return Eligibility(False, f"cannot read: {e.strerror or e}", DiagnosticKind.UNREADABLE_FILE)

    if is_binary(chunk):
        return Eligibility(False, "binary content", DiagnosticKind.BINARY_FILE)
    return ELIGIBLE


def is_ignored_dir(name: str, ignored: Iterable[str] = IGNORED_DIRS) -> bool:
    return name in set(ignored)
