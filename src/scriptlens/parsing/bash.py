"""
Bash function extractor.

Scanning is an explicit state machine rather than a pile of regexes:

    NORMAL      ordinary code; quotes, comments and braces are tracked
    IN_COMMENT  accumulating a run of '#' lines that may document a function
    IN_HEREDOC  inside a here-document body, which is opaque until its
                terminator line

Braces are only structural in NORMAL code outside quotes and comments, so a
stray '}' in a here-doc, a string or a comment never ends a function early.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import Diagnostic, DiagnosticKind
from .base import BaseExtractor, FunctionDef, ParsedScript

# A name is captured loosely so that bad names can be reported, not skipped
_NAME = r"""([^\s(){}<>;&|$"'`=#\\]+)"""

PATTERNS = {
    'keyword': re.compile(r"^\s*function\s+" + _NAME + r"\s*(?:\(\s*\))?\s*(.*)$"),
    'posix': re.compile(r"^\s*" + _NAME + r"\s*\(\s*\)\s*(.*)$"),
}

_HEREDOC_WORD = re.compile(r"""(['"])(.*?)\1|\\?([^\s;&|<>()'"]+)""")

# Characters after which '#' starts a comment
_WORD_BREAKS = " \t;&|()"


class ScanState(str, Enum):
    NORMAL = "normal"
    IN_COMMENT = "in_comment"
    IN_HEREDOC = "in_heredoc"


class LineScanner:
    """
    Feeds lines through the quote/here-doc/brace tracker.

    Open strings and command substitutions are kept on a stack, so quotes
    inside "$(...)" open a new level instead of closing the outer string.
    With track_depth set, feed() returns the column of the brace that brings
    the depth back to zero.
    """

    def __init__(self, track_depth: bool = True):
        self.track_depth = track_depth
        self.depth = 0
        self.stack: List[str] = []
        self.arith = 0
        self.heredoc: Optional[Tuple[str, bool]] = None
        self.pending: List[Tuple[str, bool]] = []

    @property
    def state(self) -> ScanState:
        return ScanState.IN_HEREDOC if self.heredoc else ScanState.NORMAL

    @property
    def busy(self) -> bool:
        """True while a string or command substitution spans lines."""
        return bool(self.stack)

    def feed(self, line: str, start: int = 0) -> Optional[int]:
        if self.heredoc is not None:
            self._heredoc_line(line)
            return None

        closed_at = None
        i, n = start, len(line)
        while i < n:
            c = line[i]
            top = self.stack[-1] if self.stack else None

            if top == "'":
                if c == "'":
                    self.stack.pop()
                i += 1
                continue
            if top in ('"', "$'"):
                if c == "\\":
                    i += 2
                    continue
                if top == '"' and line.startswith("$(", i):
                    self.stack.append("$((" if line.startswith("$((", i) else "$(")
                    i += len(self.stack[-1])
                    continue
                if (c == '"' and top == '"') or (c == "'" and top == "$'"):
                    self.stack.pop()
                i += 1
                continue

            if c == "\\":
                i += 2
                continue
            if c == "'":
                self.stack.append("'")
            elif c == '"':
                self.stack.append('"')
            elif line.startswith("$'", i):
                self.stack.append("$'")
                i += 2
                continue
            elif line.startswith("$(", i):
                self.stack.append("$((" if line.startswith("$((", i) else "$(")
                i += len(self.stack[-1])
                continue
            elif c == "#" and (i == 0 or line[i - 1] in _WORD_BREAKS):
                break
            elif top == "$((" and line.startswith("))", i):
                self.stack.pop()
                i += 2
                continue
            elif top in ("$(", "(") and c == ")":
                self.stack.pop()
            elif top in ("$(", "$((", "(") and c == "(":
                self.stack.append("(")
            elif top is None and line.startswith("((", i):
                self.arith += 1
                i += 2
                continue
            elif top is None and line.startswith("))", i) and self.arith:
                self.arith -= 1
                i += 2
                continue
            elif line.startswith("<<", i) and not self.arith and top != "$((":
                if line.startswith("<<<", i):
                    i += 3
                    continue
                i = self._heredoc_marker(line, i + 2)
                continue
            elif c == "{" and top is None:
                self.depth += 1
            elif c == "}" and top is None:
                self.depth -= 1
                if not self.track_depth:
                    self.depth = max(self.depth, 0)
                elif self.depth == 0:
                    closed_at = i
                    break
            i += 1

        if self.pending:
            self.heredoc = self.pending.pop(0)
        return closed_at

    def _heredoc_marker(self, line: str, i: int) -> int:
        strip_tabs = False
        if i < len(line) and line[i] == "-":
            strip_tabs = True
            i += 1
        while i < len(line) and line[i] in " \t":
            i += 1
        match = _HEREDOC_WORD.match(line, i)
        if not match:
            return i
        delimiter = match.group(2) if match.group(1) else match.group(3)
        self.pending.append((delimiter, strip_tabs))
        return match.end()

    def _heredoc_line(self, line: str):
        delimiter, strip_tabs = self.heredoc
        candidate = line.lstrip("\t") if strip_tabs else line
        if candidate.rstrip() == delimiter:
            self.heredoc = self.pending.pop(0) if self.pending else None


class BashExtractor(BaseExtractor):
    """
    Extracts function declarations and their doc comments from bash scripts.
    """

    @property
    def supported_extensions(self) -> List[str]:
        return ['.sh', '.bash', '']

    @property
    def language_name(self) -> str:
        return 'bash'

    def extract(self, content: str, filepath: str = "") -> ParsedScript:
        lines = content.splitlines()
        result = ParsedScript()
        scanner = LineScanner(track_depth=False)
        state = ScanState.NORMAL
        comments: List[str] = []
        header_done = False

        def end_comment_run():
            nonlocal header_done, state
            if comments and not header_done:
                description = self.join_comments(comments)
                if description:
                    result.description = description
                    header_done = True
            comments.clear()
            state = ScanState.NORMAL

        i = 0
        while i < len(lines):
            line = lines[i]

            if scanner.state is ScanState.IN_HEREDOC or scanner.busy:
                scanner.feed(line)
                i += 1
                continue

            stripped = line.strip()
            if i == 0 and stripped.startswith("#!"):
                i += 1
                continue
            if stripped.startswith("#"):
                comments.append(self.clean_comment_line(line))
                state = ScanState.IN_COMMENT
                i += 1
                continue
            if not stripped:
                end_comment_run()
                i += 1
                continue

            declaration = self._match_declaration(lines, i)
            if declaration is None:
                end_comment_run()
                scanner.feed(line)
                i += 1
                continue

            name, brace_line, brace_col = declaration
            description = self.join_comments(comments) if state is ScanState.IN_COMMENT else None
            comments.clear()
            state = ScanState.NORMAL
            header_done = True

            body_end = self._find_body_end(lines, brace_line, brace_col)
            if body_end is None:
                result.diagnostics.append(Diagnostic(
                    DiagnosticKind.MALFORMED_FUNCTION, filepath,
                    f"function '{name}' has no closing brace", i + 1,
                ))
                i += 1
                continue

            end_line, after = body_end
            if not self.is_valid_name(name):
                result.diagnostics.append(Diagnostic(
                    DiagnosticKind.INVALID_NAME, filepath,
                    f"'{name}' is not a valid shell function name", i + 1,
                ))
            else:
                result.functions.append(FunctionDef(
                    name=name,
                    start_line=i + 1,
                    end_line=end_line + 1,
                    description=description,
                ))

            # Another declaration may follow the closing brace: 'a() { :; }; b() { :; }'
            if after is not None:
                tail = lines[end_line][after:].lstrip(" \t;")
                if tail:
                    lines[end_line] = " " * (len(lines[end_line]) - len(tail)) + tail
                    if self._match_declaration(lines, end_line) is not None:
                        i = end_line
                        continue
            i = end_line + 1

        end_comment_run()
        return result

    def _match_declaration(self, lines: List[str], i: int) -> Optional[Tuple[str, int, int]]:
        """
        Recognise a declaration starting on line i.

        Returns (name, line of the opening brace, column of the brace).
        """
        line = lines[i]
        match = PATTERNS['keyword'].match(line) or PATTERNS['posix'].match(line)
        if not match:
            return None

        rest = match.group(2)
        if rest.startswith("{"):
            return match.group(1), i, match.start(2)
        if rest and not rest.startswith("#"):
            return None

        # Opening brace on a following line
        for j in range(i + 1, len(lines)):
            following = lines[j]
            if not following.strip():
                continue
            if following.lstrip().startswith("{"):
                return match.group(1), j, len(following) - len(following.lstrip())
            return None
        return None

    def _find_body_end(self, lines: List[str], brace_line: int, brace_col: int) -> Optional[Tuple[int, Optional[int]]]:
        """
        Find the matching closing brace.

        Returns (index of the last line of the function, column just past the
        brace), or None when the brace never closes. The column is None when a
        here-doc carries the function past the brace's line.
        """
        scanner = LineScanner()
        closed = scanner.feed(lines[brace_line], brace_col)
        j = brace_line
        while closed is None:
            j += 1
            if j >= len(lines):
                return None
            closed = scanner.feed(lines[j])

        if scanner.heredoc is None and not scanner.pending:
            return j, closed + 1

        # A here-doc opened on the closing line runs past the brace
        while scanner.heredoc is not None or scanner.pending:
            if scanner.heredoc is None:
                scanner.heredoc = scanner.pending.pop(0)
            j += 1
            if j >= len(lines):
                return None
            scanner.feed(lines[j])
        return j, None
