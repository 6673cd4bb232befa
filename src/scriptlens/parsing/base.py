"""
Base classes for the extractor strategy pattern.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import Diagnostic

# Shell identifier rules (POSIX "name")
IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class FunctionDef:
    """A function declaration found in a script, before it joins the catalog."""
    name: str
    start_line: int
    end_line: int
    description: Optional[str] = None


@dataclass
class ParsedScript:
    """Everything an extractor learned about one file."""
    functions: List[FunctionDef] = field(default_factory=list)
    description: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)


class BaseExtractor(ABC):
    """
    Abstract base class for shell-dialect extractors.

    Subclasses must implement:
    - extract(): Parse a file's text into function declarations
    - supported_extensions: List of file extensions this extractor handles
    """

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """File extensions this extractor supports (e.g., ['.sh', '.bash'])."""
        pass

    @property
    @abstractmethod
    def language_name(self) -> str:
        """Human-readable dialect name (e.g., 'bash')."""
        pass

    @abstractmethod
    def extract(self, content: str, filepath: str = "") -> ParsedScript:
        """
        Parse a script into function declarations.

        Args:
            content: File content as string
            filepath: Path used when reporting diagnostics

        Returns:
            ParsedScript; never raises for malformed input
        """
        pass

    @staticmethod
    def is_valid_name(name: str) -> bool:
        return bool(IDENTIFIER.match(name))

    @staticmethod
    def clean_comment_line(line: str) -> str:
        """Strip the leading comment markers and surrounding whitespace."""
        return line.strip().lstrip("#").strip()

    @staticmethod
    def join_comments(lines: List[str]) -> Optional[str]:
        """Join a comment run into one description; None when there is no text."""
        text = " ".join(line for line in lines if line)
        return text or None
