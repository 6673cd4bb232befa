"""
Catalog data model: scripts, the functions found in them, and the aggregate.
"""

import hashlib
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .errors import Diagnostic


@dataclass
class Function:
    """A bash function discovered in a script."""
    name: str
    script: "ScriptFile" = field(repr=False, compare=False)
    description: Optional[str] = None
    start_line: int = 0
    end_line: int = 0
    uid: str = ""

    def __post_init__(self):
        if not self.uid:
            self.uid = make_uid(self.script.path, self.name)

    @property
    def is_private(self) -> bool:
        return self.name.startswith("_")

    @property
    def label(self) -> str:
        return f"{self.script.name} - {self.name}"

    @property
    def search_text(self) -> str:
        """Text the fuzzy resolver matches against."""
        parts = [self.name]
        if self.description:
            parts.append(self.description)
        parts.append(self.script.name)
        return " ".join(parts)


@dataclass
class ScriptFile:
    """One eligible file and the functions it defines."""
    path: str
    description: Optional[str] = None
    functions: List[Function] = field(default_factory=list)

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def stem(self) -> str:
        return os.path.splitext(self.name)[0]

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)

    def get(self, function_name: str) -> Optional[Function]:
        for function in self.functions:
            if function.name == function_name:
                return function
        return None


@dataclass
class Catalog:
    """
    Every script and function found under the configured roots for one
    invocation. Built fresh each time; nothing is persisted.
    """
    roots: List[str] = field(default_factory=list)
    scripts: List[ScriptFile] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def functions(self) -> Iterator[Function]:
        """All functions in discovery order."""
        for script in self.scripts:
            yield from script.functions

    def __len__(self) -> int:
        return sum(len(script.functions) for script in self.scripts)

    def is_empty(self) -> bool:
        return len(self) == 0

    def by_uid(self) -> Dict[str, Function]:
        return {function.uid: function for function in self.functions}

    def get_function(self, uid: str) -> Optional[Function]:
        return self.by_uid().get(uid)


def make_uid(path: str, name: str) -> str:
    """Stable identifier for a (script, function) pair."""
    return hashlib.sha256(f"{path}:{name}".encode("utf-8")).hexdigest()[:12]
