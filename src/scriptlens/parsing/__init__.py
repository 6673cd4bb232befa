"""
Shell function extraction using the Strategy pattern.

To add a new dialect:
1. Create a new file (e.g., zsh.py)
2. Subclass BaseExtractor and implement extract()
3. Register in factory.py
"""

from .base import BaseExtractor, FunctionDef, ParsedScript
from .bash import BashExtractor, LineScanner, ScanState
from .factory import ExtractorFactory, extract_file

__all__ = [
    "BaseExtractor", "FunctionDef", "ParsedScript",
    "BashExtractor", "LineScanner", "ScanState",
    "ExtractorFactory", "extract_file",
]
