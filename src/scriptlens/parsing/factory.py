"""
Extractor factory for shell-dialect extraction strategies.
"""

import os
from typing import Dict, List, Optional

from .base import BaseExtractor, ParsedScript
from .bash import BashExtractor


class ExtractorFactory:
    """
    Factory for dialect-specific extractors.

    Usage:
        factory = ExtractorFactory()
        extractor = factory.get_extractor("deploy.sh")
        parsed = extractor.extract(content, "deploy.sh")

    Any eligible text file without a registered extension falls back to the
    default extractor, since scripts are often extension-less.
    """

    def __init__(self, default: Optional[BaseExtractor] = None):
        self._extractors: Dict[str, BaseExtractor] = {}
        self._extension_map: Dict[str, str] = {}

        bash = BashExtractor()
        self.register(bash)
        self.default = default or bash

    def register(self, extractor: BaseExtractor):
        """Register an extractor for its supported extensions."""
        lang = extractor.language_name
        self._extractors[lang] = extractor

        for ext in extractor.supported_extensions:
            self._extension_map[ext.lower()] = lang

    def get_extractor(self, filepath: str) -> BaseExtractor:
        ext = os.path.splitext(filepath)[1].lower()
        lang = self._extension_map.get(ext)
        return self._extractors[lang] if lang else self.default

    def get_supported_extensions(self) -> List[str]:
        return [ext for ext in self._extension_map if ext]

    def get_supported_languages(self) -> List[str]:
        return list(self._extractors.keys())


def extract_file(filepath: str, content: str, factory: Optional[ExtractorFactory] = None) -> ParsedScript:
    """
    Convenience function to extract functions from a file's text.

    Args:
        filepath: Path to the file (selects the extractor, labels diagnostics)
        content: File content
        factory: Factory to use; a fresh one when omitted
    """
    factory = factory or ExtractorFactory()
    return factory.get_extractor(filepath).extract(content, filepath)
