"""
Workspace management - handles search roots and persisted preferences.

Features:
- Resolves which directories to search
- Remembers the preferred default mode (fuzzy or list) across sessions
- Remembers the last function that was run, for 'scriptlens again'
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from scriptlens.consts import CONFIG_DIR, DEFAULT_MODE, SEARCH_ROOTS

logger = logging.getLogger(__name__)

MODES = ("fuzzy", "list")


class WorkspaceManager:
    """Manages search roots and persisted preferences."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir or CONFIG_DIR)
        self.config_file = self.config_dir / "workspace.json"

    def get_roots(self, requested: Sequence[str] = ()) -> List[str]:
        """
        Get the directories to search.

        Priority:
        1. Roots given on the command line
        2. Roots from config.yaml / SCRIPTLENS_ROOTS
        3. Current working directory
        """
        if requested:
            return list(requested)
        if SEARCH_ROOTS:
            return [os.path.expanduser(root) for root in SEARCH_ROOTS]
        return [os.getcwd()]

    def _load(self) -> dict:
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable workspace file {self.config_file}: {e}")
            return {}

    def _save(self, updates: dict):
        data = self._load()
        data.update(updates)
        data['updated_at'] = datetime.now().isoformat()

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(data, f, indent=2)
        except IOError as e:
            # Not critical, the preference just won't stick
            logger.warning(f"Unable to save workspace file {self.config_file}: {e}")

    def get_default_mode(self) -> str:
        mode = self._load().get('default_mode', DEFAULT_MODE)
        return mode if mode in MODES else "list"

    def set_default_mode(self, mode: str):
        if mode not in MODES:
            raise ValueError(f"Unknown mode {mode!r}, expected one of {', '.join(MODES)}")
        self._save({'default_mode': mode})
        logger.info(f"Default mode set to {mode}")

    def save_last_run(self, script_path: str, function_name: str):
        """Remember what was run. Arguments are deliberately not stored."""
        self._save({'last_run': {'script': script_path, 'function': function_name}})

    def get_last_run(self) -> Optional[dict]:
        return self._load().get('last_run')


# Global singleton
_workspace_manager = None


def get_workspace_manager() -> WorkspaceManager:
    """Get the global workspace manager instance."""
    global _workspace_manager
    if _workspace_manager is None:
        _workspace_manager = WorkspaceManager()
    return _workspace_manager
