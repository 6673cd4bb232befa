"""
ScriptLens - find, browse and run the functions defined in bash scripts.
"""

from .catalog import CatalogBuilder, build_catalog
from .bridge import ExecutionBridge, run_function
from .models import Catalog, Function, ScriptFile
from .resolver import find_function, find_scripts, rank

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "CatalogBuilder",
    "ExecutionBridge",
    "Function",
    "ScriptFile",
    "build_catalog",
    "find_function",
    "find_scripts",
    "rank",
    "run_function",
]
