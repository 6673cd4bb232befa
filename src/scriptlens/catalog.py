"""
Builds the catalog: walks the roots, filters out what isn't a script,
extracts functions from the rest and records per-file diagnostics.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .consts import EXECUTABLE_ONLY, IGNORED_DIRS, MAX_WORKERS
from .eligibility import check_path, is_ignored_dir
from .errors import ConfigurationError, Diagnostic, DiagnosticKind
from .models import Catalog, Function, ScriptFile
from .parsing import ExtractorFactory

logger = logging.getLogger(__name__)

_BOMS = (
    (b"\xff\xfe\x00\x00", "utf-32"),
    (b"\x00\x00\xfe\xff", "utf-32"),
    (b"\xef\xbb\xbf", "utf-8-sig"),
    (b"\xff\xfe", "utf-16"),
    (b"\xfe\xff", "utf-16"),
)


def read_text(path: str) -> str:
    """Read a script, honouring a byte-order mark when there is one."""
    with open(path, "rb") as f:
        raw = f.read()
    for bom, encoding in _BOMS:
        if raw.startswith(bom):
            return raw.decode(encoding, errors="replace")
    return raw.decode("utf-8", errors="replace")


class CatalogBuilder:
    """
    Walks one or more roots and assembles a Catalog.

    Files are processed with a bounded thread pool, but discovery order is
    fixed by sorting paths first, so two builds over the same tree are
    identical.
    """

    def __init__(
        self,
        ignore_dirs: Iterable[str] = IGNORED_DIRS,
        ignore_paths: Iterable[str] = (),
        executable_only: bool = EXECUTABLE_ONLY,
        max_workers: int = MAX_WORKERS,
        factory: Optional[ExtractorFactory] = None,
    ):
        self.ignore_dirs = set(ignore_dirs)
        self.ignore_paths = {os.path.realpath(p) for p in ignore_paths}
        self.executable_only = executable_only
        self.max_workers = max(1, max_workers)
        self.factory = factory or ExtractorFactory()

    def build(self, roots: Sequence[str]) -> Catalog:
        roots = self.validate_roots(roots)
        catalog = Catalog(roots=roots)

        paths, walk_diagnostics = self.discover_files(roots)
        catalog.diagnostics.extend(walk_diagnostics)
        logger.info(f"Discovered {len(paths)} candidate files under {', '.join(roots)}")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(self.process_file, paths))

        for script, diagnostics in results:
            catalog.diagnostics.extend(diagnostics)
            if script is not None:
                catalog.scripts.append(script)

        catalog.diagnostics.extend(self.find_collisions(catalog))
        logger.info(
            f"Catalog built: {len(catalog.scripts)} scripts, {len(catalog)} functions, "
            f"{len(catalog.diagnostics)} diagnostics"
        )
        return catalog

    @staticmethod
    def validate_roots(roots: Sequence[str]) -> List[str]:
        """Absolute, de-duplicated roots; raises ConfigurationError on a bad one."""
        validated: List[str] = []
        for root in roots:
            path = os.path.abspath(os.path.expanduser(root))
            if not os.path.exists(path):
                raise ConfigurationError("search", path, "no such directory")
            if not os.path.isdir(path):
                raise ConfigurationError("search", path, "not a directory")
            if path not in validated:
                validated.append(path)
        return validated

    def discover_files(self, roots: Sequence[str]) -> Tuple[List[str], List[Diagnostic]]:
        """
        Every file under the roots, sorted per root, each real file once.

        Symlinked directories are followed; a directory already visited
        (same device and inode) is not entered again, which stops cycles.
        """
        files: List[str] = []
        diagnostics: List[Diagnostic] = []
        seen_files: Set[str] = set()

        def on_error(error: OSError):
            logger.warning(f"Unable to read directory {error.filename}: {error}")
            diagnostics.append(Diagnostic(
                DiagnosticKind.UNREADABLE_FILE, str(error.filename),
                f"cannot read directory: {error.strerror or error}",
            ))

        for root in roots:
            visited: Set[Tuple[int, int]] = set()
            found: List[str] = []

            for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=True):
                try:
                    st = os.stat(dirpath)
                except OSError as e:
                    on_error(e)
                    dirnames[:] = []
                    continue
                key = (st.st_dev, st.st_ino)
                if key in visited:
                    logger.debug(f"Skipping already visited directory {dirpath}")
                    dirnames[:] = []
                    continue
                visited.add(key)

                dirnames[:] = sorted(
                    d for d in dirnames
                    if not is_ignored_dir(d, self.ignore_dirs)
                    and not self._is_ignored_path(os.path.join(dirpath, d))
                )
                for filename in filenames:
                    path = os.path.join(dirpath, filename)
                    if not self._is_ignored_path(path):
                        found.append(path)

            for path in sorted(found):
                real = os.path.realpath(path)
                if real in seen_files:
                    continue
                seen_files.add(real)
                files.append(path)

        return files, diagnostics

    def _is_ignored_path(self, path: str) -> bool:
        return bool(self.ignore_paths) and os.path.realpath(path) in self.ignore_paths

    def process_file(self, path: str) -> Tuple[Optional[ScriptFile], List[Diagnostic]]:
        """
        Turn one file into a ScriptFile.
        Returns (script or None when ineligible, diagnostics)
        """
        verdict = check_path(path, executable_only=self.executable_only)
        if not verdict:
            logger.debug(f"Skipping {path}: {verdict.reason}")
            if verdict.kind is None:
                return None, []
            return None, [Diagnostic(verdict.kind, path, verdict.reason)]

        try:
            content = read_text(path)
        except OSError as e:
            logger.warning(f"Unable to read {path}: {e}")
            return None, [Diagnostic(DiagnosticKind.UNREADABLE_FILE, path, f"cannot read: {e.strerror or e}")]

        parsed = self.factory.get_extractor(path).extract(content, path)
        diagnostics = list(parsed.diagnostics)
        script = ScriptFile(path=path, description=parsed.description)

        by_name: Dict[str, Function] = {}
        for definition in parsed.functions:
            previous = by_name.get(definition.name)
            if previous is not None:
                # Sourcing the file keeps the last definition
                script.functions.remove(previous)
                diagnostics.append(Diagnostic(
                    DiagnosticKind.DUPLICATE_FUNCTION, path,
                    f"function '{definition.name}' redefined (first defined on line {previous.start_line})",
                    definition.start_line,
                ))
            function = Function(
                name=definition.name,
                script=script,
                description=definition.description,
                start_line=definition.start_line,
                end_line=definition.end_line,
            )
            by_name[definition.name] = function
            script.functions.append(function)

        for diagnostic in diagnostics:
            logger.debug(f"Diagnostic: {diagnostic}")
        return script, diagnostics

    @staticmethod
    def find_collisions(catalog: Catalog) -> List[Diagnostic]:
        """Names defined in more than one script. Both stay in the catalog."""
        owners: Dict[str, List[Function]] = {}
        for function in catalog.functions:
            owners.setdefault(function.name, []).append(function)

        diagnostics = []
        for name, functions in owners.items():
            if len(functions) < 2:
                continue
            first = functions[0]
            for other in functions[1:]:
                diagnostics.append(Diagnostic(
                    DiagnosticKind.NAME_COLLISION, other.script.path,
                    f"function '{name}' is also defined in {first.script.path}",
                    other.start_line,
                ))
        return diagnostics


def build_catalog(
    roots: Sequence[str],
    ignore: Iterable[str] = (),
    executable_only: bool = EXECUTABLE_ONLY,
    max_workers: int = MAX_WORKERS,
) -> Catalog:
    """Convenience function to build a catalog with default settings."""
    builder = CatalogBuilder(
        ignore_paths=ignore,
        executable_only=executable_only,
        max_workers=max_workers,
    )
    return builder.build(roots)
