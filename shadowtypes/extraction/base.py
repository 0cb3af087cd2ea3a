"""
Declaration Extractor.

Turns a corpus root into a canonical, deterministically ordered list of
``TypeDeclaration`` records through any ``DeclarationSource``. A single bad
file never stops a run: it is logged and recorded as a ``SkippedItem``.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from ..core.errors import FileUnreadable, ThresholdMisconfigured
from ..core.loader import collect_files, module_name_for, read_source
from ..core.types import DeclarationSource, SkippedItem, TypeDeclaration
from ..utils.logging_setup import log_operation
from ..utils.parallel import ordered_map
from .ast_parser import AstDeclarationParser
from .heuristic import LineHeuristicParser
from .introspect import ModuleIntrospector
from .rules import skipped_from_error

logger = logging.getLogger(__name__)


def create_source(
    name: str,
    root: Optional[Path] = None,
    event_types: Optional[Iterable[str]] = None,
) -> DeclarationSource:
    """Build the declaration source selected by configuration."""
    if name == "ast":
        return AstDeclarationParser(event_types=event_types)
    if name == "heuristic":
        return LineHeuristicParser(event_types=event_types)
    if name == "introspect":
        return ModuleIntrospector(search_path=root, event_types=event_types)
    raise ThresholdMisconfigured(f"Unknown declaration source {name!r}", setting="source", value=name)


def canonical_key(declaration: TypeDeclaration) -> Tuple[str, str, int]:
    return (declaration.qualified_name, declaration.location.file, declaration.location.line)


@dataclass
class ExtractionResult:
    """Declarations in canonical order plus everything that was skipped."""
    declarations: List[TypeDeclaration] = field(default_factory=list)
    skipped: List[SkippedItem] = field(default_factory=list)
    files_scanned: int = 0


class DeclarationExtractor:
    """
    Runs one declaration source over every file of a corpus.

    Args:
        root: Corpus root directory
        source: Declaration source (AST, line heuristic or introspection)
        include: Paths to include, relative to root
        exclude: Gitignore-style exclude fragments
        max_workers: Worker threads for per-file parsing
    """

    def __init__(
        self,
        root: Union[str, Path],
        source: DeclarationSource,
        include: Optional[List[str]] = None,
        exclude: Optional[List[str]] = None,
        max_workers: int = 1,
    ):
        self.root = Path(root)
        self.source = source
        self.include = include
        self.exclude = exclude
        self.max_workers = max_workers
        self.skipped: List[SkippedItem] = []

    def files(self) -> List[Path]:
        """Corpus files in sorted order. Raises ``CorpusUnavailable``."""
        return collect_files(self.root, self.include, self.exclude)

    def _process(self, path: Path) -> Tuple[List[TypeDeclaration], List[SkippedItem]]:
        rel = path.absolute().relative_to(self.root.absolute())
        module = module_name_for(path, self.root)
        try:
            text = read_source(path) if getattr(self.source, "needs_text", True) else ""
            outcome = self.source.parse(rel, module, text)
        except FileUnreadable as e:
            logger.warning(f"Skipping {rel.as_posix()}: {e.message}")
            return [], [skipped_from_error(e, rel.as_posix(), "file")]
        return outcome.declarations, outcome.ambiguous

    def iter_declarations(self) -> Iterator[TypeDeclaration]:
        """
        Lazily yield declarations file by file.

        Each call starts a fresh pass over the corpus. Skipped items from
        the most recent pass are available as ``self.skipped`` once the
        iterator is exhausted.
        """
        self.skipped = []
        for path in self.files():
            declarations, skipped = self._process(path)
            self.skipped.extend(skipped)
            yield from declarations

    def extract(self) -> ExtractionResult:
        """Extract every declaration, merged into canonical order."""
        files = self.files()
        log_operation(logger, "extract", root=str(self.root), files=len(files), source=self.source.name)

        # Imports mutate interpreter state and must not overlap
        workers = self.max_workers if getattr(self.source, "thread_safe", True) else 1
        per_file = ordered_map(self._process, files, workers)

        result = ExtractionResult(files_scanned=len(files))
        for declarations, skipped in per_file:
            result.declarations.extend(declarations)
            result.skipped.extend(skipped)

        result.declarations.sort(key=canonical_key)
        logger.info(
            f"Extracted {len(result.declarations)} declarations from {len(files)} files "
            f"({len(result.skipped)} skipped)"
        )
        return result
