"""
Ignore Manager - Handles .shadowignore files and exclusion patterns.

Gitignore-style matching decides which files under the corpus root are
never handed to a declaration source: build output, caches, virtual
environments and generated modules.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pathspec

logger = logging.getLogger(__name__)


class IgnoreManager:
    """
    Manages file exclusion patterns using gitignore syntax.

    Patterns come from three places, in order: the built-in defaults, a
    ``.shadowignore`` file at the corpus root and the configured exclude
    fragments.
    """

    # Always excluded; build output and generated code never count as declarations
    DEFAULT_PATTERNS = [
        "__pycache__/",
        "*.pyc",
        ".mypy_cache/",
        ".pytest_cache/",
        ".ruff_cache/",
        ".tox/",
        ".nox/",

        "venv/",
        ".venv/",
        "env/",

        "build/",
        "dist/",
        ".eggs/",
        "*.egg-info/",

        ".git/",
        ".hg/",
        ".svn/",

        "node_modules/",

        "*.generated.py",
        "*_pb2.py",
        "*_pb2_grpc.py",
    ]

    IGNORE_FILENAME = ".shadowignore"

    def __init__(
        self,
        root_path: Union[str, Path],
        additional_patterns: Optional[List[str]] = None,
        use_defaults: bool = True,
        ignore_file: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the IgnoreManager.

        Args:
            root_path: Root directory of the corpus
            additional_patterns: Extra patterns (configured exclude fragments)
            use_defaults: Whether to include default patterns
            ignore_file: Path to ignore file (default: .shadowignore in root)
        """
        self.root_path = Path(root_path).absolute()
        self.patterns: List[str] = []
        self.spec: Optional[pathspec.PathSpec] = None

        all_patterns: List[str] = []
        if use_defaults:
            all_patterns.extend(self.DEFAULT_PATTERNS)

        ignore_file_path = self._find_ignore_file(ignore_file)
        if ignore_file_path:
            file_patterns = self._read_ignore_file(ignore_file_path)
            all_patterns.extend(file_patterns)
            logger.debug(f"Loaded {len(file_patterns)} patterns from {ignore_file_path}")

        if additional_patterns:
            all_patterns.extend(additional_patterns)

        seen = set()
        for pattern in all_patterns:
            pattern = pattern.strip()
            if pattern and pattern not in seen and not pattern.startswith('#'):
                seen.add(pattern)
                self.patterns.append(pattern)

        if self.patterns:
            self.spec = pathspec.PathSpec.from_lines('gitwildmatch', self.patterns)

        logger.debug(f"IgnoreManager initialized with {len(self.patterns)} patterns")

    def _find_ignore_file(self, ignore_file: Optional[Union[str, Path]] = None) -> Optional[Path]:
        if ignore_file:
            path = Path(ignore_file)
            if not path.is_absolute():
                path = self.root_path / path
            return path if path.exists() else None

        default = self.root_path / self.IGNORE_FILENAME
        return default if default.exists() else None

    def _read_ignore_file(self, file_path: Path) -> List[str]:
        with open(file_path, 'r', encoding='utf-8') as f:
            return [
                line.strip() for line in f
                if line.strip() and not line.strip().startswith('#')
            ]

    def should_ignore(self, path: Union[str, Path]) -> bool:
        """
        Check if a path should be ignored.

        Args:
            path: Path to check (absolute or relative to root)

        Returns:
            True if the path or any of its parent directories is ignored
        """
        if not self.spec:
            return False

        path = Path(path)
        if path.is_absolute():
            try:
                path = path.absolute().relative_to(self.root_path)
            except ValueError:
                # Outside the corpus root
                return False

        path_str = path.as_posix()
        if self.spec.match_file(path_str):
            return True

        parts = path_str.split('/')
        for i in range(1, len(parts)):
            if self.spec.match_file('/'.join(parts[:i]) + '/'):
                return True
        return False

    def filter_paths(self, paths: List[Union[str, Path]]) -> List[Path]:
        """Filter a list of paths, removing ignored ones."""
        filtered = [Path(p) for p in paths if not self.should_ignore(p)]
        ignored_count = len(paths) - len(filtered)
        if ignored_count > 0:
            logger.info(f"Filtered out {ignored_count} ignored paths")
        return filtered

    def get_patterns(self) -> List[str]:
        """Get the current list of ignore patterns."""
        return self.patterns.copy()

    def __repr__(self) -> str:
        return f"IgnoreManager(root={self.root_path}, patterns={len(self.patterns)})"
