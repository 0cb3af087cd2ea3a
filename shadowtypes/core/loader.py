"""Source enumeration: corpus files, module names and file text."""

from pathlib import Path
from typing import List, Optional
import logging

from .errors import CorpusUnavailable, FileUnreadable
from .ignore import IgnoreManager

logger = logging.getLogger(__name__)


def collect_files(
    root: Path,
    include: Optional[List[str]] = None,
    exclude: Optional[List[str]] = None,
    ignore_manager: Optional[IgnoreManager] = None
) -> List[Path]:
    """Collect Python files from the given corpus root.

    Args:
        root: Corpus root directory
        include: Paths to include (relative to root)
        exclude: Gitignore-style exclude fragments (relative to root)
        ignore_manager: Optional pre-built IgnoreManager

    Returns:
        Sorted list of Python file paths

    Raises:
        CorpusUnavailable: If the root is missing or is not a directory
    """
    root = Path(root)
    if not root.exists():
        raise CorpusUnavailable(f"Corpus root does not exist: {root}", root=str(root))
    if not root.is_dir():
        raise CorpusUnavailable(f"Corpus root is not a directory: {root}", root=str(root))

    include = include or ["."]
    if ignore_manager is None:
        ignore_manager = IgnoreManager(root_path=root, additional_patterns=list(exclude or []))

    files = set()
    try:
        for inc in include:
            base = root / inc
            if not base.exists():
                logger.warning(f"Include path does not exist: {base}")
                continue

            if base.is_file():
                if base.suffix == ".py" and not ignore_manager.should_ignore(base):
                    files.add(base)
                continue

            for p in base.rglob("*.py"):
                if p.is_file() and not ignore_manager.should_ignore(p):
                    files.add(p)
    except PermissionError as e:
        raise CorpusUnavailable(f"Corpus root cannot be listed: {e}", root=str(root))

    logger.debug(f"Collected {len(files)} Python files under {root}")
    return sorted(files)


def module_name_for(path: Path, root: Path) -> str:
    """Dotted module name of ``path`` relative to ``root``.

    ``pkg/sub/mod.py`` becomes ``pkg.sub.mod`` and ``pkg/__init__.py``
    becomes ``pkg``.
    """
    rel = Path(path).absolute().relative_to(Path(root).absolute())
    parts = list(rel.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    if not parts:
        return Path(root).absolute().name
    return ".".join(parts)


def read_source(path: Path) -> str:
    """Read a source file as UTF-8 text.

    Raises:
        FileUnreadable: If the file cannot be opened or decoded
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise FileUnreadable(f"Cannot decode {path}: {e.reason}", file_path=str(path))
    except OSError as e:
        raise FileUnreadable(f"Cannot read {path}: {e.strerror or e}", file_path=str(path))
