"""Shared fixtures for the shadowtypes test suite."""

import logging
import textwrap
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pytest

from shadowtypes.core.types import (
    DeclarationKind,
    MemberKind,
    MemberSignature,
    SourceLocation,
    TypeDeclaration,
)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI runs attach handlers to the package logger; drop them after each test."""
    yield
    logger = logging.getLogger("shadowtypes")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_corpus(tmp_path):
    """Write ``{relative path: source}`` under a fresh corpus root and return the root."""

    def _write(files: Dict[str, str], root: Optional[Path] = None) -> Path:
        root = root or tmp_path / "corpus"
        for rel, source in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source).lstrip("\n"), encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _write


def make_declaration(
    qualified_name: str,
    kind: DeclarationKind = DeclarationKind.CLASS,
    properties: Iterable[Tuple[str, str]] = (),
    methods: Iterable[Tuple[str, str]] = (),
    events: Iterable[str] = (),
    values: Iterable[str] = (),
    bases: Iterable[str] = (),
    line: int = 1,
) -> TypeDeclaration:
    """Build a declaration without going through a parser."""
    module, _, short = qualified_name.rpartition(".")
    members = [MemberSignature(n, t, MemberKind.PROPERTY) for n, t in properties]
    members += [MemberSignature(n, t, MemberKind.METHOD) for n, t in methods]
    members += [MemberSignature(n, "Event", MemberKind.EVENT) for n in events]
    members += [MemberSignature(v, short, MemberKind.PROPERTY) for v in values]
    return TypeDeclaration(
        qualified_name=qualified_name,
        module=module,
        namespace=module,
        kind=kind,
        members=tuple(members),
        base_types=frozenset(bases),
        location=SourceLocation(module.replace(".", "/") + ".py", line),
    )


@pytest.fixture
def declaration():
    return make_declaration
