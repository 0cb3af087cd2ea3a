"""
Pure-forwarding detection (best effort, advisory only).

A ``*Facade``/``*Adapter``/``*Wrapper``/``*Proxy`` class whose every public
method is one statement forwarding to the same ``self.<field>`` adds a name
without adding behaviour. Method bodies are judged syntactically: a single
(optionally awaited, optionally returned) call on ``self.<field>``, with
docstrings and logging calls ignored. Anything with branching, loops or
extra statements counts as real logic.
"""

import ast
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from ..config import EngineConfig
from ..core.errors import FileUnreadable
from ..core.issues import PURE_FORWARDING, Violation
from ..core.loader import read_source
from ..core.types import TypeDeclaration
from ..extraction.rules import is_public_member

logger = logging.getLogger(__name__)

LOGGER_NAMES = {"logger", "log", "_logger", "_log", "logging"}


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def _is_logging_call(stmt: ast.stmt) -> bool:
    if not (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call)):
        return False
    func = stmt.value.func
    if not isinstance(func, ast.Attribute):
        return False
    target = func.value
    if isinstance(target, ast.Attribute) and isinstance(target.value, ast.Name) and target.value.id == "self":
        return target.attr in LOGGER_NAMES
    return isinstance(target, ast.Name) and target.id in LOGGER_NAMES


def forwarded_field(function: Union[ast.FunctionDef, ast.AsyncFunctionDef]) -> Optional[str]:
    """Field name a method forwards to, or None when the body does more."""
    body = [s for s in function.body if not _is_docstring(s) and not _is_logging_call(s)]
    if len(body) != 1:
        return None

    stmt = body[0]
    if isinstance(stmt, ast.Return):
        value = stmt.value
    elif isinstance(stmt, ast.Expr):
        value = stmt.value
    else:
        return None

    if isinstance(value, ast.Await):
        value = value.value
    if not isinstance(value, ast.Call) or not isinstance(value.func, ast.Attribute):
        return None

    owner = value.func.value
    if (
        isinstance(owner, ast.Attribute)
        and isinstance(owner.value, ast.Name)
        and owner.value.id == "self"
    ):
        return owner.attr
    return None


def analyze_class(node: ast.ClassDef) -> Optional[Dict[str, object]]:
    """Evidence when every public method forwards to one field, else None."""
    methods = [
        item for item in node.body
        if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
        and item.name != "__init__"
        and is_public_member(item.name)
    ]
    if not methods:
        return None

    fields = set()
    for method in methods:
        field_name = forwarded_field(method)
        if field_name is None:
            return None
        fields.add(field_name)

    if len(fields) != 1:
        return None
    return {"field": fields.pop(), "methods": sorted(m.name for m in methods)}


class ForwardingDetector:
    """Finds forwarding-only classes among already extracted declarations."""

    def __init__(self, root: Union[str, Path], config: Optional[EngineConfig] = None):
        self.root = Path(root)
        self.config = config or EngineConfig()

    def check(self, declarations: Sequence[TypeDeclaration]) -> List[Violation]:
        suffixes = tuple(self.config.forwarding.name_suffixes)
        by_file: Dict[str, List[TypeDeclaration]] = defaultdict(list)
        for declaration in declarations:
            if suffixes and declaration.name.endswith(suffixes):
                by_file[declaration.location.file].append(declaration)

        violations = []
        for file_label in sorted(by_file):
            violations.extend(self._check_file(file_label, by_file[file_label]))
        return violations

    def _check_file(self, file_label: str, declarations: List[TypeDeclaration]) -> List[Violation]:
        try:
            tree = ast.parse(read_source(self.root / file_label), filename=file_label)
        except (FileUnreadable, SyntaxError, ValueError):
            # Already reported by the extractor
            return []

        classes = {
            node.lineno: node for node in ast.walk(tree) if isinstance(node, ast.ClassDef)
        }
        violations = []
        for declaration in declarations:
            node = classes.get(declaration.location.line)
            if node is None:
                continue
            evidence = analyze_class(node)
            if evidence is None:
                continue
            violations.append(Violation(
                concept=PURE_FORWARDING,
                declarations=[declaration],
                reason=(
                    f"{declaration.qualified_name} only forwards {len(evidence['methods'])} "
                    f"method(s) to self.{evidence['field']}; use the wrapped service directly"
                ),
                score=1.0,
                severity=self.config.severity_for(PURE_FORWARDING),
                evidence=evidence,
            ))
        return violations
