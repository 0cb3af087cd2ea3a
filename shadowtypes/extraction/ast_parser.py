"""
Declaration source built on the standard ``ast`` module.

This is the default source. It sees multi-line headers and nested generics
the way the interpreter does, resolves base classes through the module's
imports and reports the few constructs it cannot classify instead of
guessing.
"""

import ast
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..core.errors import DeclarationAmbiguous, FileUnreadable
from ..core.types import (
    DeclarationKind,
    MemberKind,
    MemberSignature,
    ParseOutcome,
    SourceLocation,
    TypeDeclaration,
)
from .descriptors import ANY, async_return, describe_node
from .rules import (
    ABSTRACT_DECORATORS,
    BUILTIN_NAMES,
    PROPERTY_DECORATORS,
    attribute_kind,
    classify_kind,
    is_public_member,
    is_public_type,
    package_of,
    skipped_from_error,
    unique_members,
)

logger = logging.getLogger(__name__)


def dotted_name(node: ast.AST) -> Optional[str]:
    """``a.b.C`` for Name/Attribute chains, ``None`` for anything else."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = dotted_name(node.value)
        return f"{parent}.{node.attr}" if parent else None
    return None


def decorator_name(node: ast.AST) -> str:
    if isinstance(node, ast.Call):
        node = node.func
    return dotted_name(node) or ""


def collect_imports(tree: ast.Module, module: str, path: Path) -> Dict[str, str]:
    """Map local names bound by imports to the qualified names they refer to."""
    imports: Dict[str, str] = {}
    package = package_of(module, path)

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    head = alias.name.split(".", 1)[0]
                    imports[head] = head
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                parts = package.split(".") if package else []
                if node.level > 1:
                    parts = parts[: len(parts) - (node.level - 1)]
                base = ".".join(p for p in parts + [node.module or ""] if p)
            else:
                base = node.module or ""
            for alias in node.names:
                if alias.name == "*":
                    continue
                target = f"{base}.{alias.name}" if base else alias.name
                imports[alias.asname or alias.name] = target
    return imports


class AstDeclarationParser:
    """Extracts type declarations from a module's syntax tree."""

    name = "ast"

    def __init__(self, event_types: Optional[Iterable[str]] = None):
        self.event_types: Set[str] = set(event_types or ())

    def parse(self, path: Path, module: str, text: str) -> ParseOutcome:
        """
        Parse one file.

        Raises:
            FileUnreadable: If the file is not valid Python
        """
        try:
            tree = ast.parse(text, filename=str(path))
        except SyntaxError as e:
            raise FileUnreadable(
                f"Syntax error in {path}: {e.msg}", file_path=str(path), line_number=e.lineno
            )
        except ValueError as e:
            raise FileUnreadable(f"Cannot parse {path}: {e}", file_path=str(path))

        context = _ModuleContext(
            module=module,
            path=path,
            imports=collect_imports(tree, module, path),
            local_classes=self._local_classes(tree.body, module),
        )
        outcome = ParseOutcome()
        self._visit_body(tree.body, module, context, outcome)
        return outcome

    def _local_classes(self, body: List[ast.stmt], namespace: str) -> Dict[str, str]:
        names: Dict[str, str] = {}
        for node in body:
            if isinstance(node, ast.ClassDef):
                qualified = f"{namespace}.{node.name}"
                names.setdefault(node.name, qualified)
                for inner, inner_qualified in self._local_classes(node.body, qualified).items():
                    names.setdefault(inner, inner_qualified)
        return names

    def _visit_body(
        self,
        body: List[ast.stmt],
        namespace: str,
        context: "_ModuleContext",
        outcome: ParseOutcome,
    ) -> None:
        # Function bodies are not entered: local classes are not declarations
        for node in body:
            if isinstance(node, ast.ClassDef):
                qualified = f"{namespace}.{node.name}"
                if is_public_type(node.name):
                    try:
                        declaration = self._build_declaration(node, namespace, context)
                    except DeclarationAmbiguous as e:
                        logger.info(f"Parser coverage gap: {e.message}")
                        outcome.ambiguous.append(
                            skipped_from_error(e, context.path.as_posix(), "declaration")
                        )
                    else:
                        outcome.declarations.append(declaration)
                        context.kinds[qualified] = declaration.kind
                self._visit_body(node.body, qualified, context, outcome)
            elif isinstance(node, (ast.If, ast.Try)):
                self._visit_body(node.body, namespace, context, outcome)
                self._visit_body(node.orelse, namespace, context, outcome)

    def _build_declaration(
        self, node: ast.ClassDef, namespace: str, context: "_ModuleContext"
    ) -> TypeDeclaration:
        qualified = f"{namespace}.{node.name}"
        bases, metaclass = self._resolve_bases(node, qualified, context)

        kind_hints = set(bases)
        for base in bases:
            if context.kinds.get(base) is DeclarationKind.ENUM:
                kind_hints.add("Enum")

        public_methods, abstract_methods = self._count_methods(node)
        kind = classify_kind(
            kind_hints,
            decorators=[decorator_name(d) for d in node.decorator_list],
            metaclass=metaclass,
            public_methods=public_methods,
            abstract_methods=abstract_methods,
        )

        if kind is DeclarationKind.ENUM:
            members = self._enum_members(node)
        else:
            members = self._members(node)

        return TypeDeclaration(
            qualified_name=qualified,
            module=context.module,
            namespace=namespace,
            kind=kind,
            members=tuple(unique_members(members)),
            base_types=frozenset(b for b in bases if b != "object"),
            location=SourceLocation(context.path.as_posix(), node.lineno),
        )

    def _resolve_bases(
        self, node: ast.ClassDef, qualified: str, context: "_ModuleContext"
    ) -> Tuple[List[str], str]:
        bases = []
        for base in node.bases:
            target = base.value if isinstance(base, ast.Subscript) else base
            name = dotted_name(target)
            if name is None:
                raise DeclarationAmbiguous(
                    f"Cannot classify {qualified}: base expression {ast.unparse(base)!r} is not a name",
                    file_path=context.path.as_posix(),
                    symbol=qualified,
                    line_number=node.lineno,
                )
            bases.append(context.resolve(name))

        metaclass = ""
        for keyword in node.keywords:
            if keyword.arg is None:
                raise DeclarationAmbiguous(
                    f"Cannot classify {qualified}: class keywords are unpacked",
                    file_path=context.path.as_posix(),
                    symbol=qualified,
                    line_number=node.lineno,
                )
            if keyword.arg == "metaclass":
                metaclass = context.resolve(dotted_name(keyword.value) or "")
        return bases, metaclass

    def _count_methods(self, node: ast.ClassDef) -> Tuple[int, int]:
        public = abstract = 0
        for item in node.body:
            if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)) and is_public_member(item.name):
                public += 1
                decorators = {decorator_name(d).rsplit(".", 1)[-1] for d in item.decorator_list}
                if decorators & ABSTRACT_DECORATORS:
                    abstract += 1
        return public, abstract

    def _enum_members(self, node: ast.ClassDef) -> List[MemberSignature]:
        members = []
        for item in node.body:
            targets: List[ast.expr] = []
            if isinstance(item, ast.Assign):
                targets = item.targets
            elif isinstance(item, ast.AnnAssign) and item.value is not None:
                targets = [item.target]
            for target in targets:
                if isinstance(target, ast.Name) and not target.id.startswith("_"):
                    members.append(MemberSignature(target.id, node.name, MemberKind.PROPERTY))
        return members

    def _members(self, node: ast.ClassDef) -> List[MemberSignature]:
        members = []
        for item in node.body:
            if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
                if is_public_member(item.target.id):
                    descriptor = describe_node(item.annotation)
                    members.append(
                        MemberSignature(item.target.id, descriptor, attribute_kind(descriptor, self.event_types))
                    )
            elif isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                if item.name == "__init__":
                    members.extend(self._instance_attributes(item))
                    continue
                if not is_public_member(item.name):
                    continue
                decorators = [decorator_name(d) for d in item.decorator_list]
                if any(d.endswith((".setter", ".deleter")) for d in decorators):
                    continue
                returns = describe_node(item.returns)
                if any(d.rsplit(".", 1)[-1] in PROPERTY_DECORATORS for d in decorators):
                    members.append(MemberSignature(item.name, returns, MemberKind.PROPERTY))
                    continue
                if isinstance(item, ast.AsyncFunctionDef):
                    returns = async_return(returns)
                members.append(MemberSignature(item.name, returns, MemberKind.METHOD))
        return members

    def _instance_attributes(self, init: ast.FunctionDef) -> List[MemberSignature]:
        """Public ``self.x`` attributes assigned directly in ``__init__``."""
        params = {
            arg.arg: arg.annotation
            for arg in init.args.args + init.args.kwonlyargs
        }
        members = []
        for stmt in init.body:
            if isinstance(stmt, ast.AnnAssign):
                target, annotation = stmt.target, stmt.annotation
            elif isinstance(stmt, ast.Assign) and len(stmt.targets) == 1:
                target = stmt.targets[0]
                annotation = None
                if isinstance(stmt.value, ast.Name):
                    annotation = params.get(stmt.value.id)
            else:
                continue

            if not (
                isinstance(target, ast.Attribute)
                and isinstance(target.value, ast.Name)
                and target.value.id == "self"
                and is_public_member(target.attr)
            ):
                continue
            descriptor = describe_node(annotation) if annotation is not None else ANY
            members.append(MemberSignature(target.attr, descriptor, attribute_kind(descriptor, self.event_types)))
        return members


class _ModuleContext:
    """Per-file name resolution state."""

    def __init__(self, module: str, path: Path, imports: Dict[str, str], local_classes: Dict[str, str]):
        self.module = module
        self.path = path
        self.imports = imports
        self.local_classes = local_classes
        self.kinds: Dict[str, DeclarationKind] = {}

    def resolve(self, name: str) -> str:
        """Resolve a dotted name used in this module to a qualified name."""
        if not name:
            return name
        head, _, rest = name.partition(".")
        if head in self.imports:
            target = self.imports[head]
        elif head in self.local_classes:
            target = self.local_classes[head]
        elif head in BUILTIN_NAMES:
            return name
        else:
            target = f"{self.module}.{head}"
        return f"{target}.{rest}" if rest else target
