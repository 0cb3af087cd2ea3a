"""
Line-oriented fallback declaration source.

Works on files the interpreter cannot parse (partial checkouts, newer
syntax) by matching class headers, ``def`` lines and annotated attributes
one line at a time. Anything that needs more than one line to understand is
reported as ambiguous rather than guessed.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from ..core.errors import DeclarationAmbiguous
from ..core.types import (
    DeclarationKind,
    MemberKind,
    MemberSignature,
    ParseOutcome,
    SourceLocation,
    TypeDeclaration,
)
from .descriptors import ANY, async_return, describe_text
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

CLASS_START = re.compile(r'^(\s*)class\s+(\w+)')
CLASS_HEADER = re.compile(r'^(\s*)class\s+(\w+)\s*(?:\[[^\]]*\])?\s*(?:\((.*)\))?\s*:\s*(?:#.*)?$')
DEF_HEADER = re.compile(
    r'^(\s*)(async\s+)?def\s+(\w+)\s*\((.*)\)\s*(?:->\s*(.+?))?\s*:(?:\s*[^#\s][^#]*)?\s*(?:#.*)?$'
)
DEF_START = re.compile(r'^(\s*)(?:async\s+)?def\s+\w+')
DECORATOR = re.compile(r'^\s*@([\w.]+)')
ANNOTATED = re.compile(r'^(\s*)(\w+)\s*:\s*([^=]+?)\s*(?:=.*)?$')
ASSIGNED = re.compile(r'^(\s*)(\w+)\s*=(?!=)')
SELF_ANNOTATED = re.compile(r'^\s*self\.(\w+)\s*:\s*([^=]+?)\s*(?:=.*)?$')
SELF_ASSIGNED = re.compile(r'^\s*self\.(\w+)\s*=(?!=)\s*(\w+)?\s*$')
FROM_IMPORT = re.compile(r'^from\s+([\w.]+)\s+import\s+([^()]+)$')
PLAIN_IMPORT = re.compile(r'^import\s+([\w., ]+)$')


def split_top_level(text: str) -> List[str]:
    """Split on commas that are not nested inside brackets."""
    parts, depth, current = [], 0, []
    for char in text:
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


@dataclass
class _OpenClass:
    name: str
    qualified: str
    namespace: str
    indent: int
    line: int
    bases: List[str]
    metaclass: str
    decorators: List[str]
    body_indent: Optional[int] = None
    members: List[MemberSignature] = field(default_factory=list)
    enum_values: List[str] = field(default_factory=list)
    public_methods: int = 0
    abstract_methods: int = 0
    init_indent: Optional[int] = None
    init_body_indent: Optional[int] = None
    init_params: Dict[str, str] = field(default_factory=dict)


class LineHeuristicParser:
    """Regex-based declaration source."""

    name = "heuristic"

    def __init__(self, event_types: Optional[Iterable[str]] = None):
        self.event_types: Set[str] = set(event_types or ())

    def parse(self, path: Path, module: str, text: str) -> ParseOutcome:
        outcome = ParseOutcome()
        imports = self._imports(text, module, path)
        file_label = path.as_posix()

        stack: List[_OpenClass] = []
        decorators: List[str] = []
        function_indent: Optional[int] = None
        finished: List[_OpenClass] = []

        for lineno, raw in self._logical_lines(text):
            stripped = raw.strip()
            indent = _indent(raw)

            if function_indent is not None:
                if indent > function_indent:
                    continue
                function_indent = None

            while stack and indent <= stack[-1].indent:
                finished.append(stack.pop())

            current = stack[-1] if stack else None
            if current is not None and current.body_indent is None:
                current.body_indent = indent
            in_init = (
                current is not None
                and current.init_indent is not None
                and indent > current.init_indent
            )

            decorator = DECORATOR.match(raw)
            if decorator:
                decorators.append(decorator.group(1))
                continue

            if CLASS_START.match(raw):
                pending, decorators = decorators, []
                if in_init:
                    # Classes local to a function are not declarations
                    function_indent = indent
                    continue
                namespace = current.qualified if current else module
                name = CLASS_START.match(raw).group(2)
                try:
                    opened = self._open_class(raw, name, namespace, indent, lineno, pending, file_label)
                except DeclarationAmbiguous as e:
                    logger.info(f"Parser coverage gap: {e.message}")
                    outcome.ambiguous.append(skipped_from_error(e, file_label, "declaration"))
                    function_indent = indent
                    continue
                stack.append(opened)
                continue

            if DEF_START.match(raw):
                pending, decorators = decorators, []
                if current is not None and indent == current.body_indent:
                    current.init_indent = None
                    self._method(raw, current, pending)
                    if current.init_indent is not None:
                        continue
                function_indent = indent
                continue

            decorators = []
            if in_init:
                if current.init_body_indent is None:
                    current.init_body_indent = indent
                if indent == current.init_body_indent:
                    self._init_line(stripped, current)
                continue
            if current is None or indent != current.body_indent:
                continue
            self._attribute(stripped, current)

        finished.extend(reversed(stack))

        opened_classes = sorted(finished, key=lambda c: c.line)
        local_classes: Dict[str, str] = {}
        for opened in opened_classes:
            local_classes.setdefault(opened.name, opened.qualified)

        for opened in opened_classes:
            if is_public_type(opened.name):
                outcome.declarations.append(
                    self._declaration(opened, module, file_label, imports, local_classes)
                )
        return outcome

    def _logical_lines(self, text: str) -> Iterator[Tuple[int, str]]:
        """Yield ``(line number, line)`` skipping blanks, comments and string bodies.

        ``def`` headers whose parameters span several lines are joined into one.
        """
        lines = text.splitlines()
        in_string: Optional[str] = None
        index = 0
        while index < len(lines):
            raw = lines[index]
            lineno = index + 1
            index += 1

            if in_string is not None:
                if raw.count(in_string) % 2 == 1:
                    in_string = None
                continue

            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            for delimiter in ('"""', "'''"):
                if raw.count(delimiter) % 2 == 1:
                    in_string = delimiter
                    break

            if DEF_START.match(raw):
                depth = raw.count("(") - raw.count(")")
                while depth > 0 and index < len(lines):
                    continuation = lines[index].strip()
                    index += 1
                    depth += continuation.count("(") - continuation.count(")")
                    raw = f"{raw.rstrip()} {continuation}"
                raw = raw.replace("( ", "(").replace(", )", ")")

            yield lineno, raw

    def _imports(self, text: str, module: str, path: Path) -> Dict[str, str]:
        imports: Dict[str, str] = {}
        package = package_of(module, path)
        for line in text.splitlines():
            plain = PLAIN_IMPORT.match(line.strip())
            if plain:
                for name in plain.group(1).split(","):
                    target, _, alias = name.strip().partition(" as ")
                    target, alias = target.strip(), alias.strip()
                    if not target:
                        continue
                    local = alias or target.split(".", 1)[0]
                    imports[local] = target if alias else local
                continue
            match = FROM_IMPORT.match(line.strip())
            if not match:
                continue
            source = match.group(1)
            if source.startswith("."):
                level = len(source) - len(source.lstrip("."))
                parts = package.split(".") if package else []
                if level > 1:
                    parts = parts[: len(parts) - (level - 1)]
                source = ".".join(p for p in parts + [source.lstrip(".")] if p)
            for name in match.group(2).split(","):
                pieces = name.split(" as ")
                original = pieces[0].strip()
                local = pieces[-1].strip()
                if original and original != "*":
                    imports[local] = f"{source}.{original}" if source else original
        return imports

    def _open_class(
        self,
        raw: str,
        name: str,
        namespace: str,
        indent: int,
        lineno: int,
        decorators: List[str],
        file_label: str,
    ) -> _OpenClass:
        qualified = f"{namespace}.{name}"
        header = CLASS_HEADER.match(raw)
        if not header:
            raise DeclarationAmbiguous(
                f"Cannot classify {qualified}: class header spans several lines",
                file_path=file_label,
                symbol=qualified,
                line_number=lineno,
            )

        bases, metaclass = [], ""
        for part in split_top_level(header.group(3) or ""):
            if part.startswith("metaclass="):
                metaclass = part.split("=", 1)[1].strip()
                continue
            if "=" in part:
                continue
            base = part.split("[", 1)[0].strip()
            if not re.fullmatch(r'[\w.]+', base):
                raise DeclarationAmbiguous(
                    f"Cannot classify {qualified}: base expression {part!r} is not a name",
                    file_path=file_label,
                    symbol=qualified,
                    line_number=lineno,
                )
            bases.append(base)

        return _OpenClass(
            name=name,
            qualified=qualified,
            namespace=namespace,
            indent=indent,
            line=lineno,
            bases=bases,
            metaclass=metaclass,
            decorators=decorators,
        )

    def _method(self, raw: str, current: _OpenClass, decorators: List[str]) -> None:
        header = DEF_HEADER.match(raw)
        name_match = re.search(r'def\s+(\w+)', raw)
        name = name_match.group(1) if name_match else ""

        if name == "__init__":
            current.init_indent = _indent(raw)
            if header:
                current.init_params = self._params(header.group(4))
            return
        if not is_public_member(name):
            return
        if any(d.endswith((".setter", ".deleter")) for d in decorators):
            return

        current.public_methods += 1
        shorts = {d.rsplit(".", 1)[-1] for d in decorators}
        if shorts & ABSTRACT_DECORATORS:
            current.abstract_methods += 1

        returns = describe_text(header.group(5)) if header else ANY
        if shorts & PROPERTY_DECORATORS:
            current.members.append(MemberSignature(name, returns, MemberKind.PROPERTY))
            return
        if header and header.group(2):
            returns = async_return(returns)
        current.members.append(MemberSignature(name, returns, MemberKind.METHOD))

    def _params(self, text: str) -> Dict[str, str]:
        params = {}
        for part in split_top_level(text):
            name, sep, annotation = part.partition(":")
            if sep:
                params[name.strip().lstrip("*")] = annotation.split("=", 1)[0].strip()
        return params

    def _init_line(self, stripped: str, current: _OpenClass) -> None:
        annotated = SELF_ANNOTATED.match(stripped)
        if annotated:
            attr, descriptor = annotated.group(1), describe_text(annotated.group(2))
        else:
            assigned = SELF_ASSIGNED.match(stripped)
            if not assigned:
                return
            attr = assigned.group(1)
            param = assigned.group(2)
            descriptor = describe_text(current.init_params[param]) if param in current.init_params else ANY
        if is_public_member(attr):
            current.members.append(MemberSignature(attr, descriptor, attribute_kind(descriptor, self.event_types)))

    def _attribute(self, stripped: str, current: _OpenClass) -> None:
        current.init_indent = None
        annotated = ANNOTATED.match(stripped)
        if annotated:
            name = annotated.group(2)
            if is_public_member(name):
                descriptor = describe_text(annotated.group(3))
                current.members.append(
                    MemberSignature(name, descriptor, attribute_kind(descriptor, self.event_types))
                )
            if "=" in stripped and not name.startswith("_"):
                current.enum_values.append(name)
            return
        assigned = ASSIGNED.match(stripped)
        if assigned and not assigned.group(2).startswith("_"):
            current.enum_values.append(assigned.group(2))

    def _declaration(
        self,
        opened: _OpenClass,
        module: str,
        file_label: str,
        imports: Dict[str, str],
        local_classes: Dict[str, str],
    ) -> TypeDeclaration:
        resolved = [self._resolve(b, module, imports, local_classes) for b in opened.bases]
        kind = classify_kind(
            resolved,
            decorators=opened.decorators,
            metaclass=opened.metaclass,
            public_methods=opened.public_methods,
            abstract_methods=opened.abstract_methods,
        )
        if kind is DeclarationKind.ENUM:
            members = [MemberSignature(v, opened.name, MemberKind.PROPERTY) for v in opened.enum_values]
        else:
            members = opened.members

        return TypeDeclaration(
            qualified_name=opened.qualified,
            module=module,
            namespace=opened.namespace,
            kind=kind,
            members=tuple(unique_members(members)),
            base_types=frozenset(b for b in resolved if b != "object"),
            location=SourceLocation(file_label, opened.line),
        )

    def _resolve(
        self, name: str, module: str, imports: Dict[str, str], local_classes: Dict[str, str]
    ) -> str:
        head, _, rest = name.partition(".")
        if head in imports:
            target = imports[head]
        elif head in local_classes:
            target = local_classes[head]
        elif head in BUILTIN_NAMES:
            return name
        else:
            target = f"{module}.{head}"
        return f"{target}.{rest}" if rest else target
