"""
Language-neutral type descriptors.

Annotations are rendered into short canonical strings so that two fields
declared as ``Optional[str]`` and ``str | None`` compare equal:

    Optional[X]            -> X?
    List[X], Sequence[X]   -> X[]
    Dict[K, V]             -> Dict<K,V>
    str / None / missing   -> string / void / any
    pkg.mod.Name           -> Name
"""

import ast
from typing import Any, List, Optional

ANY = "any"
VOID = "void"

PRIMITIVES = {
    "str": "string",
    "int": "int",
    "float": "float",
    "bool": "bool",
    "bytes": "bytes",
    "complex": "complex",
    "object": "object",
    "None": VOID,
    "NoneType": VOID,
    "Any": ANY,
}

# Lower-case builtin generics share a rendering with their typing aliases
CONTAINER_ALIASES = {
    "dict": "Dict",
    "set": "Set",
    "frozenset": "FrozenSet",
    "tuple": "Tuple",
    "type": "Type",
    "Mapping": "Dict",
    "MutableMapping": "Dict",
    "AbstractSet": "Set",
    "MutableSet": "Set",
}

SEQUENCE_NAMES = {"List", "list", "Sequence", "MutableSequence"}
UNWRAPPED = {"Annotated", "ClassVar", "Final", "InitVar", "Required", "NotRequired", "ReadOnly"}


def _simple_name(name: str) -> str:
    short = name.rsplit(".", 1)[-1]
    return PRIMITIVES.get(short, short)


def _elements(node: ast.AST) -> List[ast.AST]:
    if isinstance(node, ast.Tuple):
        return list(node.elts)
    return [node]


def _union(members: List[str]) -> str:
    optional = VOID in members
    rest = [m for m in members if m != VOID]
    if not rest:
        return VOID
    if len(rest) == 1:
        core = rest[0]
    else:
        core = f"Union<{','.join(rest)}>"
    return f"{core}?" if optional else core


def _flatten_bitor(node: ast.AST) -> List[ast.AST]:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _flatten_bitor(node.left) + _flatten_bitor(node.right)
    return [node]


def describe_node(node: Optional[ast.AST]) -> str:
    """Render an annotation expression as a type descriptor."""
    if node is None:
        return ANY

    if isinstance(node, ast.Name):
        return _simple_name(node.id)

    if isinstance(node, ast.Attribute):
        return _simple_name(node.attr)

    if isinstance(node, ast.Constant):
        if node.value is None:
            return VOID
        if isinstance(node.value, str):
            # Forward reference
            return describe_text(node.value)
        if node.value is Ellipsis:
            return "..."
        return repr(node.value)

    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _union([describe_node(n) for n in _flatten_bitor(node)])

    if isinstance(node, ast.List):
        return f"({','.join(describe_node(e) for e in node.elts)})"

    if isinstance(node, ast.Call):
        # ForwardRef('X') as printed by typing reprs
        func = describe_node(node.func)
        if func == "ForwardRef" and node.args:
            return describe_node(node.args[0])

    if isinstance(node, ast.Subscript):
        outer = describe_node(node.value)
        args = _elements(node.slice)

        if outer in UNWRAPPED:
            return describe_node(args[0])
        if outer == "Optional":
            return _union([describe_node(args[0]), VOID])
        if outer == "Union":
            return _union([describe_node(a) for a in args])
        if outer in SEQUENCE_NAMES:
            return f"{describe_node(args[0])}[]"

        outer = CONTAINER_ALIASES.get(outer, outer)
        return f"{outer}<{','.join(describe_node(a) for a in args)}>"

    return ast.unparse(node)


def describe_text(text: Optional[str]) -> str:
    """Render annotation source text (or a stringified annotation)."""
    if text is None:
        return ANY
    text = text.strip()
    if not text:
        return ANY
    try:
        expr = ast.parse(text, mode="eval")
    except SyntaxError:
        return text
    return describe_node(expr.body)


def describe_runtime(annotation: Any) -> str:
    """Render an annotation object obtained by introspection."""
    if annotation is None or annotation is type(None):
        return VOID
    if isinstance(annotation, str):
        return describe_text(annotation)
    if isinstance(annotation, type) and not getattr(annotation, "__args__", None):
        return _simple_name(annotation.__name__)
    return describe_text(repr(annotation))


def async_return(descriptor: str) -> str:
    return f"Task<{descriptor}>"


def outer_name(descriptor: str) -> str:
    """Outer container name of a descriptor: ``Event<string>?`` -> ``Event``."""
    return descriptor.split("<", 1)[0].rstrip("?").replace("[]", "")
