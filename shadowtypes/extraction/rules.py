"""Classification rules shared by every declaration source."""

import builtins
from pathlib import Path
from typing import Iterable, List, Sequence, Set

from ..core.errors import ShadowTypesError
from ..core.types import DeclarationKind, MemberKind, MemberSignature, SkippedItem
from .descriptors import outer_name

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
PROTOCOL_BASES = {"Protocol"}
ABSTRACT_BASES = {"ABC"}
ABSTRACT_METACLASSES = {"ABCMeta"}
RECORD_BASES = {"NamedTuple", "TypedDict", "BaseModel"}
RECORD_DECORATORS = {"dataclass", "define", "frozen", "mutable", "attr.s", "attr.attrs", "attrs"}
ABSTRACT_DECORATORS = {"abstractmethod", "abstractproperty"}
PROPERTY_DECORATORS = {"property", "cached_property"}
CALLABLE_DUNDERS = {"__call__"}
BUILTIN_NAMES = frozenset(dir(builtins))


def is_public_member(name: str) -> bool:
    """Private members are excluded; dunders are excluded except ``__call__``."""
    if name in CALLABLE_DUNDERS:
        return True
    return not name.startswith("_")


def is_public_type(name: str) -> bool:
    return not name.startswith("_")


def package_of(module: str, path: Path) -> str:
    """Package that relative imports in ``module`` are resolved against."""
    if path.name == "__init__.py":
        return module
    return module.rpartition(".")[0]


def is_record_decorator(dotted: str) -> bool:
    return dotted in RECORD_DECORATORS or dotted.rsplit(".", 1)[-1] in {"dataclass", "define"}


def classify_kind(
    base_names: Iterable[str],
    decorators: Iterable[str] = (),
    metaclass: str = "",
    public_methods: int = 0,
    abstract_methods: int = 0,
) -> DeclarationKind:
    """
    Map what a class header says to a declaration kind.

    Args:
        base_names: Resolved base names (dotted or short)
        decorators: Dotted decorator names
        metaclass: Dotted metaclass name, empty when not given
        public_methods: Number of public methods declared in the body
        abstract_methods: How many of those are abstract
    """
    shorts = {name.rsplit(".", 1)[-1] for name in base_names}

    if shorts & ENUM_BASES:
        return DeclarationKind.ENUM
    if shorts & PROTOCOL_BASES:
        return DeclarationKind.INTERFACE

    abstract = bool(shorts & ABSTRACT_BASES) or metaclass.rsplit(".", 1)[-1] in ABSTRACT_METACLASSES
    if abstract and public_methods and public_methods == abstract_methods:
        return DeclarationKind.INTERFACE

    if shorts & RECORD_BASES or any(is_record_decorator(d) for d in decorators):
        return DeclarationKind.STRUCT

    return DeclarationKind.CLASS


def attribute_kind(descriptor: str, event_types: Set[str]) -> MemberKind:
    return MemberKind.EVENT if outer_name(descriptor) in event_types else MemberKind.PROPERTY


def unique_members(members: Sequence[MemberSignature]) -> List[MemberSignature]:
    """Drop repeated member names, keeping the first occurrence."""
    seen = set()
    result = []
    for member in members:
        if member.name in seen:
            continue
        seen.add(member.name)
        result.append(member)
    return result


def skipped_from_error(error: ShadowTypesError, path: str, kind: str) -> SkippedItem:
    return SkippedItem(
        path=path,
        reason=error.message,
        kind=kind,
        symbol=getattr(error, "symbol", None),
        line=getattr(error, "line_number", None),
    )
