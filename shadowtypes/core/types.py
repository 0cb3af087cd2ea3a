"""Declaration records shared by every stage of the shadow-type pipeline.

The extractor produces these records, the signature builder and similarity
engine read them, and the classifier and reporter carry them through to the
final report. They are frozen so a record created by the extractor can be
hashed, memoised and compared without any stage mutating it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Tuple, runtime_checkable


class DeclarationKind(str, Enum):
    """Kinds of type declarations. Comparisons never cross kinds."""
    CLASS = "Class"
    INTERFACE = "Interface"
    STRUCT = "Struct"
    ENUM = "Enum"


class MemberKind(str, Enum):
    """Kinds of declared members."""
    METHOD = "Method"
    EVENT = "Event"
    PROPERTY = "Property"


@dataclass(frozen=True, order=True)
class SourceLocation:
    """Where a declaration lives on disk (or in an imported module)."""
    file: str
    line: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}" if self.line else self.file


@dataclass(frozen=True)
class MemberSignature:
    """A single declared member.

    Attributes:
        name: Member name as declared
        type_descriptor: Language-neutral type rendering (``string``,
            ``int[]``, ``Dict<string,int>``); for methods this is the
            return type
        kind: Method, event or property
    """
    name: str
    type_descriptor: str
    kind: MemberKind = MemberKind.PROPERTY


@dataclass(frozen=True)
class TypeDeclaration:
    """One declared type found in the corpus.

    Members keep declaration order (first occurrence wins for repeated
    names) but every signature derived from them is order independent.
    """
    qualified_name: str
    module: str
    namespace: str
    kind: DeclarationKind
    members: Tuple[MemberSignature, ...] = ()
    base_types: FrozenSet[str] = frozenset()
    location: SourceLocation = field(default_factory=lambda: SourceLocation("<unknown>"))

    @property
    def name(self) -> str:
        """Short name, ignoring module and enclosing classes."""
        return self.qualified_name.rsplit(".", 1)[-1]

    def members_of(self, *kinds: MemberKind) -> Tuple[MemberSignature, ...]:
        """Members restricted to the given kinds."""
        return tuple(m for m in self.members if m.kind in kinds)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "qualified_name": self.qualified_name,
            "module": self.module,
            "namespace": self.namespace,
            "kind": self.kind.value,
            "members": [
                {"name": m.name, "type": m.type_descriptor, "kind": m.kind.value}
                for m in self.members
            ],
            "base_types": sorted(self.base_types),
            "file": self.location.file,
            "line": self.location.line,
        }


@dataclass(frozen=True)
class SkippedItem:
    """A file or declaration the extractor could not use.

    ``kind`` is ``"file"`` for unreadable files and ``"declaration"`` for
    constructs the parser could not classify.
    """
    path: str
    reason: str
    kind: str = "file"
    symbol: Optional[str] = None
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "reason": self.reason,
            "kind": self.kind,
            "symbol": self.symbol,
            "line": self.line,
        }


@runtime_checkable
class DeclarationSource(Protocol):
    """Turns one source file into declarations.

    Implementations raise ``FileUnreadable`` when the whole file is unusable
    and return ambiguous constructs alongside the declarations they could
    classify.
    """

    name: str

    def parse(self, path: Path, module: str, text: str) -> "ParseOutcome":
        ...


@dataclass
class ParseOutcome:
    """Result of parsing one file."""
    declarations: List[TypeDeclaration] = field(default_factory=list)
    ambiguous: List[SkippedItem] = field(default_factory=list)
