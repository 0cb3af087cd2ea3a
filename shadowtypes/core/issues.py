"""Candidate and violation data structures."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, TypedDict, Literal, Tuple, FrozenSet, Iterator
from enum import Enum

from .types import TypeDeclaration


class Severity(str, Enum):
    """Violation severity. Hard concepts fail the run, advisory ones warn."""
    HARD = "Hard"
    ADVISORY = "Advisory"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Accept ``Hard``/``hard``/``Severity.HARD``."""
        if isinstance(value, Severity):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown severity: {value!r}")


Concept = Literal[
    "type-name-collision",
    "structural-duplicate",
    "name-similarity",
    "member-overlap",
    "value-set-overlap",
    "known-shadow",
    "suffix-family",
    "authoritative-location",
    "pure-forwarding",
]

TYPE_NAME_COLLISION = "type-name-collision"
STRUCTURAL_DUPLICATE = "structural-duplicate"
NAME_SIMILARITY = "name-similarity"
MEMBER_OVERLAP = "member-overlap"
VALUE_SET_OVERLAP = "value-set-overlap"
INHERITANCE_LEGITIMATE = "inheritance-legitimate"
KNOWN_SHADOW = "known-shadow"
SUFFIX_FAMILY = "suffix-family"
AUTHORITATIVE_LOCATION = "authoritative-location"
PURE_FORWARDING = "pure-forwarding"

# Report order. Concepts produced by the similarity strategies come first.
ALL_CONCEPTS: Tuple[str, ...] = (
    TYPE_NAME_COLLISION,
    STRUCTURAL_DUPLICATE,
    NAME_SIMILARITY,
    MEMBER_OVERLAP,
    VALUE_SET_OVERLAP,
    KNOWN_SHADOW,
    SUFFIX_FAMILY,
    AUTHORITATIVE_LOCATION,
    PURE_FORWARDING,
)

DEFAULT_SEVERITIES: Dict[str, Severity] = {
    TYPE_NAME_COLLISION: Severity.HARD,
    STRUCTURAL_DUPLICATE: Severity.HARD,
    NAME_SIMILARITY: Severity.ADVISORY,
    MEMBER_OVERLAP: Severity.ADVISORY,
    VALUE_SET_OVERLAP: Severity.ADVISORY,
    KNOWN_SHADOW: Severity.HARD,
    SUFFIX_FAMILY: Severity.ADVISORY,
    AUTHORITATIVE_LOCATION: Severity.HARD,
    PURE_FORWARDING: Severity.ADVISORY,
}

# Concepts that may never be promoted to Hard.
ADVISORY_ONLY: FrozenSet[str] = frozenset({PURE_FORWARDING})


class Strategy(str, Enum):
    """Similarity strategies run by the engine."""
    EXACT_NAME = "exact-name"
    STRUCTURAL = "structural"
    NAME_SIMILARITY = "name-similarity"
    OVERLAP = "overlap"


@dataclass(frozen=True)
class SimilarityCandidate:
    """A scored group of declarations flagged by one strategy.

    Pairwise strategies produce two declarations; grouping strategies
    (exact name, structural signature) produce the whole group. The
    declarations are stored sorted by qualified name so (A, B) and (B, A)
    are the same candidate.
    """
    declarations: Tuple[TypeDeclaration, ...]
    strategy: Strategy
    score: float
    evidence: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if len(self.declarations) < 2:
            raise ValueError("A candidate needs at least two declarations")
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Score out of range: {self.score}")
        ordered = tuple(sorted(self.declarations, key=lambda d: (d.qualified_name, d.location)))
        object.__setattr__(self, "declarations", ordered)

    @property
    def first(self) -> TypeDeclaration:
        return self.declarations[0]

    @property
    def second(self) -> TypeDeclaration:
        return self.declarations[1]

    @property
    def key(self) -> FrozenSet[str]:
        """Order-independent identity of the flagged declarations."""
        return frozenset(d.qualified_name for d in self.declarations)


class ViolationDict(TypedDict, total=False):
    """Type definition for violation dictionary representation."""
    concept: str
    severity: str
    reason: str
    score: float
    declarations: List[Dict[str, Any]]
    evidence: Dict[str, Any]


@dataclass
class Violation:
    """A classified finding that survived the tie-break rules."""

    concept: Concept
    declarations: List[TypeDeclaration]
    reason: str
    score: float
    severity: Severity
    evidence: Dict[str, Any] = field(default_factory=dict)

    @property
    def qualified_names(self) -> FrozenSet[str]:
        return frozenset(d.qualified_name for d in self.declarations)

    @property
    def locations(self) -> List[str]:
        return [str(d.location) for d in self.declarations]

    def sort_key(self) -> Tuple[Any, ...]:
        return (
            tuple(sorted(self.qualified_names)),
            -self.score,
            self.reason,
        )

    def to_dict(self) -> ViolationDict:
        """Convert to dictionary for JSON serialization."""
        result: ViolationDict = {
            "concept": self.concept,
            "severity": self.severity.value,
            "reason": self.reason,
            "score": round(self.score, 4),
            "declarations": [
                {
                    "qualified_name": d.qualified_name,
                    "kind": d.kind.value,
                    "file": d.location.file,
                    "line": d.location.line,
                }
                for d in self.declarations
            ],
            "evidence": self.evidence,
        }
        return result

    def __hash__(self) -> int:
        """Make hashable for deduplication."""
        return hash((self.concept, self.qualified_names))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Violation):
            return False
        return (
            self.concept == other.concept
            and self.qualified_names == other.qualified_names
        )


@dataclass
class ViolationCollection:
    """Collection of violations with convenience methods."""

    violations: List[Violation] = field(default_factory=list)

    def deduplicate(self) -> None:
        """Remove violations that repeat a concept/declaration-set pair."""
        seen = set()
        unique: List[Violation] = []
        for violation in self.violations:
            if violation not in seen:
                seen.add(violation)
                unique.append(violation)
        self.violations = unique

    def group_by_concept(self) -> Dict[str, List[Violation]]:
        result: Dict[str, List[Violation]] = {}
        for violation in self.violations:
            result.setdefault(violation.concept, []).append(violation)
        for group in result.values():
            group.sort(key=Violation.sort_key)
        return result

    def __len__(self) -> int:
        return len(self.violations)

    def __iter__(self) -> Iterator[Violation]:
        return iter(self.violations)


def concept_order(concept: str) -> int:
    """Position of a concept in report order; unknown concepts sort last."""
    try:
        return ALL_CONCEPTS.index(concept)
    except ValueError:
        return len(ALL_CONCEPTS)
