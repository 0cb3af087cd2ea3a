"""
Classifier: similarity candidates to tagged violations.

Only one tie-break exists: an overlap candidate between a type and one of
its ancestors is a legitimate specialization (``inheritance-legitimate``)
and is dropped. Other concepts on the same pair are unaffected.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from ..config import EngineConfig
from ..core.issues import (
    INHERITANCE_LEGITIMATE,
    MEMBER_OVERLAP,
    NAME_SIMILARITY,
    STRUCTURAL_DUPLICATE,
    TYPE_NAME_COLLISION,
    VALUE_SET_OVERLAP,
    SimilarityCandidate,
    Strategy,
    Violation,
)
from ..core.types import DeclarationKind, TypeDeclaration

logger = logging.getLogger(__name__)


class InheritanceIndex:
    """Transitive base-type lookup over one run's declarations."""

    def __init__(self, declarations: Iterable[TypeDeclaration]):
        self._bases: Dict[str, FrozenSet[str]] = {}
        for declaration in declarations:
            self._bases[declaration.qualified_name] = (
                self._bases.get(declaration.qualified_name, frozenset()) | declaration.base_types
            )
        self._ancestors: Dict[str, FrozenSet[str]] = {}

    def ancestors(self, qualified_name: str) -> FrozenSet[str]:
        if qualified_name in self._ancestors:
            return self._ancestors[qualified_name]

        seen: Set[str] = set()
        stack = list(self._bases.get(qualified_name, ()))
        while stack:
            base = stack.pop()
            if base in seen or base == qualified_name:
                continue
            seen.add(base)
            stack.extend(self._bases.get(base, ()))

        result = frozenset(seen)
        self._ancestors[qualified_name] = result
        return result

    def related(self, a: TypeDeclaration, b: TypeDeclaration) -> bool:
        """True when either declaration derives from the other."""
        return (
            a.qualified_name in self.ancestors(b.qualified_name)
            or b.qualified_name in self.ancestors(a.qualified_name)
        )


def concept_for(candidate: SimilarityCandidate) -> str:
    if candidate.strategy is Strategy.EXACT_NAME:
        return TYPE_NAME_COLLISION
    if candidate.strategy is Strategy.STRUCTURAL:
        return STRUCTURAL_DUPLICATE
    if candidate.strategy is Strategy.NAME_SIMILARITY:
        return NAME_SIMILARITY
    if candidate.first.kind is DeclarationKind.ENUM:
        return VALUE_SET_OVERLAP
    return MEMBER_OVERLAP


def describe(concept: str, candidate: SimilarityCandidate) -> str:
    """Human-readable reason for a violation."""
    names = ", ".join(d.qualified_name for d in candidate.declarations)
    evidence = candidate.evidence

    if concept == TYPE_NAME_COLLISION:
        modules = ", ".join(evidence.get("modules", []))
        return f"Type name '{evidence.get('name')}' is declared in {len(candidate.declarations)} places ({modules})"
    if concept == STRUCTURAL_DUPLICATE:
        return f"Identical member shape [{evidence.get('signature')}] declared by {names}"
    if concept == NAME_SIMILARITY:
        return (
            f"Names {' and '.join(evidence.get('names', []))} are {candidate.score:.0%} similar "
            f"(edit distance {evidence.get('distance')})"
        )
    what = "values" if concept == VALUE_SET_OVERLAP else "members"
    return (
        f"{names} share {evidence.get('common_count')} {what} "
        f"({candidate.score:.0%} of the smaller set): {', '.join(evidence.get('common', []))}"
    )


class Classifier:
    """
    Maps candidates to violations with configured severities.

    Args:
        config: Engine configuration (severities)
        declarations: The run's declarations, for the inheritance tie-break
    """

    def __init__(self, config: Optional[EngineConfig] = None, declarations: Iterable[TypeDeclaration] = ()):
        self.config = config or EngineConfig()
        self.inheritance = InheritanceIndex(declarations)
        self.exempted: List[SimilarityCandidate] = []

    def classify(self, candidate: SimilarityCandidate) -> Optional[Violation]:
        """Violation for one candidate, or None when a tie-break drops it."""
        concept = concept_for(candidate)

        if concept in (MEMBER_OVERLAP, VALUE_SET_OVERLAP) and self.inheritance.related(
            candidate.first, candidate.second
        ):
            logger.debug(
                f"{INHERITANCE_LEGITIMATE}: {candidate.first.qualified_name} / "
                f"{candidate.second.qualified_name}"
            )
            self.exempted.append(candidate)
            return None

        return Violation(
            concept=concept,
            declarations=list(candidate.declarations),
            reason=describe(concept, candidate),
            score=candidate.score,
            severity=self.config.severity_for(concept),
            evidence=dict(candidate.evidence, strategy=candidate.strategy.value),
        )

    def classify_all(self, candidates: Iterable[SimilarityCandidate]) -> List[Violation]:
        violations = []
        for candidate in candidates:
            violation = self.classify(candidate)
            if violation is not None:
                violations.append(violation)
        if self.exempted:
            logger.info(f"{len(self.exempted)} overlap candidate(s) exempted by inheritance")
        return violations
