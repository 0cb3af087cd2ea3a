"""Naming-convention checks: retired (known shadow) types and suffix families."""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import ConventionConfig, EngineConfig
from ..core.issues import KNOWN_SHADOW, SUFFIX_FAMILY, Violation
from ..core.types import TypeDeclaration

logger = logging.getLogger(__name__)


def split_role_suffix(name: str, suffixes: Iterable[str]) -> Tuple[str, Optional[str]]:
    """Split ``UserResponse`` into ``("User", "Response")``; longest suffix wins."""
    for suffix in sorted(suffixes, key=len, reverse=True):
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)], suffix
    return name, None


class ConventionChecker:
    """Flags retired type names and stems declared under several role suffixes."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    @property
    def conventions(self) -> ConventionConfig:
        return self.config.conventions

    def check(self, declarations: Sequence[TypeDeclaration]) -> List[Violation]:
        violations = self.known_shadows(declarations)
        if self.conventions.suffix_family:
            violations.extend(self.suffix_families(declarations))
        return violations

    def known_shadows(self, declarations: Sequence[TypeDeclaration]) -> List[Violation]:
        """Each retired type that still exists is a violation.

        Dotted entries match a qualified name exactly; bare entries match any
        declaration with that short name.
        """
        retired = set(self.conventions.retired_types)
        if not retired:
            return []

        violations = []
        for declaration in declarations:
            if declaration.qualified_name in retired or declaration.name in retired:
                violations.append(Violation(
                    concept=KNOWN_SHADOW,
                    declarations=[declaration],
                    reason=f"{declaration.qualified_name} is a retired shadow type and must be removed",
                    score=1.0,
                    severity=self.config.severity_for(KNOWN_SHADOW),
                    evidence={"retired": declaration.name},
                ))
        return violations

    def suffix_families(self, declarations: Sequence[TypeDeclaration]) -> List[Violation]:
        """Stems that appear with more than one role suffix, one violation per stem."""
        groups: Dict[str, List[Tuple[TypeDeclaration, str]]] = defaultdict(list)
        for declaration in declarations:
            stem, suffix = split_role_suffix(declaration.name, self.conventions.role_suffixes)
            if suffix is None or len(stem) < self.conventions.min_stem_length:
                continue
            groups[stem].append((declaration, suffix))

        violations = []
        for stem in sorted(groups):
            members = groups[stem]
            suffixes = sorted({suffix for _, suffix in members})
            if len(members) < 2 or len(suffixes) < 2:
                continue
            group = sorted((d for d, _ in members), key=lambda d: (d.name, d.qualified_name))
            violations.append(Violation(
                concept=SUFFIX_FAMILY,
                declarations=group,
                reason=(
                    f"Stem '{stem}' is declared with {len(suffixes)} role suffixes "
                    f"({', '.join(suffixes)}); confirm these are distinct concepts"
                ),
                score=1.0,
                severity=self.config.severity_for(SUFFIX_FAMILY),
                evidence={"stem": stem, "suffixes": suffixes},
            ))
        logger.debug(f"Suffix families: {len(violations)} of {len(groups)} stems")
        return violations
