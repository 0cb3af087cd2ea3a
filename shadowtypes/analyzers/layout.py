"""Authoritative-location check for concepts that must live in one place."""

import fnmatch
import logging
from typing import Dict, List, Optional, Sequence

from ..config import EngineConfig
from ..core.issues import AUTHORITATIVE_LOCATION, Violation
from ..core.types import TypeDeclaration

logger = logging.getLogger(__name__)


def module_allowed(module: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatchcase(module, pattern) for pattern in patterns)


class LayoutChecker:
    """
    Checks declarations against ``authoritative_locations``.

    The mapping is ``{short type name: [module glob, ...]}``. A declaration
    of a listed name in a module that matches none of its globs is a
    violation.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    @property
    def locations(self) -> Dict[str, List[str]]:
        return self.config.authoritative_locations

    def check(self, declarations: Sequence[TypeDeclaration]) -> List[Violation]:
        if not self.locations:
            return []

        violations = []
        for declaration in declarations:
            patterns = self.locations.get(declaration.name)
            if patterns is None or module_allowed(declaration.module, patterns):
                continue
            violations.append(Violation(
                concept=AUTHORITATIVE_LOCATION,
                declarations=[declaration],
                reason=(
                    f"{declaration.name} must be declared in {', '.join(patterns)}, "
                    f"found in {declaration.module}"
                ),
                score=1.0,
                severity=self.config.severity_for(AUTHORITATIVE_LOCATION),
                evidence={"allowed": list(patterns), "module": declaration.module},
            ))
        logger.debug(f"Layout check: {len(violations)} misplaced declarations")
        return violations
