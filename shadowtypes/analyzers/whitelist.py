"""
Whitelist system for flagged declaration groups that may legitimately coexist.

Entries are externally maintained configuration data. Matching is exact and
order independent: an entry for (A, B) suppresses a violation over exactly
{A, B} and nothing wider. Partial-name matching exists only as an explicitly
declared ``prefix`` rule.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import yaml

from ..core.errors import ThresholdMisconfigured
from ..core.issues import ALL_CONCEPTS, Violation

logger = logging.getLogger(__name__)

EXACT_RULE = "exact"
PREFIX_RULE = "prefix"
WHITELIST_FORMAT_VERSION = 1


@dataclass(frozen=True)
class WhitelistEntry:
    """A group of qualified names allowed to coexist."""
    types: FrozenSet[str]
    justification: str
    rule: str = EXACT_RULE
    concepts: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.types:
            raise ThresholdMisconfigured("Whitelist entry lists no types", setting="whitelist.types")
        if not self.justification or not self.justification.strip():
            raise ThresholdMisconfigured(
                f"Whitelist entry {sorted(self.types)} has no justification",
                setting="whitelist.justification",
            )
        if self.rule not in (EXACT_RULE, PREFIX_RULE):
            raise ThresholdMisconfigured(
                f"Unknown whitelist rule {self.rule!r}", setting="whitelist.rule", value=self.rule
            )
        unknown = set(self.concepts) - set(ALL_CONCEPTS)
        if unknown:
            raise ThresholdMisconfigured(
                f"Whitelist entry scoped to unknown concepts: {sorted(unknown)}",
                setting="whitelist.concepts",
                value=sorted(unknown),
            )

    def applies_to(self, concept: str) -> bool:
        return not self.concepts or concept in self.concepts

    def matches(self, violation: Violation) -> bool:
        """Check whether this entry suppresses the given violation."""
        if not self.applies_to(violation.concept):
            return False

        names = violation.qualified_names
        if self.rule == EXACT_RULE:
            return names == self.types

        # Prefix rule: every declaration is covered by some prefix and
        # every prefix covers some declaration.
        covered = all(any(n.startswith(p) for p in self.types) for n in names)
        used = all(any(n.startswith(p) for n in names) for p in self.types)
        return covered and used

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WhitelistEntry":
        """Create from a configuration mapping."""
        types = data.get("types") or data.get("key") or []
        if isinstance(types, str):
            types = [t.strip() for t in types.split(",") if t.strip()]
        return cls(
            types=frozenset(types),
            justification=str(data.get("justification", "")),
            rule=str(data.get("rule", EXACT_RULE)),
            concepts=frozenset(data.get("concepts") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "types": sorted(self.types),
            "justification": self.justification,
            "rule": self.rule,
        }
        if self.concepts:
            result["concepts"] = sorted(self.concepts)
        return result


def load_whitelist_file(path: Union[str, Path]) -> List[WhitelistEntry]:
    """Load entries from a versioned YAML or JSON whitelist file.

    Args:
        path: Whitelist file path

    Returns:
        List of whitelist entries
    """
    path = Path(path)
    if not path.exists():
        raise ThresholdMisconfigured(f"Whitelist file not found: {path}", setting="whitelist_files")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}

    if isinstance(data, list):
        raw_entries = data
    else:
        version = data.get("version", WHITELIST_FORMAT_VERSION)
        if version != WHITELIST_FORMAT_VERSION:
            raise ThresholdMisconfigured(
                f"Unsupported whitelist version {version} in {path}",
                setting="whitelist.version",
                value=version,
            )
        raw_entries = data.get("entries", [])

    entries = [WhitelistEntry.from_dict(item) for item in raw_entries]
    logger.debug(f"Loaded {len(entries)} whitelist entries from {path}")
    return entries


class WhitelistResolver:
    """Removes violations covered by whitelist entries."""

    def __init__(self, entries: Optional[Iterable[WhitelistEntry]] = None):
        self.entries: Tuple[WhitelistEntry, ...] = tuple(entries or ())

    def find_entry(self, violation: Violation) -> Optional[WhitelistEntry]:
        for entry in self.entries:
            if entry.matches(violation):
                return entry
        return None

    def resolve(
        self, violations: Iterable[Violation]
    ) -> Tuple[List[Violation], List[Tuple[Violation, WhitelistEntry]]]:
        """Split violations into survivors and suppressed ones.

        Returns:
            Tuple of (surviving violations, (violation, entry) pairs that were
            suppressed)
        """
        surviving: List[Violation] = []
        suppressed: List[Tuple[Violation, WhitelistEntry]] = []

        for violation in violations:
            entry = self.find_entry(violation)
            if entry is None:
                surviving.append(violation)
            else:
                suppressed.append((violation, entry))

        if suppressed:
            logger.info(f"Whitelist suppressed {len(suppressed)} violation(s)")
        return surviving, suppressed
