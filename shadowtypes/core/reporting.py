"""Violation Reporter: per-concept results, the run report and its text renderings."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .issues import ALL_CONCEPTS, Severity, Violation, ViolationCollection, concept_order
from .types import SkippedItem

PASS = "PASS"
FAIL = "FAIL"
WARN = "WARN"


@dataclass
class ConceptResult:
    """Outcome of one concept check."""
    concept: str
    severity: Severity
    violations: List[Violation] = field(default_factory=list)

    @property
    def status(self) -> str:
        if not self.violations:
            return PASS
        return FAIL if self.severity is Severity.HARD else WARN

    @property
    def passed(self) -> bool:
        """Advisory concepts pass with warnings; Hard ones need zero violations."""
        return self.status != FAIL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "concept": self.concept,
            "severity": self.severity.value,
            "status": self.status,
            "count": len(self.violations),
        }


@dataclass
class ViolationReport:
    """
    Structured result of one analysis run.

    ``violations`` is ordered by concept, then by the flagged names.
    ``skipped`` lists every file or declaration the extractor could not use,
    so an empty report always means nothing was found in what was scanned.
    """
    violations: List[Violation] = field(default_factory=list)
    results: Dict[str, ConceptResult] = field(default_factory=dict)
    skipped: List[SkippedItem] = field(default_factory=list)
    suppressed: List[Tuple[Violation, Any]] = field(default_factory=list)
    files_scanned: int = 0
    declarations_scanned: int = 0
    source: str = "ast"

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results.values())

    @property
    def failed_concepts(self) -> List[str]:
        return [c for c, r in self.results.items() if not r.passed]

    @property
    def warned_concepts(self) -> List[str]:
        return [c for c, r in self.results.items() if r.status == WARN]

    def result_for(self, concept: str) -> ConceptResult:
        return self.results[concept]

    def violations_for(self, concept: str) -> List[Violation]:
        return [v for v in self.violations if v.concept == concept]

    def passed_strict(self) -> bool:
        """Pass only when no concept has any violation."""
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "passed": self.passed,
            "source": self.source,
            "summary": {
                "files_scanned": self.files_scanned,
                "declarations_scanned": self.declarations_scanned,
                "violations": len(self.violations),
                "suppressed": len(self.suppressed),
                "skipped": len(self.skipped),
            },
            "concepts": [result.to_dict() for result in self.results.values()],
            "violations": [v.to_dict() for v in self.violations],
            "suppressed": [
                {
                    "concept": violation.concept,
                    "types": sorted(violation.qualified_names),
                    "justification": entry.justification,
                }
                for violation, entry in self.suppressed
            ],
            "skipped": [item.to_dict() for item in self.skipped],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class ViolationReporter:
    """Aggregates surviving violations into a ``ViolationReport``.

    Args:
        severities: Configured severity per concept
        concepts: Concepts to report on, in report order
    """

    def __init__(self, severities: Dict[str, Severity], concepts: Optional[Iterable[str]] = None):
        self.severities = severities
        self.concepts = list(concepts) if concepts is not None else list(ALL_CONCEPTS)

    def build(
        self,
        violations: Iterable[Violation],
        skipped: Iterable[SkippedItem] = (),
        suppressed: Iterable[Tuple[Violation, Any]] = (),
        files_scanned: int = 0,
        declarations_scanned: int = 0,
        source: str = "ast",
    ) -> ViolationReport:
        collection = ViolationCollection(list(violations))
        collection.deduplicate()
        grouped = collection.group_by_concept()

        results: Dict[str, ConceptResult] = {}
        ordered: List[Violation] = []
        for concept in sorted(set(self.concepts) | set(grouped), key=concept_order):
            concept_violations = grouped.get(concept, [])
            results[concept] = ConceptResult(
                concept=concept,
                severity=self.severities.get(concept, Severity.ADVISORY),
                violations=concept_violations,
            )
            ordered.extend(concept_violations)

        return ViolationReport(
            violations=ordered,
            results=results,
            skipped=sorted(skipped, key=lambda s: (s.path, s.line or 0, s.symbol or "")),
            suppressed=sorted(suppressed, key=lambda pair: (concept_order(pair[0].concept), pair[0].sort_key())),
            files_scanned=files_scanned,
            declarations_scanned=declarations_scanned,
            source=source,
        )


def render_text(report: ViolationReport) -> str:
    """Plain-text report grouped by concept."""
    lines = [
        "SHADOW TYPE ANALYSIS",
        "=" * 60,
        f"Files scanned: {report.files_scanned}  "
        f"Declarations: {report.declarations_scanned}  "
        f"Source: {report.source}",
        "",
    ]

    for concept, result in report.results.items():
        lines.append(f"[{result.status}] {concept} ({result.severity.value}): {len(result.violations)}")
        for violation in result.violations:
            lines.append(f"    - {violation.reason}")
            for declaration in violation.declarations:
                lines.append(f"        {declaration.qualified_name}  ({declaration.location})")

    if report.suppressed:
        lines.append("")
        lines.append(f"Suppressed by whitelist: {len(report.suppressed)}")
        for violation, entry in report.suppressed:
            lines.append(f"    - {violation.concept}: {', '.join(sorted(violation.qualified_names))}")
            lines.append(f"        justification: {entry.justification}")

    if report.skipped:
        lines.append("")
        lines.append(f"Skipped during extraction: {len(report.skipped)}")
        for item in report.skipped:
            where = f"{item.path}:{item.line}" if item.line else item.path
            lines.append(f"    - [{item.kind}] {where}: {item.reason}")

    lines.append("")
    lines.append("RESULT: " + ("PASS" if report.passed else "FAIL (" + ", ".join(report.failed_concepts) + ")"))
    return "\n".join(lines)


def render_markdown(report: ViolationReport) -> str:
    """Markdown audit report."""
    lines = [
        "# Shadow Type Analysis",
        "",
        f"**Result:** {'PASS' if report.passed else 'FAIL'}",
        "",
        f"- Files scanned: {report.files_scanned}",
        f"- Declarations: {report.declarations_scanned}",
        f"- Violations: {len(report.violations)}",
        f"- Suppressed by whitelist: {len(report.suppressed)}",
        f"- Skipped: {len(report.skipped)}",
        "",
        "| Concept | Severity | Status | Count |",
        "|---------|----------|--------|-------|",
    ]
    for concept, result in report.results.items():
        lines.append(f"| {concept} | {result.severity.value} | {result.status} | {len(result.violations)} |")

    for concept, result in report.results.items():
        if not result.violations:
            continue
        lines.append("")
        lines.append(f"## {concept}")
        lines.append("")
        for violation in result.violations:
            lines.append(f"- {violation.reason}")
            for declaration in violation.declarations:
                lines.append(f"  - `{declaration.qualified_name}` at `{declaration.location}`")

    if report.skipped:
        lines.append("")
        lines.append("## Skipped")
        lines.append("")
        for item in report.skipped:
            lines.append(f"- `{item.path}` ({item.kind}): {item.reason}")

    lines.append("")
    return "\n".join(lines)
