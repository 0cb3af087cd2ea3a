"""Tests for report aggregation and rendering."""

import json

from shadowtypes.analyzers.whitelist import WhitelistEntry
from shadowtypes.core.issues import ALL_CONCEPTS, DEFAULT_SEVERITIES, Severity, Violation
from shadowtypes.core.reporting import (
    FAIL,
    PASS,
    WARN,
    ViolationReporter,
    render_markdown,
    render_text,
)
from shadowtypes.core.types import SkippedItem


def violation(declaration, concept, names, severity=Severity.HARD, score=1.0):
    return Violation(
        concept=concept,
        declarations=[declaration(n) for n in names],
        reason=f"{concept} over {', '.join(names)}",
        score=score,
        severity=severity,
    )


class TestViolationReporter:
    """Grouping, ordering and pass/fail."""

    def test_every_concept_is_reported(self):
        report = ViolationReporter(DEFAULT_SEVERITIES).build([])

        assert list(report.results) == list(ALL_CONCEPTS)
        assert report.passed
        assert all(r.status == PASS for r in report.results.values())

    def test_hard_fails_advisory_warns(self, declaration):
        report = ViolationReporter(DEFAULT_SEVERITIES).build([
            violation(declaration, "type-name-collision", ["a.X", "b.X"]),
            violation(declaration, "name-similarity", ["a.Foo", "b.Fooo"], Severity.ADVISORY, 0.75),
        ])

        assert report.result_for("type-name-collision").status == FAIL
        assert report.result_for("name-similarity").status == WARN
        assert report.failed_concepts == ["type-name-collision"]
        assert report.warned_concepts == ["name-similarity"]
        assert not report.passed

    def test_advisory_only_passes_unless_strict(self, declaration):
        report = ViolationReporter(DEFAULT_SEVERITIES).build([
            violation(declaration, "suffix-family", ["a.UserDto", "a.UserModel"], Severity.ADVISORY),
        ])

        assert report.passed
        assert not report.passed_strict()

    def test_duplicates_are_collapsed_and_ordered(self, declaration):
        report = ViolationReporter(DEFAULT_SEVERITIES).build([
            violation(declaration, "type-name-collision", ["c.Y", "d.Y"]),
            violation(declaration, "type-name-collision", ["b.X", "a.X"]),
            violation(declaration, "type-name-collision", ["a.X", "b.X"]),
        ])

        names = [sorted(v.qualified_names) for v in report.violations]
        assert names == [["a.X", "b.X"], ["c.Y", "d.Y"]]

    def test_to_json(self, declaration):
        entry = WhitelistEntry(frozenset({"a.Z", "b.Z"}), "approved")
        report = ViolationReporter(DEFAULT_SEVERITIES).build(
            [violation(declaration, "structural-duplicate", ["a.P", "b.Q"])],
            skipped=[SkippedItem("bad.py", "Syntax error", line=3)],
            suppressed=[(violation(declaration, "type-name-collision", ["a.Z", "b.Z"]), entry)],
            files_scanned=4,
            declarations_scanned=6,
        )
        data = json.loads(report.to_json())

        assert data["passed"] is False
        assert data["summary"] == {
            "files_scanned": 4,
            "declarations_scanned": 6,
            "violations": 1,
            "suppressed": 1,
            "skipped": 1,
        }
        assert data["violations"][0]["declarations"][0]["qualified_name"] == "a.P"
        assert data["suppressed"][0] == {
            "concept": "type-name-collision",
            "types": ["a.Z", "b.Z"],
            "justification": "approved",
        }
        assert data["skipped"][0]["line"] == 3


class TestRenderers:
    """Plain text and Markdown output."""

    def test_render_text(self, declaration):
        report = ViolationReporter(DEFAULT_SEVERITIES).build(
            [violation(declaration, "type-name-collision", ["a.X", "b.X"])],
            skipped=[SkippedItem("bad.py", "Syntax error")],
        )
        text = render_text(report)

        assert "[FAIL] type-name-collision (Hard): 1" in text
        assert "[PASS] structural-duplicate (Hard): 0" in text
        assert "Skipped during extraction: 1" in text
        assert text.endswith("RESULT: FAIL (type-name-collision)")

    def test_render_markdown(self, declaration):
        report = ViolationReporter(DEFAULT_SEVERITIES).build(
            [violation(declaration, "name-similarity", ["a.Foo", "b.Fooo"], Severity.ADVISORY)]
        )
        markdown = render_markdown(report)

        assert markdown.startswith("# Shadow Type Analysis")
        assert "**Result:** PASS" in markdown
        assert "| name-similarity | Advisory | WARN | 1 |" in markdown
        assert "## name-similarity" in markdown
