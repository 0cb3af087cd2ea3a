"""Tests for candidate classification and the inheritance tie-break."""

from shadowtypes.analyzers.classifier import Classifier, InheritanceIndex, concept_for
from shadowtypes.config import EngineConfig
from shadowtypes.core.issues import (
    MEMBER_OVERLAP,
    STRUCTURAL_DUPLICATE,
    TYPE_NAME_COLLISION,
    VALUE_SET_OVERLAP,
    Severity,
    SimilarityCandidate,
    Strategy,
)
from shadowtypes.core.types import DeclarationKind
from shadowtypes.pipeline import analyze_declarations


class TestInheritanceIndex:
    """Transitive ancestry."""

    def test_transitive_ancestors(self, declaration):
        decls = [
            declaration("a.Base"),
            declaration("a.Middle", bases=["a.Base"]),
            declaration("a.Leaf", bases=["a.Middle"]),
        ]
        index = InheritanceIndex(decls)

        assert index.ancestors("a.Leaf") == frozenset({"a.Middle", "a.Base"})
        assert index.related(decls[0], decls[2])
        assert index.related(decls[2], decls[0])

    def test_cycle_does_not_loop(self, declaration):
        decls = [declaration("a.A", bases=["a.B"]), declaration("a.B", bases=["a.A"])]
        index = InheritanceIndex(decls)

        assert index.ancestors("a.A") == frozenset({"a.B"})

    def test_siblings_are_unrelated(self, declaration):
        decls = [
            declaration("a.Base"),
            declaration("a.Left", bases=["a.Base"]),
            declaration("a.Right", bases=["a.Base"]),
        ]
        assert not InheritanceIndex(decls).related(decls[1], decls[2])


class TestClassifier:
    """Concept mapping and tie-breaks."""

    def _interfaces(self, declaration):
        base = declaration(
            "store.IStore",
            kind=DeclarationKind.INTERFACE,
            methods=[("save", "void"), ("load", "string")],
        )
        derived = declaration(
            "store.ICachedStore",
            kind=DeclarationKind.INTERFACE,
            methods=[("save", "void"), ("load", "string"), ("evict", "void")],
            bases=["store.IStore"],
        )
        return base, derived

    def test_concept_mapping(self, declaration):
        a, b = declaration("a.X"), declaration("b.X")
        e1 = declaration("a.E", kind=DeclarationKind.ENUM)
        e2 = declaration("b.F", kind=DeclarationKind.ENUM)

        assert concept_for(SimilarityCandidate((a, b), Strategy.EXACT_NAME, 1.0)) == TYPE_NAME_COLLISION
        assert concept_for(SimilarityCandidate((a, b), Strategy.STRUCTURAL, 1.0)) == STRUCTURAL_DUPLICATE
        assert concept_for(SimilarityCandidate((e1, e2), Strategy.OVERLAP, 1.0)) == VALUE_SET_OVERLAP

    def test_inherited_overlap_is_exempt(self, declaration):
        base, derived = self._interfaces(declaration)
        candidate = SimilarityCandidate(
            (base, derived), Strategy.OVERLAP, 1.0, {"common": ["load", "save"], "common_count": 2}
        )
        classifier = Classifier(EngineConfig(), [base, derived])

        assert classifier.classify(candidate) is None
        assert classifier.exempted == [candidate]

    def test_inheritance_does_not_hide_structural_duplicates(self, declaration):
        parent = declaration("a.Point", properties=[("x", "int"), ("y", "int")])
        child = declaration("b.Point2", properties=[("x", "int"), ("y", "int")], bases=["a.Point"])
        candidate = SimilarityCandidate((parent, child), Strategy.STRUCTURAL, 1.0, {"signature": "x:int;y:int"})

        violation = Classifier(EngineConfig(), [parent, child]).classify(candidate)

        assert violation is not None
        assert violation.concept == STRUCTURAL_DUPLICATE
        assert violation.severity is Severity.HARD
        assert violation.evidence["strategy"] == "structural"

    def test_unrelated_overlap_is_reported(self, declaration):
        a = declaration("a.IReader", kind=DeclarationKind.INTERFACE,
                        methods=[("read", "string"), ("close", "void")])
        b = declaration("b.ISource", kind=DeclarationKind.INTERFACE,
                        methods=[("read", "string"), ("close", "void"), ("open", "void")])

        violations = analyze_declarations([a, b])

        overlap = [v for v in violations if v.concept == MEMBER_OVERLAP]
        assert len(overlap) == 1
        assert overlap[0].severity is Severity.ADVISORY
        assert "share 2 members" in overlap[0].reason

    def test_configured_severity_is_used(self, declaration):
        config = EngineConfig(severities={"member-overlap": "Hard"})
        a = declaration("a.IReader", kind=DeclarationKind.INTERFACE,
                        methods=[("read", "string"), ("close", "void")])
        b = declaration("b.ISource", kind=DeclarationKind.INTERFACE,
                        methods=[("read", "string"), ("close", "void")])

        violations = [v for v in analyze_declarations([a, b], config) if v.concept == MEMBER_OVERLAP]

        assert violations[0].severity is Severity.HARD

    def test_pipeline_drops_inherited_overlap_only(self, declaration):
        base, derived = self._interfaces(declaration)

        concepts = {v.concept for v in analyze_declarations([base, derived])}

        assert MEMBER_OVERLAP not in concepts
