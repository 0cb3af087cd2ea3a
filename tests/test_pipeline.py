"""End-to-end tests for the detector pipeline."""

import pytest

from shadowtypes import EngineConfig, ShadowTypeDetector, scan
from shadowtypes.analyzers.whitelist import WhitelistEntry
from shadowtypes.core.errors import CorpusUnavailable, ThresholdMisconfigured
from shadowtypes.core.reporting import FAIL, PASS, WARN


@pytest.fixture
def collision_corpus(write_corpus):
    return write_corpus({
        "core/__init__.py": "",
        "core/results.py": '''
            class OperationResult:
                succeeded: bool
                message: str
        ''',
        "execution/__init__.py": "",
        "execution/results.py": '''
            class OperationResult:
                exit_code: int
        ''',
    })


class TestScenarios:
    """The three canonical shadow-type scenarios."""

    def test_name_collision(self, collision_corpus):
        report = scan(collision_corpus)

        violations = report.violations_for("type-name-collision")
        assert len(violations) == 1
        assert violations[0].locations == ["core/results.py:1", "execution/results.py:1"]
        assert sorted(violations[0].qualified_names) == [
            "core.results.OperationResult",
            "execution.results.OperationResult",
        ]
        assert report.result_for("type-name-collision").status == FAIL
        assert not report.passed

    def test_enum_value_overlap(self, write_corpus):
        root = write_corpus({
            "system.py": '''
                from enum import Enum

                class SystemState(Enum):
                    Running = 1
                    Paused = 2
                    Faulted = 3
            ''',
            "session.py": '''
                from enum import Enum

                class SessionState(Enum):
                    Running = 1
                    Paused = 2
                    Faulted = 3
                    Closed = 4
            ''',
        })
        report = scan(root)

        violations = report.violations_for("value-set-overlap")
        assert len(violations) == 1
        assert violations[0].score == 1.0
        assert violations[0].evidence["common_count"] == 3
        assert report.result_for("value-set-overlap").status == WARN

    def test_structural_duplicate(self, write_corpus):
        root = write_corpus({
            "users.py": '''
                from dataclasses import dataclass

                @dataclass
                class UserDto:
                    Name: str
                    Age: int
            ''',
            "people.py": '''
                from dataclasses import dataclass

                @dataclass
                class PersonRecord:
                    Age: int
                    Name: str
            ''',
        })
        report = scan(root)

        assert len(report.violations_for("structural-duplicate")) == 1
        assert report.violations_for("name-similarity") == []
        assert report.violations_for("structural-duplicate")[0].evidence["signature"] == "Age:int;Name:string"
        assert not report.passed

    def test_plain_class_and_dataclass_are_compared(self, write_corpus):
        root = write_corpus({
            "core/results.py": '''
                class OperationResult:
                    ok: bool
                    message: str
            ''',
            "execution/results.py": '''
                from dataclasses import dataclass

                @dataclass
                class OperationResult:
                    ok: bool
                    message: str
            ''',
        })
        report = scan(root)

        assert len(report.violations_for("type-name-collision")) == 1
        assert len(report.violations_for("structural-duplicate")) == 1
        assert not report.passed


class TestDetector:
    """Pipeline behaviour around the scenarios."""

    def test_clean_corpus_passes(self, write_corpus):
        root = write_corpus({
            "billing.py": "class Invoice:\n    total: int\n",
            "shipping.py": "class Parcel:\n    weight: float\n",
        })
        report = scan(root)

        assert report.passed
        assert report.violations == []
        assert all(r.status == PASS for r in report.results.values())
        assert report.files_scanned == 2
        assert report.declarations_scanned == 2

    def test_runs_are_idempotent(self, collision_corpus):
        first = scan(collision_corpus).to_dict()
        second = scan(collision_corpus).to_dict()

        assert first == second

    def test_unreadable_file_is_reported_not_fatal(self, collision_corpus):
        (collision_corpus / "broken.py").write_text("class Broken(:\n")

        report = scan(collision_corpus)

        assert [s.path for s in report.skipped] == ["broken.py"]
        assert len(report.violations_for("type-name-collision")) == 1

    def test_missing_root(self, tmp_path):
        with pytest.raises(CorpusUnavailable):
            scan(tmp_path / "missing")

    def test_config_changed_after_construction_is_validated(self, collision_corpus, tmp_path):
        config = EngineConfig()
        config.strategies.name_threshold = 1.7
        with pytest.raises(ThresholdMisconfigured):
            scan(collision_corpus, config)

        # Validation happens before the corpus is touched
        config.strategies.name_threshold = 0.6
        config.strategies.member_min_common = -4
        with pytest.raises(ThresholdMisconfigured):
            scan(tmp_path / "missing", config)


    def test_whitelist_suppresses(self, collision_corpus):
        config = EngineConfig(whitelist=[WhitelistEntry(
            frozenset({"core.results.OperationResult", "execution.results.OperationResult"}),
            "Execution keeps its own result until the v2 runner lands",
        )])

        report = ShadowTypeDetector(config).run(collision_corpus)

        assert report.passed
        assert len(report.suppressed) == 1
        assert report.to_dict()["suppressed"][0]["justification"].startswith("Execution keeps")

    def test_concept_selection(self, collision_corpus):
        report = ShadowTypeDetector().run(collision_corpus, concepts=["structural-duplicate"])

        assert list(report.results) == ["structural-duplicate"]
        assert report.passed

    def test_default_excludes_skip_tests(self, write_corpus):
        root = write_corpus({
            "app/models.py": "class Order:\n    id: int\n",
            "tests/test_models.py": "class Order:\n    id: int\n",
        })

        assert scan(root).passed

    def test_heuristic_source(self, collision_corpus):
        report = scan(collision_corpus, EngineConfig(source="heuristic"))

        assert report.source == "heuristic"
        assert len(report.violations_for("type-name-collision")) == 1

    @pytest.mark.parametrize("source", ["ast", "heuristic"])
    def test_same_module_parent_is_not_member_overlap(self, write_corpus, source):
        root = write_corpus({
            "io_api.py": '''
                from typing import Protocol

                class IReader(Protocol):
                    def read(self) -> str: ...
                    def close(self) -> None: ...

                class IBufferedReader(IReader, Protocol):
                    def read(self) -> str: ...
                    def close(self) -> None: ...
                    def peek(self) -> str: ...
            ''',
        })
        report = scan(root, EngineConfig(source=source))

        assert report.declarations_scanned == 2
        assert report.violations_for("member-overlap") == []



class TestConventionConcepts:
    """Known shadows, suffix families, layout and forwarding in a full run."""

    def test_retired_type(self, collision_corpus):
        config = EngineConfig()
        config.conventions.retired_types = ["execution.results.OperationResult"]

        report = scan(collision_corpus, config)

        violations = report.violations_for("known-shadow")
        assert [sorted(v.qualified_names) for v in violations] == [["execution.results.OperationResult"]]

    def test_authoritative_location(self, collision_corpus):
        config = EngineConfig(authoritative_locations={"OperationResult": ["core.*"]})

        report = scan(collision_corpus, config)

        violations = report.violations_for("authoritative-location")
        assert len(violations) == 1
        assert violations[0].declarations[0].module == "execution.results"

    def test_pure_forwarding_is_advisory(self, write_corpus):
        root = write_corpus({
            "orders.py": '''
                class OrderService:
                    def place(self, order):
                        if not order:
                            raise ValueError("empty order")
                        return order

                class OrderFacade:
                    def __init__(self, service):
                        self.service = service

                    def place(self, order):
                        return self.service.place(order)
            ''',
        })
        report = scan(root)

        violations = report.violations_for("pure-forwarding")
        assert [v.declarations[0].name for v in violations] == ["OrderFacade"]
        assert report.result_for("pure-forwarding").status == WARN
