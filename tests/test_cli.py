"""Tests for the command-line interface."""

import json

import pytest
import yaml
from click.testing import CliRunner

from shadowtypes.cli import main
from shadowtypes.config import EngineConfig


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def clean_corpus(write_corpus):
    return write_corpus({
        "billing.py": "class Invoice:\n    total: int\n",
        "shipping.py": "class Parcel:\n    weight: float\n",
    })


@pytest.fixture
def collision_corpus(write_corpus):
    return write_corpus({
        "core/results.py": "class OperationResult:\n    succeeded: bool\n",
        "execution/results.py": "class OperationResult:\n    exit_code: int\n",
    })


class TestScanCommand:
    """Exit codes and output formats of ``scan``."""

    def test_clean_corpus_exits_zero(self, runner, clean_corpus):
        result = runner.invoke(main, ["scan", str(clean_corpus)])

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_hard_violation_exits_one(self, runner, collision_corpus):
        result = runner.invoke(main, ["scan", str(collision_corpus)])

        assert result.exit_code == 1
        assert "type-name-collision" in result.output

    def test_missing_root_exits_two(self, runner, tmp_path):
        result = runner.invoke(main, ["scan", str(tmp_path / "missing")])

        assert result.exit_code == 2

    def test_invalid_config_exits_two(self, runner, clean_corpus, tmp_path):
        config = tmp_path / "bad.yml"
        config.write_text(yaml.safe_dump({"strategies": {"name_threshold": 2}}))

        result = runner.invoke(main, ["scan", str(clean_corpus), "--config", str(config)])

        assert result.exit_code == 2

    def test_json_report_file(self, runner, collision_corpus, tmp_path):
        target = tmp_path / "out" / "report.json"

        result = runner.invoke(main, ["scan", str(collision_corpus), "-f", "json", "-o", str(target)])

        assert result.exit_code == 1
        data = json.loads(target.read_text())
        assert data["passed"] is False
        assert data["violations"][0]["concept"] == "type-name-collision"

    def test_markdown_report_file(self, runner, clean_corpus, tmp_path):
        target = tmp_path / "report.md"

        result = runner.invoke(main, ["scan", str(clean_corpus), "-f", "markdown", "-o", str(target)])

        assert result.exit_code == 0
        assert target.read_text().startswith("# Shadow Type Analysis")

    def test_text_report_file(self, runner, clean_corpus, tmp_path):
        target = tmp_path / "report.txt"

        result = runner.invoke(main, ["scan", str(clean_corpus), "-o", str(target)])

        assert result.exit_code == 0
        assert "RESULT: PASS" in target.read_text()

    def test_strict_fails_on_advisory(self, runner, write_corpus):
        root = write_corpus({"api.py": "class UserDto:\n    name: str\n\nclass UserResponse:\n    id: int\n"})

        assert runner.invoke(main, ["scan", str(root)]).exit_code == 0
        assert runner.invoke(main, ["scan", str(root), "--strict"]).exit_code == 1

    def test_whitelist_option(self, runner, collision_corpus, tmp_path):
        whitelist = tmp_path / "whitelist.yml"
        whitelist.write_text(yaml.safe_dump({
            "version": 1,
            "entries": [{
                "types": ["core.results.OperationResult", "execution.results.OperationResult"],
                "justification": "Separate bounded contexts",
            }],
        }))

        result = runner.invoke(main, ["scan", str(collision_corpus), "-w", str(whitelist)])

        assert result.exit_code == 0

    def test_heuristic_source_option(self, runner, collision_corpus):
        result = runner.invoke(main, ["scan", str(collision_corpus), "--source", "heuristic"])

        assert result.exit_code == 1

    def test_log_dir_writes_json_lines(self, runner, clean_corpus, tmp_path):
        log_dir = tmp_path / "logs"

        result = runner.invoke(main, ["scan", str(clean_corpus), "--log-dir", str(log_dir)])

        assert result.exit_code == 0
        [log_file] = list(log_dir.glob("shadowtypes_*.jsonl"))
        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any(r["message"] == "Starting operation: scan" and r["operation"] == "scan" for r in records)



class TestCheckCommand:
    """Single-concept runs."""

    def test_only_selected_concept_counts(self, runner, collision_corpus):
        assert runner.invoke(main, ["check", "structural-duplicate", str(collision_corpus)]).exit_code == 0
        assert runner.invoke(main, ["check", "type-name-collision", str(collision_corpus)]).exit_code == 1

    def test_unknown_concept(self, runner, collision_corpus):
        result = runner.invoke(main, ["check", "shadowing", str(collision_corpus)])

        assert result.exit_code == 2


class TestUtilityCommands:
    """``concepts`` and ``init-config``."""

    def test_concepts_lists_severities(self, runner, tmp_path):
        result = runner.invoke(main, ["concepts", str(tmp_path)])

        assert result.exit_code == 0
        assert "pure-forwarding" in result.output
        assert "Advisory" in result.output

    def test_init_config(self, runner, tmp_path):
        result = runner.invoke(main, ["init-config", str(tmp_path)])

        assert result.exit_code == 0
        assert EngineConfig.from_file(tmp_path / ".shadowtypes.yml").to_dict() == EngineConfig().to_dict()

    def test_init_config_refuses_to_overwrite(self, runner, tmp_path):
        runner.invoke(main, ["init-config", str(tmp_path)])

        assert runner.invoke(main, ["init-config", str(tmp_path)]).exit_code == 2
        assert runner.invoke(main, ["init-config", str(tmp_path), "--force"]).exit_code == 0

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "shadowtypes" in result.output
