from __future__ import annotations

import logging
from pathlib import Path

import pytest

from seqrun.errors import ScenarioError
from seqrun.scenario import Scenario, ScenarioStep, load_scenario, run_scenario
from seqrun.types import FailurePhase


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "scenario.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_scenario_parses_steps_and_runner_options(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
name: switch
runner:
  name: player
  log_tracebacks: false
steps:
  - submit: A
    cleanup_delay: 0.05
  - sleep: 0.01
  - submit: B
    fail: setup
    cleanup: false
  - wait_idle: true
  - shutdown: true
""",
    )

    scenario = load_scenario(path)

    assert scenario.name == "switch"
    assert scenario.runner.name == "player"
    assert scenario.runner.log_tracebacks is False
    assert [step.action for step in scenario.steps] == [
        "submit",
        "sleep",
        "submit",
        "wait_idle",
        "shutdown",
    ]
    assert scenario.steps[0].cleanup_delay == 0.05
    assert scenario.steps[1].seconds == 0.01
    assert scenario.steps[2].fail == "setup"
    assert scenario.steps[2].cleanup is False


def test_load_scenario_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ScenarioError, match="file not found"):
        load_scenario(tmp_path / "nope.yaml")


def test_load_scenario_invalid_yaml(tmp_path: Path) -> None:
    path = _write(tmp_path, "steps: [submit: A\n")
    with pytest.raises(ScenarioError, match="invalid YAML"):
        load_scenario(path)


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({}, "non-empty 'steps'"),
        ({"steps": []}, "non-empty 'steps'"),
        ({"steps": ["submit"]}, "must be a mapping"),
        ({"steps": [{"submit": "A", "shutdown": True}]}, "exactly one"),
        ({"steps": [{"submit": "A", "fail": "sometimes"}]}, "fail must be one of"),
        ({"steps": [{"sleep": "later"}]}, "number of seconds"),
        ({"steps": [{"sleep": -1}]}, "must not be negative"),
        ({"runner": "x", "steps": [{"shutdown": True}]}, "'runner' must be a mapping"),
    ],
)
def test_scenario_validation_errors(data: object, message: str) -> None:
    with pytest.raises(ScenarioError, match=message):
        Scenario.from_dict(data)


def test_step_defaults() -> None:
    step = ScenarioStep.from_dict({"submit": 7}, 1)
    assert step.label == "7"
    assert step.setup_delay == 0.0
    assert step.fail is None
    assert step.cleanup is True


@pytest.mark.asyncio
async def test_run_scenario_gates_next_start_on_cleanup() -> None:
    scenario = Scenario.from_dict(
        {
            "name": "gated",
            "steps": [
                {"submit": "A", "cleanup_delay": 0.05},
                {"wait_idle": True},
                {"submit": "B"},
                {"shutdown": True},
            ],
        }
    )

    result = await run_scenario(scenario)

    # The shutdown lands before B starts, so only A's lifecycle runs.
    assert result.log == ["start:A", "cleanup:A"]
    assert result.failures == []
    events = [entry.event for entry in result.timeline]
    assert events.index("cleanup:A") > events.index("shutdown")


@pytest.mark.asyncio
async def test_run_scenario_reports_failures_and_keeps_going() -> None:
    scenario = Scenario.from_dict(
        {
            "name": "failing",
            "runner": {"name": "flaky", "log_tracebacks": False},
            "steps": [
                {"submit": "A", "fail": "setup"},
                {"wait_idle": True},
                {"submit": "B", "fail": "cleanup"},
                {"wait_idle": True},
                {"submit": "C"},
                {"wait_idle": True},
                {"shutdown": True},
            ],
        }
    )

    result = await run_scenario(scenario)

    assert result.log == ["start:B", "start:C", "cleanup:C"]
    assert [f.phase for f in result.failures] == [FailurePhase.SETUP, FailurePhase.CLEANUP]
    assert {f.runner for f in result.failures} == {"flaky"}
    data = result.to_dict()
    assert data["failures"][0] == {"phase": "setup", "runner": "flaky", "error": "setup of A failed"}


@pytest.mark.asyncio
async def test_run_scenario_latest_submit_wins() -> None:
    scenario = Scenario.from_dict(
        {
            "steps": [
                {"submit": "A", "setup_delay": 0.02},
                {"sleep": 0.005},
                {"submit": "B"},
                {"submit": "C"},
                {"wait_idle": True},
            ]
        }
    )

    result = await run_scenario(scenario)

    assert result.name == "scenario"
    assert result.log == ["start:A", "cleanup:A", "start:C"]


@pytest.mark.parametrize("action", ["shutdown", "wait_idle"])
@pytest.mark.parametrize("value", [False, None, "false"])
def test_flag_steps_must_be_true(action: str, value: object) -> None:
    with pytest.raises(ScenarioError, match="must be true"):
        Scenario.from_dict({"steps": [{action: value}]})


def test_submit_cleanup_flag_accepts_strings() -> None:
    step = ScenarioStep.from_dict({"submit": "A", "cleanup": "false"}, 1)
    assert step.cleanup is False


@pytest.mark.asyncio
async def test_run_scenario_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    scenario = Scenario.from_dict(
        {
            "runner": {"name": "noisy", "log_tracebacks": False},
            "steps": [{"submit": "A", "fail": "setup"}, {"wait_idle": True}],
        }
    )

    with caplog.at_level(logging.ERROR, logger="seqrun"):
        result = await run_scenario(scenario)

    assert len(result.failures) == 1
    assert any("setup of A failed" in record.getMessage() for record in caplog.records)
