from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import allure
import pytest
from click.testing import CliRunner

from cura.main import cura

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Tasks and Suggestions"),
]

JOB = "Senior Backend Engineer at Acme. Python, PostgreSQL, Kubernetes."


@pytest.fixture()
def cli_env(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    profile_path: Path,
    build_selection: dict[str, Any],
) -> dict[str, Path]:
    db_path = tmp_path / "cli.db"
    session_path = tmp_path / "session.json"
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.setenv("CURA_DB_PATH", str(db_path))
    monkeypatch.setenv("CURA_SESSION_PATH", str(session_path))
    monkeypatch.setenv("CURA_PROFILE_PATH", str(profile_path))
    monkeypatch.setenv("CURA_AI_PROVIDER", "echo")
    monkeypatch.setenv("CURA_ECHO_RESPONSE", json.dumps(build_selection))
    monkeypatch.setenv("CURA_POLL_INTERVAL_SECONDS", "0.01")
    return {"db": db_path, "session": session_path}


def _invoke(runner: CliRunner, *args: str) -> str:
    result = runner.invoke(cura, list(args))
    assert result.exit_code == 0, result.output
    return result.output


def test_commands_before_migration_point_to_migrate(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()

    listed = runner.invoke(cura, ["tasks", "list"])
    assert listed.exit_code != 0
    assert "cura db migrate" in listed.output

    run = _invoke(runner, "tasks", "run", "--once")
    assert "Queue summary: polls=0 dispatched=0" in run
    assert "Queue stopped:" in run


def test_corrupt_database_is_reported_not_raised(cli_env: dict[str, Path]) -> None:
    cli_env["db"].write_bytes(b"not a database at all\n" * 256)
    runner = CliRunner()

    listed = runner.invoke(cura, ["tasks", "list"])
    assert listed.exit_code == 1
    assert isinstance(listed.exception, SystemExit)
    assert "Storage is unavailable" in listed.output

    run = _invoke(runner, "tasks", "run", "--once")
    assert "Queue stopped: Storage is unavailable" in run


def test_build_task_flow_through_suggestion_review(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()
    assert "(revision 20261019_0002)" in _invoke(runner, "db", "migrate")

    added = _invoke(runner, "tasks", "add", "--job-description", JOB, "--company", "Acme")
    task_id = re.search(r"task_id=(\S+)", added).group(1)
    assert "mode=build status=pending" in added
    assert "Title: Task 1" in added
    assert "Company: Acme" in added

    run = _invoke(runner, "tasks", "run", "--once")
    assert "Queue summary: polls=1 dispatched=1 completed=1 failed=0" in run
    assert f"{task_id} mode=build status=completed" in run

    inspected = _invoke(runner, "tasks", "inspect", "--task-id", task_id, "--result")
    assert "Status: completed" in inspected
    assert "Events: 3" in inspected
    assert '"inlineSuggestions"' in inspected

    loaded = _invoke(runner, "suggestions", "load", "--task-id", task_id)
    assert f"Loaded 3 suggestions from build task {task_id}" in loaded
    assert "Pending: 3 applied: 0 rejected: 0" in loaded
    assert "Additional changes (1):" in loaded
    ids = re.findall(r"^\s+((?:exp|proj)-\d+-bullet-\d+-\d+) ", loaded, flags=re.MULTILINE)
    assert len(ids) == 3
    modify_id = next(item for item in ids if item.startswith("exp-0-bullet-1-"))
    add_id = next(item for item in ids if item.startswith("exp-0-bullet-2-"))
    project_id = next(item for item in ids if item.startswith("proj-0-bullet-0-"))

    assert f"Suggestion applied: {modify_id}" in _invoke(
        runner,
        "suggestions",
        "apply",
        "--id",
        modify_id,
    )
    assert "already applied; nothing changed." in _invoke(
        runner,
        "suggestions",
        "apply",
        "--id",
        modify_id,
    )
    _invoke(runner, "suggestions", "apply", "--id", add_id)
    rejected = _invoke(runner, "suggestions", "reject", "--id", project_id)
    assert f"Suggestion rejected: {project_id}" in rejected
    assert "Review complete. Suggestions cleared." in rejected

    assert "No suggestions under review." in _invoke(runner, "suggestions", "list")
    resume = json.loads(_invoke(runner, "suggestions", "resume"))
    assert resume["experience"][0]["bullets"] == [
        "Built billing APIs",
        "Led on-call rotation for 12 services",
        "Cut p95 latency by 40%",
    ]
    assert resume["projects"][0]["bullets"] == ["RSS reader in Go"]

    usage = _invoke(runner, "usage")
    assert "ai_build: 1/30 remaining=29" in usage
    assert "ai_analyze: 0/30 remaining=30" in usage

    assert "Completed tasks removed: 1" in _invoke(runner, "tasks", "clear-completed")
    assert "Tasks: 0" in _invoke(runner, "tasks", "list")


def test_analyze_task_fails_on_unparsable_reply(
    cli_env: dict[str, Path],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    resume_payload: dict[str, Any],
) -> None:
    monkeypatch.setenv("CURA_ECHO_RESPONSE", "Sorry, I cannot help with that.")
    resume_path = tmp_path / "resume.json"
    resume_path.write_text(json.dumps(resume_payload), "utf-8")
    runner = CliRunner()
    _invoke(runner, "db", "migrate")

    added = _invoke(
        runner,
        "tasks",
        "add",
        "--mode",
        "analyze",
        "--job-description",
        JOB,
        "--resume",
        str(resume_path),
    )
    task_id = re.search(r"task_id=(\S+)", added).group(1)
    run = _invoke(runner, "tasks", "run", "--once")
    assert "completed=0 failed=1" in run
    assert "error='Failed to parse AI response'" in run

    loaded = runner.invoke(cura, ["suggestions", "load", "--task-id", task_id])
    assert loaded.exit_code != 0
    assert "no result to review" in loaded.output

    assert f"Task re-queued: {task_id}" in _invoke(runner, "tasks", "retry", "--task-id", task_id)
    assert "status=pending" in _invoke(runner, "tasks", "list", "--status", "pending")


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (["--job-description", "   "], "Job description is required."),
        (["--mode", "analyze", "--job-description", JOB], "Analyze tasks need a resume"),
    ],
)
def test_add_rejects_incomplete_input(
    cli_env: dict[str, Path],
    args: list[str],
    message: str,
) -> None:
    runner = CliRunner()
    _invoke(runner, "db", "migrate")

    result = runner.invoke(cura, ["tasks", "add", *args])

    assert result.exit_code != 0
    assert message in result.output
    assert "Tasks: 0" in _invoke(runner, "tasks", "list")


def test_remove_task(cli_env: dict[str, Path]) -> None:
    runner = CliRunner()
    _invoke(runner, "db", "migrate")
    added = _invoke(runner, "tasks", "add", "--job-description", JOB, "--title", "Staff role")
    task_id = re.search(r"task_id=(\S+)", added).group(1)

    assert f"Task removed: {task_id}" in _invoke(
        runner,
        "tasks",
        "remove",
        "--task-id",
        task_id,
        "--yes",
    )
    assert f"Task not found: {task_id}" in _invoke(runner, "tasks", "remove", "--task-id", task_id)


def test_add_rejects_malformed_structured_resume(cli_env: dict[str, Path], tmp_path: Path) -> None:
    resume_path = tmp_path / "bad.json"
    resume_path.write_text(
        json.dumps({"basics": {"name": "Ada"}, "experience": ["Built APIs"]}),
        "utf-8",
    )
    runner = CliRunner()
    _invoke(runner, "db", "migrate")

    result = runner.invoke(
        cura,
        [
            "tasks",
            "add",
            "--mode",
            "analyze",
            "--job-description",
            JOB,
            "--resume",
            str(resume_path),
        ],
    )

    assert result.exit_code != 0
    assert "experience[0] must be an object" in result.output
    assert "Tasks: 0" in _invoke(runner, "tasks", "list")
