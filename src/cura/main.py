"""CLI entrypoint for cura."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click

from cura import __version__
from cura.config import Settings
from cura.errors import CuraError
from cura.queue.controllers import (
    DbMigrateCommand,
    TaskAddCommand,
    TaskClearCompletedCommand,
    TaskCliController,
    TaskInspectCommand,
    TaskListCommand,
    TaskMutateCommand,
    TaskRunCommand,
    UsageCommand,
)
from cura.queue.models import TaskStatus
from cura.suggestions.controllers import (
    SuggestionCliController,
    SuggestionDecisionCommand,
    SuggestionLoadCommand,
    SuggestionSessionCommand,
)

click.rich_click.USE_MARKDOWN = True
TASK_CONTROLLER = TaskCliController()
SUGGESTION_CONTROLLER = SuggestionCliController()

CommandT = TypeVar("CommandT")
ResultT = TypeVar("ResultT")

_db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
_session_path_option = click.option(
    "--session-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Review session file (defaults to CURA_SESSION_PATH).",
)


@click.group()
@click.version_option(version=__version__, prog_name="cura")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cura(verbose: bool) -> None:
    """Resume tailoring task queue and suggestion review CLI."""

    try:
        verbose = verbose or Settings.from_env().verbose
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cura.group()
def db() -> None:
    """Database commands."""


@db.command("migrate")
@_db_path_option
def db_migrate(db_path: Path | None) -> None:
    """Create or upgrade the task tables."""

    _invoke(TASK_CONTROLLER.migrate, DbMigrateCommand(db_path=db_path))


@cura.group()
def tasks() -> None:
    """AI task queue commands."""


@tasks.command("add")
@_db_path_option
@click.option(
    "--mode",
    type=click.Choice(["analyze", "build"], case_sensitive=False),
    default="build",
    show_default=True,
    help="Analyze an existing resume or build a curated one from the profile.",
)
@click.option("--job-description", default=None, help="Job description text.")
@click.option(
    "--job-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the job description from a file.",
)
@click.option("--title", "job_title", default=None, help="Task title (defaults to 'Task N').")
@click.option("--company", default=None, help="Company name (defaults to 'No Company').")
@click.option(
    "--resume",
    "resume_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Resume to analyze: JSON/text content, or a PDF sent as a document.",
)
@click.option("--max-experiences", type=click.IntRange(min=1), default=None)
@click.option("--max-projects", type=click.IntRange(min=1), default=None)
@click.option("--max-bullets-per-experience", type=click.IntRange(min=1), default=None)
@click.option("--max-bullets-per-project", type=click.IntRange(min=1), default=None)
def tasks_add(  # noqa: PLR0913
    db_path: Path | None,
    mode: str,
    job_description: str | None,
    job_file: Path | None,
    job_title: str | None,
    company: str | None,
    resume_path: Path | None,
    max_experiences: int | None,
    max_projects: int | None,
    max_bullets_per_experience: int | None,
    max_bullets_per_project: int | None,
) -> None:
    """Queue an analyze or build task; it runs on the next `tasks run` poll."""

    if job_file is not None:
        job_description = job_file.read_text("utf-8")
    _invoke(
        TASK_CONTROLLER.add_task,
        TaskAddCommand(
            db_path=db_path,
            mode=mode,
            job_description=job_description or "",
            job_title=job_title,
            company=company,
            resume_path=resume_path,
            max_experiences=max_experiences,
            max_projects=max_projects,
            max_bullets_per_experience=max_bullets_per_experience,
            max_bullets_per_project=max_bullets_per_project,
        ),
    )


@tasks.command("list")
@_db_path_option
@click.option(
    "--status",
    type=click.Choice([status.value for status in TaskStatus], case_sensitive=False),
    default=None,
    help="Optional status filter.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Max tasks to print.",
)
def tasks_list(db_path: Path | None, status: str | None, limit: int) -> None:
    """List tasks, newest first."""

    _invoke(
        TASK_CONTROLLER.list_tasks,
        TaskListCommand(db_path=db_path, status=status, limit=limit),
    )


@tasks.command("inspect")
@_db_path_option
@click.option("--task-id", required=True, help="Task id.")
@click.option("--result", "show_result", is_flag=True, default=False, help="Print result JSON.")
def tasks_inspect(db_path: Path | None, task_id: str, show_result: bool) -> None:
    """Inspect one task with its status history."""

    _invoke(
        TASK_CONTROLLER.inspect_task,
        TaskInspectCommand(db_path=db_path, task_id=task_id, show_result=show_result),
    )


@tasks.command("run")
@_db_path_option
@click.option(
    "--once/--loop",
    default=True,
    show_default=True,
    help="Run one reconciliation pass or keep polling until interrupted.",
)
@click.option(
    "--max-polls",
    type=click.IntRange(min=1),
    default=None,
    help="Optional cap for polls in loop mode.",
)
def tasks_run(db_path: Path | None, once: bool, max_polls: int | None) -> None:
    """Dispatch pending tasks to the configured AI provider."""

    _invoke(
        TASK_CONTROLLER.run,
        TaskRunCommand(db_path=db_path, once=once, max_polls=max_polls),
    )


@tasks.command("retry")
@_db_path_option
@click.option("--task-id", required=True, help="Task id.")
def tasks_retry(db_path: Path | None, task_id: str) -> None:
    """Re-queue a failed task."""

    _invoke(TASK_CONTROLLER.retry_task, TaskMutateCommand(db_path=db_path, task_id=task_id))


@tasks.command("remove")
@_db_path_option
@click.option("--task-id", required=True, help="Task id.")
@click.option("--yes", is_flag=True, default=False, help="Do not ask before removing.")
def tasks_remove(db_path: Path | None, task_id: str, yes: bool) -> None:
    """Delete a task in any status."""

    command = TaskMutateCommand(db_path=db_path, task_id=task_id)
    if not yes:
        status = _call(TASK_CONTROLLER.task_status, command)
        if status is TaskStatus.RUNNING:
            click.confirm(
                "This task is still running; its result will be discarded. Remove it?",
                abort=True,
            )
    _invoke(TASK_CONTROLLER.remove_task, command)


@tasks.command("clear-completed")
@_db_path_option
def tasks_clear_completed(db_path: Path | None) -> None:
    """Delete every completed task."""

    _invoke(TASK_CONTROLLER.clear_completed, TaskClearCompletedCommand(db_path=db_path))


@cura.command("usage")
@_db_path_option
def usage(db_path: Path | None) -> None:
    """Show this month's AI usage per API type."""

    _invoke(TASK_CONTROLLER.usage, UsageCommand(db_path=db_path))


@cura.group()
def suggestions() -> None:
    """Inline suggestion review commands."""


@suggestions.command("load")
@_db_path_option
@_session_path_option
@click.option("--task-id", required=True, help="Completed task id.")
def suggestions_load(db_path: Path | None, session_path: Path | None, task_id: str) -> None:
    """Load a completed task's result into the review session."""

    _invoke(
        SUGGESTION_CONTROLLER.load,
        SuggestionLoadCommand(db_path=db_path, session_path=session_path, task_id=task_id),
    )


@suggestions.command("list")
@_session_path_option
def suggestions_list(session_path: Path | None) -> None:
    """Show placed and unmatched suggestions."""

    _invoke(
        SUGGESTION_CONTROLLER.list_suggestions,
        SuggestionSessionCommand(session_path=session_path),
    )


@suggestions.command("apply")
@_session_path_option
@click.option("--id", "suggestion_id", required=True, help="Suggestion id.")
def suggestions_apply(session_path: Path | None, suggestion_id: str) -> None:
    """Approve a suggestion and apply it to the resume draft."""

    _invoke(
        SUGGESTION_CONTROLLER.apply,
        SuggestionDecisionCommand(session_path=session_path, suggestion_id=suggestion_id),
    )


@suggestions.command("reject")
@_session_path_option
@click.option("--id", "suggestion_id", required=True, help="Suggestion id.")
def suggestions_reject(session_path: Path | None, suggestion_id: str) -> None:
    """Decline a suggestion without touching the resume draft."""

    _invoke(
        SUGGESTION_CONTROLLER.reject,
        SuggestionDecisionCommand(session_path=session_path, suggestion_id=suggestion_id),
    )


@suggestions.command("clear")
@_session_path_option
def suggestions_clear(session_path: Path | None) -> None:
    """Discard every suggestion under review."""

    _invoke(SUGGESTION_CONTROLLER.clear, SuggestionSessionCommand(session_path=session_path))


@suggestions.command("resume")
@_session_path_option
def suggestions_resume(session_path: Path | None) -> None:
    """Print the resume draft as JSON."""

    _invoke(
        SUGGESTION_CONTROLLER.show_resume,
        SuggestionSessionCommand(session_path=session_path),
    )


def _call(action: Callable[[CommandT], ResultT], command: CommandT) -> ResultT:
    try:
        return action(command)
    except (CuraError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _invoke(action: Callable[[CommandT], list[str]], command: CommandT) -> None:
    _emit_lines(_call(action, command))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    cura()
