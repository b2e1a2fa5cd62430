"""File validation report for the `validate` command."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..filesystem import FileProcessor, FileProcessingError
from ..jira import JiraClient, JiraClientError
from ..models import MAX_SUMMARY_LENGTH, UserStory
from .process_files import PipelineError

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_ROWS = 5


@dataclass
class ValidationReport:
    """Statistics of a validated file."""
    total_stories: int = 0
    with_subtasks: int = 0
    total_subtasks: int = 0
    with_parent: int = 0
    invalid_subtasks: int = 0
    preview: str = ""
    preview_rows: int = DEFAULT_PREVIEW_ROWS


def _truncate(text: str, limit: int, keep: int) -> str:
    return text[:keep] + "..." if len(text) > limit else text


def generate_preview(stories: list[UserStory], max_rows: int = DEFAULT_PREVIEW_ROWS) -> str:
    """Fixed-width table of the first `max_rows` stories."""
    lines = [
        f"{'TITULO':<30} {'DESCRIPCION':<50} {'SUBTAREAS':<20} {'PARENT':<15}",
        "-" * 115,
    ]
    for story in stories[:max_rows]:
        subtasks = f"{len(story.subtasks)} subtareas" if story.has_subtasks() else ""
        lines.append(
            f"{_truncate(story.title, 28, 25):<30} "
            f"{_truncate(story.description, 48, 45):<50} "
            f"{subtasks:<20} "
            f"{_truncate(story.parent, 13, 10):<15}"
        )

    preview = "\n".join(lines) + "\n"
    if len(stories) > max_rows:
        preview += f"\n... y {len(stories) - max_rows} historias mas\n"
    return preview


def generate_statistics(stories: list[UserStory], preview_rows: int = DEFAULT_PREVIEW_ROWS) -> ValidationReport:
    report = ValidationReport(total_stories=len(stories), preview_rows=preview_rows)

    for story in stories:
        if story.has_subtasks():
            report.with_subtasks += 1
            report.total_subtasks += len(story.subtasks)
            report.invalid_subtasks += sum(
                1 for s in story.subtasks if not s.strip() or len(s) > MAX_SUMMARY_LENGTH
            )
        if story.has_parent():
            report.with_parent += 1

    if stories:
        report.preview = generate_preview(stories, preview_rows)
    return report


def validate_file(
    file_processor: FileProcessor,
    jira_client: Optional[JiraClient],
    file_path: str | Path,
    project_key: str = "",
    preview_rows: int = DEFAULT_PREVIEW_ROWS,
) -> ValidationReport:
    """
    Validate a file and, when a project is given, the project's issue types.

    Raises:
        PipelineError: On the first failing check
    """
    try:
        file_processor.validate_file(file_path)
        stories = file_processor.read_file(file_path)
    except FileProcessingError as e:
        raise PipelineError(str(e)) from e

    report = generate_statistics(stories, preview_rows)
    logger.info(
        f"Validated {file_path}: {report.total_stories} stories",
        extra={"action": "validation_success", "file": str(file_path)},
    )

    if project_key and jira_client is not None:
        try:
            jira_client.validate_project(project_key)
            jira_client.validate_subtask_issue_type(project_key)
            jira_client.validate_feature_issue_type()
        except JiraClientError as e:
            raise PipelineError(str(e)) from e

    return report
