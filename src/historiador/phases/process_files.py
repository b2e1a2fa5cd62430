"""
Batch orchestration.

One file goes through: preflight -> read -> per row (resolve parent ->
create story -> create subtasks) -> finish -> move to processed.
Row failures are recorded in the BatchResult and never stop the batch.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from ..filesystem import FileProcessor, FileProcessingError
from ..jira import FeatureManager, JiraClient, JiraClientError
from ..models import BatchResult, ProcessResult, UserStory

logger = logging.getLogger(__name__)

DRY_RUN_BASE_URL = "https://dry-run.example.com/browse"


class PipelineError(Exception):
    """Raised when a file or a whole run cannot be processed."""
    pass


class BatchProcessor:
    """Processes story files against Jira (or simulates it in dry-run)."""

    def __init__(
        self,
        file_processor: FileProcessor,
        jira_client: JiraClient,
        feature_manager: FeatureManager,
    ):
        self.file_processor = file_processor
        self.jira_client = jira_client
        self.feature_manager = feature_manager

    def execute(
        self,
        file_path: str | Path,
        project_key: str,
        dry_run: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> BatchResult:
        """
        Process a single file.

        Raises:
            PipelineError: If preflight fails or the file cannot be read
        """
        return self._execute(file_path, project_key, dry_run, cancel, preflight=True)

    def process_all_files(
        self,
        input_dir: str | Path,
        project_key: str,
        dry_run: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> list[BatchResult]:
        """
        Process every pending file of a directory.

        A file that cannot be processed yields an error-only BatchResult and
        the run continues with the next file.

        Raises:
            PipelineError: If preflight fails or there are no files
        """
        if not dry_run:
            self.validate_inputs(project_key)

        try:
            files = self.file_processor.get_pending_files(input_dir)
        except OSError as e:
            raise PipelineError(f"error getting pending files: {e}") from e

        if not files:
            raise PipelineError(f"no files found in {input_dir}")

        results = []
        for file_path in files:
            if cancel is not None and cancel.is_set():
                break
            try:
                result = self._execute(file_path, project_key, dry_run, cancel, preflight=False)
            except PipelineError as e:
                logger.error(f"Error processing file {file_path}: {e}", extra={"file": str(file_path)})
                result = BatchResult(file_name=Path(file_path).name, total_rows=0, dry_run=dry_run)
                result.add_error(f"Error processing file: {e}")
                result.finish()
            results.append(result)

        return results

    def validate_inputs(self, project_key: str) -> None:
        """
        Read-only checks run before any issue is created.

        Raises:
            PipelineError: Naming the first failing step
        """
        steps = (
            ("jira connection failed", self.jira_client.test_connection, ()),
            ("project validation failed", self.jira_client.validate_project, (project_key,)),
            ("subtask type validation failed", self.jira_client.validate_subtask_issue_type, (project_key,)),
            ("feature type validation failed", self.jira_client.validate_feature_issue_type, ()),
        )
        for prefix, check, args in steps:
            try:
                check(*args)
            except JiraClientError as e:
                raise PipelineError(f"{prefix}: {e}") from e

    def _execute(
        self,
        file_path: str | Path,
        project_key: str,
        dry_run: bool,
        cancel: Optional[threading.Event],
        preflight: bool,
    ) -> BatchResult:
        file_path = Path(file_path)

        if dry_run:
            try:
                self.file_processor.validate_file(file_path)
            except FileProcessingError as e:
                raise PipelineError(f"file validation failed: {e}") from e
        elif preflight:
            self.validate_inputs(project_key)

        try:
            stories = self.file_processor.read_file(file_path)
        except FileProcessingError as e:
            raise PipelineError(f"error reading file: {e}") from e

        logger.info(
            f"Processing {file_path.name}: {len(stories)} stories",
            extra={"action": "process_start", "file": str(file_path), "project_key": project_key},
        )

        batch = BatchResult(file_name=file_path.name, total_rows=len(stories), dry_run=dry_run)

        for i, story in enumerate(stories):
            if cancel is not None and cancel.is_set():
                break
            row_number = i + 2
            batch.add_result(self._process_story(story, project_key, row_number, dry_run, cancel))

        cancelled = cancel is not None and cancel.is_set()
        if cancelled:
            batch.add_error(f"processing cancelled after {batch.processed_rows} rows")

        batch.finish()
        logger.info(
            f"Finished {file_path.name}: {batch.successful_rows} ok, {batch.error_rows} failed",
            extra={
                "action": "process_end",
                "file": str(file_path),
                "duration_ms": int(batch.duration.total_seconds() * 1000),
            },
        )

        if not dry_run and not cancelled and batch.successful_rows > 0:
            try:
                self.file_processor.move_to_processed(file_path)
            except OSError as e:
                batch.add_error(f"Warning: could not move file to processed: {e}")

        return batch

    def _process_story(
        self,
        story: UserStory,
        project_key: str,
        row_number: int,
        dry_run: bool,
        cancel: Optional[threading.Event],
    ) -> ProcessResult:
        if dry_run:
            return self._simulate_story(story, row_number)

        result = ProcessResult(row_number=row_number)

        if story.has_parent():
            feature = self.feature_manager.create_or_get_feature(story.parent, project_key)
            if not feature.success:
                result.mark_error(f"feature handling failed: {feature.error_message}")
                logger.error(
                    f"Row {row_number}: feature handling failed: {feature.error_message}",
                    extra={"action": "issue_error", "row": row_number},
                )
                return result
            if feature.issue_key:
                story = story.with_parent(feature.issue_key)

        result = self.jira_client.create_user_story(story, row_number, project_key, cancel)
        if story.has_parent() and result.success:
            result.feature_key = story.parent
        return result

    @staticmethod
    def _simulate_story(story: UserStory, row_number: int) -> ProcessResult:
        result = ProcessResult(row_number=row_number)
        issue_key = f"DRY-RUN-{row_number}"
        result.mark_success(issue_key, f"{DRY_RUN_BASE_URL}/{issue_key}")

        for j, description in enumerate(story.get_valid_subtasks()):
            subtask_key = f"DRY-SUB-{row_number}-{j + 1}"
            result.add_subtask_result(description, True, subtask_key, f"{DRY_RUN_BASE_URL}/{subtask_key}")

        return result
