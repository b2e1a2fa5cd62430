"""Outcome models for story, subtask, feature and batch processing."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ProcessStatus(str, Enum):
    """Status of a single issue creation attempt."""
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SubtaskResult:
    """Result of creating one subtask."""
    description: str
    success: bool
    issue_key: str = ""
    issue_url: str = ""
    error: str = ""
    status: ProcessStatus = ProcessStatus.ERROR

    def __post_init__(self) -> None:
        self.status = ProcessStatus.SUCCESS if self.success else ProcessStatus.ERROR

    def mark_rolled_back(self) -> None:
        """The created subtask was deleted again."""
        self.success = False
        self.status = ProcessStatus.ERROR
        self.issue_key = ""
        self.issue_url = ""
        self.error = "rolled back"


@dataclass
class ProcessResult:
    """Result of processing one input row (story plus its subtasks)."""
    row_number: int = 0
    success: bool = False
    issue_key: str = ""
    issue_url: str = ""
    error_message: str = ""
    subtasks: list[SubtaskResult] = field(default_factory=list)
    feature_key: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def mark_success(self, issue_key: str, issue_url: str) -> None:
        self.success = True
        self.issue_key = issue_key
        self.issue_url = issue_url
        self.error_message = ""

    def mark_error(self, error_message: str) -> None:
        self.success = False
        self.issue_key = ""
        self.issue_url = ""
        self.error_message = error_message

    def add_subtask_result(
        self,
        description: str,
        success: bool,
        issue_key: str = "",
        issue_url: str = "",
        error: str = "",
    ) -> SubtaskResult:
        subtask = SubtaskResult(
            description=description,
            success=success,
            issue_key=issue_key,
            issue_url=issue_url,
            error=error,
        )
        self.subtasks.append(subtask)
        return subtask

    @property
    def successful_subtasks(self) -> list[SubtaskResult]:
        return [s for s in self.subtasks if s.success]

    @property
    def failed_subtasks(self) -> list[SubtaskResult]:
        return [s for s in self.subtasks if not s.success]

    def all_subtasks_failed(self) -> bool:
        if not self.subtasks:
            return False
        return len(self.failed_subtasks) == len(self.subtasks)

    def has_any_subtask_success(self) -> bool:
        return len(self.successful_subtasks) > 0


@dataclass
class FeatureResult:
    """Result of resolving a story's parent feature."""
    description: str
    success: bool = False
    issue_key: str = ""
    issue_url: str = ""
    error_message: str = ""
    was_created: bool = False
    existing_key: str = ""
    normalized_description: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def set_success(self, issue_key: str, issue_url: str, was_created: bool) -> None:
        self.success = True
        self.issue_key = issue_key
        self.issue_url = issue_url
        self.was_created = was_created

    def set_existing(self, existing_key: str) -> None:
        self.success = True
        self.existing_key = existing_key
        self.issue_key = existing_key
        self.was_created = False

    def set_error(self, error_message: str) -> None:
        self.success = False
        self.error_message = error_message


@dataclass
class BatchResult:
    """
    Accumulated outcome of processing one input file.

    Invariants kept by `add_result`:
    - processed_rows == successful_rows + error_rows
    - len(results) == processed_rows
    """
    file_name: str
    total_rows: int = 0
    dry_run: bool = False
    processed_rows: int = 0
    successful_rows: int = 0
    error_rows: int = 0
    skipped_rows: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration: timedelta = field(default_factory=timedelta)
    results: list[ProcessResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)

    def add_result(self, result: ProcessResult) -> None:
        self.results.append(result)
        self.processed_rows += 1
        if result.success:
            self.successful_rows += 1
        else:
            self.error_rows += 1

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def add_validation_error(self, error: str) -> None:
        self.validation_errors.append(error)

    def finish(self) -> None:
        self.end_time = datetime.now()
        self.duration = self.end_time - self.start_time

    def has_errors(self) -> bool:
        return len(self.errors) > 0 or self.error_rows > 0

    def has_validation_errors(self) -> bool:
        return len(self.validation_errors) > 0

    def is_successful(self) -> bool:
        """No file-level or validation errors and at least one created story."""
        return (
            not self.errors
            and not self.has_validation_errors()
            and self.successful_rows > 0
        )

    @property
    def success_rate(self) -> float:
        if self.processed_rows == 0:
            return 0.0
        return self.successful_rows / self.processed_rows * 100

    @property
    def processed_issues(self) -> list[str]:
        return [r.issue_key for r in self.results if r.success and r.issue_key]
