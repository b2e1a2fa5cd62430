"""User story parsed from one row of an input file."""

from typing import Optional
from pydantic import BaseModel, Field

MAX_SUMMARY_LENGTH = 255


def parse_subtasks(raw: Optional[str]) -> list[str]:
    """
    Split a raw subtasks cell into individual subtask descriptions.

    The cell is split on ';' first and every fragment again on newlines.
    Fragments are trimmed and empty ones dropped; order is preserved.
    """
    if not raw:
        return []

    tasks = []
    for part in raw.split(";"):
        for task in part.split("\n"):
            task = task.strip()
            if task:
                tasks.append(task)
    return tasks


class UserStory(BaseModel):
    """
    A user story row.

    Stories are built unvalidated by the reader (see `from_row`); the
    structural constraints declared on the fields are checked on demand
    through `validate_structure`.
    """

    title: str = Field(..., min_length=1, max_length=MAX_SUMMARY_LENGTH)
    description: str = Field(..., min_length=1)
    acceptance_criteria: str = Field(..., min_length=1)
    subtasks: list[str] = Field(default_factory=list)
    parent: str = ""
    row: int = 0

    @classmethod
    def from_row(
        cls,
        title: str,
        description: str,
        acceptance_criteria: str,
        subtasks_raw: str = "",
        parent: str = "",
        row: int = 0,
    ) -> "UserStory":
        """Build a story from raw cell values without validating it."""
        return cls.model_construct(
            title=title,
            description=description,
            acceptance_criteria=acceptance_criteria,
            subtasks=parse_subtasks(subtasks_raw),
            parent=parent,
            row=row,
        )

    def validate_structure(self) -> "UserStory":
        """
        Check the field constraints.

        Raises:
            pydantic.ValidationError: On the first failing story
        """
        return UserStory.model_validate(self.model_dump())

    def has_subtasks(self) -> bool:
        return len(self.subtasks) > 0

    def has_parent(self) -> bool:
        return self.parent != ""

    def get_valid_subtasks(self) -> list[str]:
        """Subtasks whose length is between 1 and 255 characters."""
        return [s for s in self.subtasks if 0 < len(s) <= MAX_SUMMARY_LENGTH]

    def with_parent(self, parent_key: str) -> "UserStory":
        """Copy of this story pointing at a resolved parent issue key."""
        return self.model_copy(update={"parent": parent_key})
