"""
Tabular reader for user story files.

CSV and Excel (first sheet) files share the same column recognition:
headers are matched case-insensitively after trimming; unknown columns
are ignored and missing ones read as empty strings.
"""

import csv
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional

from openpyxl import load_workbook
from pydantic import ValidationError

from ..models import UserStory

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"
XLSX_EXTENSION = ".xlsx"
XLS_EXTENSION = ".xls"
SUPPORTED_EXTENSIONS = (CSV_EXTENSION, XLSX_EXTENSION, XLS_EXTENSION)

COL_TITLE = "titulo"
COL_DESCRIPTION = "descripcion"
COL_ACCEPTANCE = "criterio_aceptacion"
COL_SUBTASKS = "subtareas"
COL_PARENT = "parent"
KNOWN_COLUMNS = (COL_TITLE, COL_DESCRIPTION, COL_ACCEPTANCE, COL_SUBTASKS, COL_PARENT)


class FileProcessingError(Exception):
    """Raised when an input file cannot be read or fails validation."""
    pass


def normalize_column(name: Any) -> str:
    return str(name if name is not None else "").strip().lower()


def map_columns(header: Iterable[Any]) -> dict[str, int]:
    """Position of every recognized column in a header row."""
    column_map = {}
    for i, col in enumerate(header):
        name = normalize_column(col)
        if name in KNOWN_COLUMNS:
            column_map[name] = i
    return column_map


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_row(row: list[Any], column_map: dict[str, int]) -> dict[str, str]:
    """Trimmed value of every recognized column ("" when absent)."""
    record = {}
    for column in KNOWN_COLUMNS:
        idx = column_map.get(column)
        value = row[idx] if idx is not None and idx < len(row) else None
        record[column] = _cell_text(value).strip()
    return record


def story_from_record(record: dict[str, str], row: int) -> Optional[UserStory]:
    """Story for a parsed row, or None when title/description/criteria is blank."""
    if not record[COL_TITLE] or not record[COL_DESCRIPTION] or not record[COL_ACCEPTANCE]:
        return None
    return UserStory.from_row(
        title=record[COL_TITLE],
        description=record[COL_DESCRIPTION],
        acceptance_criteria=record[COL_ACCEPTANCE],
        subtasks_raw=record[COL_SUBTASKS],
        parent=record[COL_PARENT],
        row=row,
    )


def _first_validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"


class FileProcessor:
    """Reads story files and moves them once processed."""

    def __init__(self, processed_dir: str | Path):
        self.processed_dir = Path(processed_dir)

    def read_file(self, file_path: str | Path) -> list[UserStory]:
        """
        Read every story of a CSV or Excel file.

        Raises:
            FileProcessingError: On unsupported format or unreadable content
        """
        file_path = Path(file_path)
        ext = file_path.suffix.lower()

        if ext == CSV_EXTENSION:
            return self._read_csv(file_path)
        if ext in (XLSX_EXTENSION, XLS_EXTENSION):
            return self._read_excel(file_path)
        raise FileProcessingError(f"unsupported file format: {ext}")

    def validate_file(self, file_path: str | Path) -> None:
        """
        Preflight check of a single file.

        Raises:
            FileProcessingError: If the file is missing, unsupported, unreadable,
                empty or holds a structurally invalid story
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileProcessingError(f"file does not exist: {file_path}")

        ext = file_path.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise FileProcessingError(
                f"unsupported file format: {ext}. Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        try:
            stories = self.read_file(file_path)
        except FileProcessingError as e:
            raise FileProcessingError(f"error reading file: {e}") from e

        if not stories:
            raise FileProcessingError("file contains no valid stories")

        for i, story in enumerate(stories):
            try:
                story.validate_structure()
            except ValidationError as e:
                raise FileProcessingError(
                    f"validation error in row {i + 2}: {_first_validation_message(e)}"
                ) from e

    def move_to_processed(self, file_path: str | Path) -> Path:
        """
        Move a file into the processed directory, keeping its name.

        Raises:
            OSError: If the directory cannot be created or the rename fails
        """
        file_path = Path(file_path)
        self.processed_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        dest = self.processed_dir / file_path.name
        os.rename(file_path, dest)
        logger.info(f"Moved {file_path} to {dest}", extra={"action": "file_moved", "file": str(file_path)})
        return dest

    def get_pending_files(self, input_dir: str | Path) -> list[Path]:
        """
        Every supported file under `input_dir`, recursively, in walk order.

        Raises:
            OSError: If the directory cannot be walked
        """
        input_dir = Path(input_dir)
        if not input_dir.is_dir():
            raise FileNotFoundError(f"input directory does not exist: {input_dir}")

        files = []
        for root, dirs, names in os.walk(input_dir):
            dirs.sort()
            for name in sorted(names):
                path = Path(root) / name
                if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                    files.append(path)
        return files

    def _read_csv(self, file_path: Path) -> list[UserStory]:
        try:
            with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise FileProcessingError(f"error parsing CSV: {e}") from e

        if not rows:
            return []

        column_map = map_columns(rows[0])
        stories = []
        for i, row in enumerate(rows[1:]):
            story = story_from_record(parse_row(row, column_map), row=i + 2)
            if story is not None:
                stories.append(story)
        return stories

    def _read_excel(self, file_path: Path) -> list[UserStory]:
        try:
            workbook = load_workbook(file_path, read_only=True, data_only=True)
        except Exception as e:
            # openpyxl raises several unrelated types for corrupt or non-xlsx input
            raise FileProcessingError(f"error opening Excel file: {e}") from e

        try:
            sheet = workbook.worksheets[0]
            # read-only sheets are parsed lazily, so corrupt sheet XML surfaces here
            rows = [list(row) for row in sheet.iter_rows(values_only=True)]
        except Exception as e:
            raise FileProcessingError(f"error reading Excel rows: {e}") from e
        finally:
            workbook.close()

        while rows and all(_cell_text(v).strip() == "" for v in rows[-1]):
            rows.pop()

        if len(rows) < 2:
            raise FileProcessingError("Excel file must have at least a header row and one data row")

        column_map = map_columns(rows[0])
        stories = []
        for i, row in enumerate(rows[1:]):
            if not row:
                continue

            story = story_from_record(parse_row(row, column_map), row=i + 2)
            if story is None:
                continue

            try:
                story.validate_structure()
            except ValidationError as e:
                raise FileProcessingError(
                    f"validation error in row {i + 2}: {_first_validation_message(e)}"
                ) from e

            stories.append(story)
        return stories
