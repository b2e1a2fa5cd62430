"""Unit tests for reading, validating and moving story files."""

import pytest
from openpyxl import Workbook

from historiador.filesystem import FileProcessor, FileProcessingError
from historiador.filesystem.file_processor import map_columns

HEADER = "titulo,descripcion,criterio_aceptacion,subtareas,parent\n"


@pytest.fixture
def processor(tmp_path) -> FileProcessor:
    return FileProcessor(tmp_path / "procesados")


def write_xlsx(path, rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


class TestMapColumns:
    """Tests for header recognition."""

    def test_case_insensitive_and_trimmed(self):
        column_map = map_columns([" Titulo ", "DESCRIPCION", "otra", "Parent"])
        assert column_map == {"titulo": 0, "descripcion": 1, "parent": 3}


class TestReadCsv:
    """Tests for CSV reading."""

    def test_reads_stories(self, processor, write_csv):
        path = write_csv(
            "stories.csv",
            HEADER + 'Login,As a user,Works,"a;b",PROJ-1\nLogout,As a user,Works,,\n',
        )

        stories = processor.read_file(path)

        assert [s.title for s in stories] == ["Login", "Logout"]
        assert stories[0].subtasks == ["a", "b"]
        assert stories[0].parent == "PROJ-1"
        assert stories[1].subtasks == []

    def test_rows_missing_required_values_are_skipped(self, processor, write_csv):
        path = write_csv("stories.csv", HEADER + "Login,,Works,,\nOk,D,C,,\n")

        stories = processor.read_file(path)

        assert [s.title for s in stories] == ["Ok"]

    def test_header_only_yields_no_stories(self, processor, write_csv):
        path = write_csv("stories.csv", HEADER)
        assert processor.read_file(path) == []

    def test_missing_optional_columns_read_as_empty(self, processor, write_csv):
        path = write_csv("stories.csv", "titulo,descripcion,criterio_aceptacion\nT,D,C\n")

        story = processor.read_file(path)[0]

        assert story.subtasks == []
        assert story.parent == ""

    def test_unsupported_extension(self, processor, write_csv):
        path = write_csv("stories.txt", HEADER)

        with pytest.raises(FileProcessingError, match="unsupported file format: .txt"):
            processor.read_file(path)


class TestReadExcel:
    """Tests for Excel reading."""

    def test_reads_first_sheet(self, processor, tmp_path):
        path = write_xlsx(tmp_path / "stories.xlsx", [
            ["Titulo", "Descripcion", "Criterio_Aceptacion", "Subtareas"],
            ["Login", "As a user", "Works", "a\nb"],
            [None, None, None, None],
        ])

        stories = processor.read_file(path)

        assert len(stories) == 1
        assert stories[0].subtasks == ["a", "b"]

    def test_header_only_is_an_error(self, processor, tmp_path):
        path = write_xlsx(tmp_path / "stories.xlsx", [["titulo", "descripcion", "criterio_aceptacion"]])

        with pytest.raises(FileProcessingError, match="at least a header row"):
            processor.read_file(path)

    def test_invalid_row_fails_the_file(self, processor, tmp_path):
        path = write_xlsx(tmp_path / "stories.xlsx", [
            ["titulo", "descripcion", "criterio_aceptacion"],
            ["x" * 300, "D", "C"],
        ])

        with pytest.raises(FileProcessingError, match="validation error in row 2"):
            processor.read_file(path)

    def test_corrupt_file(self, processor, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a workbook")

        with pytest.raises(FileProcessingError, match="error opening Excel file"):
            processor.read_file(path)


class TestValidateFile:
    """Tests for the preflight file check."""

    def test_missing_file(self, processor, tmp_path):
        with pytest.raises(FileProcessingError, match="file does not exist"):
            processor.validate_file(tmp_path / "nope.csv")

    def test_unsupported_format(self, processor, write_csv):
        path = write_csv("stories.json", "{}")

        with pytest.raises(FileProcessingError, match="Supported formats"):
            processor.validate_file(path)

    def test_no_stories(self, processor, write_csv):
        path = write_csv("stories.csv", HEADER)

        with pytest.raises(FileProcessingError, match="file contains no valid stories"):
            processor.validate_file(path)

    def test_long_title_reports_row(self, processor, write_csv):
        path = write_csv("stories.csv", HEADER + "T,D,C,,\n" + "x" * 256 + ",D,C,,\n")

        with pytest.raises(FileProcessingError, match="validation error in row 3"):
            processor.validate_file(path)

    def test_valid_file(self, processor, write_csv):
        processor.validate_file(write_csv("stories.csv", HEADER + "T,D,C,,\n"))


class TestPendingAndMove:
    """Tests for directory listing and moving processed files."""

    def test_pending_files_recursive_and_filtered(self, processor, tmp_path):
        input_dir = tmp_path / "entrada"
        (input_dir / "sub").mkdir(parents=True)
        (input_dir / "b.csv").write_text(HEADER)
        (input_dir / "a.XLSX").write_bytes(b"")
        (input_dir / "notes.txt").write_text("x")
        (input_dir / "sub" / "c.xls").write_bytes(b"")

        files = processor.get_pending_files(input_dir)

        assert [f.name for f in files] == ["a.XLSX", "b.csv", "c.xls"]

    def test_missing_input_dir(self, processor, tmp_path):
        with pytest.raises(FileNotFoundError):
            processor.get_pending_files(tmp_path / "missing")

    def test_move_to_processed(self, processor, write_csv, tmp_path):
        path = write_csv("stories.csv", HEADER)

        dest = processor.move_to_processed(path)

        assert dest == tmp_path / "procesados" / "stories.csv"
        assert dest.exists()
        assert not path.exists()
