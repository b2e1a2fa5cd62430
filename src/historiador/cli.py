"""
Historiador - Jira batch importer.

Creates user stories (with subtasks and parent features) in Jira from
CSV/Excel files.

Usage:
    historiador process -p PROJ                 # every file in INPUT_DIRECTORY
    historiador process -p PROJ -f stories.csv  # a single file
    historiador process -f stories.csv --dry-run
    historiador validate -f stories.xlsx -p PROJ -r 10
    historiador test-connection
    historiador diagnose -p PROJ
"""

import argparse
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .filesystem import FileProcessor
from .jira import FeatureManager, JiraClient
from .phases import BatchProcessor, PipelineError, diagnose_features, validate_file
from .utils import output_formatter
from .utils.config_loader import HistoriadorConfig, load_config
from .utils.structured_logging import (
    log_command_end,
    log_command_start,
    setup_logging,
    write_formatted_output,
)

console = Console()
logger = logging.getLogger(__name__)

DRY_RUN_PROJECT = "DRY-RUN-PROJECT"


class App:
    """Wires configuration, logging and collaborators for one command."""

    def __init__(self, config: HistoriadorConfig, log_level: str = "INFO"):
        self.config = config
        self.log_path = setup_logging(log_level, config.logs_directory)
        self.jira_client = JiraClient(config)
        self.file_processor = FileProcessor(config.processed_directory)
        self.feature_manager = FeatureManager(self.jira_client, config)
        self.processor = BatchProcessor(self.file_processor, self.jira_client, self.feature_manager)

    def emit(self, output: str) -> None:
        """Print command output and copy it to the log."""
        console.print(output, end="", markup=False, highlight=False, soft_wrap=True)
        write_formatted_output(self.log_path, output)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def run_process(app: App, project_key: str, file_path: Optional[str], dry_run: bool, batch_size: int) -> None:
    start = time.monotonic()
    project_key = project_key or app.config.project_key
    dry_run = dry_run or app.config.dry_run

    log_command_start("process", {
        "file": file_path,
        "project_key": project_key,
        "dry_run": dry_run,
        "batch_size": batch_size,
    })

    if not project_key:
        if not dry_run:
            log_command_end("process", False, _elapsed_ms(start))
            raise PipelineError(
                "project key is required for real processing. "
                "Use -p flag, PROJECT_KEY env var, or --dry-run for testing"
            )
        project_key = DRY_RUN_PROJECT
        logger.info("Using dry-run mode without project key - no Jira operations will be performed")

    cancel = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        if file_path:
            results = [app.processor.execute(file_path, project_key, dry_run, cancel)]
        else:
            results = app.processor.process_all_files(app.config.input_directory, project_key, dry_run, cancel)
    except PipelineError:
        log_command_end("process", False, _elapsed_ms(start))
        raise
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if len(results) == 1:
        app.emit(output_formatter.format_batch_result(results[0]))
    else:
        app.emit(output_formatter.format_multiple_batch_results(results))

    log_command_end("process", True, _elapsed_ms(start))


def run_validate(app: App, project_key: str, file_path: Optional[str], rows: int) -> None:
    start = time.monotonic()
    project_key = project_key or app.config.project_key

    if not file_path:
        raise PipelineError("file path is required. Use -f flag to specify the file to validate")

    log_command_start("validate", {"file": file_path, "project_key": project_key})

    report = None
    error = None
    try:
        report = validate_file(app.file_processor, app.jira_client, file_path, project_key, rows)
    except PipelineError as e:
        error = e

    app.emit(output_formatter.format_validation(file_path, report, error))

    if error is not None:
        logger.error(f"Validation failed: {error}", extra={"action": "validation_error", "file": file_path})
    log_command_end("validate", error is None, _elapsed_ms(start))

    if error is not None:
        raise error


def run_test_connection(app: App) -> None:
    start = time.monotonic()
    log_command_start("test-connection", {})

    error = None
    try:
        app.jira_client.test_connection()
    except Exception as e:
        error = e

    app.emit(output_formatter.format_connection_test(error))
    log_command_end("test-connection", error is None, _elapsed_ms(start))

    if error is not None:
        raise error


def run_diagnose(app: App, project_key: str) -> None:
    start = time.monotonic()
    project_key = project_key or app.config.project_key
    log_command_start("diagnose", {"project_key": project_key})

    if not project_key:
        app.emit(output_formatter.format_diagnosis_no_project())
        log_command_end("diagnose", False, _elapsed_ms(start))
        return

    try:
        required_fields = diagnose_features(app.feature_manager, project_key)
    except PipelineError:
        log_command_end("diagnose", False, _elapsed_ms(start))
        raise

    app.emit(output_formatter.format_diagnosis(required_fields))
    log_command_end("diagnose", True, _elapsed_ms(start))


def _add_shared_options(parser: argparse.ArgumentParser, root: bool = False) -> None:
    # Subcommands only override the values given after them
    def default(value):
        return value if root else argparse.SUPPRESS

    parser.add_argument("-p", "--project", default=default(""), help="Key del proyecto en Jira (ej: MYPROJ)")
    parser.add_argument("-f", "--file", default=default(None), help="Archivo Excel o CSV específico")
    parser.add_argument("--dry-run", action="store_true", default=default(False), help="Modo de prueba sin crear issues")
    parser.add_argument("-b", "--batch-size", type=int, default=default(10), help="Tamaño del lote de procesamiento")
    parser.add_argument("--log-level", default=default("INFO"), help="Nivel de log (DEBUG, INFO, WARN, ERROR)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="historiador",
        description="Jira Batch Importer - Crea historias de usuario desde archivos Excel/CSV",
    )
    _add_shared_options(parser, root=True)
    parser.add_argument("--env-file", default=".env", help="Archivo de configuracion (default: .env)")

    subparsers = parser.add_subparsers(dest="command")

    process = subparsers.add_parser("process", help="Procesa archivos Excel/CSV para crear historias en Jira")
    _add_shared_options(process)

    validate = subparsers.add_parser("validate", help="Valida un archivo sin crear issues en Jira")
    _add_shared_options(validate)
    validate.add_argument("-r", "--rows", type=int, default=5, help="Número de filas a mostrar en preview")

    test_conn = subparsers.add_parser("test-connection", help="Prueba la conexión con Jira")
    _add_shared_options(test_conn)

    diagnose = subparsers.add_parser(
        "diagnose", help="Diagnostica los campos requeridos para Features en el proyecto"
    )
    _add_shared_options(diagnose)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run a command.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    args = build_parser().parse_args(argv)
    command = args.command or "process"

    try:
        config = load_config(Path(args.env_file))
        app = App(config, args.log_level)

        if command == "process":
            run_process(app, args.project, args.file, args.dry_run, args.batch_size)
        elif command == "validate":
            run_validate(app, args.project, args.file, getattr(args, "rows", 5))
        elif command == "test-connection":
            run_test_connection(app)
        elif command == "diagnose":
            run_diagnose(app, args.project)
    except Exception as e:
        # Top-level boundary: every failure becomes a message and exit code 1
        logger.error(f"Command {command} failed: {e}", exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
