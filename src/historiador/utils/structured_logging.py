"""
Structured logging configuration.

Every run writes JSON records to its own file under the logs directory;
the console is left to the command's formatted output.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

EXTRA_FIELDS = ("action", "command", "file", "issue_key", "row", "project_key", "duration_ms", "command_args")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter for machine-readable output."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }

        # Extra fields set via logger.info("msg", extra={...})
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def parse_level(level: str) -> int:
    """Map a level name to a logging level; unknown names map to INFO."""
    return _LEVELS.get((level or "").upper(), logging.INFO)


def setup_logging(level: str = "INFO", logs_dir: str | Path = "logs") -> Path:
    """
    Configure logging for a command run.

    Args:
        level: Log level (DEBUG, INFO, WARN, WARNING, ERROR)
        logs_dir: Directory receiving the per-run log file

    Returns:
        Path of the log file
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_path = logs_dir / f"historiador_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(StructuredFormatter())

    logging.root.handlers = [handler]
    logging.root.setLevel(parse_level(level))
    return log_path


def write_formatted_output(log_path: Optional[Path], output: str) -> None:
    """Append a command's rendered output to the log file."""
    if log_path is None:
        return
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(f"\n=== SALIDA COMANDO [{timestamp}] ===\n{output}=== FIN SALIDA ===\n\n")


def log_command_start(command: str, args: dict[str, Any]) -> None:
    logger.info(
        f"Running command: {command}",
        extra={"action": "command_start", "command": command, "command_args": args},
    )


def log_command_end(command: str, success: bool, duration_ms: int) -> None:
    status = "success" if success else "error"
    logger.info(
        f"Command finished: {command} [{status}]",
        extra={"action": "command_end", "command": command, "duration_ms": duration_ms},
    )
