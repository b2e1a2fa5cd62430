"""
Import phases.

- Batch processing - BatchProcessor.execute() / process_all_files()
- File validation report - validate_file()
- Feature diagnosis - diagnose_features()
"""

from .process_files import BatchProcessor, PipelineError, DRY_RUN_BASE_URL
from .validate_file import ValidationReport, validate_file, generate_statistics, generate_preview
from .diagnose import diagnose_features

__all__ = [
    "BatchProcessor",
    "PipelineError",
    "DRY_RUN_BASE_URL",
    "ValidationReport",
    "validate_file",
    "generate_statistics",
    "generate_preview",
    "diagnose_features",
]
