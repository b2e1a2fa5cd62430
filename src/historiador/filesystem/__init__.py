"""Input file reading and disposition."""

from .file_processor import FileProcessor, FileProcessingError, SUPPORTED_EXTENSIONS

__all__ = ["FileProcessor", "FileProcessingError", "SUPPORTED_EXTENSIONS"]
