"""Storage layer: output file layout and the per-session writer."""

from .file_manager import FileManager
from .output_writer import OutputWriter

__all__ = [
    "FileManager",
    "OutputWriter",
]
