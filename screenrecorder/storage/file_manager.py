"""File layout for recording output files."""

import logging
from pathlib import Path
from typing import Dict, Any

from ..errors import StorageUnavailable

logger = logging.getLogger(__name__)

RECORDING_PREFIX = "recording_"
RECORDING_SUFFIX = ".webm"


class FileManager:
    """Maps session identifiers to output files under the upload folder."""

    def __init__(self, upload_dir: str = "./recordings"):
        """Initialize file manager.

        Args:
            upload_dir: Directory that receives one recording file per session
        """
        self.upload_dir = Path(upload_dir)
        logger.info(f"FileManager initialized with upload_dir: {self.upload_dir}")

    def get_recording_path(self, session_id: str) -> Path:
        """Get the deterministic output path for a session.

        Args:
            session_id: Session identifier

        Returns:
            Path to the session's recording file
        """
        return self.upload_dir / f"{RECORDING_PREFIX}{session_id}{RECORDING_SUFFIX}"

    def ensure_directory(self, path: Path) -> None:
        """Ensure the directory containing ``path`` exists.

        Raises:
            StorageUnavailable: If the directory cannot be created
        """
        directory = path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create output directory {directory}: {e}")
            raise StorageUnavailable(f"failed to create output directory: {e}") from e
        logger.debug(f"Ensured directory exists: {directory}")

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get storage usage statistics for the upload folder.

        Returns:
            Dictionary with storage statistics
        """
        total_size = 0
        recording_files = 0

        if self.upload_dir.is_dir():
            for file_path in self.upload_dir.glob(f"{RECORDING_PREFIX}*{RECORDING_SUFFIX}"):
                if file_path.is_file():
                    recording_files += 1
                    total_size += file_path.stat().st_size

        return {
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "recording_files": recording_files,
            "upload_directory": str(self.upload_dir)
        }
