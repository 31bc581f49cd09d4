"""
Storage Service - Upload staging and disposal.

This module manages uploaded PFMT workbooks: staging copies into the temp
upload directory, validating them, and removing them once ingested.
"""

import os
import shutil
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_TEMP_UPLOAD_DIR = os.path.join(tempfile.gettempdir(), 'pfmt_uploads')
DEFAULT_ALLOWED_EXTENSIONS = ['.xlsx', '.xlsm']


class StorageService:
    """
    Framework-agnostic storage service for uploaded files.

    Staged uploads are single-use: the ingestion pipeline deletes them on
    every exit path via ``disposable_upload``.
    """

    def __init__(self, temp_dir: str = DEFAULT_TEMP_UPLOAD_DIR):
        """
        Initialize storage service.

        Args:
            temp_dir: Directory where uploads are staged
        """
        self.temp_dir = temp_dir

    def _ensure_directory_exists(self):
        """Ensure the temp upload directory exists."""
        Path(self.temp_dir).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Upload directory ensured: {self.temp_dir}")

    def stage_upload(self, source_path: str) -> str:
        """
        Copy a file into the temp upload directory.

        Args:
            source_path: File to stage; left untouched

        Returns:
            Path to the staged copy
        """
        self._ensure_directory_exists()

        fd, temp_path = tempfile.mkstemp(
            suffix=Path(source_path).suffix,
            dir=self.temp_dir
        )
        try:
            with os.fdopen(fd, 'wb') as tmp, open(source_path, 'rb') as src:
                shutil.copyfileobj(src, tmp)
        except Exception:
            self.discard_file(temp_path)
            raise

        logger.info(f"Staged upload: {source_path} -> {temp_path}")
        return temp_path

    def delete_file(self, file_path: str) -> bool:
        """
        Delete a file.

        Args:
            file_path: Path to file to delete

        Returns:
            True if file was deleted, False if file didn't exist

        Raises:
            OSError: If the file exists but cannot be removed
        """
        path = Path(file_path)

        if path.exists():
            path.unlink()
            logger.info(f"Deleted file: {file_path}")
            return True
        else:
            logger.warning(f"File not found for deletion: {file_path}")
            return False

    def discard_file(self, file_path: str) -> bool:
        """Best-effort delete; failures are logged, never raised."""
        try:
            return self.delete_file(file_path)
        except OSError as e:
            logger.warning(f"Failed to clean up uploaded file {file_path}: {e}")
            return False

    @contextmanager
    def disposable_upload(self, file_path: str) -> Iterator[str]:
        """
        Scope an uploaded file so it is removed on every exit path.

        Usage:
            with storage.disposable_upload(path) as upload:
                process(upload)
        """
        try:
            yield file_path
        finally:
            self.discard_file(file_path)

    def get_file_size_mb(self, file_path: str) -> float:
        """
        Get file size in megabytes.

        Args:
            file_path: Path to file

        Returns:
            File size in MB
        """
        path = Path(file_path)

        if not path.exists():
            return 0.0

        size_bytes = path.stat().st_size
        size_mb = size_bytes / (1024 * 1024)

        return round(size_mb, 2)

    def validate_file_size(self, file_path: str, max_size_mb: int = 100) -> bool:
        """
        Validate that file size is within limit.

        Args:
            file_path: Path to file
            max_size_mb: Maximum allowed size in MB

        Returns:
            True if size is within limit, False otherwise
        """
        size_mb = self.get_file_size_mb(file_path)
        is_valid = size_mb <= max_size_mb

        if not is_valid:
            logger.warning(f"File size {size_mb} MB exceeds limit of {max_size_mb} MB")

        return is_valid

    def validate_file_extension(self, file_path: str,
                                allowed_extensions: Optional[list] = None) -> bool:
        """
        Validate file extension.

        Args:
            file_path: Path to file
            allowed_extensions: List of allowed extensions (e.g., ['.xlsx', '.xlsm'])

        Returns:
            True if extension is allowed, False otherwise
        """
        if allowed_extensions is None:
            allowed_extensions = DEFAULT_ALLOWED_EXTENSIONS

        ext = Path(file_path).suffix.lower()
        is_valid = ext in [e.lower() for e in allowed_extensions]

        if not is_valid:
            logger.warning(f"Invalid file extension: {ext} (allowed: {allowed_extensions})")

        return is_valid

    def cleanup_temp_files(self, older_than_hours: int = 24) -> int:
        """
        Remove staged uploads older than the given age.

        Normally ingestion removes its own upload; this sweeps leftovers from
        processes that died mid-ingest.

        Returns:
            Number of files deleted
        """
        temp_path = Path(self.temp_dir)

        if not temp_path.exists():
            return 0

        cutoff_time = datetime.now().timestamp() - (older_than_hours * 3600)
        deleted_count = 0

        for file_path in temp_path.glob("*"):
            if file_path.is_file() and file_path.stat().st_mtime < cutoff_time:
                if self.discard_file(str(file_path)):
                    deleted_count += 1

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} temporary files")

        return deleted_count
