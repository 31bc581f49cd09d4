"""
Tests for upload staging and disposal.
"""

import os
import time
from pathlib import Path

import pytest

from services.storage_service import StorageService


@pytest.fixture
def upload(tmp_path):
    path = tmp_path / 'upload.xlsx'
    path.write_bytes(b'PK\x03\x04 fake workbook bytes')
    return path


class TestDisposal:
    """Test best-effort deletion and the disposable upload scope."""

    def test_delete_existing(self, storage, upload):
        assert storage.delete_file(str(upload)) is True
        assert not upload.exists()

    def test_delete_missing(self, storage, tmp_path):
        assert storage.delete_file(str(tmp_path / 'gone.xlsx')) is False

    def test_discard_swallows_os_errors(self, storage, upload, monkeypatch, caplog):
        def locked(self, *args, **kwargs):
            raise PermissionError('denied')

        monkeypatch.setattr(Path, 'unlink', locked)

        assert storage.discard_file(str(upload)) is False
        assert 'Failed to clean up uploaded file' in caplog.text

    def test_scope_deletes_on_success(self, storage, upload):
        with storage.disposable_upload(str(upload)) as path:
            assert os.path.exists(path)

        assert not upload.exists()

    def test_scope_deletes_on_error(self, storage, upload):
        with pytest.raises(RuntimeError):
            with storage.disposable_upload(str(upload)):
                raise RuntimeError('boom')

        assert not upload.exists()


class TestStaging:
    """Test staging and validation of uploads."""

    def test_stage_copies_file(self, storage, upload):
        staged = storage.stage_upload(str(upload))

        assert upload.exists()
        assert staged != str(upload)
        assert staged.endswith('.xlsx')
        assert Path(staged).parent == Path(storage.temp_dir)
        assert Path(staged).read_bytes() == upload.read_bytes()

    def test_extension_validation(self, storage):
        assert storage.validate_file_extension('q3.XLSX') is True
        assert storage.validate_file_extension('q3.xlsm') is True
        assert storage.validate_file_extension('q3.csv') is False
        assert storage.validate_file_extension('q3.xls', ['.xls']) is True

    def test_size_validation(self, storage, upload):
        assert storage.validate_file_size(str(upload), max_size_mb=1) is True
        assert storage.get_file_size_mb(str(upload.parent / 'missing.xlsx')) == 0.0

    def test_cleanup_removes_only_stale_files(self, storage, upload):
        stale = Path(storage.stage_upload(str(upload)))
        fresh = Path(storage.stage_upload(str(upload)))
        two_days_ago = time.time() - 48 * 3600
        os.utime(stale, (two_days_ago, two_days_ago))

        deleted = storage.cleanup_temp_files(older_than_hours=24)

        assert deleted == 1
        assert not stale.exists()
        assert fresh.exists()

    def test_cleanup_without_directory(self, tmp_path):
        assert StorageService(str(tmp_path / 'never-created')).cleanup_temp_files() == 0
