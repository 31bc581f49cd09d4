"""
Tests for PFMT workbook ingestion.

Covers cell extraction, numeric coercion, variance computation, the project
merge, and removal of the uploaded file on every exit path.
"""

import os
import zipfile
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from services.errors import IngestionError, NotFoundError, ParseError
from services.pfmt_extraction_service import (
    PFMT_CELL_MAP, PfmtExtractionService, coerce_extracted, compute_variances,
    extract_cells, select_sheet
)
from services.workbook_reader import CellValue, Workbook


PFMT_VALUES = {'C5': 5000000, 'C6': 5250000.5, 'C7': 1200000, 'C8': 1500000}


class FakeSheet:
    """In-memory sheet keyed by address."""

    def __init__(self, cells, title='Sheet1'):
        self.cells = cells
        self.title = title

    def cell_at(self, address):
        if address not in self.cells:
            return None
        value = self.cells[address]
        return CellValue(type=type(value).__name__, value=value)


class FakeReader:
    def __init__(self, workbook):
        self.workbook = workbook

    def parse(self, file_path):
        return self.workbook


class TestSheetSelection:
    """Test choice of the PFMT sheet."""

    def test_prefers_sp_fields(self):
        workbook = Workbook(
            sheet_names=['Cover', 'SP Fields'],
            sheets={'Cover': FakeSheet({}, 'Cover'), 'SP Fields': FakeSheet({}, 'SP Fields')}
        )
        assert select_sheet(workbook).title == 'SP Fields'

    def test_falls_back_to_first_sheet(self):
        workbook = Workbook(
            sheet_names=['Summary', 'Detail'],
            sheets={'Summary': FakeSheet({}, 'Summary'), 'Detail': FakeSheet({}, 'Detail')}
        )
        assert select_sheet(workbook).title == 'Summary'

    def test_no_worksheets(self):
        with pytest.raises(ParseError, match='No worksheets found'):
            select_sheet(Workbook())


class TestCellExtraction:
    """Test extraction and coercion helpers."""

    def test_cell_map_order(self):
        assert [address for address, _ in PFMT_CELL_MAP] == ['C5', 'C6', 'C7', 'C8']

    def test_missing_cells_default_to_zero(self):
        extracted = extract_cells(FakeSheet({'C5': 10}))

        assert extracted == {
            'taf': 10, 'eac': 0, 'current_year_cashflow': 0, 'current_year_target': 0
        }

    def test_text_numbers_parsed(self):
        extracted = coerce_extracted(extract_cells(FakeSheet({
            'C5': '1234.5', 'C6': 'TBD', 'C7': ' 42 ', 'C8': True
        })))

        assert extracted['taf'] == 1234.5
        assert extracted['eac'] == 0
        assert extracted['current_year_cashflow'] == 42.0
        assert extracted['current_year_target'] == 0

    def test_text_with_trailing_units(self):
        """Text cells keep their leading number and drop the rest."""
        extracted = coerce_extracted(extract_cells(FakeSheet({
            'C5': '12abc', 'C6': '1500 CAD', 'C7': '1_000', 'C8': 'Infinity'
        })))

        assert extracted == {
            'taf': 12.0,
            'eac': 1500.0,
            'current_year_cashflow': 1.0,
            'current_year_target': 0,
        }

    def test_nan_text_becomes_zero(self):
        extracted = coerce_extracted(extract_cells(FakeSheet({'C5': 'nan', 'C6': 'inf'})))

        assert extracted['taf'] == 0
        assert extracted['eac'] == 0

    def test_custom_cell_map(self):
        sheet = FakeSheet({'D2': 7})
        assert extract_cells(sheet, [('D2', 'contingency')]) == {'contingency': 7}

    def test_variances(self):
        variances = compute_variances({
            'taf': 100.0, 'eac': 130.0,
            'current_year_cashflow': 40.0, 'current_year_target': 55.0
        })

        assert variances == {'taf_eac_variance': 30.0, 'cashflow_variance': -15.0}


class TestIngest:
    """Test the end-to-end ingestion pipeline."""

    def test_success(self, extraction_service, project, make_workbook):
        path = make_workbook({'SP Fields': PFMT_VALUES})

        result = extraction_service.ingest(project.id, path, 'PFMT_Q3.xlsx')
        data = result['extracted_data']
        updated = result['project']

        assert data['taf'] == 5000000
        assert data['eac'] == 5250000.5
        assert data['current_year_cashflow'] == 1200000
        assert data['current_year_target'] == 1500000
        assert data['taf_eac_variance'] == data['eac'] - data['taf']
        assert data['cashflow_variance'] == data['current_year_cashflow'] - data['current_year_target']
        assert data['file_name'] == 'PFMT_Q3.xlsx'
        assert data['extracted_at'] is not None

        assert updated.id == project.id
        assert updated.taf == 5000000
        assert updated.target_cashflow == 1500000
        assert updated.taf_eac_variance == 250000.5
        assert updated.cashflow_variance == -300000
        assert updated.report_status == 'Current'
        assert updated.pfmt_file_name == 'PFMT_Q3.xlsx'
        assert updated.last_pfmt_update is not None
        assert updated.pfmt_extracted_at is not None

        assert not os.path.exists(path)

    def test_preserves_other_fields(self, extraction_service, project_service, project,
                                    make_workbook):
        project_service.update_project(project.id, {'phase': 'Design', 'total_budget': 42})
        path = make_workbook({'SP Fields': PFMT_VALUES})

        updated = extraction_service.ingest(project.id, path, 'f.xlsx')['project']

        assert updated.phase == 'Design'
        assert updated.total_budget == 42
        assert updated.name == 'Bridge Renewal'

    def test_first_sheet_fallback(self, extraction_service, project, make_workbook):
        path = make_workbook({'Summary': {'C5': 10, 'C6': 15}, 'Other': {'C5': 999}})

        data = extraction_service.ingest(project.id, path, 'f.xlsx')['extracted_data']

        assert data['taf'] == 10
        assert data['eac'] == 15
        assert data['taf_eac_variance'] == 5

    def test_sp_fields_preferred_over_first(self, extraction_service, project, make_workbook):
        path = make_workbook({'Cover': {'C5': 1}, 'SP Fields': {'C5': 2}})

        data = extraction_service.ingest(project.id, path, 'f.xlsx')['extracted_data']

        assert data['taf'] == 2

    def test_text_cells(self, extraction_service, project, make_workbook):
        path = make_workbook({'SP Fields': {'C5': '1234.5', 'C6': 'pending'}})

        data = extraction_service.ingest(project.id, path, 'f.xlsx')['extracted_data']

        assert data['taf'] == 1234.5
        assert data['eac'] == 0
        assert data['taf_eac_variance'] == -1234.5

    def test_empty_sheet_gives_zeros(self, extraction_service, project, make_workbook):
        path = make_workbook({'SP Fields': {'A1': 'header only'}})

        result = extraction_service.ingest(project.id, path, 'f.xlsx')

        data = result['extracted_data']
        assert data['taf'] == data['eac'] == 0
        assert data['taf_eac_variance'] == 0
        assert data['cashflow_variance'] == 0
        assert result['project'].report_status == 'Current'

    def test_formula_cells_use_cached_values(self, extraction_service, project, make_workbook):
        """Formulas never calculated by Excel have no cached value and read as 0."""
        path = make_workbook({'SP Fields': {'C5': '=1+1', 'C6': 50}})

        data = extraction_service.ingest(project.id, path, 'f.xlsx')['extracted_data']

        assert data['taf'] == 0
        assert data['eac'] == 50

    def test_missing_project_still_deletes_file(self, extraction_service, make_workbook):
        path = make_workbook({'SP Fields': PFMT_VALUES})

        with pytest.raises(NotFoundError):
            extraction_service.ingest(999, path, 'f.xlsx')

        assert not os.path.exists(path)

    def test_missing_project_checked_before_parsing(self, store, storage, tmp_path):
        """An unreadable file for an unknown project reports the project."""
        path = tmp_path / 'garbage.xlsx'
        path.write_bytes(b'not a workbook')
        service = PfmtExtractionService(store, storage=storage)

        with pytest.raises(NotFoundError):
            service.ingest(999, str(path), 'garbage.xlsx')

        assert not path.exists()

    def test_invalid_file_raises_parse_error(self, extraction_service, project, tmp_path):
        path = tmp_path / 'broken.xlsx'
        path.write_bytes(b'this is not a zip archive')

        with pytest.raises(ParseError):
            extraction_service.ingest(project.id, str(path), 'broken.xlsx')

        assert not path.exists()

    def test_malformed_workbook_xml_raises_parse_error(self, extraction_service, project,
                                                      tmp_path):
        """A valid zip archive with broken XML parts is still a ParseError."""
        path = tmp_path / 'corrupt.xlsx'
        with zipfile.ZipFile(path, 'w') as archive:
            archive.writestr('[Content_Types].xml', '<<<not xml')

        with pytest.raises(ParseError, match='Unable to read workbook'):
            extraction_service.ingest(project.id, str(path), 'corrupt.xlsx')

        assert not path.exists()

    def test_zero_sheets_raises_and_deletes(self, store, storage, project, tmp_path):
        path = tmp_path / 'empty.xlsx'
        path.write_bytes(b'placeholder')
        service = PfmtExtractionService(store, reader=FakeReader(Workbook()), storage=storage)

        with pytest.raises(ParseError, match='No worksheets found') as exc_info:
            service.ingest(project.id, str(path), 'empty.xlsx')

        assert isinstance(exc_info.value, IngestionError)
        assert not path.exists()

    def test_failed_ingest_leaves_project_untouched(self, store, storage, project, tmp_path):
        path = tmp_path / 'empty.xlsx'
        path.write_bytes(b'placeholder')
        service = PfmtExtractionService(store, reader=FakeReader(Workbook()), storage=storage)

        with pytest.raises(ParseError):
            service.ingest(project.id, str(path), 'empty.xlsx')

        assert store.get_by_id(project.id).report_status == 'Update Required'
        assert store.get_by_id(project.id).pfmt_file_name is None

    def test_store_error_passes_through(self, store, storage, project, make_workbook,
                                        monkeypatch):
        path = make_workbook({'SP Fields': PFMT_VALUES})
        error = OperationalError('UPDATE projects', {}, Exception('database is locked'))

        def failing_update(project_id, partial):
            raise error

        monkeypatch.setattr(store, 'update', failing_update)
        service = PfmtExtractionService(store, storage=storage)

        with pytest.raises(OperationalError) as exc_info:
            service.ingest(project.id, path, 'f.xlsx')

        assert exc_info.value is error
        assert not os.path.exists(path)

    def test_cleanup_failure_does_not_mask_result(self, extraction_service, project,
                                                  make_workbook, monkeypatch, caplog):
        path = make_workbook({'SP Fields': PFMT_VALUES})

        def locked(self, *args, **kwargs):
            raise PermissionError('file is locked')

        monkeypatch.setattr(Path, 'unlink', locked)

        result = extraction_service.ingest(project.id, path, 'f.xlsx')

        assert result['project'].report_status == 'Current'
        assert 'Failed to clean up uploaded file' in caplog.text

    def test_cleanup_failure_does_not_mask_error(self, extraction_service, make_workbook,
                                                 monkeypatch):
        path = make_workbook({'SP Fields': PFMT_VALUES})

        def locked(self, *args, **kwargs):
            raise PermissionError('file is locked')

        monkeypatch.setattr(Path, 'unlink', locked)

        with pytest.raises(NotFoundError):
            extraction_service.ingest(999, path, 'f.xlsx')

    def test_reingest_overwrites(self, extraction_service, project, make_workbook):
        first = make_workbook({'SP Fields': {'C5': 100, 'C6': 150}})
        second = make_workbook({'SP Fields': {'C5': 100, 'C6': 90}})

        extraction_service.ingest(project.id, first, 'q1.xlsx')
        updated = extraction_service.ingest(project.id, second, 'q2.xlsx')['project']

        assert updated.eac == 90
        assert updated.taf_eac_variance == -10
        assert updated.pfmt_file_name == 'q2.xlsx'

    def test_progress_stages(self, store, storage, project, make_workbook):
        stages = []
        service = PfmtExtractionService(
            store, storage=storage,
            progress_callback=lambda stage, percent, message: stages.append((stage, percent))
        )

        service.ingest(project.id, make_workbook({'SP Fields': PFMT_VALUES}), 'f.xlsx')

        assert [s for s, _ in stages] == ['resolving', 'parsing', 'extracting', 'updating', 'complete']
        assert stages[-1][1] == 100

    def test_custom_sheet_name(self, store, storage, project, make_workbook):
        service = PfmtExtractionService(store, storage=storage, sheet_name='Financials')
        path = make_workbook({'SP Fields': {'C5': 1}, 'Financials': {'C5': 3}})

        assert service.ingest(project.id, path, 'f.xlsx')['extracted_data']['taf'] == 3
