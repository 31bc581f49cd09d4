"""
PFMT Extraction Service - Ingest financial figures from an uploaded workbook.

The PFMT (Project Financial Management Tool) template carries a project's
headline figures in fixed cells. Ingestion reads them, derives variances,
merges them into the project record and removes the uploaded file on every
exit path.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from services.coercion import coerce_number
from services.errors import NotFoundError, ParseError
from services.project_store import ProjectStore
from services.storage_service import StorageService
from services.workbook_reader import Sheet, Workbook, WorkbookReader

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = 'SP Fields'

# (cell address, extracted field) in template order
PFMT_CELL_MAP: Tuple[Tuple[str, str], ...] = (
    ('C5', 'taf'),                    # Total Approved Funding
    ('C6', 'eac'),                    # Estimate at Completion
    ('C7', 'current_year_cashflow'),
    ('C8', 'current_year_target'),
)

CURRENT_REPORT_STATUS = 'Current'


def select_sheet(workbook: Workbook, preferred: str = DEFAULT_SHEET_NAME) -> Sheet:
    """
    Pick the PFMT sheet: the preferred name if present, else the first sheet.

    Raises:
        ParseError: If the workbook has no worksheets
    """
    if preferred in workbook.sheet_names:
        return workbook.sheets[preferred]

    if not workbook.sheet_names:
        raise ParseError("No worksheets found")

    first = workbook.sheet_names[0]
    logger.info(f"Sheet '{preferred}' not found, using first sheet '{first}'")
    return workbook.sheets[first]


def read_cell(sheet: Sheet, address: str) -> Any:
    """Raw value at address; empty or falsy cells read as 0."""
    cell = sheet.cell_at(address)
    if cell is None:
        return 0
    return cell.value or 0


def extract_cells(sheet: Sheet,
                  cell_map: Sequence[Tuple[str, str]] = PFMT_CELL_MAP) -> Dict[str, Any]:
    """Read every mapped cell into a {field: raw value} dict."""
    return {field: read_cell(sheet, address) for address, field in cell_map}


def coerce_extracted(extracted: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse non-numeric values (text-formatted numbers, etc.) as floats, else 0.

    Numeric cells pass through; coerce_number also zeroes NaN/inf.
    """
    return {field: coerce_number(value, field) for field, value in extracted.items()}


def compute_variances(figures: Dict[str, Any]) -> Dict[str, Any]:
    """EAC over TAF, and current-year cashflow over its target."""
    return {
        'taf_eac_variance': figures['eac'] - figures['taf'],
        'cashflow_variance': figures['current_year_cashflow'] - figures['current_year_target'],
    }


class PfmtExtractionService:
    """
    One-shot PFMT workbook ingestion.

    Concurrent ingestions for the same project are not serialised; the last
    store update wins.
    """

    def __init__(
        self,
        store: ProjectStore,
        reader: Optional[WorkbookReader] = None,
        storage: Optional[StorageService] = None,
        sheet_name: str = DEFAULT_SHEET_NAME,
        cell_map: Sequence[Tuple[str, str]] = PFMT_CELL_MAP,
        progress_callback: Optional[Callable[[str, float, str], None]] = None
    ):
        """
        Initialize extraction service.

        Args:
            store: Record store for projects
            reader: Workbook reader (default: openpyxl-backed WorkbookReader)
            storage: Storage service used to dispose of uploads
            sheet_name: Preferred sheet holding the PFMT fields
            cell_map: Ordered (address, field) pairs to extract
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
        """
        self.store = store
        self.reader = reader or WorkbookReader()
        self.storage = storage or StorageService()
        self.sheet_name = sheet_name
        self.cell_map = tuple(cell_map)
        self.progress_callback = progress_callback or (lambda *args: None)

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)

    def ingest(self, project_id: int, file_path: str, file_name: str) -> Dict[str, Any]:
        """
        Ingest a PFMT workbook into a project.

        The file at file_path is deleted before this returns or raises.

        Args:
            project_id: Project to update
            file_path: Path of the uploaded workbook
            file_name: Original filename, recorded on the project

        Returns:
            {'project': Project, 'extracted_data': dict}

        Raises:
            NotFoundError: If the project does not exist
            ParseError: If the workbook is unreadable or has no worksheets
        """
        logger.info(f"Starting PFMT ingestion of '{file_name}' for project {project_id}")

        with self.storage.disposable_upload(file_path) as upload:
            self._emit_progress('resolving', 5, 'Resolving project...')
            if self.store.get_by_id(project_id) is None:
                raise NotFoundError(project_id)

            self._emit_progress('parsing', 20, 'Parsing workbook...')
            workbook = self.reader.parse(upload)
            sheet = select_sheet(workbook, self.sheet_name)

            self._emit_progress('extracting', 50, f"Extracting cells from '{sheet.title}'...")
            extracted = coerce_extracted(extract_cells(sheet, self.cell_map))
            variances = compute_variances(extracted)

            self._emit_progress('updating', 75, 'Updating project record...')
            now = datetime.now(timezone.utc)
            update_data = {
                'taf': extracted['taf'],
                'eac': extracted['eac'],
                'current_year_cashflow': extracted['current_year_cashflow'],
                'target_cashflow': extracted['current_year_target'],
                'last_pfmt_update': now,
                'pfmt_file_name': file_name,
                'pfmt_extracted_at': now,
                'report_status': CURRENT_REPORT_STATUS,
                **variances
            }
            project = self.store.update(project_id, update_data)
            if project is None:
                raise NotFoundError(project_id)

        self._emit_progress('complete', 100, 'Ingestion complete')
        logger.info(f"PFMT ingestion complete for project {project_id}: "
                    f"TAF/EAC variance {variances['taf_eac_variance']}, "
                    f"cashflow variance {variances['cashflow_variance']}")

        return {
            'project': project,
            'extracted_data': {
                **extracted,
                **variances,
                'file_name': file_name,
                'extracted_at': now
            }
        }
