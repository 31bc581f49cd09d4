"""
Workbook Reader - openpyxl adapter exposing typed cell lookups.

Workbooks are loaded with ``data_only=True`` so formula cells yield the value
Excel last calculated rather than the formula text.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from services.coercion import is_number
from services.errors import ParseError

logger = logging.getLogger(__name__)

CELL_NUMBER = 'number'
CELL_STRING = 'string'
CELL_BOOLEAN = 'boolean'
CELL_DATE = 'date'


@dataclass(frozen=True)
class CellValue:
    """A non-empty cell: its inferred type and raw value."""
    type: str
    value: Any


def infer_cell_type(value: Any) -> str:
    """Map a Python value from openpyxl to a cell type name."""
    if isinstance(value, bool):
        return CELL_BOOLEAN
    if is_number(value):
        return CELL_NUMBER
    if isinstance(value, (datetime, date, time)):
        return CELL_DATE
    return CELL_STRING


class Sheet:
    """Read access to one worksheet by A1-style address."""

    def __init__(self, worksheet):
        self._worksheet = worksheet

    @property
    def title(self) -> str:
        return self._worksheet.title

    def cell_at(self, address: str) -> Optional[CellValue]:
        """
        Get the typed value at a cell address.

        Args:
            address: Cell address e.g. 'C5'

        Returns:
            CellValue, or None if the cell is empty
        """
        value = self._worksheet[address].value
        if value is None:
            return None
        return CellValue(type=infer_cell_type(value), value=value)


@dataclass
class Workbook:
    """Parsed workbook: ordered sheet names and sheets keyed by name."""
    sheet_names: List[str] = field(default_factory=list)
    sheets: Dict[str, Sheet] = field(default_factory=dict)


class WorkbookReader:
    """Parse spreadsheet files on disk into Workbook objects."""

    def parse(self, file_path: str) -> Workbook:
        """
        Parse a workbook file.

        Args:
            file_path: Path to .xlsx/.xlsm file

        Returns:
            Workbook with every worksheet

        Raises:
            ParseError: If the file is missing, unreadable or not a workbook
        """
        # Malformed XML parts surface as SyntaxError subclasses (stdlib or lxml)
        try:
            wb = openpyxl.load_workbook(file_path, data_only=True)
        except (InvalidFileException, BadZipFile, OSError, KeyError, ValueError, SyntaxError) as e:
            logger.error(f"Could not read workbook {file_path}: {e}")
            raise ParseError(f"Unable to read workbook: {e}") from e

        try:
            workbook = Workbook()
            for ws in wb.worksheets:
                workbook.sheet_names.append(ws.title)
                workbook.sheets[ws.title] = Sheet(ws)
        finally:
            wb.close()

        logger.debug(f"Parsed {file_path}: sheets={workbook.sheet_names}")
        return workbook
