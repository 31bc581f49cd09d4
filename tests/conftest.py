"""
Pytest configuration and fixtures for project and PFMT ingestion tests.
"""

import pytest
import openpyxl
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models.schema import Base
from services.pfmt_extraction_service import PfmtExtractionService
from services.project_service import ProjectService
from services.project_store import ProjectStore
from services.storage_service import StorageService


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine with the schema applied."""
    eng = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for a test."""
    Session = sessionmaker(bind=engine)
    sess = Session()

    yield sess

    sess.close()


@pytest.fixture
def store(session):
    return ProjectStore(session)


@pytest.fixture
def project_service(store):
    return ProjectService(store)


@pytest.fixture
def storage(tmp_path):
    return StorageService(str(tmp_path / 'uploads'))


@pytest.fixture
def extraction_service(store, storage):
    return PfmtExtractionService(store, storage=storage)


@pytest.fixture
def project(project_service):
    """A freshly created project with default fields."""
    return project_service.create_project({
        'name': 'Bridge Renewal',
        'description': 'Deck replacement on the north span',
        'owner_id': 'pm-1'
    })


@pytest.fixture
def make_workbook(tmp_path):
    """
    Factory writing a real .xlsx file.

    Usage:
        path = make_workbook({'SP Fields': {'C5': 100, 'C6': 120}})
    """
    counter = {'n': 0}

    def _make(sheets, filename=None):
        counter['n'] += 1
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for title, cells in sheets.items():
            ws = wb.create_sheet(title)
            for address, value in cells.items():
                ws[address] = value
        path = tmp_path / (filename or f"pfmt_{counter['n']}.xlsx")
        wb.save(path)
        return str(path)

    return _make
