"""
Pydantic schemas for input validation and output serialisation.
"""

from app.schemas.common import ErrorResponse, PaginationInfo
from app.schemas.project_schema import ProjectResponse, ProjectUpdate, ProjectListResponse
from app.schemas.ingestion_schema import ExtractedDataResponse, IngestionResponse

__all__ = [
    # Common
    'ErrorResponse',
    'PaginationInfo',

    # Project
    'ProjectResponse',
    'ProjectUpdate',
    'ProjectListResponse',

    # Ingestion
    'ExtractedDataResponse',
    'IngestionResponse',
]
