"""
PFMT ingestion Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime

from app.schemas.project_schema import ProjectResponse


class ExtractedDataResponse(BaseModel):
    """Figures read from a PFMT workbook, with derived variances."""

    taf: float = Field(..., description="Total Approved Funding (C5)")
    eac: float = Field(..., description="Estimate at Completion (C6)")
    current_year_cashflow: float = Field(..., description="Current year cashflow (C7)")
    current_year_target: float = Field(..., description="Current year target (C8)")
    taf_eac_variance: float = Field(..., description="EAC minus TAF")
    cashflow_variance: float = Field(..., description="Cashflow minus target")
    file_name: str = Field(..., description="Original workbook filename")
    extracted_at: datetime = Field(..., description="Extraction timestamp (UTC)")

    class Config:
        json_schema_extra = {
            "example": {
                "taf": 5000000.0,
                "eac": 5250000.0,
                "current_year_cashflow": 1200000.0,
                "current_year_target": 1500000.0,
                "taf_eac_variance": 250000.0,
                "cashflow_variance": -300000.0,
                "file_name": "PFMT_Q3.xlsx",
                "extracted_at": "2025-10-15T12:00:00Z"
            }
        }


class IngestionResponse(BaseModel):
    """Result of a PFMT ingestion."""

    project: ProjectResponse
    extracted_data: ExtractedDataResponse
