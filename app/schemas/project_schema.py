"""
Project-related Pydantic schemas.

This module contains schemas for project records and partial updates.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from app.schemas.common import PaginationInfo


class ProjectResponse(BaseModel):
    """Full project record."""

    id: int = Field(..., description="Project ID")
    owner_id: Optional[str] = Field(None, description="Owner identifier")
    name: str = Field(..., description="Project name")
    description: str = Field(..., description="Project description")
    status: str
    phase: str
    report_status: str = Field(..., description="'Update Required' or 'Current'")
    schedule_status: str
    budget_status: str
    schedule_reason_code: str
    budget_reason_code: str

    taf: float = Field(..., description="Total Approved Funding")
    eac: float = Field(..., description="Estimate at Completion")
    current_year_cashflow: float
    target_cashflow: float
    total_budget: float
    amount_spent: float
    taf_eac_variance: float
    cashflow_variance: float

    submissions: int
    submitted_by: Optional[str] = None
    submitted_date: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    director_approved: bool
    senior_pm_reviewed: bool

    monthly_comments: str
    previous_highlights: str
    next_steps: str
    budget_variance_explanation: str
    cashflow_variance_explanation: str
    additional_team: List[Any] = Field(default_factory=list)

    last_pfmt_update: Optional[datetime] = None
    pfmt_file_name: Optional[str] = None
    pfmt_extracted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    owner_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = None
    phase: Optional[str] = None
    report_status: Optional[str] = None
    schedule_status: Optional[str] = None
    budget_status: Optional[str] = None
    schedule_reason_code: Optional[str] = None
    budget_reason_code: Optional[str] = None

    taf: Optional[float] = None
    eac: Optional[float] = None
    current_year_cashflow: Optional[float] = None
    target_cashflow: Optional[float] = None
    total_budget: Optional[float] = None
    amount_spent: Optional[float] = None

    submissions: Optional[int] = Field(None, ge=0)
    submitted_by: Optional[str] = None
    submitted_date: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    director_approved: Optional[bool] = None
    senior_pm_reviewed: Optional[bool] = None

    monthly_comments: Optional[str] = None
    previous_highlights: Optional[str] = None
    next_steps: Optional[str] = None
    budget_variance_explanation: Optional[str] = None
    cashflow_variance_explanation: Optional[str] = None
    additional_team: Optional[List[str]] = None

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "phase": "Construction",
                "total_budget": 1250000.0,
                "director_approved": True
            }
        }


class ProjectListResponse(BaseModel):
    """Paginated project list response."""

    projects: List[ProjectResponse] = Field(..., description="Projects in current page")
    pagination: PaginationInfo
