"""
Common Pydantic schemas.

This module contains shared schemas for pagination and errors.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone


class ErrorResponse(BaseModel):
    """Standard error payload printed by the CLI."""

    error: str = Field(..., description="Error message")
    error_type: str = Field(..., description="Exception class name")
    detail: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc),
                                description="Error timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Project 42 not found",
                "error_type": "NotFoundError",
                "detail": {"project_id": 42},
                "timestamp": "2025-10-15T12:00:00Z"
            }
        }


class PaginationInfo(BaseModel):
    """Pagination block returned with project listings."""

    page: int = Field(..., ge=1, description="Current page number (1-indexed)")
    limit: int = Field(..., ge=1, description="Items per page")
    total: int = Field(..., ge=0, description="Total number of matching items")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool = Field(..., description="Whether a later page exists")
    has_prev: bool = Field(..., description="Whether an earlier page exists")

    class Config:
        json_schema_extra = {
            "example": {
                "page": 2,
                "limit": 10,
                "total": 25,
                "total_pages": 3,
                "has_next": True,
                "has_prev": True
            }
        }
