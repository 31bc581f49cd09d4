"""
SQLAlchemy models for project record management.

This module defines the database schema using SQLAlchemy ORM. JSON columns
use JSONB on PostgreSQL and plain JSON elsewhere (SQLite in tests).
"""

from sqlalchemy import (
    Boolean, Column, Float, Integer, String, Text, TIMESTAMP, JSON, Index, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), 'postgresql')

# Financial columns that must always hold a finite number
FINANCIAL_FIELDS = (
    'taf',
    'eac',
    'current_year_cashflow',
    'target_cashflow',
    'total_budget',
    'amount_spent',
    'taf_eac_variance',
    'cashflow_variance',
)


def _money_column(comment: str) -> Column:
    return Column(Float, nullable=False, default=0.0, server_default='0', comment=comment)


class Project(Base):
    """Represents a tracked capital project and its latest PFMT figures."""

    __tablename__ = 'projects'
    __table_args__ = (
        Index('idx_projects_owner', 'owner_id'),
        Index('idx_projects_status', 'status'),
        Index('idx_projects_report_status', 'report_status'),
        {'comment': 'Tracked projects with financial reporting fields'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    owner_id = Column(
        String(255),
        nullable=True,
        comment='Project manager / owner identifier'
    )

    # Descriptive
    name = Column(String(255), nullable=False, comment='Project name')
    description = Column(Text, nullable=False, comment='Project description')
    status = Column(String(50), nullable=False, server_default='Active')
    phase = Column(String(50), nullable=False, server_default='Planning')
    report_status = Column(
        String(50),
        nullable=False,
        server_default='Update Required',
        comment="'Update Required' or 'Current'"
    )
    schedule_status = Column(String(20), nullable=False, server_default='Green')
    budget_status = Column(String(20), nullable=False, server_default='Green')
    schedule_reason_code = Column(String(100), nullable=False, server_default='')
    budget_reason_code = Column(String(100), nullable=False, server_default='')

    # Financial
    taf = _money_column('Total Approved Funding')
    eac = _money_column('Estimate at Completion')
    current_year_cashflow = _money_column('Actual cashflow for the current year')
    target_cashflow = _money_column('Target cashflow for the current year')
    total_budget = _money_column('Total budget')
    amount_spent = _money_column('Amount spent to date')
    taf_eac_variance = _money_column('EAC minus TAF, recomputed on each PFMT upload')
    cashflow_variance = _money_column('Cashflow minus target, recomputed on each PFMT upload')

    # Workflow
    submissions = Column(Integer, nullable=False, default=0, server_default='0')
    submitted_by = Column(String(255), nullable=True)
    submitted_date = Column(TIMESTAMP(timezone=True), nullable=True)
    approved_by = Column(String(255), nullable=True)
    approved_date = Column(TIMESTAMP(timezone=True), nullable=True)
    director_approved = Column(Boolean, nullable=False, default=False, server_default='false')
    senior_pm_reviewed = Column(Boolean, nullable=False, default=False, server_default='false')

    # Narrative
    monthly_comments = Column(Text, nullable=False, server_default='')
    previous_highlights = Column(Text, nullable=False, server_default='')
    next_steps = Column(Text, nullable=False, server_default='')
    budget_variance_explanation = Column(Text, nullable=False, server_default='')
    cashflow_variance_explanation = Column(Text, nullable=False, server_default='')

    additional_team = Column(
        JSONType,
        nullable=False,
        default=list,
        comment='Additional team member identifiers'
    )

    # Upload provenance
    last_pfmt_update = Column(TIMESTAMP(timezone=True), nullable=True)
    pfmt_file_name = Column(String(255), nullable=True, comment='Original PFMT workbook filename')
    pfmt_extracted_at = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    @classmethod
    def column_names(cls) -> set:
        """Names of all mapped columns."""
        return {column.name for column in cls.__table__.columns}

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', report_status='{self.report_status}')>"
