"""Models package for project record management."""
from backend.models.schema import Base, Project, FINANCIAL_FIELDS

__all__ = ['Base', 'Project', 'FINANCIAL_FIELDS']
