"""
Project Service - CRUD and paginated listing over the project store.
"""

import copy
import logging
import math
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from backend.models.schema import FINANCIAL_FIELDS, Project
from services.coercion import coerce_number
from services.errors import NotFoundError, ValidationError
from services.project_store import ProjectStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10

REQUIRED_FIELDS = ('name', 'description')

DEFAULT_PROJECT_FIELDS: Mapping[str, Any] = MappingProxyType({
    'status': 'Active',
    'report_status': 'Update Required',
    'phase': 'Planning',
    'submissions': 0,
    'total_budget': 0,
    'amount_spent': 0,
    'taf': 0,
    'eac': 0,
    'current_year_cashflow': 0,
    'target_cashflow': 0,
    'taf_eac_variance': 0,
    'cashflow_variance': 0,
    'schedule_status': 'Green',
    'budget_status': 'Green',
    'schedule_reason_code': '',
    'budget_reason_code': '',
    'monthly_comments': '',
    'previous_highlights': '',
    'next_steps': '',
    'budget_variance_explanation': '',
    'cashflow_variance_explanation': '',
    'submitted_by': None,
    'submitted_date': None,
    'approved_by': None,
    'approved_date': None,
    'director_approved': False,
    'senior_pm_reviewed': False,
    'last_pfmt_update': None,
    'pfmt_file_name': None,
    'pfmt_extracted_at': None,
    'additional_team': (),
})


def coerce_financials(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of data with every financial field present forced to a number."""
    coerced = dict(data)
    for field in FINANCIAL_FIELDS:
        if field in coerced:
            coerced[field] = coerce_number(coerced[field], field)
    return coerced


class ProjectService:
    """
    Framework-agnostic project CRUD service.

    Existence checks raise NotFoundError; the store itself only reports
    absence.
    """

    def __init__(self, store: ProjectStore,
                 defaults: Mapping[str, Any] = DEFAULT_PROJECT_FIELDS):
        """
        Initialize project service.

        Args:
            store: Record store for projects
            defaults: Field values applied to every new project before
                      caller-supplied data
        """
        self.store = store
        self.defaults = defaults

    def list_projects(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        owner_id: Optional[str] = None,
        status: Optional[str] = None,
        report_status: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        List projects with pagination and filtering.

        Returns:
            {'projects': [...], 'pagination': {page, limit, total,
             total_pages, has_next, has_prev}}
        """
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}")
        if limit < 1:
            raise ValidationError(f"limit must be >= 1, got {limit}")

        all_projects = self.store.get_all(
            owner_id=owner_id,
            status=status,
            report_status=report_status
        )

        total = len(all_projects)
        total_pages = math.ceil(total / limit)
        start = (page - 1) * limit

        return {
            'projects': all_projects[start:start + limit],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': total_pages,
                'has_next': page < total_pages,
                'has_prev': page > 1
            }
        }

    def get_project(self, project_id: int) -> Optional[Project]:
        """Get a project by id; None when it does not exist."""
        return self.store.get_by_id(project_id)

    def create_project(self, data: Dict[str, Any]) -> Project:
        """
        Create a project from defaults overlaid with the supplied data.

        Raises:
            ValidationError: If name or description is missing or empty
        """
        for field in REQUIRED_FIELDS:
            if not data.get(field):
                raise ValidationError(f"Missing required field: {field}")

        new_project = {
            key: list(value) if isinstance(value, tuple) else copy.deepcopy(value)
            for key, value in self.defaults.items()
        }
        new_project.update(data)

        return self.store.create(coerce_financials(new_project))

    def update_project(self, project_id: int, updates: Dict[str, Any]) -> Project:
        """
        Partially update a project.

        Raises:
            NotFoundError: If the project does not exist
        """
        if self.store.get_by_id(project_id) is None:
            raise NotFoundError(project_id)

        return self.store.update(project_id, coerce_financials(updates))

    def delete_project(self, project_id: int) -> None:
        """
        Delete a project.

        Raises:
            NotFoundError: If the project does not exist
        """
        if self.store.get_by_id(project_id) is None:
            raise NotFoundError(project_id)

        self.store.delete(project_id)
