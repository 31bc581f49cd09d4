"""
Project Store - SQLAlchemy-backed record store for projects.

Each write commits on its own, so every call is atomic for a single record.
Database errors roll the session back and propagate unchanged.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.schema import Project

logger = logging.getLogger(__name__)

# Columns callers may never write directly
PROTECTED_FIELDS = {'id', 'created_at', 'updated_at'}


class ProjectStore:
    """Keyed store of project records."""

    def __init__(self, db_session: Session):
        self.session = db_session
        self._writable = Project.column_names() - PROTECTED_FIELDS

    def _writable_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        for key, value in data.items():
            if key in self._writable:
                fields[key] = value
            else:
                logger.debug(f"Ignoring unknown project field: {key}")
        return fields

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def get_by_id(self, project_id: int) -> Optional[Project]:
        """Get a project by id, or None."""
        return self.session.get(Project, project_id)

    def get_all(
        self,
        owner_id: Optional[str] = None,
        status: Optional[str] = None,
        report_status: Optional[str] = None
    ) -> List[Project]:
        """
        Get all projects matching the given equality filters.

        A filter left as None places no constraint.
        """
        query = self.session.query(Project)

        if owner_id is not None:
            query = query.filter_by(owner_id=owner_id)

        if status is not None:
            query = query.filter_by(status=status)

        if report_status is not None:
            query = query.filter_by(report_status=report_status)

        return query.order_by(Project.id).all()

    def create(self, data: Dict[str, Any]) -> Project:
        """Insert a new project and return it."""
        project = Project(**self._writable_fields(data))
        self.session.add(project)
        self._commit()
        self.session.refresh(project)

        logger.info(f"Created project {project.id}: '{project.name}'")
        return project

    def update(self, project_id: int, partial: Dict[str, Any]) -> Optional[Project]:
        """
        Apply a partial update to a project.

        Returns:
            The updated project, or None if the id does not exist
        """
        project = self.get_by_id(project_id)
        if project is None:
            return None

        for key, value in self._writable_fields(partial).items():
            setattr(project, key, value)

        self._commit()
        self.session.refresh(project)

        logger.debug(f"Updated project {project_id}: {sorted(partial)}")
        return project

    def delete(self, project_id: int) -> None:
        """Delete a project if it exists."""
        project = self.get_by_id(project_id)
        if project is None:
            return

        self.session.delete(project)
        self._commit()
        logger.info(f"Deleted project {project_id}")
