"""Accès SQL aux organisations (tenants) et à leurs clés."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...domain.channel import Organization
from .models import OrganizationORM


class OrganizationRepo:
    """Lecture/création des organisations."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, org_id: str) -> Organization | None:
        """Retourne l'organisation, ou None si absente."""
        stmt = select(OrganizationORM).where(OrganizationORM.id == org_id)
        row = self._session.execute(stmt).scalars().first()
        if not row:
            return None
        return Organization(id=row.id, name=row.name, org_keys=list(row.org_keys or []))

    def create(self, org: Organization) -> None:
        self._session.add(OrganizationORM(id=org.id, name=org.name, org_keys=list(org.org_keys)))
        self._session.flush()
