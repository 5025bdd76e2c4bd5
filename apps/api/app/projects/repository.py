from __future__ import annotations

from typing import Any

from sqlalchemy import Select, Table, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.projects.errors import DuplicateProjectNumberError, DuplicateSourceIdError, StorageError
from app.projects.models import ProjectMapping, ProjectMappingDeal, ProjectSequence, utcnow


_sequence_table: Table = ProjectSequence.__table__  # type: ignore[assignment]
_mapping_table: Table = ProjectMapping.__table__  # type: ignore[assignment]
_deal_table: Table = ProjectMappingDeal.__table__  # type: ignore[assignment]


def _upsert_for(session: Session, table: Table) -> Any:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise StorageError(f"database dialect '{dialect}' does not support atomic upserts")


class SequenceAllocator:
    """Hands out per-(department code, year) sequence numbers.

    The increment is a single ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
    statement committed on its own, so concurrent callers in separate
    processes never see the same value. Gaps are possible when an allocated
    number is never used; duplicates are not.
    """

    def next_sequence(self, session: Session, department_code: str, year: int) -> int:
        now = utcnow()
        stmt = (
            _upsert_for(session, _sequence_table)
            .values(
                department_code=department_code,
                year=year,
                last_sequence_number=1,
                created_at=now,
                updated_at=now,
            )
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["department_code", "year"],
            set_={
                "last_sequence_number": _sequence_table.c.last_sequence_number + 1,
                "updated_at": now,
            },
        ).returning(_sequence_table.c.last_sequence_number)

        try:
            sequence = session.execute(stmt).scalar_one()
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"failed to allocate sequence for {department_code}{year:02d}") from exc
        return int(sequence)

    def get_sequence_state(self, session: Session, department_code: str, year: int) -> ProjectSequence | None:
        try:
            return session.get(ProjectSequence, (department_code, year), populate_existing=True)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to read sequence for {department_code}{year:02d}") from exc


class ProjectMappingStore:
    def find_by_source_id(self, session: Session, deal_id: int) -> ProjectMapping | None:
        stmt = (
            select(ProjectMapping)
            .join(ProjectMappingDeal, ProjectMappingDeal.project_number == ProjectMapping.project_number)
            .where(ProjectMappingDeal.deal_id == deal_id)
        )
        return self._scalar(session, stmt)

    def find_by_project_number(self, session: Session, project_number: str) -> ProjectMapping | None:
        stmt = select(ProjectMapping).where(ProjectMapping.project_number == project_number)
        return self._scalar(session, stmt)

    def list_by_department_year(
        self,
        session: Session,
        department_code: str,
        year: int,
        *,
        limit: int | None = None,
    ) -> list[ProjectMapping]:
        stmt = (
            select(ProjectMapping)
            .where(ProjectMapping.department_code == department_code, ProjectMapping.year == year)
            .order_by(ProjectMapping.sequence.asc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise StorageError("failed to list project mappings") from exc

    def create_mapping(
        self,
        session: Session,
        *,
        project_number: str,
        deal_id: int,
        department: str,
        department_code: str,
        year: int,
        sequence: int,
    ) -> ProjectMapping:
        now = utcnow()
        try:
            # One statement per table so a unique violation names the row that collided.
            try:
                session.execute(
                    insert(_mapping_table).values(
                        project_number=project_number,
                        department=department,
                        department_code=department_code,
                        year=year,
                        sequence=sequence,
                        created_at=now,
                        last_updated_at=now,
                    )
                )
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateProjectNumberError(project_number) from exc

            try:
                session.execute(
                    insert(_deal_table).values(deal_id=deal_id, project_number=project_number, linked_at=now)
                )
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateSourceIdError(deal_id) from exc

            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"failed to store project mapping {project_number}") from exc

        mapping = self.find_by_project_number(session, project_number)
        if mapping is None:
            raise StorageError(f"project mapping {project_number} missing after insert")
        return mapping

    def link_source_id(self, session: Session, project_number: str, deal_id: int) -> ProjectMapping | None:
        now = utcnow()
        try:
            touched = session.execute(
                update(_mapping_table)
                .where(_mapping_table.c.project_number == project_number)
                .values(last_updated_at=now)
            )
            if touched.rowcount == 0:
                session.rollback()
                return None

            inserted = session.execute(
                _upsert_for(session, _deal_table)
                .values(deal_id=deal_id, project_number=project_number, linked_at=now)
                .on_conflict_do_nothing(index_elements=["deal_id"])
            )
            if inserted.rowcount == 0:
                owner = session.scalar(select(_deal_table.c.project_number).where(_deal_table.c.deal_id == deal_id))
                if owner != project_number:
                    session.rollback()
                    raise DuplicateSourceIdError(deal_id)

            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"failed to link deal {deal_id} to {project_number}") from exc

        return self.find_by_project_number(session, project_number)

    @staticmethod
    def _scalar(session: Session, stmt: Select[tuple[ProjectMapping]]) -> ProjectMapping | None:
        try:
            return session.scalar(stmt.execution_options(populate_existing=True))
        except SQLAlchemyError as exc:
            raise StorageError("failed to read project mapping") from exc
