from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from sqlalchemy.orm import Session

from app import events
from app.core.config import get_settings
from app.metrics import observe_project_number_conflict, observe_project_number_resolved
from app.otel import get_tracer
from app.projects import departments
from app.projects.errors import (
    ConflictExhaustedError,
    DuplicateProjectNumberError,
    DuplicateSourceIdError,
    SequenceExhaustedError,
    ValidationError,
)
from app.projects.models import ProjectMapping, utcnow
from app.projects.numbering import MAX_SEQUENCE, format_project_number
from app.projects.repository import ProjectMappingStore, SequenceAllocator


logger = logging.getLogger("app.projects")
tracer = get_tracer("app.projects")

ResolutionOutcome = Literal["existing", "linked", "generated"]


@dataclass(slots=True)
class ProjectNumberResolution:
    project_number: str
    outcome: ResolutionOutcome
    mapping: ProjectMapping


# Upper bound of the BIGINT deal_id column.
MAX_DEAL_ID = 2**63 - 1


def coerce_deal_id(source_id: Any) -> int:
    if isinstance(source_id, bool):
        raise ValidationError("deal id must be a positive integer")
    if isinstance(source_id, int):
        value = source_id
    elif isinstance(source_id, str) and source_id.strip().isdecimal():
        try:
            value = int(source_id.strip())
        except ValueError as exc:
            raise ValidationError("deal id must be a positive integer") from exc
    else:
        raise ValidationError("deal id must be a positive integer")
    if value < 1 or value > MAX_DEAL_ID:
        raise ValidationError("deal id must be a positive integer")
    return value


@dataclass(slots=True)
class ProjectNumberService:
    allocator: SequenceAllocator = field(default_factory=SequenceAllocator)
    store: ProjectMappingStore = field(default_factory=ProjectMappingStore)
    clock: Callable[[], datetime] = utcnow
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def resolve(
        self,
        session: Session,
        source_id: Any,
        department_name: Any,
        link_target: str | None = None,
    ) -> ProjectNumberResolution:
        """Return the project number for a deal, linking or generating one when needed.

        Repeated calls for the same deal return the same number without
        consuming a sequence. A ``link_target`` that does not exist is not an
        error: a new number is generated instead.
        """
        deal_id = coerce_deal_id(source_id)
        if not isinstance(department_name, str) or not department_name.strip():
            raise ValidationError("department is required")

        with tracer.start_as_current_span("projects.number.resolve") as span:
            span.set_attribute("deal_id", deal_id)
            span.set_attribute("department", department_name)

            existing = self.store.find_by_source_id(session, deal_id)
            if existing is not None:
                return self._resolved(existing, "existing", deal_id)

            if link_target:
                linked = self._link(session, deal_id, link_target)
                if linked is not None:
                    return linked

            department_code = departments.code_for(department_name)
            if department_code is None:
                logger.error(
                    "project_number.department_unmapped",
                    extra={"deal_id": deal_id, "department": department_name},
                )
                raise ValidationError(f"no department code mapped for '{department_name}'")

            year = self.clock().year % 100
            resolution = self._generate(session, deal_id, department_name, department_code, year)
            span.set_attribute("project_number", resolution.project_number)
            span.set_attribute("outcome", resolution.outcome)
            return resolution

    def _link(self, session: Session, deal_id: int, link_target: str) -> ProjectNumberResolution | None:
        try:
            mapping = self.store.link_source_id(session, link_target, deal_id)
        except DuplicateSourceIdError:
            observe_project_number_conflict("source_id")
            logger.warning(
                "project_number.link_raced",
                extra={"deal_id": deal_id, "project_number": link_target},
            )
            mapping = self.store.find_by_source_id(session, deal_id)
            if mapping is None:
                raise
            return self._resolved(mapping, "existing", deal_id)

        if mapping is None:
            logger.warning(
                "project_number.link_target_missing",
                extra={"deal_id": deal_id, "project_number": link_target},
            )
            return None

        self._publish("project.number.linked", mapping, deal_id)
        return self._resolved(mapping, "linked", deal_id)

    def _generate(
        self,
        session: Session,
        deal_id: int,
        department_name: str,
        department_code: str,
        year: int,
    ) -> ProjectNumberResolution:
        max_attempts = self.max_attempts if self.max_attempts is not None else get_settings().project_number_max_attempts
        reason = "project_number"

        for attempt in range(1, max_attempts + 1):
            sequence = self.allocator.next_sequence(session, department_code, year)
            if sequence > MAX_SEQUENCE:
                raise SequenceExhaustedError(department_code, year, sequence)
            candidate = format_project_number(department_code, year, sequence)

            try:
                mapping = self.store.create_mapping(
                    session,
                    project_number=candidate,
                    deal_id=deal_id,
                    department=department_name,
                    department_code=department_code,
                    year=year,
                    sequence=sequence,
                )
            except DuplicateProjectNumberError:
                reason = "project_number"
                observe_project_number_conflict(reason)
                logger.warning(
                    "project_number.duplicate_number",
                    extra={
                        "deal_id": deal_id,
                        "project_number": candidate,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                    },
                )
                continue
            except DuplicateSourceIdError:
                reason = "source_id"
                observe_project_number_conflict(reason)
                logger.warning(
                    "project_number.duplicate_deal",
                    extra={"deal_id": deal_id, "project_number": candidate, "attempt": attempt},
                )
                concurrent = self.store.find_by_source_id(session, deal_id)
                if concurrent is not None:
                    return self._resolved(concurrent, "existing", deal_id)
                continue

            self._publish("project.number.generated", mapping, deal_id)
            return self._resolved(mapping, "generated", deal_id)

        logger.error(
            "project_number.attempts_exhausted",
            extra={"deal_id": deal_id, "department": department_name, "attempt": max_attempts, "error": reason},
        )
        raise ConflictExhaustedError(deal_id, department_name, max_attempts, reason)

    def _resolved(self, mapping: ProjectMapping, outcome: ResolutionOutcome, deal_id: int) -> ProjectNumberResolution:
        observe_project_number_resolved(mapping.department_code, outcome)
        logger.info(
            "project_number.resolved",
            extra={
                "deal_id": deal_id,
                "project_number": mapping.project_number,
                "department_code": mapping.department_code,
                "sequence": mapping.sequence,
                "outcome": outcome,
            },
        )
        return ProjectNumberResolution(project_number=mapping.project_number, outcome=outcome, mapping=mapping)

    @staticmethod
    def _publish(event_type: str, mapping: ProjectMapping, deal_id: int) -> None:
        events.publish(
            {
                "event_type": event_type,
                "project_number": mapping.project_number,
                "deal_id": deal_id,
                "deal_ids": mapping.deal_ids,
                "department": mapping.department,
                "department_code": mapping.department_code,
                "year": mapping.year,
                "sequence": mapping.sequence,
            }
        )


def resolve_project_number(
    session: Session,
    source_id: Any,
    department_name: Any,
    link_target: str | None = None,
) -> str:
    return project_number_service.resolve(session, source_id, department_name, link_target).project_number


project_number_service = ProjectNumberService()
