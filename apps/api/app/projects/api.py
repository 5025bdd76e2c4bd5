from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.projects import departments
from app.projects.errors import (
    ConflictExhaustedError,
    ProjectNumberError,
    SequenceExhaustedError,
    StorageError,
    ValidationError,
)
from app.projects.numbering import is_valid_project_number
from app.projects.schemas import (
    DepartmentRead,
    ProjectMappingRead,
    ProjectNumberResolutionRead,
    ProjectNumberResolveRequest,
    ProjectSequenceRead,
)
from app.projects.service import project_number_service


router = APIRouter(prefix="/api/projects", tags=["projects"])

mapping_store = project_number_service.store
sequence_allocator = project_number_service.allocator


def _to_http_error(exc: ProjectNumberError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, (ConflictExhaustedError, SequenceExhaustedError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, StorageError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="project number storage unavailable")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/numbers", response_model=ProjectNumberResolutionRead)
def resolve_project_number(
    payload: ProjectNumberResolveRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> ProjectNumberResolutionRead:
    try:
        resolution = project_number_service.resolve(
            db,
            payload.deal_id,
            payload.department,
            payload.link_project_number,
        )
    except ProjectNumberError as exc:
        raise _to_http_error(exc) from exc

    if resolution.outcome == "generated":
        response.status_code = status.HTTP_201_CREATED
    return ProjectNumberResolutionRead(
        project_number=resolution.project_number,
        outcome=resolution.outcome,
        mapping=ProjectMappingRead.model_validate(resolution.mapping),
    )


@router.get("/numbers", response_model=list[ProjectMappingRead])
def list_project_numbers(
    department_code: str = Query(min_length=2, max_length=2),
    year: int = Query(ge=0, le=99),
    limit: int | None = Query(default=None, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[ProjectMappingRead]:
    try:
        rows = mapping_store.list_by_department_year(db, department_code, year, limit=limit)
    except ProjectNumberError as exc:
        raise _to_http_error(exc) from exc
    return [ProjectMappingRead.model_validate(item) for item in rows]


@router.get("/numbers/{project_number}", response_model=ProjectMappingRead)
def get_project_number(project_number: str, db: Session = Depends(get_db)) -> ProjectMappingRead:
    if not is_valid_project_number(project_number):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="invalid project number format")
    try:
        mapping = mapping_store.find_by_project_number(db, project_number)
    except ProjectNumberError as exc:
        raise _to_http_error(exc) from exc
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="project number not found")
    return ProjectMappingRead.model_validate(mapping)


@router.get("/deals/{deal_id}", response_model=ProjectMappingRead)
def get_deal_project(deal_id: int, db: Session = Depends(get_db)) -> ProjectMappingRead:
    try:
        mapping = mapping_store.find_by_source_id(db, deal_id)
    except ProjectNumberError as exc:
        raise _to_http_error(exc) from exc
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="deal has no project number")
    return ProjectMappingRead.model_validate(mapping)


@router.get("/sequences/{department_code}/{year}", response_model=ProjectSequenceRead)
def get_sequence_state(department_code: str, year: int, db: Session = Depends(get_db)) -> ProjectSequenceRead:
    try:
        state = sequence_allocator.get_sequence_state(db, department_code, year)
    except ProjectNumberError as exc:
        raise _to_http_error(exc) from exc
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="sequence not started")
    return ProjectSequenceRead.model_validate(state)


@router.get("/departments", response_model=list[DepartmentRead])
def list_departments() -> list[DepartmentRead]:
    return [DepartmentRead(name=name, code=code) for name, code in departments.all_mappings().items()]
