from app.projects.api import router
from app.projects.departments import all_mappings, code_for
from app.projects.errors import (
    ConflictExhaustedError,
    ProjectNumberError,
    SequenceExhaustedError,
    StorageError,
    ValidationError,
)
from app.projects.models import ProjectMapping, ProjectMappingDeal, ProjectSequence
from app.projects.numbering import format_project_number, is_valid_project_number, parse_project_number
from app.projects.repository import ProjectMappingStore, SequenceAllocator
from app.projects.service import (
    ProjectNumberResolution,
    ProjectNumberService,
    project_number_service,
    resolve_project_number,
)

__all__ = [
    "router",
    "all_mappings",
    "code_for",
    "ConflictExhaustedError",
    "ProjectNumberError",
    "SequenceExhaustedError",
    "StorageError",
    "ValidationError",
    "ProjectMapping",
    "ProjectMappingDeal",
    "ProjectSequence",
    "format_project_number",
    "is_valid_project_number",
    "parse_project_number",
    "ProjectMappingStore",
    "SequenceAllocator",
    "ProjectNumberResolution",
    "ProjectNumberService",
    "project_number_service",
    "resolve_project_number",
]
