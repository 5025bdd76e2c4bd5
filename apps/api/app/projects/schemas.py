from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProjectNumberResolveRequest(BaseModel):
    deal_id: int | str
    department: str
    link_project_number: str | None = Field(default=None, max_length=16)


class ProjectMappingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_number: str
    department: str
    department_code: str
    year: int
    sequence: int
    deal_ids: list[int]
    created_at: datetime
    last_updated_at: datetime


class ProjectNumberResolutionRead(BaseModel):
    project_number: str
    outcome: Literal["existing", "linked", "generated"]
    mapping: ProjectMappingRead


class ProjectSequenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    department_code: str
    year: int
    last_sequence_number: int
    created_at: datetime
    updated_at: datetime


class DepartmentRead(BaseModel):
    name: str
    code: str
