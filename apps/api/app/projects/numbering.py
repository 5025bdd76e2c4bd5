from __future__ import annotations

import re
from typing import Any, NamedTuple

MAX_SEQUENCE = 999

# DDYYSSS: department code, two-digit year, three-digit sequence.
_PROJECT_NUMBER_RE = re.compile(r"[A-Z]{2}[0-9]{2}[0-9]{3}", re.ASCII)


class ProjectNumberParts(NamedTuple):
    department_code: str
    year: int
    sequence: int


def format_project_number(department_code: str, year: int, sequence: int) -> str:
    return f"{department_code}{year:02d}{sequence:03d}"


def is_valid_project_number(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return _PROJECT_NUMBER_RE.fullmatch(value) is not None


def parse_project_number(value: Any) -> ProjectNumberParts | None:
    if not is_valid_project_number(value):
        return None
    return ProjectNumberParts(
        department_code=value[0:2],
        year=int(value[2:4]),
        sequence=int(value[4:7]),
    )
