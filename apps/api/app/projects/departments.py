from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

# CRM department value -> department code used in project numbers.
# Keys must match the CRM option labels exactly.
DEPARTMENT_CODES: Mapping[str, str] = MappingProxyType(
    {
        "Navy": "NY",
        "Electrical": "EL",
        "Machining": "MC",
        "Afloat": "AF",
        "Engine Recon": "ED",
        "Laser Cladding": "LC",
    }
)


def code_for(name: Any) -> str | None:
    if not isinstance(name, str):
        return None
    return DEPARTMENT_CODES.get(name)


def department_for(code: Any) -> str | None:
    if not isinstance(code, str):
        return None
    for name, department_code in DEPARTMENT_CODES.items():
        if department_code == code:
            return name
    return None


def all_mappings() -> dict[str, str]:
    """Return a copy of the department table; callers may mutate it freely."""
    return dict(DEPARTMENT_CODES)
