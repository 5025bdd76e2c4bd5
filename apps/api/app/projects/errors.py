from __future__ import annotations


class ProjectNumberError(Exception):
    """Base error for project number resolution failures."""


class ValidationError(ProjectNumberError):
    """Raised when a deal id or department cannot be used to resolve a project number."""


class StorageError(ProjectNumberError):
    """Raised when the database fails for a reason other than a handled unique conflict."""


class DuplicateKeyError(ProjectNumberError):
    pass


class DuplicateProjectNumberError(DuplicateKeyError):
    def __init__(self, project_number: str) -> None:
        self.project_number = project_number
        super().__init__(f"project number '{project_number}' already exists")


class DuplicateSourceIdError(DuplicateKeyError):
    def __init__(self, deal_id: int) -> None:
        self.deal_id = deal_id
        super().__init__(f"deal {deal_id} is already mapped to a project number")


class ConflictExhaustedError(ProjectNumberError):
    """Raised when every allocation attempt collided with a concurrent writer.

    ``reason`` names the last conflict seen: ``"project_number"`` when other
    callers kept claiming the freshly allocated numbers, ``"source_id"`` when
    the deal kept being mapped elsewhere without the mapping becoming visible.
    """

    def __init__(self, source_id: int, department: str, attempts: int, reason: str) -> None:
        self.source_id = source_id
        self.department = department
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"failed to allocate a project number for deal {source_id} in department "
            f"'{department}' after {attempts} attempts ({reason} conflict)"
        )


class SequenceExhaustedError(ProjectNumberError):
    def __init__(self, department_code: str, year: int, sequence: int) -> None:
        self.department_code = department_code
        self.year = year
        self.sequence = sequence
        super().__init__(
            f"sequence {sequence} for {department_code}{year:02d} does not fit a three-digit project number"
        )
