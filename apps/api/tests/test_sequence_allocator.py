from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.projects.errors import StorageError
from app.projects.models import ProjectSequence
from app.projects.repository import SequenceAllocator


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def test_first_allocation_for_new_partition_returns_one(db_session: Session) -> None:
    allocator = SequenceAllocator()
    assert allocator.next_sequence(db_session, "NY", 25) == 1


def test_allocations_are_strictly_increasing(db_session: Session) -> None:
    allocator = SequenceAllocator()
    issued = [allocator.next_sequence(db_session, "NY", 25) for _ in range(10)]
    assert issued == list(range(1, 11))


def test_partitions_are_counted_independently(db_session: Session) -> None:
    allocator = SequenceAllocator()
    assert allocator.next_sequence(db_session, "NY", 25) == 1
    assert allocator.next_sequence(db_session, "NY", 25) == 2
    assert allocator.next_sequence(db_session, "EL", 25) == 1
    assert allocator.next_sequence(db_session, "NY", 26) == 1
    assert allocator.next_sequence(db_session, "NY", 25) == 3


def test_sequence_state_reflects_last_issued_value(db_session: Session) -> None:
    allocator = SequenceAllocator()
    assert allocator.get_sequence_state(db_session, "MC", 25) is None

    allocator.next_sequence(db_session, "MC", 25)
    allocator.next_sequence(db_session, "MC", 25)

    state = allocator.get_sequence_state(db_session, "MC", 25)
    assert isinstance(state, ProjectSequence)
    assert state.last_sequence_number == 2
    assert state.created_at is not None


def test_allocation_failure_raises_storage_error(db_session: Session) -> None:
    allocator = SequenceAllocator()
    Base.metadata.drop_all(bind=db_session.get_bind())

    with pytest.raises(StorageError):
        allocator.next_sequence(db_session, "NY", 25)
