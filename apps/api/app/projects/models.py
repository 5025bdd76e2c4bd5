from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectSequence(Base):
    __tablename__ = "project_sequence"

    department_code: Mapped[str] = mapped_column(String(2), primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_sequence_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("year >= 0 AND year <= 99", name="ck_project_sequence_year_range"),
        CheckConstraint("last_sequence_number >= 0", name="ck_project_sequence_nonnegative"),
    )


class ProjectMapping(Base):
    __tablename__ = "project_mapping"

    project_number: Mapped[str] = mapped_column(String(16), primary_key=True)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    department_code: Mapped[str] = mapped_column(String(2), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    deals: Mapped[list[ProjectMappingDeal]] = relationship(
        "ProjectMappingDeal",
        back_populates="mapping",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="ProjectMappingDeal.linked_at",
    )

    __table_args__ = (
        UniqueConstraint("department_code", "year", "sequence", name="uq_project_mapping_partition_sequence"),
        CheckConstraint("sequence >= 1", name="ck_project_mapping_sequence_positive"),
        Index("ix_project_mapping_partition", "department_code", "year"),
    )

    @property
    def deal_ids(self) -> list[int]:
        return [item.deal_id for item in self.deals]


class ProjectMappingDeal(Base):
    __tablename__ = "project_mapping_deal"

    # Primary key on deal_id alone: a deal belongs to at most one project number.
    deal_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    project_number: Mapped[str] = mapped_column(
        String(16),
        ForeignKey("project_mapping.project_number", ondelete="CASCADE"),
        nullable=False,
    )
    linked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    mapping: Mapped[ProjectMapping] = relationship("ProjectMapping", back_populates="deals")

    __table_args__ = (
        CheckConstraint("deal_id >= 1", name="ck_project_mapping_deal_positive"),
        Index("ix_project_mapping_deal_project", "project_number"),
    )
