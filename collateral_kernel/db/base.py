"""
Module: collateral_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the type annotation map for consistent column types and the
    TrackedBase mixin for wall-clock audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, or outer layers.

Invariants enforced:
    - Integer identifiers: ledger keys are unsigned integers issued by
      SequenceService counters or supplied by the caller; they map to
      BigInteger.
    - Epoch columns are plain integers; wall-clock timestamps exist only
      as audit metadata on TrackedBase.

Audit relevance:
    TrackedBase.inserted_at and updated_at record when a row was physically
    written, independent of the logical epoch stored in the row itself.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Principals are opaque strings supplied by the execution environment.
PRINCIPAL_LENGTH = 128


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - int maps to BigInteger -- safe for counters and epochs.
        - datetime maps to DateTime(timezone=True).
        - str maps to String(PRINCIPAL_LENGTH) unless a column overrides it.
    """

    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
        datetime: DateTime(timezone=True),
        str: String(PRINCIPAL_LENGTH),
    }


class TrackedBase(Base):
    """
    Abstract base with wall-clock write timestamps.

    These fields are audit metadata, not ledger data, so they are allowed
    to change even on append-only records (see db/immutability.py).
    """

    __abstract__ = True

    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def enum_values(enum_cls) -> list[str]:
    """Persist str-Enum members by value rather than by name."""
    return [member.value for member in enum_cls]
