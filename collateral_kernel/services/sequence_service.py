"""
SequenceService -- monotonic identifier allocation via locked counter rows.

Responsibility:
    Issues strictly increasing identifiers for inventories and sales.
    Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so allocation is serialized with the
    writes it accompanies.

Invariants enforced:
    - Identifiers start at 1 and are never reused.  The
      aggregate-max-plus-one pattern is never used; the locked counter
      row is the sole source of truth.
    - Transactional: an increment is visible only after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: two transactions creating the same counter row on
      first use.  The core does not retry; the caller re-runs the unit
      of work.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from collateral_kernel.db.base import Base
from collateral_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its last issued value.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "inventory", "sale")
    name: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional identifiers.

    Usage:
        inventory_id = sequence_service.next_value(SequenceService.INVENTORY)
    """

    INVENTORY = "inventory"
    SALE = "sale"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this sequence name.
            - The counter row is locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int:
        """Last issued value, or 0 if the sequence has never been used."""
        value = self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()
        return value or 0
