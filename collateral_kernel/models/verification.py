"""
Module: collateral_kernel.models.verification
Responsibility: ORM persistence for the append-only verification history.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are append-only; UPDATE and DELETE raise
      ImmutabilityViolationError (db/immutability.py).
    - (inventory_id, verification_id) is unique.

Audit relevance:
    Every value ever attested for an inventory is kept here.  The
    Inventory snapshot is overwritten in the same flush as the insert.
"""

from sqlalchemy import BigInteger, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase


class VerificationRecord(TrackedBase):
    """One attestation of an inventory's value and item count."""

    __tablename__ = "verification_records"

    __table_args__ = (
        Index("idx_verification_timestamp", "inventory_id", "timestamp"),
    )

    inventory_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("inventories.inventory_id"),
        primary_key=True,
    )

    verification_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    verifier: Mapped[str] = mapped_column(nullable=False)

    # Epoch of the verification
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    total_value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    item_count: Mapped[int] = mapped_column(BigInteger, nullable=False)

    verification_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Opaque sensor payload; never parsed
    sensor_data: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    def __repr__(self) -> str:
        return (
            f"<VerificationRecord {self.inventory_id}/{self.verification_id} "
            f"@{self.timestamp}>"
        )
