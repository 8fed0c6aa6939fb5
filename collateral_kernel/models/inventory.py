"""
Module: collateral_kernel.models.inventory
Responsibility: ORM persistence for inventory snapshots and their items.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain DTO enums only.

Invariants enforced:
    - ``owner`` never changes after creation (ORM listener).
    - ``last_verified > 0`` exactly when ``verification_status`` is
      VERIFIED; both are written only by ``apply_verification``.
    - ``sensor_ids`` holds at most the configured number of sensors
      (checked by the service before insert).

Audit relevance:
    The Inventory row is the latest-value snapshot whose history lives in
    ``verification_records``.  ``total_value`` changes only through a
    verification, never through item edits.
"""

from sqlalchemy import JSON, BigInteger, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase, enum_values
from collateral_kernel.domain.dtos import VerificationStatus


class Inventory(TrackedBase):
    """Latest snapshot of a registered inventory."""

    __tablename__ = "inventories"

    inventory_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    owner: Mapped[str] = mapped_column(nullable=False)

    location: Mapped[str] = mapped_column(String(100), nullable=False)

    total_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    item_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(
            VerificationStatus,
            native_enum=False,
            length=20,
            values_callable=enum_values,
        ),
        nullable=False,
        default=VerificationStatus.PENDING,
    )

    # 0 until the first verification
    last_verified: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    sensor_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    # Epoch of registration
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Inventory {self.inventory_id}: {self.verification_status.value}>"

    def apply_verification(self, total_value: int, item_count: int, epoch: int) -> None:
        """Overwrite the snapshot with the values of a new verification."""
        self.total_value = total_value
        self.item_count = item_count
        self.verification_status = VerificationStatus.VERIFIED
        self.last_verified = epoch


class InventoryItem(TrackedBase):
    """An item held in an inventory, keyed by (inventory_id, item_id)."""

    __tablename__ = "inventory_items"

    inventory_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("inventories.inventory_id"),
        primary_key=True,
    )

    item_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    unit_value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    # 32-byte digest as lowercase hex
    authenticity_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    condition: Mapped[str] = mapped_column(String(30), nullable=False)

    verified_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.inventory_id}/{self.item_id}: {self.quantity}>"
