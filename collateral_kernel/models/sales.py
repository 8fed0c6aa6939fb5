"""
Module: collateral_kernel.models.sales
Responsibility: ORM persistence for sale events and per-category aggregates.
Architecture position: Kernel > Models.

Invariants enforced:
    - SaleRecord rows are append-only (db/immutability.py).
    - sales_id is globally unique across inventories.
    - CategoryPerformance.avg_sale_value == total_revenue // total_quantity
      (0 when total_quantity == 0); maintained by SalesAnalyticsService.

Audit relevance:
    CategoryPerformance is a running aggregate that must always equal the
    sum over the SaleRecords of its (inventory_id, category) key.
"""

from sqlalchemy import BigInteger, Boolean, Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase, enum_values
from collateral_kernel.domain.dtos import SalesTrend


class SaleRecord(TrackedBase):
    """One point-of-sale event."""

    __tablename__ = "sale_records"

    __table_args__ = (
        Index("idx_sale_window", "inventory_id", "sale_date"),
    )

    inventory_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    sales_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
        unique=True,
    )

    seller: Mapped[str] = mapped_column(nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Epoch of the sale
    sale_date: Mapped[int] = mapped_column(BigInteger, nullable=False)

    channel: Mapped[str] = mapped_column(String(30), nullable=False)

    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SaleRecord {self.sales_id}: inv={self.inventory_id} qty={self.quantity}>"


class CategoryPerformance(TrackedBase):
    """Running aggregate for one (inventory_id, category) key."""

    __tablename__ = "category_performance"

    inventory_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    category: Mapped[str] = mapped_column(String(50), primary_key=True)

    total_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    total_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    avg_sale_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    velocity_score: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    trend_direction: Mapped[SalesTrend] = mapped_column(
        Enum(SalesTrend, native_enum=False, length=10, values_callable=enum_values),
        nullable=False,
        default=SalesTrend.STABLE,
    )

    last_sale: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<CategoryPerformance {self.inventory_id}/{self.category}: "
            f"qty={self.total_quantity} rev={self.total_revenue}>"
        )
