"""
Module: collateral_kernel.models.metrics
Responsibility: ORM persistence for per-inventory velocity metrics and the
    velocity time series.
Architecture position: Kernel > Models.

Invariants enforced:
    - VelocityHistory rows are append-only (db/immutability.py); one row
      per (inventory_id, analysis_epoch).
    - InventoryMetrics and VelocityHistory are written only by
      analyze_inventory_velocity, in the same flush.

Audit relevance:
    VelocityHistory is the evidence behind every risk assessment handed to
    a financing decision.
"""

from sqlalchemy import BigInteger, Enum, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase, enum_values
from collateral_kernel.domain.dtos import SalesTrend


class InventoryMetrics(TrackedBase):
    """Latest analytics snapshot for an inventory."""

    __tablename__ = "inventory_metrics"

    inventory_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    owner: Mapped[str] = mapped_column(nullable=False)

    total_sales: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    total_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    avg_daily_sales: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    turnover_rate: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    velocity_score: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Analysis window (in epochs) used for the snapshot
    analysis_period: Mapped[int] = mapped_column(BigInteger, nullable=False)

    last_updated: Mapped[int] = mapped_column(BigInteger, nullable=False)

    sales_trend: Mapped[SalesTrend] = mapped_column(
        Enum(SalesTrend, native_enum=False, length=10, values_callable=enum_values),
        nullable=False,
        default=SalesTrend.STABLE,
    )

    def __repr__(self) -> str:
        return f"<InventoryMetrics {self.inventory_id}: velocity={self.velocity_score}>"


class VelocityHistory(TrackedBase):
    """Immutable velocity snapshot taken at one analysis epoch."""

    __tablename__ = "velocity_history"

    inventory_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    analysis_epoch: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    velocity_score: Mapped[int] = mapped_column(BigInteger, nullable=False)

    turnover_rate: Mapped[int] = mapped_column(BigInteger, nullable=False)

    sales_volume: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # -1 down, 0 stable, 1 up
    trend_change: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    risk_factor: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<VelocityHistory {self.inventory_id}@{self.analysis_epoch}: "
            f"risk={self.risk_factor}>"
        )
