"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable views of ledger state handed out by the service layer.
    Services never return ORM entities; callers get these frozen
    dataclasses (or ``None`` for absent keys).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All DTOs are frozen; collections are tuples or frozensets.
    - RiskAssessment.no_data() always carries risk_factor 100.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VerificationStatus(str, Enum):
    """Inventory verification lifecycle: PENDING until first verification."""

    PENDING = "pending"
    VERIFIED = "verified"


class SalesTrend(str, Enum):
    """Direction of sales velocity between two analysis windows."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"

    @property
    def change(self) -> int:
        """Signed trend change stored in the velocity history."""
        return {SalesTrend.UP: 1, SalesTrend.DOWN: -1, SalesTrend.STABLE: 0}[self]


class RiskLevel(str, Enum):
    """Risk classification of the latest velocity snapshot."""

    HIGH = "high-risk"
    MEDIUM = "medium-risk"
    LOW = "low-risk"
    NO_DATA = "no-data"


class AccessBasis(str, Enum):
    """Why a caller was admitted to mutate an inventory's records."""

    ADMINISTRATOR = "administrator"
    OWNER = "owner"
    REPORTER = "reporter"


# ---------------------------------------------------------------------------
# Verification ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SensorInfo:
    sensor_id: int
    location: str
    sensor_type: str
    authorized: bool
    last_active: int


@dataclass(frozen=True)
class InventoryInfo:
    """Latest snapshot of an inventory record."""

    inventory_id: int
    owner: str
    location: str
    total_value: int
    item_count: int
    verification_status: VerificationStatus
    last_verified: int
    sensor_ids: tuple[int, ...]
    created_at: int

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED


@dataclass(frozen=True)
class InventoryItemInfo:
    inventory_id: int
    item_id: int
    name: str
    category: str
    quantity: int
    unit_value: int
    sku: str
    authenticity_hash: str
    condition: str
    verified_at: int


@dataclass(frozen=True)
class VerificationInfo:
    """One entry of the append-only verification history."""

    inventory_id: int
    verification_id: int
    verifier: str
    timestamp: int
    total_value: int
    item_count: int
    verification_hash: str
    sensor_data: str


# ---------------------------------------------------------------------------
# Sales analytics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SaleInfo:
    inventory_id: int
    sales_id: int
    seller: str
    category: str
    quantity: int
    value: int
    sale_date: int
    channel: str
    verified: bool


@dataclass(frozen=True)
class CategoryPerformanceInfo:
    inventory_id: int
    category: str
    total_quantity: int
    total_revenue: int
    avg_sale_value: int
    velocity_score: int
    trend_direction: SalesTrend
    last_sale: int


@dataclass(frozen=True)
class InventoryMetricsInfo:
    inventory_id: int
    owner: str
    total_sales: int
    total_revenue: int
    avg_daily_sales: int
    turnover_rate: int
    velocity_score: int
    analysis_period: int
    last_updated: int
    sales_trend: SalesTrend


@dataclass(frozen=True)
class VelocitySnapshot:
    """One immutable point of the per-inventory velocity time series."""

    inventory_id: int
    analysis_epoch: int
    velocity_score: int
    turnover_rate: int
    sales_volume: int
    trend_change: int
    risk_factor: int


@dataclass(frozen=True)
class RiskAssessment:
    """
    Risk classification for downstream financing decisions.

    An inventory with no snapshot at the current epoch is reported as
    NO_DATA with the worst-case risk factor.
    """

    inventory_id: int
    level: RiskLevel
    risk_factor: int
    analysis_epoch: int | None = None
    velocity_score: int | None = None
    turnover_rate: int | None = None

    NO_DATA_RISK_FACTOR = 100

    @classmethod
    def no_data(cls, inventory_id: int) -> RiskAssessment:
        return cls(
            inventory_id=inventory_id,
            level=RiskLevel.NO_DATA,
            risk_factor=cls.NO_DATA_RISK_FACTOR,
        )

    @property
    def has_data(self) -> bool:
        return self.level != RiskLevel.NO_DATA


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReporterGrantInfo:
    reporter: str
    authorized: bool
    inventory_permissions: frozenset[int]
    last_report: int

    def permits(self, inventory_id: int) -> bool:
        return self.authorized and inventory_id in self.inventory_permissions
