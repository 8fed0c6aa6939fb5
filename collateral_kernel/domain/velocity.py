"""
Velocity -- pure sales-velocity arithmetic.

Responsibility:
    Turns raw sales totals and an analysis window into the derived
    metrics stored by the analytics engine: average daily sales,
    turnover rate, velocity score, trend, and the composite risk factor.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    SalesAnalyticsService; never reads the clock or the database.

Invariants enforced:
    - All arithmetic is integer with floor division.
    - Every division by the window length in days returns 0 when the
      window is shorter than one day.
    - risk_factor is monotonically non-increasing in both velocity_score
      and turnover_rate.

Failure modes:
    - ValueError on a non-positive blocks_per_day.
    - Unit totals above MAX_SALES_UNITS are rejected upstream, so every
      derived metric fits a 64-bit column.
"""

from __future__ import annotations

from dataclasses import dataclass

from collateral_kernel.domain.dtos import RiskLevel, SalesTrend
from collateral_kernel.domain.validation import MAX_STORED_INT

DAYS_PER_YEAR = 365
VELOCITY_SCALE = 100
TURNOVER_SCALE = 100

# Largest unit total whose scaled velocity score still fits a stored integer.
MAX_SALES_UNITS = MAX_STORED_INT // VELOCITY_SCALE

# (exclusive upper bound, risk contribution); last entry is the floor.
VELOCITY_RISK_BANDS: tuple[tuple[int, int], ...] = ((50, 80), (100, 40))
VELOCITY_RISK_FLOOR = 10
TURNOVER_RISK_BANDS: tuple[tuple[int, int], ...] = ((2, 70), (4, 30))
TURNOVER_RISK_FLOOR = 5

HIGH_RISK_THRESHOLD = 60
MEDIUM_RISK_THRESHOLD = 30

# Fixed totals used when sales aggregation is configured as "placeholder".
PLACEHOLDER_SALES_VOLUME = 100
PLACEHOLDER_REVENUE = 50000


@dataclass(frozen=True)
class SalesWindowMetrics:
    """Derived metrics for one analysis window."""

    total_sales: int
    total_revenue: int
    avg_daily_sales: int
    turnover_rate: int
    velocity_score: int


def days_in_window(analysis_window: int, blocks_per_day: int) -> int:
    """Convert an epoch span into whole days."""
    if blocks_per_day <= 0:
        raise ValueError(f"blocks_per_day must be positive, got {blocks_per_day}")
    return analysis_window // blocks_per_day


def avg_daily_sales(sales: int, days: int) -> int:
    if days == 0:
        return 0
    return sales // days


def turnover_rate(sales: int, days: int) -> int:
    """Annualized sales volume relative to the window length."""
    if days == 0:
        return 0
    return (sales * DAYS_PER_YEAR) // (days * TURNOVER_SCALE)


def velocity_score(sales: int, days: int) -> int:
    """Sales per day over the window, scaled by 100."""
    if days == 0:
        return 0
    return (sales * VELOCITY_SCALE) // days


def window_metrics(
    total_sales: int,
    total_revenue: int,
    analysis_window: int,
    blocks_per_day: int,
) -> SalesWindowMetrics:
    days = days_in_window(analysis_window, blocks_per_day)
    return SalesWindowMetrics(
        total_sales=total_sales,
        total_revenue=total_revenue,
        avg_daily_sales=avg_daily_sales(total_sales, days),
        turnover_rate=turnover_rate(total_sales, days),
        velocity_score=velocity_score(total_sales, days),
    )


def compare_trend(current_score: int, previous_score: int | None) -> SalesTrend:
    """
    Trend of the current velocity score against the score one window ago.

    No previous snapshot means there is nothing to compare against.
    """
    if previous_score is None:
        return SalesTrend.STABLE
    if current_score > previous_score:
        return SalesTrend.UP
    if current_score < previous_score:
        return SalesTrend.DOWN
    return SalesTrend.STABLE


def _banded(value: int, bands: tuple[tuple[int, int], ...], floor: int) -> int:
    for upper, risk in bands:
        if value < upper:
            return risk
    return floor


def velocity_risk(score: int) -> int:
    return _banded(score, VELOCITY_RISK_BANDS, VELOCITY_RISK_FLOOR)


def turnover_risk(rate: int) -> int:
    return _banded(rate, TURNOVER_RISK_BANDS, TURNOVER_RISK_FLOOR)


def risk_factor(score: int, rate: int) -> int:
    """Composite 0-100 risk: average of the velocity and turnover bands."""
    return (velocity_risk(score) + turnover_risk(rate)) // 2


def classify_risk(factor: int) -> RiskLevel:
    if factor > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if factor > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def average_sale_value(total_revenue: int, total_quantity: int) -> int:
    if total_quantity == 0:
        return 0
    return total_revenue // total_quantity
