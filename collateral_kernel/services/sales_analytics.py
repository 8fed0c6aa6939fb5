"""
SalesAnalyticsService -- sale events, velocity analysis and risk.

Responsibility:
    Records point-of-sale events against an inventory, maintains the
    per-category running aggregates, and periodically condenses the
    sales of one analysis window into a velocity snapshot and a risk
    factor for downstream financing decisions.

Architecture position:
    Kernel > Services -- imperative shell around domain/velocity.py.
    Independent of the verification ledger: the only shared notions are
    the inventory id, the epoch clock and access control.  Ownership for
    analytics purposes is the identity that initialized tracking.

Invariants enforced:
    - SaleRecord and VelocityHistory rows are append-only.
    - One VelocityHistory row per (inventory_id, analysis_epoch); a
      second analysis in the same epoch is rejected before any write.
    - CategoryPerformance.avg_sale_value == total_revenue // total_quantity.
    - The velocity history append and the InventoryMetrics overwrite
      are flushed together.

Per-inventory lifecycle:
    uninitialized -> tracked (initialize_inventory_tracking)
    tracked -> analyzed(n) (analyze_inventory_velocity)
    record_sale is accepted in any state.

Failure modes:
    - UnauthorizedError, InvalidDataError, InventoryNotTrackedError,
      TrackingAlreadyInitializedError, AnalysisAlreadyRecordedError,
      InvalidPeriodError.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from collateral_config.schema import LedgerSettings, SalesMetricsSource
from collateral_kernel.domain import velocity
from collateral_kernel.domain.clock import EpochClock
from collateral_kernel.domain.dtos import (
    CategoryPerformanceInfo,
    InventoryMetricsInfo,
    RiskAssessment,
    SaleInfo,
    SalesTrend,
    VelocitySnapshot,
)
from collateral_kernel.db.base import PRINCIPAL_LENGTH
from collateral_kernel.domain.validation import (
    require_non_negative,
    require_positive,
    require_running_total,
    require_text,
)
from collateral_kernel.exceptions import (
    AnalysisAlreadyRecordedError,
    InvalidPeriodError,
    InventoryNotTrackedError,
    TrackingAlreadyInitializedError,
)
from collateral_kernel.logging_config import LogContext, get_logger
from collateral_kernel.models.metrics import InventoryMetrics, VelocityHistory
from collateral_kernel.models.sales import CategoryPerformance, SaleRecord
from collateral_kernel.services.access_control import AccessControlService
from collateral_kernel.services.base import BaseService
from collateral_kernel.services.parameter_service import ParameterService
from collateral_kernel.services.sequence_service import SequenceService

logger = get_logger("services.analytics")


class SalesAnalyticsService(BaseService[InventoryMetrics]):
    """
    Sales velocity analytics engine.

    All public query methods return frozen DTOs (or None for an absent
    key), never ORM entities.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        clock: EpochClock,
        access: AccessControlService,
        sequences: SequenceService,
        parameters: ParameterService,
    ):
        super().__init__(session)
        self._settings = settings
        self._clock = clock
        self._access = access
        self._sequences = sequences
        self._parameters = parameters

    # -------------------------------------------------------------------------
    # DTO conversion
    # -------------------------------------------------------------------------

    def _sale_dto(self, sale: SaleRecord) -> SaleInfo:
        return SaleInfo(
            inventory_id=sale.inventory_id,
            sales_id=sale.sales_id,
            seller=sale.seller,
            category=sale.category,
            quantity=sale.quantity,
            value=sale.value,
            sale_date=sale.sale_date,
            channel=sale.channel,
            verified=sale.verified,
        )

    def _category_dto(self, perf: CategoryPerformance) -> CategoryPerformanceInfo:
        return CategoryPerformanceInfo(
            inventory_id=perf.inventory_id,
            category=perf.category,
            total_quantity=perf.total_quantity,
            total_revenue=perf.total_revenue,
            avg_sale_value=perf.avg_sale_value,
            velocity_score=perf.velocity_score,
            trend_direction=perf.trend_direction,
            last_sale=perf.last_sale,
        )

    def _metrics_dto(self, metrics: InventoryMetrics) -> InventoryMetricsInfo:
        return InventoryMetricsInfo(
            inventory_id=metrics.inventory_id,
            owner=metrics.owner,
            total_sales=metrics.total_sales,
            total_revenue=metrics.total_revenue,
            avg_daily_sales=metrics.avg_daily_sales,
            turnover_rate=metrics.turnover_rate,
            velocity_score=metrics.velocity_score,
            analysis_period=metrics.analysis_period,
            last_updated=metrics.last_updated,
            sales_trend=metrics.sales_trend,
        )

    def _snapshot_dto(self, entry: VelocityHistory) -> VelocitySnapshot:
        return VelocitySnapshot(
            inventory_id=entry.inventory_id,
            analysis_epoch=entry.analysis_epoch,
            velocity_score=entry.velocity_score,
            turnover_rate=entry.turnover_rate,
            sales_volume=entry.sales_volume,
            trend_change=entry.trend_change,
            risk_factor=entry.risk_factor,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_metrics(self, inventory_id: int) -> InventoryMetrics | None:
        return self.session.execute(
            select(InventoryMetrics)
            .where(InventoryMetrics.inventory_id == inventory_id)
            .with_for_update()
        ).scalar_one_or_none()

    def _days_in_window(self, analysis_window: int) -> int:
        return velocity.days_in_window(analysis_window, self._settings.blocks_per_day)

    def _window_totals(self, inventory_id: int, start: int, end: int) -> tuple[int, int]:
        """(units sold, revenue) for sales with start < sale_date <= end."""
        if self._settings.sales_metrics_source == SalesMetricsSource.PLACEHOLDER:
            return (velocity.PLACEHOLDER_SALES_VOLUME, velocity.PLACEHOLDER_REVENUE)

        return self._sum_sales(
            inventory_id,
            SaleRecord.sale_date > start,
            SaleRecord.sale_date <= end,
        )

    def _sum_sales(self, inventory_id: int, *criteria) -> tuple[int, int]:
        quantity, revenue = self.session.execute(
            select(
                func.coalesce(func.sum(SaleRecord.quantity), 0),
                func.coalesce(func.sum(SaleRecord.value), 0),
            ).where(SaleRecord.inventory_id == inventory_id, *criteria)
        ).one()
        return (int(quantity), int(revenue))

    # -------------------------------------------------------------------------
    # Tracking and sales
    # -------------------------------------------------------------------------

    def initialize_inventory_tracking(
        self,
        caller: str,
        inventory_id: int,
    ) -> InventoryMetricsInfo:
        """
        Start tracking an inventory; the caller becomes its analytics owner.

        Raises:
            TrackingAlreadyInitializedError: metrics already exist.
        """
        require_text(caller, "caller", PRINCIPAL_LENGTH)
        require_non_negative(inventory_id, "inventory_id")
        if self._lock_metrics(inventory_id) is not None:
            raise TrackingAlreadyInitializedError(inventory_id)

        now = self._clock.current_epoch()
        metrics = InventoryMetrics(
            inventory_id=inventory_id,
            owner=caller,
            total_sales=0,
            total_revenue=0,
            avg_daily_sales=0,
            turnover_rate=0,
            velocity_score=0,
            analysis_period=self.get_analysis_window(),
            last_updated=now,
            sales_trend=SalesTrend.STABLE,
        )
        self.session.add(metrics)
        self.session.flush()

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info("inventory_tracking_initialized")
        return self._metrics_dto(metrics)

    def record_sale(
        self,
        caller: str,
        inventory_id: int,
        category: str,
        quantity: int,
        value: int,
        channel: str,
    ) -> int:
        """
        Append a sale event and fold it into the category aggregate.

        Access is checked against the analytics owner; an inventory that
        was never tracked has no owner, so only the administrator or a
        permitted reporter may record sales for it.

        Returns:
            The globally unique sales_id.

        Raises:
            UnauthorizedError: caller may not report for this inventory.
            InvalidDataError: bad field, or the inventory-wide unit or
                revenue total would pass the stored-integer ceiling.
        """
        require_non_negative(inventory_id, "inventory_id")
        metrics = self._lock_metrics(inventory_id)
        owner = metrics.owner if metrics is not None else None
        basis = self._access.authorize(caller, inventory_id, owner, "record_sale")

        require_text(caller, "caller", PRINCIPAL_LENGTH)
        require_text(category, "category", 50)
        require_positive(quantity, "quantity")
        require_positive(value, "value")
        require_text(channel, "channel", 30)

        # Category aggregates never exceed the inventory-wide totals.
        units_sold, revenue = self._sum_sales(inventory_id)
        require_running_total(units_sold, quantity, "quantity", velocity.MAX_SALES_UNITS)
        require_running_total(revenue, value, "value")

        now = self._clock.current_epoch()
        sales_id = self._sequences.next_value(SequenceService.SALE)
        self.session.add(
            SaleRecord(
                inventory_id=inventory_id,
                sales_id=sales_id,
                seller=caller,
                category=category,
                quantity=quantity,
                value=value,
                sale_date=now,
                channel=channel,
                verified=True,
            )
        )

        perf = self.session.execute(
            select(CategoryPerformance)
            .where(
                CategoryPerformance.inventory_id == inventory_id,
                CategoryPerformance.category == category,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if perf is None:
            perf = CategoryPerformance(
                inventory_id=inventory_id,
                category=category,
                total_quantity=0,
                total_revenue=0,
            )
            self.session.add(perf)

        days = self._days_in_window(self.get_analysis_window())
        perf.total_quantity += quantity
        perf.total_revenue += value
        perf.avg_sale_value = velocity.average_sale_value(
            perf.total_revenue, perf.total_quantity
        )
        perf.velocity_score = velocity.velocity_score(perf.total_quantity, days)
        # Category direction is not compared across windows.
        perf.trend_direction = SalesTrend.UP
        perf.last_sale = now
        self.session.flush()
        self._access.record_report(caller, basis)

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "sale_recorded",
                extra={
                    "sales_id": sales_id,
                    "category": category,
                    "quantity": quantity,
                    "value": value,
                    "channel": channel,
                    "access_basis": basis.value,
                },
            )
        return sales_id

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def analyze_inventory_velocity(
        self,
        caller: str,
        inventory_id: int,
    ) -> VelocitySnapshot:
        """
        Condense the current analysis window into a velocity snapshot.

        The window is (now - analysis_window, now].  The trend compares
        against the snapshot taken exactly one window earlier, if any.

        Postconditions:
            - A VelocityHistory row exists at (inventory_id, now).
            - InventoryMetrics holds the same figures.

        Raises:
            InventoryNotTrackedError: tracking was never initialized.
            UnauthorizedError: caller is neither owner nor administrator.
            AnalysisAlreadyRecordedError: already analyzed this epoch.
        """
        require_non_negative(inventory_id, "inventory_id")
        metrics = self._lock_metrics(inventory_id)
        if metrics is None:
            raise InventoryNotTrackedError(inventory_id)
        self._access.authorize_owner_or_admin(
            caller, inventory_id, metrics.owner, "analyze_inventory_velocity"
        )

        now = self._clock.current_epoch()
        if self.session.get(VelocityHistory, (inventory_id, now)) is not None:
            raise AnalysisAlreadyRecordedError(inventory_id, now)

        window = self.get_analysis_window()
        window_start = now - window
        total_sales, total_revenue = self._window_totals(inventory_id, window_start, now)
        figures = velocity.window_metrics(
            total_sales, total_revenue, window, self._settings.blocks_per_day
        )

        previous = self.session.get(VelocityHistory, (inventory_id, window_start))
        trend = velocity.compare_trend(
            figures.velocity_score,
            previous.velocity_score if previous is not None else None,
        )
        risk = velocity.risk_factor(figures.velocity_score, figures.turnover_rate)

        entry = VelocityHistory(
            inventory_id=inventory_id,
            analysis_epoch=now,
            velocity_score=figures.velocity_score,
            turnover_rate=figures.turnover_rate,
            sales_volume=figures.total_sales,
            trend_change=trend.change,
            risk_factor=risk,
        )
        self.session.add(entry)

        metrics.total_sales = figures.total_sales
        metrics.total_revenue = figures.total_revenue
        metrics.avg_daily_sales = figures.avg_daily_sales
        metrics.turnover_rate = figures.turnover_rate
        metrics.velocity_score = figures.velocity_score
        metrics.analysis_period = window
        metrics.last_updated = now
        metrics.sales_trend = trend
        self.session.flush()

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "velocity_analyzed",
                extra={
                    "velocity_score": figures.velocity_score,
                    "turnover_rate": figures.turnover_rate,
                    "sales_volume": figures.total_sales,
                    "trend": trend.value,
                    "risk_factor": risk,
                    "sales_metrics_source": self._settings.sales_metrics_source.value,
                },
            )
        return self._snapshot_dto(entry)

    def get_risk_assessment(self, inventory_id: int) -> RiskAssessment:
        """
        Classify the snapshot taken at the current epoch.

        Without a snapshot at exactly the current epoch the result is
        NO_DATA with the worst-case risk factor.
        """
        now = self._clock.current_epoch()
        entry = self.session.get(VelocityHistory, (inventory_id, now))
        if entry is None:
            return RiskAssessment.no_data(inventory_id)
        return RiskAssessment(
            inventory_id=inventory_id,
            level=velocity.classify_risk(entry.risk_factor),
            risk_factor=entry.risk_factor,
            analysis_epoch=entry.analysis_epoch,
            velocity_score=entry.velocity_score,
            turnover_rate=entry.turnover_rate,
        )

    # -------------------------------------------------------------------------
    # Analysis window
    # -------------------------------------------------------------------------

    def set_analysis_window(self, caller: str, window: int) -> int:
        """
        Change the analysis window; returns the previous value.

        Raises:
            UnauthorizedError: caller is not the administrator.
            InvalidPeriodError: window outside the configured bounds.
        """
        self._access.require_administrator(caller, "set_analysis_window")
        minimum = self._settings.min_analysis_window
        maximum = self._settings.max_analysis_window
        if (
            isinstance(window, bool)
            or not isinstance(window, int)
            or not minimum <= window <= maximum
        ):
            logger.warning(
                "analysis_window_rejected",
                extra={"window": window, "minimum": minimum, "maximum": maximum},
            )
            raise InvalidPeriodError(
                ParameterService.ANALYSIS_WINDOW, window, minimum, maximum
            )
        return self._parameters.set(
            ParameterService.ANALYSIS_WINDOW, window, self._clock.current_epoch()
        )

    def get_analysis_window(self) -> int:
        return self._parameters.get(ParameterService.ANALYSIS_WINDOW)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_sale(self, inventory_id: int, sales_id: int) -> SaleInfo | None:
        sale = self.session.get(SaleRecord, (inventory_id, sales_id))
        return self._sale_dto(sale) if sale is not None else None

    def get_category_performance(
        self,
        inventory_id: int,
        category: str,
    ) -> CategoryPerformanceInfo | None:
        perf = self.session.get(CategoryPerformance, (inventory_id, category))
        return self._category_dto(perf) if perf is not None else None

    def get_inventory_metrics(self, inventory_id: int) -> InventoryMetricsInfo | None:
        metrics = self.session.get(InventoryMetrics, inventory_id)
        return self._metrics_dto(metrics) if metrics is not None else None

    def get_velocity_history(
        self,
        inventory_id: int,
        analysis_epoch: int,
    ) -> VelocitySnapshot | None:
        entry = self.session.get(VelocityHistory, (inventory_id, analysis_epoch))
        return self._snapshot_dto(entry) if entry is not None else None
