"""
Ledger Orchestrator - Wires the kernel services around one session.

The Orchestrator ties together:
- AccessControlService: administrator identity and reporter grants
- InventoryVerificationLedger: sensors, inventories, verifications
- SalesAnalyticsService: sales, velocity history, risk
- SequenceService / ParameterService: shared counters and tunables

The two engines are peers; neither holds a reference to the other.
Transaction boundaries stay with the caller, e.g.::

    with session_scope() as session:
        ledger = LedgerOrchestrator(session, settings, clock)
        inventory_id = ledger.verification.register_inventory(owner, "Dock 4", [1, 2])
"""

from sqlalchemy.orm import Session

from collateral_config.schema import LedgerSettings
from collateral_kernel.db.immutability import register_immutability_listeners
from collateral_kernel.domain.clock import EpochClock
from collateral_kernel.logging_config import get_logger
from collateral_kernel.services.access_control import AccessControlService
from collateral_kernel.services.parameter_service import ParameterService
from collateral_kernel.services.sales_analytics import SalesAnalyticsService
from collateral_kernel.services.sequence_service import SequenceService
from collateral_kernel.services.verification_ledger import InventoryVerificationLedger

logger = get_logger("services.orchestrator")


class LedgerOrchestrator:
    """Single entry point exposing every kernel service for one session."""

    def __init__(self, session: Session, settings: LedgerSettings, clock: EpochClock):
        self.session = session
        self.settings = settings
        self.clock = clock
        register_immutability_listeners()

        self.sequences = SequenceService(session)
        self.parameters = ParameterService(
            session,
            {
                ParameterService.VALIDITY_PERIOD: settings.validity_period,
                ParameterService.ANALYSIS_WINDOW: settings.analysis_window,
            },
        )
        self.access = AccessControlService(session, settings, clock)
        self.verification = InventoryVerificationLedger(
            session, settings, clock, self.access, self.sequences, self.parameters
        )
        self.analytics = SalesAnalyticsService(
            session, settings, clock, self.access, self.sequences, self.parameters
        )

        logger.debug(
            "ledger_orchestrator_ready",
            extra={
                "administrator": settings.administrator,
                "sales_metrics_source": settings.sales_metrics_source.value,
            },
        )
