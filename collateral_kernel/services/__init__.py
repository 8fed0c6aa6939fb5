"""Services for the collateral kernel (write side and exact-key queries)."""

from collateral_kernel.services.access_control import AccessControlService
from collateral_kernel.services.orchestrator import LedgerOrchestrator
from collateral_kernel.services.parameter_service import ParameterService
from collateral_kernel.services.sales_analytics import SalesAnalyticsService
from collateral_kernel.services.sequence_service import SequenceCounter, SequenceService
from collateral_kernel.services.verification_ledger import InventoryVerificationLedger

__all__ = [
    "AccessControlService",
    "InventoryVerificationLedger",
    "LedgerOrchestrator",
    "ParameterService",
    "SalesAnalyticsService",
    "SequenceCounter",
    "SequenceService",
]
