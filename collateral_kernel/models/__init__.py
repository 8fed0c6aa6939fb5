"""Domain models for the collateral kernel."""

from collateral_kernel.models.access import ReporterGrant
from collateral_kernel.models.inventory import Inventory, InventoryItem
from collateral_kernel.models.metrics import InventoryMetrics, VelocityHistory
from collateral_kernel.models.parameter import LedgerParameter
from collateral_kernel.models.sales import CategoryPerformance, SaleRecord
from collateral_kernel.models.sensor import Sensor
from collateral_kernel.models.verification import VerificationRecord

__all__ = [
    "CategoryPerformance",
    "Inventory",
    "InventoryItem",
    "InventoryMetrics",
    "LedgerParameter",
    "ReporterGrant",
    "SaleRecord",
    "Sensor",
    "VelocityHistory",
    "VerificationRecord",
]
