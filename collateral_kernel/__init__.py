"""
Collateral Kernel

An inventory-backed financing ledger with:
- Sensor-attested inventory verification with time-bounded validity
- Append-only verification, sale, and velocity histories
- Access-gated mutation (administrator, owner, authorized reporter)
- Sales velocity analytics with trend and risk classification
"""

__version__ = "0.1.0"
