"""
Module: collateral_kernel.models.parameter
Responsibility: ORM persistence for administrator-tunable ledger parameters
    (validity period, analysis window).
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase


class LedgerParameter(TrackedBase):
    """A named integer parameter, seeded from settings on first use."""

    __tablename__ = "ledger_parameters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)

    value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Epoch of the last administrator change (0 = seeded default)
    changed_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<LedgerParameter {self.name}={self.value}>"
