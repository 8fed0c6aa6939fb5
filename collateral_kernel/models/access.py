"""
Module: collateral_kernel.models.access
Responsibility: ORM persistence for reporter grants.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Grants are never deleted; revocation clears permissions, sets
      ``authorized`` to False and stamps ``last_report`` (ORM listener
      blocks DELETE).

Audit relevance:
    A revoked grant stays on record with the epoch of its revocation.
"""

from sqlalchemy import JSON, BigInteger, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase


class ReporterGrant(TrackedBase):
    """Permission for a non-owner identity to report on listed inventories."""

    __tablename__ = "reporter_grants"

    reporter: Mapped[str] = mapped_column(primary_key=True)

    authorized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    inventory_permissions: Mapped[list[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    last_report: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        state = "authorized" if self.authorized else "revoked"
        return f"<ReporterGrant {self.reporter}: {state}>"

    def revoke(self, epoch: int) -> None:
        self.authorized = False
        self.inventory_permissions = []
        self.last_report = epoch
