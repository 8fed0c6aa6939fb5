"""
Module: collateral_kernel.models.sensor
Responsibility: ORM persistence for the sensor registry.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Sensors are never deleted; deactivation clears ``authorized`` and
      blanks the descriptive fields (ORM listener blocks DELETE).

Audit relevance:
    Inventories reference sensor ids that were authorized at registration
    time.  Retaining deactivated sensors keeps those references resolvable.
"""

from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from collateral_kernel.db.base import TrackedBase


class Sensor(TrackedBase):
    """An attesting sensor, registered and deactivated by the administrator."""

    __tablename__ = "sensors"

    sensor_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    location: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    sensor_type: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    authorized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Epoch of registration or deactivation
    last_active: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        state = "authorized" if self.authorized else "deactivated"
        return f"<Sensor {self.sensor_id}: {state}>"

    def deactivate(self, epoch: int) -> None:
        """Revoke the sensor and blank its descriptive fields."""
        self.authorized = False
        self.location = ""
        self.sensor_type = ""
        self.last_active = epoch
