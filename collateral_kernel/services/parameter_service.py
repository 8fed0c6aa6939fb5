"""
ParameterService -- administrator-tunable ledger parameters.

Responsibility:
    Stores the current validity period and analysis window.  Until an
    administrator changes a parameter, reads fall back to the configured
    default without writing anything.

Invariants enforced:
    - Reads are side-effect free.
    - Writes lock the parameter row so concurrent changes serialize.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from collateral_kernel.logging_config import get_logger
from collateral_kernel.models.parameter import LedgerParameter
from collateral_kernel.services.base import BaseService

logger = get_logger("services.parameter")


class ParameterService(BaseService[LedgerParameter]):
    """Named integer parameters with configured defaults."""

    VALIDITY_PERIOD = "validity_period"
    ANALYSIS_WINDOW = "analysis_window"

    def __init__(self, session: Session, defaults: dict[str, int]):
        super().__init__(session)
        self._defaults = dict(defaults)

    def get(self, name: str) -> int:
        value = self.session.execute(
            select(LedgerParameter.value).where(LedgerParameter.name == name)
        ).scalar_one_or_none()
        if value is None:
            return self._defaults[name]
        return value

    def set(self, name: str, value: int, epoch: int) -> int:
        """Persist a new value and return the previous one."""
        row = self.session.execute(
            select(LedgerParameter)
            .where(LedgerParameter.name == name)
            .with_for_update()
        ).scalar_one_or_none()

        if row is None:
            previous = self._defaults[name]
            row = LedgerParameter(name=name, value=value, changed_at=epoch)
            self.session.add(row)
        else:
            previous = row.value
            row.value = value
            row.changed_at = epoch
        self.session.flush()

        logger.info(
            "ledger_parameter_changed",
            extra={"parameter": name, "previous": previous, "value": value},
        )
        return previous
