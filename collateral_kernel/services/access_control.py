"""
AccessControlService -- caller authorization and reporter grants.

Responsibility:
    Resolves whether a caller may mutate an inventory's records and
    manages the reporter grants that extend that right to non-owners.

Architecture position:
    Kernel > Services -- imperative shell around domain/access.py.
    Used by both the verification ledger and the sales analytics engine;
    each engine supplies the owner it knows about.

Invariants enforced:
    - The administrator identity comes from settings and never changes
      for the lifetime of the service.
    - Only the administrator creates, replaces or revokes grants.
    - Revocation keeps the row: permissions cleared, authorized False,
      last_report stamped with the revocation epoch.
    - A grant lists at most ``max_inventories_per_reporter`` inventories;
      longer lists are rejected, never truncated.

Failure modes:
    - UnauthorizedError: caller lacks the required basis.
    - ReporterNotFoundError: revoking an unknown reporter.
    - CapacityExceededError / InvalidDataError: bad permission list.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from collateral_config.schema import LedgerSettings
from collateral_kernel.domain.access import check_mutation_access
from collateral_kernel.domain.clock import EpochClock
from collateral_kernel.domain.dtos import AccessBasis, ReporterGrantInfo
from collateral_kernel.domain.validation import require_non_negative, require_text
from collateral_kernel.db.base import PRINCIPAL_LENGTH
from collateral_kernel.exceptions import (
    CapacityExceededError,
    ReporterNotFoundError,
    UnauthorizedError,
)
from collateral_kernel.logging_config import get_logger
from collateral_kernel.models.access import ReporterGrant
from collateral_kernel.services.base import BaseService

logger = get_logger("services.access")


class AccessControlService(BaseService[ReporterGrant]):
    """
    Service for access decisions and reporter grant management.

    Contract:
        ``authorize*`` methods return the AccessBasis on success and raise
        UnauthorizedError otherwise.  They never write; callers that were
        admitted as reporters call ``record_report`` once their own
        writes are validated.
    """

    def __init__(self, session: Session, settings: LedgerSettings, clock: EpochClock):
        super().__init__(session)
        self._administrator = settings.administrator
        self._max_permissions = settings.max_inventories_per_reporter
        self._clock = clock

    @property
    def administrator(self) -> str:
        return self._administrator

    def _to_dto(self, grant: ReporterGrant) -> ReporterGrantInfo:
        return ReporterGrantInfo(
            reporter=grant.reporter,
            authorized=grant.authorized,
            inventory_permissions=frozenset(grant.inventory_permissions),
            last_report=grant.last_report,
        )

    def _get_grant(self, reporter: str, for_update: bool = False) -> ReporterGrant | None:
        stmt = select(ReporterGrant).where(ReporterGrant.reporter == reporter)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def is_administrator(self, caller: str) -> bool:
        return caller == self._administrator

    def require_administrator(self, caller: str, action: str) -> None:
        if not self.is_administrator(caller):
            logger.warning(
                "access_denied",
                extra={"caller": caller, "action": action, "reason": "administrator required"},
            )
            raise UnauthorizedError(caller, action)

    def get_reporter_grant(self, reporter: str) -> ReporterGrantInfo | None:
        grant = self._get_grant(reporter)
        return self._to_dto(grant) if grant is not None else None

    def _decide(
        self,
        caller: str,
        inventory_id: int,
        owner: str | None,
        action: str,
        allow_reporter: bool,
    ) -> AccessBasis:
        grant = self.get_reporter_grant(caller) if allow_reporter else None
        basis, reason = check_mutation_access(
            caller,
            inventory_id,
            self._administrator,
            owner,
            grant,
            allow_reporter=allow_reporter,
        )
        if basis is None:
            logger.warning(
                "access_denied",
                extra={
                    "caller": caller,
                    "action": action,
                    "inventory_id": inventory_id,
                    "reason": reason,
                },
            )
            raise UnauthorizedError(caller, action, inventory_id)
        return basis

    def authorize(
        self,
        caller: str,
        inventory_id: int,
        owner: str | None,
        action: str,
    ) -> AccessBasis:
        """Administrator, owner, or a reporter whose grant covers the inventory."""
        return self._decide(caller, inventory_id, owner, action, allow_reporter=True)

    def authorize_owner_or_admin(
        self,
        caller: str,
        inventory_id: int,
        owner: str | None,
        action: str,
    ) -> AccessBasis:
        return self._decide(caller, inventory_id, owner, action, allow_reporter=False)

    def record_report(self, reporter: str, basis: AccessBasis) -> None:
        """Stamp last_report when a mutation was admitted on a reporter grant."""
        if basis != AccessBasis.REPORTER:
            return
        grant = self._get_grant(reporter, for_update=True)
        if grant is None:
            return
        grant.last_report = self._clock.current_epoch()
        self.session.flush()

    # -------------------------------------------------------------------------
    # Grant management
    # -------------------------------------------------------------------------

    def grant_reporter(
        self,
        caller: str,
        reporter: str,
        inventory_ids: list[int],
    ) -> ReporterGrantInfo:
        """
        Create or replace a reporter grant.

        Raises:
            UnauthorizedError: caller is not the administrator.
            CapacityExceededError: more than the allowed number of inventories.
            InvalidDataError: malformed reporter or inventory id.
        """
        self.require_administrator(caller, "grant_reporter")
        require_text(reporter, "reporter", PRINCIPAL_LENGTH)
        for inventory_id in inventory_ids:
            require_non_negative(inventory_id, "inventory_id")

        permissions = sorted(set(inventory_ids))
        if len(permissions) > self._max_permissions:
            raise CapacityExceededError(
                "inventory_permissions", len(permissions), self._max_permissions
            )

        grant = self._get_grant(reporter, for_update=True)
        if grant is None:
            grant = ReporterGrant(
                reporter=reporter,
                authorized=True,
                inventory_permissions=permissions,
                last_report=0,
            )
            self.session.add(grant)
        else:
            grant.authorized = True
            grant.inventory_permissions = permissions
        self.session.flush()

        logger.info(
            "reporter_granted",
            extra={"reporter": reporter, "inventory_permissions": permissions},
        )
        return self._to_dto(grant)

    def revoke_reporter(self, caller: str, reporter: str) -> ReporterGrantInfo:
        """
        Revoke a reporter grant, keeping the record.

        Raises:
            UnauthorizedError: caller is not the administrator.
            ReporterNotFoundError: no grant exists for ``reporter``.
        """
        self.require_administrator(caller, "revoke_reporter")
        grant = self._get_grant(reporter, for_update=True)
        if grant is None:
            raise ReporterNotFoundError(reporter)

        epoch = self._clock.current_epoch()
        grant.revoke(epoch)
        self.session.flush()

        logger.info("reporter_revoked", extra={"reporter": reporter, "epoch": epoch})
        return self._to_dto(grant)
