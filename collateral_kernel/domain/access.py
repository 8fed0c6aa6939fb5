"""
Access rules -- who may mutate an inventory's records.

Responsibility:
    Decide, for a caller and an inventory, whether mutation is allowed and
    on what basis.  The decision is a pure function of the administrator
    identity, the inventory owner, and the caller's reporter grant (if any).

Architecture position:
    Kernel > Domain.  AccessControlService loads the inputs and turns a
    denial into UnauthorizedError.

Invariants:
    - The kernel never authenticates callers; identities are compared as
      opaque strings.
    - An unauthorized grant admits nothing, whatever its permission set.
"""

from __future__ import annotations

from collateral_kernel.domain.dtos import AccessBasis, ReporterGrantInfo


def check_mutation_access(
    caller: str,
    inventory_id: int,
    administrator: str,
    owner: str | None,
    grant: ReporterGrantInfo | None,
    *,
    allow_reporter: bool = True,
) -> tuple[AccessBasis | None, str]:
    """Check whether ``caller`` may mutate records of ``inventory_id``.

    Args:
        caller: Principal supplied by the execution environment.
        inventory_id: Inventory being mutated.
        administrator: Deployment-fixed administrator identity.
        owner: Inventory owner, or None when no owner is known.
        grant: Caller's reporter grant, if one exists.
        allow_reporter: False for owner-or-administrator operations.

    Returns:
        (basis, reason). basis is None when denied; reason is empty when
        allowed, or a short message when denied.
    """
    if caller == administrator:
        return (AccessBasis.ADMINISTRATOR, "")

    if owner is not None and caller == owner:
        return (AccessBasis.OWNER, "")

    if not allow_reporter:
        return (None, "owner or administrator required")

    if grant is None:
        return (None, "caller is neither owner nor a reporter")
    if not grant.authorized:
        return (None, "reporter grant is revoked")
    if inventory_id not in grant.inventory_permissions:
        return (None, f"reporter grant does not cover inventory {inventory_id}")

    return (AccessBasis.REPORTER, "")
