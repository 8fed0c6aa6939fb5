"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Financing decisions are made against the verification and velocity
histories.  Those histories must be append-only: a verification can only
be superseded by a newer verification, a sale can only be followed by
further sales, and a velocity snapshot is evidence that never changes.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check the rules:

    session.flush()
         |
         v
    [before_update event] --> _check_*() ------------> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _forbid_*_delete() -------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | Rule                                  | Why
--------------------|---------------------------------------|-----------------------------------
VerificationRecord  | ALWAYS immutable                      | Attestation history
SaleRecord          | ALWAYS immutable                      | Aggregates are derived from it
VelocityHistory     | ALWAYS immutable                      | Evidence for risk assessments
Inventory           | owner never changes; never deleted    | Access decisions depend on owner
Sensor              | never deleted                         | Inventories reference sensor ids
ReporterGrant       | never deleted                         | Revocation must stay auditable

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY ALLOW inserted_at/updated_at CHANGES?
   They are wall-clock write metadata from TrackedBase, not ledger data.

2. WHY INLINE IMPORTS?
   Models import from db; db imports models only when listeners register.

===============================================================================
USAGE
===============================================================================

    from collateral_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
    # ... do forbidden operation ...
    register_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect

from collateral_kernel.exceptions import ImmutabilityViolationError
from collateral_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"inserted_at", "updated_at"})


def _changed_fields(target) -> list[str]:
    """Names of mapped attributes with pending changes, excluding audit metadata."""
    state = inspect(target)
    changed = []
    for attr in state.attrs:
        if attr.key in _AUDIT_METADATA_FIELDS:
            continue
        if attr.history.has_changes():
            changed.append(attr.key)
    return changed


def _entity_key(target) -> str:
    identity = inspect(target).identity
    if identity is None:
        return "<transient>"
    return "/".join(str(part) for part in identity)


def _raise_violation(target, reason: str) -> None:
    entity_type = type(target).__name__
    entity_id = _entity_key(target)
    logger.error(
        "immutability_violation",
        extra={"entity_type": entity_type, "entity_id": entity_id, "reason": reason},
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_append_only_update(mapper, connection, target):
    """Block any field change on an append-only history record."""
    changed = _changed_fields(target)
    if changed:
        _raise_violation(
            target,
            f"append-only record; attempted to change {', '.join(sorted(changed))}",
        )


def _forbid_append_only_delete(mapper, connection, target):
    _raise_violation(target, "append-only records cannot be deleted")


def _check_inventory_owner(mapper, connection, target):
    """Inventory owner is fixed at registration."""
    history = inspect(target).attrs.owner.history
    if history.deleted and history.deleted[0] != target.owner:
        _raise_violation(target, "inventory owner is immutable")


def _forbid_retained_delete(mapper, connection, target):
    _raise_violation(target, "record is retained for audit and cannot be deleted")


def _listener_table():
    from collateral_kernel.models.access import ReporterGrant
    from collateral_kernel.models.inventory import Inventory
    from collateral_kernel.models.metrics import VelocityHistory
    from collateral_kernel.models.sales import SaleRecord
    from collateral_kernel.models.sensor import Sensor
    from collateral_kernel.models.verification import VerificationRecord

    return (
        (VerificationRecord, "before_update", _check_append_only_update),
        (VerificationRecord, "before_delete", _forbid_append_only_delete),
        (SaleRecord, "before_update", _check_append_only_update),
        (SaleRecord, "before_delete", _forbid_append_only_delete),
        (VelocityHistory, "before_update", _check_append_only_update),
        (VelocityHistory, "before_delete", _forbid_append_only_delete),
        (Inventory, "before_update", _check_inventory_owner),
        (Inventory, "before_delete", _forbid_retained_delete),
        (Sensor, "before_delete", _forbid_retained_delete),
        (ReporterGrant, "before_delete", _forbid_retained_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listener_table():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
