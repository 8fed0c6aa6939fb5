"""
InventoryVerificationLedger -- sensors, inventories, items and attestations.

Responsibility:
    Registry of attesting sensors and inventories, per-item records, and
    the append-only verification history whose latest entry determines
    an inventory's attested value and whether that value is still valid.

Architecture position:
    Kernel > Services -- imperative shell.  Reads the epoch from the
    injected EpochClock, delegates authorization to AccessControlService
    and identifier allocation to SequenceService.  Never calls the sales
    analytics engine.

Invariants enforced:
    - Every validation runs before the first write; a rejected call
      leaves no partial state.
    - A verification record and the Inventory snapshot it overwrites
      are flushed together.
    - Inventory owner never changes (also enforced by ORM listener).
    - Inventories reference at most ``max_sensors_per_inventory``
      sensors, all authorized at registration time.

Failure modes:
    - UnauthorizedError, InvalidDataError, CapacityExceededError,
      SensorNotFoundError, InventoryNotFoundError, ItemNotFoundError,
      SensorAlreadyExistsError, VerificationAlreadyExistsError,
      InvalidSensorError, InvalidPeriodError.

Audit relevance:
    Validity is computed on read from ``last_verified`` and the current
    validity period, so it lapses without any write.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from collateral_config.schema import LedgerSettings
from collateral_kernel.domain.clock import EpochClock
from collateral_kernel.domain.dtos import (
    InventoryInfo,
    InventoryItemInfo,
    SensorInfo,
    VerificationInfo,
    VerificationStatus,
)
from collateral_kernel.db.base import PRINCIPAL_LENGTH
from collateral_kernel.domain.validation import (
    MAX_STORED_INT,
    require_digest,
    require_non_negative,
    require_running_total,
    require_text,
)
from collateral_kernel.exceptions import (
    CapacityExceededError,
    InvalidPeriodError,
    InvalidSensorError,
    InventoryNotFoundError,
    ItemNotFoundError,
    SensorAlreadyExistsError,
    SensorNotFoundError,
    UnauthorizedError,
    VerificationAlreadyExistsError,
)
from collateral_kernel.logging_config import LogContext, get_logger
from collateral_kernel.models.inventory import Inventory, InventoryItem
from collateral_kernel.models.sensor import Sensor
from collateral_kernel.models.verification import VerificationRecord
from collateral_kernel.services.access_control import AccessControlService
from collateral_kernel.services.base import BaseService
from collateral_kernel.services.parameter_service import ParameterService
from collateral_kernel.services.sequence_service import SequenceService

logger = get_logger("services.verification")


class InventoryVerificationLedger(BaseService[Inventory]):
    """
    Ledger of physical inventory attestations.

    All public query methods return frozen DTOs (or None for an absent
    key), never ORM entities.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings,
        clock: EpochClock,
        access: AccessControlService,
        sequences: SequenceService,
        parameters: ParameterService,
    ):
        super().__init__(session)
        self._settings = settings
        self._clock = clock
        self._access = access
        self._sequences = sequences
        self._parameters = parameters

    # -------------------------------------------------------------------------
    # DTO conversion
    # -------------------------------------------------------------------------

    def _sensor_dto(self, sensor: Sensor) -> SensorInfo:
        return SensorInfo(
            sensor_id=sensor.sensor_id,
            location=sensor.location,
            sensor_type=sensor.sensor_type,
            authorized=sensor.authorized,
            last_active=sensor.last_active,
        )

    def _inventory_dto(self, inventory: Inventory) -> InventoryInfo:
        return InventoryInfo(
            inventory_id=inventory.inventory_id,
            owner=inventory.owner,
            location=inventory.location,
            total_value=inventory.total_value,
            item_count=inventory.item_count,
            verification_status=inventory.verification_status,
            last_verified=inventory.last_verified,
            sensor_ids=tuple(inventory.sensor_ids),
            created_at=inventory.created_at,
        )

    def _item_dto(self, item: InventoryItem) -> InventoryItemInfo:
        return InventoryItemInfo(
            inventory_id=item.inventory_id,
            item_id=item.item_id,
            name=item.name,
            category=item.category,
            quantity=item.quantity,
            unit_value=item.unit_value,
            sku=item.sku,
            authenticity_hash=item.authenticity_hash,
            condition=item.condition,
            verified_at=item.verified_at,
        )

    def _verification_dto(self, record: VerificationRecord) -> VerificationInfo:
        return VerificationInfo(
            inventory_id=record.inventory_id,
            verification_id=record.verification_id,
            verifier=record.verifier,
            timestamp=record.timestamp,
            total_value=record.total_value,
            item_count=record.item_count,
            verification_hash=record.verification_hash,
            sensor_data=record.sensor_data,
        )

    # -------------------------------------------------------------------------
    # Row access
    # -------------------------------------------------------------------------

    def _lock_inventory(self, inventory_id: int) -> Inventory:
        inventory = self.session.execute(
            select(Inventory)
            .where(Inventory.inventory_id == inventory_id)
            .with_for_update()
        ).scalar_one_or_none()
        if inventory is None:
            raise InventoryNotFoundError(inventory_id)
        return inventory

    def _lock_sensor(self, sensor_id: int) -> Sensor | None:
        return self.session.execute(
            select(Sensor).where(Sensor.sensor_id == sensor_id).with_for_update()
        ).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Sensors
    # -------------------------------------------------------------------------

    def register_sensor(
        self,
        caller: str,
        sensor_id: int,
        location: str,
        sensor_type: str,
    ) -> SensorInfo:
        """
        Register an attesting sensor.

        Raises:
            UnauthorizedError: caller is not the administrator.
            SensorAlreadyExistsError: sensor_id is already registered,
                including a deactivated sensor.
            InvalidDataError: malformed id or descriptive fields.
        """
        self._access.require_administrator(caller, "register_sensor")
        require_non_negative(sensor_id, "sensor_id")
        require_text(location, "location", 100)
        require_text(sensor_type, "sensor_type", 50)

        if self._lock_sensor(sensor_id) is not None:
            raise SensorAlreadyExistsError(sensor_id)

        now = self._clock.current_epoch()
        sensor = Sensor(
            sensor_id=sensor_id,
            location=location,
            sensor_type=sensor_type,
            authorized=True,
            last_active=now,
        )
        self.session.add(sensor)
        self.session.flush()

        logger.info(
            "sensor_registered",
            extra={"sensor_id": sensor_id, "sensor_type": sensor_type, "epoch": now},
        )
        return self._sensor_dto(sensor)

    def deactivate_sensor(self, caller: str, sensor_id: int) -> SensorInfo:
        """
        Revoke a sensor.  The row is kept with blanked descriptive fields.

        Inventories registered with this sensor keep referencing it.
        """
        self._access.require_administrator(caller, "deactivate_sensor")
        sensor = self._lock_sensor(sensor_id)
        if sensor is None:
            raise SensorNotFoundError(sensor_id)

        now = self._clock.current_epoch()
        sensor.deactivate(now)
        self.session.flush()

        logger.info("sensor_deactivated", extra={"sensor_id": sensor_id, "epoch": now})
        return self._sensor_dto(sensor)

    # -------------------------------------------------------------------------
    # Inventories and items
    # -------------------------------------------------------------------------

    def register_inventory(
        self,
        caller: str,
        location: str,
        sensor_ids: list[int],
    ) -> int:
        """
        Register a new inventory owned by ``caller``.

        Requested sensors that are unknown or deactivated are dropped
        silently; at least one authorized sensor must remain.

        Returns:
            The newly issued inventory_id.

        Raises:
            CapacityExceededError: more distinct sensors than allowed.
            InvalidSensorError: no requested sensor is currently authorized.
        """
        require_text(caller, "caller", PRINCIPAL_LENGTH)
        require_text(location, "location", 100)
        for sensor_id in sensor_ids:
            require_non_negative(sensor_id, "sensor_id")

        requested = list(dict.fromkeys(sensor_ids))
        capacity = self._settings.max_sensors_per_inventory
        if len(requested) > capacity:
            raise CapacityExceededError("sensor_ids", len(requested), capacity)

        authorized_ids = set(
            self.session.execute(
                select(Sensor.sensor_id).where(
                    Sensor.sensor_id.in_(requested),
                    Sensor.authorized.is_(True),
                )
            ).scalars()
        )
        accepted = [sensor_id for sensor_id in requested if sensor_id in authorized_ids]
        if not accepted:
            logger.warning(
                "inventory_rejected_no_sensors",
                extra={"caller": caller, "requested": requested},
            )
            raise InvalidSensorError(requested)

        now = self._clock.current_epoch()
        inventory_id = self._sequences.next_value(SequenceService.INVENTORY)
        inventory = Inventory(
            inventory_id=inventory_id,
            owner=caller,
            location=location,
            total_value=0,
            item_count=0,
            verification_status=VerificationStatus.PENDING,
            last_verified=0,
            sensor_ids=accepted,
            created_at=now,
        )
        self.session.add(inventory)
        self.session.flush()

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "inventory_registered",
                extra={
                    "sensor_ids": accepted,
                    "dropped_sensor_ids": [s for s in requested if s not in authorized_ids],
                },
            )
        return inventory_id

    def add_item(
        self,
        caller: str,
        inventory_id: int,
        item_id: int,
        name: str,
        category: str,
        quantity: int,
        unit_value: int,
        sku: str,
        authenticity_hash: bytes | str,
        condition: str,
    ) -> InventoryItemInfo:
        """
        Create or overwrite an item and bump the parent's item_count.

        The parent's total_value is not touched; value changes only
        through verify_inventory.  Overwriting an existing item_id still
        increments item_count.
        """
        require_non_negative(inventory_id, "inventory_id")
        inventory = self._lock_inventory(inventory_id)
        basis = self._access.authorize(caller, inventory_id, inventory.owner, "add_item")

        require_non_negative(item_id, "item_id")
        require_text(name, "name", 100)
        require_text(category, "category", 50)
        require_non_negative(quantity, "quantity")
        require_non_negative(unit_value, "unit_value")
        require_text(sku, "sku", 50)
        digest = require_digest(authenticity_hash, "authenticity_hash")
        require_text(condition, "condition", 30)
        require_running_total(inventory.item_count, 1, "item_count")

        now = self._clock.current_epoch()
        item = self.session.get(InventoryItem, (inventory_id, item_id))
        if item is None:
            item = InventoryItem(inventory_id=inventory_id, item_id=item_id)
            self.session.add(item)
        item.name = name
        item.category = category
        item.quantity = quantity
        item.unit_value = unit_value
        item.sku = sku
        item.authenticity_hash = digest
        item.condition = condition
        item.verified_at = now
        inventory.item_count += 1
        self.session.flush()
        self._access.record_report(caller, basis)

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "inventory_item_added",
                extra={
                    "item_id": item_id,
                    "quantity": quantity,
                    "item_count": inventory.item_count,
                    "access_basis": basis.value,
                },
            )
        return self._item_dto(item)

    def update_item_quantity(
        self,
        caller: str,
        inventory_id: int,
        item_id: int,
        new_quantity: int,
    ) -> InventoryItemInfo:
        """
        Change an item's quantity.  Only the inventory owner may do this;
        the administrator and reporters are rejected.
        """
        require_non_negative(inventory_id, "inventory_id")
        require_non_negative(item_id, "item_id")
        inventory = self._lock_inventory(inventory_id)
        if caller != inventory.owner:
            logger.warning(
                "access_denied",
                extra={
                    "caller": caller,
                    "action": "update_item_quantity",
                    "inventory_id": inventory_id,
                    "reason": "owner required",
                },
            )
            raise UnauthorizedError(caller, "update_item_quantity", inventory_id)

        item = self.session.execute(
            select(InventoryItem)
            .where(
                InventoryItem.inventory_id == inventory_id,
                InventoryItem.item_id == item_id,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(inventory_id, item_id)
        require_non_negative(new_quantity, "new_quantity")

        now = self._clock.current_epoch()
        previous = item.quantity
        item.quantity = new_quantity
        item.verified_at = now
        self.session.flush()

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "inventory_item_quantity_updated",
                extra={"item_id": item_id, "previous": previous, "quantity": new_quantity},
            )
        return self._item_dto(item)

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    def verify_inventory(
        self,
        caller: str,
        inventory_id: int,
        verification_id: int,
        total_value: int,
        item_count: int,
        verification_hash: bytes | str,
        sensor_data: str,
    ) -> VerificationInfo:
        """
        Append a verification record and overwrite the Inventory snapshot.

        Preconditions:
            - Caller passes access control for the inventory.
            - (inventory_id, verification_id) has not been used before.

        Postconditions:
            - Inventory.total_value/item_count equal the record's values,
              status is VERIFIED and last_verified is the current epoch.

        Raises:
            VerificationAlreadyExistsError: duplicate verification_id.
            InvalidDataError: negative values, malformed hash, or
                sensor_data longer than the configured maximum.
        """
        require_non_negative(inventory_id, "inventory_id")
        inventory = self._lock_inventory(inventory_id)
        basis = self._access.authorize(
            caller, inventory_id, inventory.owner, "verify_inventory"
        )

        require_text(caller, "caller", PRINCIPAL_LENGTH)
        require_non_negative(verification_id, "verification_id")
        require_non_negative(total_value, "total_value")
        require_non_negative(item_count, "item_count")
        digest = require_digest(verification_hash, "verification_hash")
        require_text(sensor_data, "sensor_data", self._settings.max_sensor_data_length)

        if self.session.get(VerificationRecord, (inventory_id, verification_id)) is not None:
            raise VerificationAlreadyExistsError(inventory_id, verification_id)

        now = self._clock.current_epoch()
        record = VerificationRecord(
            inventory_id=inventory_id,
            verification_id=verification_id,
            verifier=caller,
            timestamp=now,
            total_value=total_value,
            item_count=item_count,
            verification_hash=digest,
            sensor_data=sensor_data,
        )
        self.session.add(record)
        inventory.apply_verification(total_value, item_count, now)
        self.session.flush()
        self._access.record_report(caller, basis)

        with LogContext.bind(caller=caller, inventory_id=inventory_id, epoch=now):
            logger.info(
                "inventory_verified",
                extra={
                    "verification_id": verification_id,
                    "total_value": total_value,
                    "item_count": item_count,
                    "access_basis": basis.value,
                },
            )
        return self._verification_dto(record)

    def set_validity_period(self, caller: str, period: int) -> int:
        """Change the validity period; returns the previous value."""
        self._access.require_administrator(caller, "set_validity_period")
        if (
            isinstance(period, bool)
            or not isinstance(period, int)
            or not 0 < period <= MAX_STORED_INT
        ):
            raise InvalidPeriodError(
                ParameterService.VALIDITY_PERIOD,
                period,
                minimum=1,
                maximum=MAX_STORED_INT,
            )
        return self._parameters.set(
            ParameterService.VALIDITY_PERIOD, period, self._clock.current_epoch()
        )

    def get_validity_period(self) -> int:
        return self._parameters.get(ParameterService.VALIDITY_PERIOD)

    def is_verification_valid(self, inventory_id: int) -> bool:
        """
        True when the inventory's last verification is within the
        validity period.  Unknown inventories are never valid.
        """
        inventory = self.session.get(Inventory, inventory_id)
        if inventory is None:
            return False
        if inventory.last_verified == 0:
            return False
        if inventory.verification_status != VerificationStatus.VERIFIED:
            return False
        age = self._clock.current_epoch() - inventory.last_verified
        return age <= self.get_validity_period()

    def get_inventory_value(self, inventory_id: int) -> int | None:
        """Attested total value, or None when no valid verification exists."""
        if not self.is_verification_valid(inventory_id):
            return None
        return self.session.get(Inventory, inventory_id).total_value

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_sensor(self, sensor_id: int) -> SensorInfo | None:
        sensor = self.session.get(Sensor, sensor_id)
        return self._sensor_dto(sensor) if sensor is not None else None

    def get_inventory(self, inventory_id: int) -> InventoryInfo | None:
        inventory = self.session.get(Inventory, inventory_id)
        return self._inventory_dto(inventory) if inventory is not None else None

    def get_item(self, inventory_id: int, item_id: int) -> InventoryItemInfo | None:
        item = self.session.get(InventoryItem, (inventory_id, item_id))
        return self._item_dto(item) if item is not None else None

    def get_verification(
        self,
        inventory_id: int,
        verification_id: int,
    ) -> VerificationInfo | None:
        record = self.session.get(VerificationRecord, (inventory_id, verification_id))
        return self._verification_dto(record) if record is not None else None
