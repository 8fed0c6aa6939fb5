"""
Tests for InventoryVerificationLedger.

Covers sensor registry, inventory registration with sensor filtering,
item upserts, verification history, and time-bounded validity.
"""

import pytest

from collateral_kernel.domain.dtos import VerificationStatus
from collateral_kernel.domain.validation import MAX_STORED_INT
from collateral_kernel.exceptions import (
    CapacityExceededError,
    InvalidDataError,
    InvalidPeriodError,
    InvalidSensorError,
    InventoryNotFoundError,
    ItemNotFoundError,
    SensorAlreadyExistsError,
    SensorNotFoundError,
    UnauthorizedError,
    VerificationAlreadyExistsError,
)

ADMIN = "ledger-admin"
OWNER = "warehouse-owner"
REPORTER = "field-reporter"
STRANGER = "random-caller"
DIGEST = "ab" * 32


def _add_item(ledger, caller, inventory_id, item_id=1, quantity=5, unit_value=100):
    return ledger.verification.add_item(
        caller,
        inventory_id,
        item_id,
        "Trail shoe",
        "shoes",
        quantity,
        unit_value,
        "SKU-1",
        DIGEST,
        "new",
    )


def _verify(ledger, caller, inventory_id, verification_id=1, total_value=1000, item_count=5):
    return ledger.verification.verify_inventory(
        caller,
        inventory_id,
        verification_id,
        total_value,
        item_count,
        DIGEST,
        '{"temp": 4}',
    )


class TestSensors:
    def test_register_sensor(self, ledger, clock):
        info = ledger.verification.register_sensor(ADMIN, 11, "Dock 1", "rfid")
        assert info.authorized is True
        assert info.last_active == clock.current_epoch()
        assert ledger.verification.get_sensor(11) == info

    def test_only_administrator_registers(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.verification.register_sensor(OWNER, 11, "Dock 1", "rfid")
        assert ledger.verification.get_sensor(11) is None

    def test_duplicate_sensor_rejected(self, ledger):
        ledger.verification.register_sensor(ADMIN, 11, "Dock 1", "rfid")
        with pytest.raises(SensorAlreadyExistsError):
            ledger.verification.register_sensor(ADMIN, 11, "Dock 2", "camera")
        assert ledger.verification.get_sensor(11).location == "Dock 1"

    def test_deactivate_blanks_and_retains(self, ledger, clock):
        ledger.verification.register_sensor(ADMIN, 11, "Dock 1", "rfid")
        clock.advance(10)
        info = ledger.verification.deactivate_sensor(ADMIN, 11)
        assert info.authorized is False
        assert info.location == ""
        assert info.sensor_type == ""
        assert info.last_active == clock.current_epoch()
        assert ledger.verification.get_sensor(11) == info

    def test_deactivate_unknown(self, ledger):
        with pytest.raises(SensorNotFoundError):
            ledger.verification.deactivate_sensor(ADMIN, 99)

    def test_deactivated_sensor_cannot_be_reregistered(self, ledger):
        ledger.verification.register_sensor(ADMIN, 11, "Dock 1", "rfid")
        ledger.verification.deactivate_sensor(ADMIN, 11)
        with pytest.raises(SensorAlreadyExistsError):
            ledger.verification.register_sensor(ADMIN, 11, "Dock 1", "rfid")


class TestRegisterInventory:
    def test_registration_snapshot(self, ledger, sensors, clock):
        inventory_id = ledger.verification.register_inventory(OWNER, "Warehouse 7", sensors)
        info = ledger.verification.get_inventory(inventory_id)
        assert info.owner == OWNER
        assert info.verification_status == VerificationStatus.PENDING
        assert info.last_verified == 0
        assert info.total_value == 0
        assert info.item_count == 0
        assert info.sensor_ids == (1, 2, 3)
        assert info.created_at == clock.current_epoch()
        assert not info.is_verified

    def test_ids_start_at_one_and_increase(self, ledger, sensors):
        first = ledger.verification.register_inventory(OWNER, "A", sensors)
        second = ledger.verification.register_inventory(STRANGER, "B", sensors)
        assert first == 1
        assert second == 2

    def test_unauthorized_sensors_dropped(self, ledger):
        ledger.verification.register_sensor(ADMIN, 1, "Dock", "rfid")
        ledger.verification.register_sensor(ADMIN, 2, "Dock", "rfid")
        ledger.verification.register_sensor(ADMIN, 3, "Dock", "rfid")
        ledger.verification.deactivate_sensor(ADMIN, 3)

        inventory_id = ledger.verification.register_inventory(OWNER, "W", [1, 3, 2, 404])
        assert ledger.verification.get_inventory(inventory_id).sensor_ids == (1, 2)

    def test_no_authorized_sensor(self, ledger, sensors):
        ledger.verification.deactivate_sensor(ADMIN, 1)
        with pytest.raises(InvalidSensorError):
            ledger.verification.register_inventory(OWNER, "W", [1, 404])
        assert ledger.sequences.current_value("inventory") == 0

    def test_empty_sensor_list(self, ledger):
        with pytest.raises(InvalidSensorError):
            ledger.verification.register_inventory(OWNER, "W", [])

    def test_more_than_ten_sensors_rejected(self, ledger):
        for sensor_id in range(1, 12):
            ledger.verification.register_sensor(ADMIN, sensor_id, "Dock", "rfid")
        with pytest.raises(CapacityExceededError):
            ledger.verification.register_inventory(OWNER, "W", list(range(1, 12)))

    def test_ten_sensors_accepted(self, ledger):
        for sensor_id in range(1, 11):
            ledger.verification.register_sensor(ADMIN, sensor_id, "Dock", "rfid")
        inventory_id = ledger.verification.register_inventory(OWNER, "W", list(range(1, 11)))
        assert len(ledger.verification.get_inventory(inventory_id).sensor_ids) == 10

    def test_duplicate_ids_count_once(self, ledger, sensors):
        inventory_id = ledger.verification.register_inventory(OWNER, "W", [1, 1, 2, 2])
        assert ledger.verification.get_inventory(inventory_id).sensor_ids == (1, 2)

    def test_logs_registration(self, ledger, sensors, captured_logs):
        inventory_id = ledger.verification.register_inventory(OWNER, "W", sensors)
        logs = captured_logs()
        entry = next(r for r in logs if r["message"] == "inventory_registered")
        assert entry["inventory_id"] == inventory_id
        assert entry["caller"] == OWNER


class TestItems:
    def test_add_item_increments_count_not_value(self, ledger, inventory_id, clock):
        item = _add_item(ledger, OWNER, inventory_id)
        assert item.verified_at == clock.current_epoch()
        assert item.authenticity_hash == DIGEST
        info = ledger.verification.get_inventory(inventory_id)
        assert info.item_count == 1
        assert info.total_value == 0

    def test_overwrite_still_increments(self, ledger, inventory_id):
        _add_item(ledger, OWNER, inventory_id, item_id=1, quantity=5)
        _add_item(ledger, OWNER, inventory_id, item_id=1, quantity=8)
        assert ledger.verification.get_item(inventory_id, 1).quantity == 8
        assert ledger.verification.get_inventory(inventory_id).item_count == 2

    def test_unknown_inventory(self, ledger):
        with pytest.raises(InventoryNotFoundError):
            _add_item(ledger, ADMIN, 999)

    def test_stranger_rejected(self, ledger, inventory_id):
        with pytest.raises(UnauthorizedError):
            _add_item(ledger, STRANGER, inventory_id)
        assert ledger.verification.get_item(inventory_id, 1) is None

    def test_negative_quantity_rejected(self, ledger, inventory_id):
        with pytest.raises(InvalidDataError):
            _add_item(ledger, OWNER, inventory_id, quantity=-1)
        assert ledger.verification.get_inventory(inventory_id).item_count == 0

    def test_malformed_hash_rejected(self, ledger, inventory_id):
        with pytest.raises(InvalidDataError):
            ledger.verification.add_item(
                OWNER, inventory_id, 1, "n", "c", 1, 1, "s", b"short", "new"
            )

    def test_reporter_can_add_items(self, ledger, inventory_id, clock):
        ledger.access.grant_reporter(ADMIN, REPORTER, [inventory_id])
        clock.advance(3)
        _add_item(ledger, REPORTER, inventory_id)
        assert ledger.access.get_reporter_grant(REPORTER).last_report == clock.current_epoch()

    def test_update_quantity_by_owner(self, ledger, inventory_id, clock):
        _add_item(ledger, OWNER, inventory_id, quantity=5)
        clock.advance(2)
        item = ledger.verification.update_item_quantity(OWNER, inventory_id, 1, 0)
        assert item.quantity == 0
        assert item.verified_at == clock.current_epoch()

    def test_update_quantity_rejects_admin_and_reporter(self, ledger, inventory_id):
        _add_item(ledger, OWNER, inventory_id)
        ledger.access.grant_reporter(ADMIN, REPORTER, [inventory_id])
        with pytest.raises(UnauthorizedError):
            ledger.verification.update_item_quantity(ADMIN, inventory_id, 1, 3)
        with pytest.raises(UnauthorizedError):
            ledger.verification.update_item_quantity(REPORTER, inventory_id, 1, 3)
        assert ledger.verification.get_item(inventory_id, 1).quantity == 5

    def test_update_missing_item(self, ledger, inventory_id):
        with pytest.raises(ItemNotFoundError):
            ledger.verification.update_item_quantity(OWNER, inventory_id, 42, 3)

    def test_update_negative_quantity(self, ledger, inventory_id):
        _add_item(ledger, OWNER, inventory_id)
        with pytest.raises(InvalidDataError):
            ledger.verification.update_item_quantity(OWNER, inventory_id, 1, -3)


class TestVerification:
    def test_verification_overwrites_snapshot(self, ledger, inventory_id, clock):
        _add_item(ledger, OWNER, inventory_id)
        clock.advance(5)
        record = _verify(ledger, OWNER, inventory_id, total_value=25000, item_count=40)

        assert record.verifier == OWNER
        assert record.timestamp == clock.current_epoch()
        info = ledger.verification.get_inventory(inventory_id)
        assert info.total_value == 25000
        assert info.item_count == 40
        assert info.verification_status == VerificationStatus.VERIFIED
        assert info.last_verified == clock.current_epoch()
        assert ledger.verification.get_verification(inventory_id, 1) == record

    def test_duplicate_verification_id(self, ledger, inventory_id, clock):
        _verify(ledger, OWNER, inventory_id, total_value=100)
        clock.advance(1)
        with pytest.raises(VerificationAlreadyExistsError):
            _verify(ledger, OWNER, inventory_id, total_value=999)
        assert ledger.verification.get_inventory(inventory_id).total_value == 100

    def test_verification_ids_are_per_inventory(self, ledger, sensors):
        first = ledger.verification.register_inventory(OWNER, "A", sensors)
        second = ledger.verification.register_inventory(OWNER, "B", sensors)
        _verify(ledger, OWNER, first, verification_id=1)
        _verify(ledger, OWNER, second, verification_id=1)
        assert ledger.verification.get_verification(second, 1) is not None

    def test_oversize_sensor_data(self, ledger, inventory_id):
        with pytest.raises(InvalidDataError):
            ledger.verification.verify_inventory(
                OWNER, inventory_id, 1, 10, 1, DIGEST, "x" * 501
            )
        assert ledger.verification.get_verification(inventory_id, 1) is None

    def test_sensor_data_at_limit(self, ledger, inventory_id):
        record = ledger.verification.verify_inventory(
            OWNER, inventory_id, 1, 10, 1, DIGEST, "x" * 500
        )
        assert len(record.sensor_data) == 500

    def test_negative_total_value(self, ledger, inventory_id):
        with pytest.raises(InvalidDataError):
            _verify(ledger, OWNER, inventory_id, total_value=-1)

    def test_reporter_outside_grant_rejected(self, ledger, sensors, inventory_id):
        other = ledger.verification.register_inventory(OWNER, "B", sensors)
        ledger.access.grant_reporter(ADMIN, REPORTER, [other])
        with pytest.raises(UnauthorizedError):
            _verify(ledger, REPORTER, inventory_id)
        _verify(ledger, REPORTER, other)

    def test_administrator_can_verify(self, ledger, inventory_id):
        record = _verify(ledger, ADMIN, inventory_id)
        assert record.verifier == ADMIN


class TestValidity:
    def test_never_verified_is_invalid(self, ledger, inventory_id):
        assert ledger.verification.is_verification_valid(inventory_id) is False
        assert ledger.verification.get_inventory_value(inventory_id) is None

    def test_unknown_inventory_is_invalid(self, ledger):
        assert ledger.verification.is_verification_valid(12345) is False
        assert ledger.verification.get_inventory_value(12345) is None

    def test_zero_value_is_a_verified_value(self, ledger, inventory_id):
        _verify(ledger, OWNER, inventory_id, total_value=0, item_count=0)
        assert ledger.verification.is_verification_valid(inventory_id) is True
        value = ledger.verification.get_inventory_value(inventory_id)
        assert value is not None
        assert value == 0

    def test_validity_lapses_without_writes(self, ledger, inventory_id, clock):
        _verify(ledger, OWNER, inventory_id, total_value=5000)
        period = ledger.verification.get_validity_period()
        assert period == 1008

        clock.advance(period)
        assert ledger.verification.is_verification_valid(inventory_id) is True
        assert ledger.verification.get_inventory_value(inventory_id) == 5000

        clock.advance(1)
        assert ledger.verification.is_verification_valid(inventory_id) is False
        assert ledger.verification.get_inventory_value(inventory_id) is None

    def test_set_validity_period(self, ledger, inventory_id, clock):
        _verify(ledger, OWNER, inventory_id)
        clock.advance(200)
        assert ledger.verification.set_validity_period(ADMIN, 100) == 1008
        assert ledger.verification.get_validity_period() == 100
        assert ledger.verification.is_verification_valid(inventory_id) is False

    def test_set_validity_period_requires_admin(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.verification.set_validity_period(OWNER, 100)
        assert ledger.verification.get_validity_period() == 1008

    @pytest.mark.parametrize("period", [0, -5])
    def test_non_positive_period(self, ledger, period):
        with pytest.raises(InvalidPeriodError):
            ledger.verification.set_validity_period(ADMIN, period)
        assert ledger.verification.get_validity_period() == 1008

    def test_reading_period_does_not_write(self, ledger, session):
        from collateral_kernel.models.parameter import LedgerParameter

        ledger.verification.get_validity_period()
        assert session.query(LedgerParameter).count() == 0


class TestStoredIntegerLimits:
    def test_largest_total_value_accepted(self, ledger, inventory_id):
        _verify(ledger, OWNER, inventory_id, total_value=MAX_STORED_INT)
        assert ledger.verification.get_inventory_value(inventory_id) == MAX_STORED_INT

    @pytest.mark.parametrize("total_value", [MAX_STORED_INT + 1, 2**64])
    def test_oversized_total_value_rejected(self, ledger, inventory_id, total_value):
        with pytest.raises(InvalidDataError) as exc_info:
            _verify(ledger, OWNER, inventory_id, total_value=total_value)
        assert exc_info.value.field == "total_value"
        assert ledger.verification.get_verification(inventory_id, 1) is None
        assert ledger.verification.get_inventory(inventory_id).total_value == 0

    def test_oversized_item_fields_rejected(self, ledger, inventory_id):
        with pytest.raises(InvalidDataError):
            _add_item(ledger, OWNER, inventory_id, unit_value=2**64)
        with pytest.raises(InvalidDataError):
            _add_item(ledger, OWNER, inventory_id, item_id=2**63)
        assert ledger.verification.get_inventory(inventory_id).item_count == 0

    def test_oversized_inventory_id_rejected(self, ledger):
        with pytest.raises(InvalidDataError):
            _verify(ledger, OWNER, 2**64)

    def test_item_count_at_ceiling_blocks_add_item(self, ledger, inventory_id):
        _verify(ledger, OWNER, inventory_id, item_count=MAX_STORED_INT)
        with pytest.raises(InvalidDataError) as exc_info:
            _add_item(ledger, OWNER, inventory_id)
        assert exc_info.value.field == "item_count"
        assert ledger.verification.get_item(inventory_id, 1) is None
        assert ledger.verification.get_inventory(inventory_id).item_count == MAX_STORED_INT

    def test_oversized_quantity_update_rejected(self, ledger, inventory_id):
        _add_item(ledger, OWNER, inventory_id, quantity=5)
        with pytest.raises(InvalidDataError):
            ledger.verification.update_item_quantity(OWNER, inventory_id, 1, 2**63)
        assert ledger.verification.get_item(inventory_id, 1).quantity == 5

    def test_oversized_validity_period_rejected(self, ledger):
        with pytest.raises(InvalidPeriodError) as exc_info:
            ledger.verification.set_validity_period(ADMIN, 2**64)
        assert exc_info.value.maximum == MAX_STORED_INT
        assert ledger.verification.get_validity_period() == 1008


class TestCallerIdentity:
    def test_overlong_owner_rejected(self, ledger, sensors):
        with pytest.raises(InvalidDataError) as exc_info:
            ledger.verification.register_inventory("o" * 129, "Warehouse 7", sensors)
        assert exc_info.value.field == "caller"
        assert ledger.verification.get_inventory(1) is None

    def test_owner_at_length_limit(self, ledger, sensors):
        owner = "o" * 128
        inventory_id = ledger.verification.register_inventory(owner, "Warehouse 7", sensors)
        assert ledger.verification.get_inventory(inventory_id).owner == owner
