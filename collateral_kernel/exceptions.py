"""
Typed Exception Hierarchy for the Collateral Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A financing decision made on top of this ledger must be able to tell
"not allowed" from "does not exist" from "bad input" without parsing
message strings.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured ATTRIBUTES (inventory_id, caller, bounds, ...)

Example:
    try:
        ledger.verify_inventory(caller, inventory_id, ...)
    except UnauthorizedError as e:
        api_response(code=e.code, caller=e.caller, action=e.action)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CollateralKernelError:

    CollateralKernelError (base)
    |
    +-- UnauthorizedError
    |
    +-- InvalidDataError
    |   +-- CapacityExceededError
    |
    +-- NotFoundError
    |   +-- SensorNotFoundError
    |   +-- InventoryNotFoundError
    |   +-- ItemNotFoundError
    |   +-- ReporterNotFoundError
    |   +-- InventoryNotTrackedError
    |
    +-- AlreadyExistsError
    |   +-- SensorAlreadyExistsError
    |   +-- VerificationAlreadyExistsError
    |   +-- TrackingAlreadyInitializedError
    |   +-- AnalysisAlreadyRecordedError
    |
    +-- InvalidSensorError
    |
    +-- InvalidPeriodError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                            | When Raised
----------------|---------------------------------|---------------------------------------
Access          | UNAUTHORIZED                    | Caller may not perform the action
----------------|---------------------------------|---------------------------------------
Data            | INVALID_DATA                    | Numeric/format constraint violated
                | CAPACITY_EXCEEDED               | Sensor or permission list too long
----------------|---------------------------------|---------------------------------------
Not found       | SENSOR_NOT_FOUND                | Sensor id unknown
                | INVENTORY_NOT_FOUND             | Inventory id unknown
                | ITEM_NOT_FOUND                  | (inventory, item) unknown
                | REPORTER_NOT_FOUND              | No grant for reporter
                | INVENTORY_NOT_TRACKED           | Analytics not initialized
----------------|---------------------------------|---------------------------------------
Already exists  | SENSOR_ALREADY_EXISTS           | Sensor id taken
                | VERIFICATION_ALREADY_EXISTS     | (inventory, verification) taken
                | TRACKING_ALREADY_INITIALIZED    | Metrics already seeded
                | ANALYSIS_ALREADY_RECORDED       | Velocity snapshot exists at epoch
----------------|---------------------------------|---------------------------------------
Sensor          | INVALID_SENSOR                  | No authorized sensor after filtering
----------------|---------------------------------|---------------------------------------
Period          | INVALID_PERIOD                  | Window/period outside bounds
----------------|---------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION          | Update/delete of append-only record

===============================================================================
"""


class CollateralKernelError(Exception):
    """
    Base exception for all collateral kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "COLLATERAL_KERNEL_ERROR"


# Access control


class UnauthorizedError(CollateralKernelError):
    """Caller is not permitted to perform the action."""

    code: str = "UNAUTHORIZED"

    def __init__(self, caller: str, action: str, inventory_id: int | None = None):
        self.caller = caller
        self.action = action
        self.inventory_id = inventory_id
        target = f" on inventory {inventory_id}" if inventory_id is not None else ""
        super().__init__(f"Caller {caller!r} is not authorized to {action}{target}")


# Data validation


class InvalidDataError(CollateralKernelError):
    """A caller-supplied value violates a positivity, range or format rule."""

    code: str = "INVALID_DATA"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class CapacityExceededError(InvalidDataError):
    """A bounded set would exceed its fixed capacity."""

    code: str = "CAPACITY_EXCEEDED"

    def __init__(self, field: str, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(field, size, f"exceeds capacity of {capacity}")


# Missing records


class NotFoundError(CollateralKernelError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class SensorNotFoundError(NotFoundError):
    """Sensor with given id is not registered."""

    code: str = "SENSOR_NOT_FOUND"

    def __init__(self, sensor_id: int):
        self.sensor_id = sensor_id
        super().__init__(f"Sensor not found: {sensor_id}")


class InventoryNotFoundError(NotFoundError):
    """Inventory with given id is not registered."""

    code: str = "INVENTORY_NOT_FOUND"

    def __init__(self, inventory_id: int):
        self.inventory_id = inventory_id
        super().__init__(f"Inventory not found: {inventory_id}")


class ItemNotFoundError(NotFoundError):
    """Item is not present in the inventory."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, inventory_id: int, item_id: int):
        self.inventory_id = inventory_id
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found in inventory {inventory_id}")


class ReporterNotFoundError(NotFoundError):
    """No reporter grant exists for the identity."""

    code: str = "REPORTER_NOT_FOUND"

    def __init__(self, reporter: str):
        self.reporter = reporter
        super().__init__(f"Reporter grant not found: {reporter}")


class InventoryNotTrackedError(NotFoundError):
    """Sales analytics have not been initialized for the inventory."""

    code: str = "INVENTORY_NOT_TRACKED"

    def __init__(self, inventory_id: int):
        self.inventory_id = inventory_id
        super().__init__(f"Inventory {inventory_id} is not tracked for analytics")


# Duplicate keys


class AlreadyExistsError(CollateralKernelError):
    """Base exception for attempts to create an entity whose key is taken."""

    code: str = "ALREADY_EXISTS"


class SensorAlreadyExistsError(AlreadyExistsError):
    """Sensor id is already registered."""

    code: str = "SENSOR_ALREADY_EXISTS"

    def __init__(self, sensor_id: int):
        self.sensor_id = sensor_id
        super().__init__(f"Sensor already registered: {sensor_id}")


class VerificationAlreadyExistsError(AlreadyExistsError):
    """Verification id already recorded for the inventory."""

    code: str = "VERIFICATION_ALREADY_EXISTS"

    def __init__(self, inventory_id: int, verification_id: int):
        self.inventory_id = inventory_id
        self.verification_id = verification_id
        super().__init__(
            f"Verification {verification_id} already recorded for inventory {inventory_id}"
        )


class TrackingAlreadyInitializedError(AlreadyExistsError):
    """Inventory metrics already exist."""

    code: str = "TRACKING_ALREADY_INITIALIZED"

    def __init__(self, inventory_id: int):
        self.inventory_id = inventory_id
        super().__init__(f"Tracking already initialized for inventory {inventory_id}")


class AnalysisAlreadyRecordedError(AlreadyExistsError):
    """A velocity snapshot already exists for the inventory at this epoch."""

    code: str = "ANALYSIS_ALREADY_RECORDED"

    def __init__(self, inventory_id: int, analysis_epoch: int):
        self.inventory_id = inventory_id
        self.analysis_epoch = analysis_epoch
        super().__init__(
            f"Velocity already analyzed for inventory {inventory_id} at epoch {analysis_epoch}"
        )


# Sensors and periods


class InvalidSensorError(CollateralKernelError):
    """No currently-authorized sensor remains after filtering."""

    code: str = "INVALID_SENSOR"

    def __init__(self, requested: list[int]):
        self.requested = requested
        super().__init__(f"No authorized sensors among {requested}")


class InvalidPeriodError(CollateralKernelError):
    """An administrator-supplied window lies outside the configured bounds."""

    code: str = "INVALID_PERIOD"

    def __init__(
        self,
        parameter: str,
        value: int,
        minimum: int | None = None,
        maximum: int | None = None,
    ):
        self.parameter = parameter
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Invalid {parameter} {value}: allowed range is [{minimum}, {maximum}]"
        )


# Append-only enforcement


class ImmutabilityError(CollateralKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Raised by the ORM listeners in db/immutability.py.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
