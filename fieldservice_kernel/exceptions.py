"""
Typed Exception Hierarchy for the Field Service Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from FieldServiceError:

    FieldServiceError (base)
    |
    +-- QuoteError
    |   +-- QuoteNotFoundError
    |   +-- QuoteAlreadyTerminalError
    |   |   +-- QuoteAlreadyApprovedError
    |   |   +-- QuoteAlreadyDeletedError
    |   +-- InvalidQuoteTransitionError
    |   +-- ValidationFailedError
    |
    +-- WorkOrderError
    |   +-- DuplicateWorkOrderError
    |
    +-- StockError
    |   +-- InventoryItemNotFoundError
    |   +-- InsufficientStockError
    |   +-- InvalidQuantityError
    |
    +-- ProvisioningError
    |   +-- NoEligibleEquipmentError
    |   +-- NoEquipmentCreatedError
    |   +-- SerialNumberConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                     | When Raised
--------------|--------------------------|-------------------------------------
Quote         | QUOTE_NOT_FOUND          | Quote ID doesn't exist
              | QUOTE_ALREADY_TERMINAL   | Quote is rejected/approved/deleted
              | QUOTE_ALREADY_APPROVED   | Approving or rejecting an approved quote
              | QUOTE_ALREADY_DELETED    | Approving a deleted quote
              | INVALID_QUOTE_TRANSITION | Transition not in the lifecycle table
              | VALIDATION_FAILED        | Eligibility rule rejected the quote
--------------|--------------------------|-------------------------------------
Work order    | DUPLICATE_WORK_ORDER     | A work order already references quote
--------------|--------------------------|-------------------------------------
Stock         | INVENTORY_ITEM_NOT_FOUND | Inventory item ID doesn't exist
              | INSUFFICIENT_STOCK       | Requested more than is on hand
              | INVALID_QUANTITY         | Zero or negative quantity
--------------|--------------------------|-------------------------------------
Provisioning  | NO_ELIGIBLE_EQUIPMENT    | No client unit to service
              | NO_EQUIPMENT_CREATED     | Installation provisioned zero units
--------------|--------------------------|-------------------------------------
Immutability  | IMMUTABILITY_VIOLATION   | Modifying a terminal quote or a line

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        workflow.approve_quote(quote_id, user_id)
    except InsufficientStockError as e:
        return {"error": e.code, "item": e.item_id,
                "available": e.available, "requested": e.requested}
    except QuoteAlreadyTerminalError as e:
        return {"error": e.code, "state": e.state}

Nothing in the kernel retries; retry is a caller decision.
"""


class FieldServiceError(Exception):
    """
    Base exception for all field service kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FIELD_SERVICE_ERROR"


# Quote-related exceptions


class QuoteError(FieldServiceError):
    """Base exception for quote lifecycle errors."""

    code: str = "QUOTE_ERROR"


class QuoteNotFoundError(QuoteError):
    """Quote with given ID was not found."""

    code: str = "QUOTE_NOT_FOUND"

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Quote not found: {quote_id}")


class QuoteAlreadyTerminalError(QuoteError):
    """Quote is already in a terminal state and cannot change."""

    code: str = "QUOTE_ALREADY_TERMINAL"

    def __init__(self, quote_id: str, state: str):
        self.quote_id = quote_id
        self.state = state
        super().__init__(f"Quote {quote_id} is already {state}")


class QuoteAlreadyApprovedError(QuoteAlreadyTerminalError):
    """Quote was approved earlier."""

    code: str = "QUOTE_ALREADY_APPROVED"

    def __init__(self, quote_id: str):
        super().__init__(quote_id, "approved")


class QuoteAlreadyDeletedError(QuoteAlreadyTerminalError):
    """Quote was deleted and cannot be approved."""

    code: str = "QUOTE_ALREADY_DELETED"

    def __init__(self, quote_id: str):
        super().__init__(quote_id, "deleted")


class InvalidQuoteTransitionError(QuoteError):
    """Requested state change is not in the quote lifecycle table."""

    code: str = "INVALID_QUOTE_TRANSITION"

    def __init__(self, quote_id: str, from_state: str, to_state: str):
        self.quote_id = quote_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Quote {quote_id}: transition {from_state} -> {to_state} not allowed"
        )


class ValidationFailedError(QuoteError):
    """Quote failed its type-specific eligibility rule."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, quote_id: str, reason: str):
        self.quote_id = quote_id
        self.reason = reason
        super().__init__(f"Quote {quote_id} cannot be approved: {reason}")


# Work order exceptions


class WorkOrderError(FieldServiceError):
    """Base exception for work order errors."""

    code: str = "WORK_ORDER_ERROR"


class DuplicateWorkOrderError(WorkOrderError):
    """
    A work order already references this quote.

    Raised by the pre-check and by the UNIQUE(quote_id) constraint when a
    concurrent approval committed first.
    """

    code: str = "DUPLICATE_WORK_ORDER"

    def __init__(self, quote_id: str, work_order_id: str | None = None):
        self.quote_id = quote_id
        self.work_order_id = work_order_id
        if work_order_id:
            message = f"Quote {quote_id} already has work order {work_order_id}"
        else:
            message = f"Quote {quote_id} already has a work order"
        super().__init__(message)


# Stock exceptions


class StockError(FieldServiceError):
    """Base exception for stock ledger errors."""

    code: str = "STOCK_ERROR"


class InventoryItemNotFoundError(StockError):
    """Inventory item with given ID was not found."""

    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


class InsufficientStockError(StockError):
    """Requested quantity exceeds the stock on hand."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        available: int,
        requested: int,
        item_label: str | None = None,
    ):
        self.item_id = item_id
        self.available = available
        self.requested = requested
        self.item_label = item_label
        super().__init__(
            f"Insufficient stock for {item_label or item_id}. "
            f"Available: {available}, Requested: {requested}"
        )


class InvalidQuantityError(StockError):
    """Stock movements must use a positive quantity."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Quantity must be a positive integer, got {quantity}")


# Provisioning exceptions


class ProvisioningError(FieldServiceError):
    """Base exception for equipment provisioning errors."""

    code: str = "PROVISIONING_ERROR"


class NoEligibleEquipmentError(ProvisioningError):
    """Client owns no equipment that can be serviced."""

    code: str = "NO_ELIGIBLE_EQUIPMENT"

    def __init__(self, client_id: str, mode: str):
        self.client_id = client_id
        self.mode = mode
        super().__init__(f"No equipment eligible for {mode} for client {client_id}")


class NoEquipmentCreatedError(ProvisioningError):
    """Installation approval produced zero equipment units."""

    code: str = "NO_EQUIPMENT_CREATED"

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(f"Installation quote {quote_id} provisioned no equipment")


class SerialNumberConflictError(ProvisioningError):
    """A generated serial number is already taken by another unit."""

    code: str = "SERIAL_NUMBER_CONFLICT"

    def __init__(self, quote_id: str):
        self.quote_id = quote_id
        super().__init__(
            f"Equipment serial number collision while provisioning quote {quote_id}"
        )


# Immutability exceptions


class ImmutabilityError(FieldServiceError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
