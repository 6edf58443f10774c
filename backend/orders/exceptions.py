"""
Custom exceptions for the order lifecycle engine.

Every error carries a stable ``error_code`` and a ``details`` dict so the API
layer can render it without inspecting the message.
"""


class OrderEngineError(Exception):
    """Base exception for order lifecycle errors."""

    error_code = "ORDER_ERROR"

    def __init__(self, message=None, details=None):
        self.message = message or self.__class__.__doc__.strip()
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(OrderEngineError):
    """Request payload failed validation."""

    error_code = "VALIDATION_ERROR"


class NotFound(OrderEngineError):
    """A referenced order, item or product does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, entity, identifier, message=None):
        self.entity = entity
        self.identifier = identifier
        if message is None:
            message = f"{entity} '{identifier}' not found"
        super().__init__(message, {"entity": entity, "id": str(identifier)})


class InvalidTransition(OrderEngineError):
    """Raised when an operation is not allowed from the order's current status."""

    error_code = "INVALID_TRANSITION"

    def __init__(self, source, target, message=None):
        self.source = source
        self.target = target
        if message is None:
            message = f"Cannot transition order from {source} to {target}"
        super().__init__(message, {"from": str(source), "to": str(target)})


class StaleState(OrderEngineError):
    """Raised when the order changed between read and guarded write."""

    error_code = "STALE_STATE"

    def __init__(self, order_id, expected, actual, message=None):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        if message is None:
            message = (
                f"Order {order_id} was modified concurrently "
                f"(expected {expected}, found {actual})"
            )
        super().__init__(
            message,
            {"order_id": str(order_id), "expected": str(expected), "actual": str(actual)},
        )


class RefundExceedsItemValue(OrderEngineError):
    """Refund amount is larger than the value being refunded."""

    error_code = "REFUND_EXCEEDS_ITEM_VALUE"

    def __init__(self, requested, maximum, order_item_id=None, message=None):
        self.requested = requested
        self.maximum = maximum
        self.order_item_id = order_item_id
        if message is None:
            target = f" for item {order_item_id}" if order_item_id else ""
            message = f"Refund {requested} exceeds the maximum {maximum}{target}"
        details = {"requested": str(requested), "maximum": str(maximum)}
        if order_item_id:
            details["order_item_id"] = str(order_item_id)
        super().__init__(message, details)


class QuantityExceedsAvailable(OrderEngineError):
    """Requested return quantity exceeds what is still returnable."""

    error_code = "QUANTITY_EXCEEDS_AVAILABLE"

    def __init__(self, order_item_id, requested, available, message=None):
        self.order_item_id = order_item_id
        self.requested = requested
        self.available = available
        if message is None:
            message = (
                f"Cannot return {requested} of item {order_item_id}; "
                f"only {available} remaining"
            )
        super().__init__(
            message,
            {
                "order_item_id": str(order_item_id),
                "requested": requested,
                "available": available,
            },
        )


class PartitionMismatch(OrderEngineError):
    """Split item ids do not partition the source order's items exactly."""

    error_code = "PARTITION_MISMATCH"

    def __init__(self, missing=(), duplicated=(), foreign=(), message=None):
        self.missing = sorted(str(i) for i in missing)
        self.duplicated = sorted(str(i) for i in duplicated)
        self.foreign = sorted(str(i) for i in foreign)
        if message is None:
            problems = []
            if self.missing:
                problems.append(f"missing {', '.join(self.missing)}")
            if self.duplicated:
                problems.append(f"duplicated {', '.join(self.duplicated)}")
            if self.foreign:
                problems.append(f"not on order {', '.join(self.foreign)}")
            message = "Split does not partition the order items: " + "; ".join(problems)
        super().__init__(
            message,
            {"missing": self.missing, "duplicated": self.duplicated, "foreign": self.foreign},
        )


class IncompatibleMerge(OrderEngineError):
    """Orders cannot be merged in their current state."""

    error_code = "INCOMPATIBLE_MERGE"

    def __init__(self, order_id, status, message=None):
        self.order_id = order_id
        self.status = status
        if message is None:
            message = f"Order {order_id} with status {status} cannot be merged"
        super().__init__(message, {"order_id": str(order_id), "status": str(status)})
