"""Failure kinds raised by the order services.

Routers translate these into HTTP responses; services never return error dicts.
"""


class OrderServiceError(Exception):
    pass


class CustomerNotFound(OrderServiceError):
    pass


class CustomerExists(OrderServiceError):
    pass


class InvalidLineItem(OrderServiceError):
    """Empty item list, or an item with quantity < 1 or a negative price."""


class InvalidPaymentMethod(OrderServiceError):
    pass


class OrderNotFound(OrderServiceError):
    pass


class InvalidStatus(OrderServiceError):
    """Status value outside the order status vocabulary."""


class InvalidTransition(OrderServiceError):
    """Attempted move out of a terminal status."""


class InvalidPagination(OrderServiceError):
    pass


class StorageUnavailable(OrderServiceError):
    pass


class PersistenceFailed(OrderServiceError):
    """Write rejected after validation passed; any allocated order number is consumed."""
