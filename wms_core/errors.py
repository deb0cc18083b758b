"""WMS core error taxonomy.

Every domain error belongs to one of three families so that a binding
(REST, RPC, MCP) can map it without knowing the concrete class:

- ``NotFound``: the referenced entity does not exist
- ``Conflict``: duplicate identifier, illegal transition, threshold violation
- ``PreconditionFailed``: the operation is valid but the current state forbids it
"""

from __future__ import annotations


class WmsError(Exception):
    """Base class of all WMS core errors."""

    code = "WmsError"
    family = "Error"

    def to_dict(self) -> dict:
        return {"error": self.code, "family": self.family, "message": str(self)}


class NotFoundError(WmsError):
    code = "NotFound"
    family = "NotFound"


class ConflictError(WmsError):
    code = "Conflict"
    family = "Conflict"


class PreconditionFailedError(WmsError):
    code = "PreconditionFailed"
    family = "PreconditionFailed"


# --- NotFound ---

class LocationNotFound(NotFoundError):
    code = "LocationNotFound"


class ArticleNotFound(NotFoundError):
    code = "ArticleNotFound"


class OrderNotFound(NotFoundError):
    code = "OrderNotFound"


class RequestNotFound(NotFoundError):
    code = "RequestNotFound"


class TenantNotFound(NotFoundError):
    code = "TenantNotFound"


# --- Conflict ---

class DuplicateLocationId(ConflictError):
    code = "DuplicateLocationId"


class DuplicateCoordinate(ConflictError):
    code = "DuplicateCoordinate"


class DuplicateArticleId(ConflictError):
    code = "DuplicateArticleId"


class DuplicateOrderId(ConflictError):
    code = "DuplicateOrderId"


class DuplicateRequestId(ConflictError):
    code = "DuplicateRequestId"


class InvalidThresholds(ConflictError):
    code = "InvalidThresholds"


class InvalidTransition(ConflictError):
    code = "InvalidTransition"


# --- PreconditionFailed ---

class NegativeStock(PreconditionFailedError):
    code = "NegativeStock"


class DestinationBlocked(PreconditionFailedError):
    code = "DestinationBlocked"


class InvalidRoute(PreconditionFailedError):
    """Source and destination of a transport order are the same location."""

    code = "InvalidRoute"


class InvalidPriority(PreconditionFailedError):
    code = "InvalidPriority"


class InvalidQuantity(PreconditionFailedError):
    code = "InvalidQuantity"


class ArticleTypeMismatch(PreconditionFailedError):
    code = "ArticleTypeMismatch"


# --- Other ---

class InvalidFilter(WmsError, ValueError):
    code = "InvalidFilter"
    family = "Conflict"


class LockTimeout(WmsError):
    """A resource lock could not be acquired within the configured timeout."""

    code = "LockTimeout"
    family = "Conflict"
