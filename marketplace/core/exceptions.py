class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    status_code = 500
    kind = "InternalError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind


class NotFoundError(BaseServiceError):
    """Raised when an entity is absent."""
    status_code = 404
    kind = "NotFound"

class ProductNotFoundError(NotFoundError):
    """Raised when product is not found."""
    pass

class OrderNotFoundError(NotFoundError):
    """Raised when order is not found."""
    pass

class AgentNotFoundError(NotFoundError):
    """Raised when a delivery agent is not found."""
    pass

class ForbiddenError(BaseServiceError):
    """Raised when the caller is not authorized for this action or order."""
    status_code = 403
    kind = "Forbidden"

class InvalidTransitionError(BaseServiceError):
    """Raised when an order status change is not permitted."""
    status_code = 409
    kind = "InvalidTransition"

    def __init__(self, message: str = "", current_status=None, target_status=None):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status

class InsufficientStockError(BaseServiceError):
    """Raised when a stock reservation fails."""
    status_code = 409
    kind = "InsufficientStock"

    def __init__(self, message: str = "", product_id=None, requested=None, available=None):
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available

class AlreadyClaimedError(BaseServiceError):
    """Raised when another agent has already claimed the order."""
    status_code = 409
    kind = "AlreadyClaimed"

class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    status_code = 400
    kind = "InvalidInput"

class InvalidInputError(ValidationError):
    """Raised when request data is malformed."""
    pass

class InvalidQuantityError(ValidationError):
    """Raised when a quantity is out of range."""
    kind = "InvalidQuantity"
