from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Stock not available').
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "business_error"

    def __init__(self, message, code=None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class EntityNotFound(BusinessLogicException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class MissingWarehouseError(BusinessLogicException):
    """
    No warehouse id given and no warehouse flagged as default.
    """
    default_code = "missing_warehouse"

    def __init__(self, message=None, code=None):
        super().__init__(
            message or "No warehouse found. Please create a default warehouse or specify a warehouse.",
            code,
        )


class UnprocessableError(BusinessLogicException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "unprocessable"


class InsufficientStockError(UnprocessableError):
    default_code = "insufficient_stock"

    def __init__(self, variant_id, available, required, message=None):
        self.variant_id = variant_id
        self.available = available
        self.required = required
        super().__init__(
            message or (
                f"Insufficient stock for variant ID {variant_id}. "
                f"Available: {available}, Required: {required}"
            )
        )


class InsufficientReservedError(UnprocessableError):
    default_code = "insufficient_reserved"


class ConflictError(BusinessLogicException):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class InvalidTransitionError(ConflictError):
    """
    A workflow entity is not in the status the requested action needs.
    """
    default_code = "invalid_transition"

    def __init__(self, action, current, required):
        self.action = action
        self.current = current
        self.required = required
        super().__init__(
            f"Cannot {action}: status is '{current}', expected '{required}'."
        )


class ImmutableRecordError(BusinessLogicException):
    default_code = "immutable_record"


def custom_exception_handler(exc, context):
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, BusinessLogicException):
        return Response(
            {"error": exc.message, "code": exc.code},
            status=exc.status_code
        )

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
