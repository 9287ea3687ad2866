import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("payment_service")


class PaymentServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(PaymentServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class SignatureInvalid(PaymentServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PayloadInvalid(PaymentServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class BookingNotFound(PaymentServiceError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, order_ref):
        super().__init__(f"No booking found for order {order_ref}")
        self.order_ref = order_ref


class LedgerUnavailable(PaymentServiceError):
    """A data-store write failed; the whole unit of work was rolled back and is safe to retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidAmount(PaymentServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientBalance(PaymentServiceError):
    status_code = status.HTTP_409_CONFLICT


def register_error_handlers(app: FastAPI):
    @app.exception_handler(PaymentServiceError)
    async def handle_payment_service_error(request: Request, err: PaymentServiceError):
        if err.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {err.message}")
        return JSONResponse(status_code=err.status_code, content={"detail": err.message})
