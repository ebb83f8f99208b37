"""
Errors raised by the escrow service and mapped to HTTP answers by the views
"""


class PaymentError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(PaymentError):
    status_code = 404


class PermissionDeniedError(PaymentError):
    status_code = 401


class InvalidStateError(PaymentError):
    status_code = 400


class PaymentProviderError(PaymentError):
    status_code = 500
