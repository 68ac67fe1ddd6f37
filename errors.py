"""Application errors. Each maps to one HTTP status in main.py."""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(StoreError):
    status_code = 400


class AuthError(StoreError):
    status_code = 401


class NotFoundError(StoreError):
    status_code = 404


class ConflictError(StoreError):
    status_code = 409


class PaymentNotCompletedError(StoreError):
    status_code = 400

    def __init__(self, message: str = "Payment not completed"):
        super().__init__(message)


class ProviderError(StoreError):
    """The external payment provider failed or could not be reached."""

    status_code = 502
