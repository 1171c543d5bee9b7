"""Zomatify exceptions."""


class ZomatifyError(Exception):
    """Base exception for Zomatify errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PaymentError(ZomatifyError):
    """Error during payment processing."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class InvalidAmountError(PaymentError):
    """Payment amount is missing, not numeric or not positive."""


class GatewayConfigError(PaymentError):
    """Payment gateway credentials are not configured."""


class PaymentNotRefundableError(PaymentError):
    """Payment does not exist or has not been captured."""


class BackendError(ZomatifyError):
    """Request to the auth/database platform failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AuthError(BackendError):
    """Authentication request was rejected."""


class ProfileNotFoundError(BackendError):
    """No profile row exists for the requested user."""


class ApiClientError(ZomatifyError):
    """Call to the Zomatify HTTP API failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OrderNotFoundError(ZomatifyError):
    """Order record does not exist."""


class VendorUnavailableError(ZomatifyError):
    """Vendor cannot take new orders right now."""


class VendorNotFoundError(ZomatifyError):
    """No settings row exists for the vendor."""
