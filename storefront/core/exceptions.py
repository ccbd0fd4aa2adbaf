"""Delivery checkout exceptions with error codes and HTTP status."""

from typing import Any, Optional


class DeliveryError(Exception):
    """Base exception for the delivery checkout."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "DLV_000",
        category: str = "system",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(DeliveryError):
    """Delivery config or reservation list could not be loaded."""

    status_code = 503

    def __init__(self, message: str, code: str = "DLV_503", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "configuration", details)


class BackendUnavailableError(DeliveryError):
    """Retryable transport failure talking to the backend."""

    status_code = 503

    def __init__(self, message: str, code: str = "DLV_001", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "transient", details)


class GeocodingError(DeliveryError):
    """Provider unavailable, address not found or lookup timeout."""

    status_code = 422

    def __init__(self, message: str, code: str = "DLV_GEO", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "geocoding", details)


class FeeEstimateError(DeliveryError):
    status_code = 422

    def __init__(self, message: str, code: str = "DLV_FEE", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "geocoding", details)


class BusinessRuleRejection(DeliveryError):
    """400 from payment-ready. The server message is shown verbatim."""

    status_code = 400

    def __init__(self, message: str, code: str = "DLV_400", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "business_rule", details)


class RedirectNotAllowedError(DeliveryError):
    """A payment URL points at a host outside the allow-list."""

    status_code = 502

    def __init__(self, message: str, code: str = "DLV_REDIRECT", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "redirect_safety", details)


class PaymentRedirectError(DeliveryError):
    """The backend returned no usable payment URL."""

    status_code = 502

    def __init__(self, message: str, code: str = "DLV_NO_URL", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "payment", details)


class PaymentPreparationError(DeliveryError):
    """Payment-ready failed for a reason other than a business rule."""

    status_code = 502

    def __init__(self, message: str, code: str = "DLV_PAY", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "payment", details)


class SubmissionBlockedError(DeliveryError):
    status_code = 422

    def __init__(self, blockers: list[str], code: str = "DLV_BLOCKED"):
        self.blockers = list(blockers)
        message = blockers[0] if blockers else "The order cannot be submitted."
        super().__init__(message, code, "eligibility", {"blockers": self.blockers})


class SubmissionInFlightError(DeliveryError):
    status_code = 409

    def __init__(self, message: str = "Payment is being prepared.", code: str = "DLV_409"):
        super().__init__(message, code, "concurrency")


class SelectionError(DeliveryError):
    status_code = 400

    def __init__(self, message: str, code: str = "DLV_SELECTION", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "selection", details)


class SchedulingUnavailableError(DeliveryError):
    status_code = 400

    def __init__(self, message: str, code: str = "DLV_SCHEDULE", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, "scheduling", details)


class SessionNotFoundError(DeliveryError):
    status_code = 404

    def __init__(self, message: str = "Checkout session not found.", code: str = "DLV_404"):
        super().__init__(message, code, "session")
