"""Error taxonomy shared by the lifecycle engine, the matcher and the HTTP layer.

Each error carries the HTTP status the API answers with and a stable
machine-readable ``code``.
"""

class DonationError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    default_message = "Request failed"

    @property
    def message(self) -> str:
        return str(self)

class InvalidInput(DonationError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"

class NotFound(DonationError):
    status_code = 404
    code = "not_found"
    default_message = "Donation not found"

class Unauthorized(DonationError):
    status_code = 403
    code = "unauthorized"
    default_message = "Not authorized to act on this donation"

class InvalidState(DonationError):
    status_code = 409
    code = "invalid_state"
    default_message = "Operation not allowed in the donation's current state"

class AlreadyClaimed(DonationError):
    status_code = 409
    code = "already_claimed"
    default_message = "Donation already claimed"

class NotVerified(DonationError):
    status_code = 403
    code = "not_verified"
    default_message = "Your account is not verified yet. Please wait for admin verification."

class LocationNotSet(DonationError):
    status_code = 400
    code = "location_not_set"
    default_message = "Location not set. Please update your profile with a valid address."

class GeocodingFailed(DonationError):
    status_code = 422
    code = "geocoding_failed"
    default_message = "Geocoding failed. Please check the address and try again."

class InvalidAddress(GeocodingFailed):
    code = "invalid_address"
    default_message = "No location found for the specified address"

class DependencyUnavailable(DonationError):
    """Transient failure of an external service; the caller may retry."""
    status_code = 503
    code = "dependency_unavailable"
    default_message = "A required service is temporarily unavailable. Please retry."
    retryable = True
