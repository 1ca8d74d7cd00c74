class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DomainError"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "ValidationError"


class OutsideGeofence(ValidationError):
    """Raised when a sample lies outside every configured geofence."""

    code = "OutsideGeofence"


class StateConflictError(DomainError):
    """The requested transition is illegal for the current attendance state.

    Definitive outcome: retrying repeats the same conflict.
    """


class AlreadyCheckedIn(StateConflictError):
    code = "AlreadyCheckedIn"


class AlreadyCheckedOut(StateConflictError):
    code = "AlreadyCheckedOut"


class NotCheckedIn(StateConflictError):
    code = "NotCheckedIn"


class IntegrityRejected(DomainError):
    """Raised by a strict integrity policy when a sample is not trusted."""

    code = "IntegrityRejected"


class InfrastructureError(Exception):
    """A collaborator (store, network) failed; never a state conflict."""

    code = "InfrastructureError"


class StoreUnavailable(InfrastructureError):
    code = "StoreUnavailable"


class LocationError(DomainError):
    """Base for client-side location acquisition failures."""

    code = "LocationError"
    retryable = False


class LocationPermissionDenied(LocationError):
    code = "LocationPermissionDenied"


class LocationUnavailable(LocationError):
    code = "LocationUnavailable"


class LocationTimeout(LocationError):
    code = "LocationTimeout"
    retryable = True
