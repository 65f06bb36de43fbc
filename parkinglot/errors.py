class ParkingError(Exception):
    """Base for every rejected parking operation.

    ``reason`` is a stable machine-readable tag; ``details`` is merged into
    the JSON error body by the request layer.
    """

    status_code = 500
    reason = 'parking_error'

    def __init__(self, message, reason=None, details=None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        self.details = details or {}

    def to_dict(self):
        payload = {'success': False, 'error': self.message, 'reason': self.reason}
        payload.update(self.details)
        return payload


class ValidationError(ParkingError):
    status_code = 400
    reason = 'validation_error'


class ConflictError(ParkingError):
    status_code = 409
    reason = 'conflict'


class NotFoundError(ParkingError):
    status_code = 404
    reason = 'not_found'


class InfrastructureError(ParkingError):
    status_code = 500
    reason = 'storage_failure'
