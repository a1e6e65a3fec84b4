"""
API error types shared by the services and the blueprints.

Services raise these; the error handler registered in app.py turns them
into JSON responses.
"""


class ApiError(Exception):
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message=None, status_code=None, **extra):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self):
        payload = {'error': self.message}
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class ValidationError(ApiError):
    """Missing or malformed input. ``errors`` is a list of field messages."""
    status_code = 400
    default_message = 'Validation error'

    def __init__(self, message=None, errors=None):
        super().__init__(message, errors=errors)
        self.errors = errors or []


class ConflictError(ApiError):
    """The requested dates overlap an existing booking."""
    status_code = 400
    default_message = 'Room is already booked for this period'

    def __init__(self, message=None, next_available=None):
        super().__init__(message, nextAvailable=next_available)
        self.next_available = next_available


class TransitionError(ApiError):
    status_code = 400
    default_message = 'Invalid status transition'


class NotFoundError(ApiError):
    status_code = 404
    default_message = 'Record not found'


class AuthError(ApiError):
    status_code = 401
    default_message = 'Authentication required'


class ForbiddenError(ApiError):
    status_code = 403
    default_message = 'Insufficient permissions'


def field_error(field, message):
    return {'field': field, 'msg': message}
