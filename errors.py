"""Errors raised by the stores and views, rendered as JSON by ``app.py``."""


class ApiError(Exception):
    status_code = 500
    message = 'Internal server error.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'message': self.message}


class InvalidRequest(ApiError):
    status_code = 400
    message = 'The request data was invalid.'

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def from_pydantic(cls, exc):
        """Group pydantic error entries by field location."""
        errors = {}
        for err in exc.errors():
            field = '.'.join(str(part) for part in err['loc']) or 'body'
            errors.setdefault(field, []).append(err['msg'])
        return cls(errors=errors)

    def to_dict(self):
        body = super().to_dict()
        if self.errors:
            body['errors'] = self.errors
        return body


class InvalidCredentials(ApiError):
    # Deliberately identical for unknown email and wrong password.
    status_code = 400
    message = 'Invalid user credentials.'


class Unauthenticated(ApiError):
    status_code = 401
    message = 'Authentication is required.'


class Forbidden(ApiError):
    status_code = 403
    message = 'You do not have access to this resource.'


class NotFound(ApiError):
    status_code = 404
    message = 'The requested resource was not found.'


class Conflict(ApiError):
    status_code = 409
    message = 'The resource already exists.'
