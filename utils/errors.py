class SeconsError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class ValidationError(SeconsError):
    """Missing or malformed fields in a request."""
    status_code = 400


class NotFoundError(SeconsError):
    status_code = 404


class ConflictError(SeconsError):
    """Write rejected because of the current state of the record."""
    status_code = 409


class TransientIOError(SeconsError):
    """The database could not be reached. Callers should retry."""
    status_code = 503
