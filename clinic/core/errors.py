"""Error types raised by the store and the API layer.

Every error carries the HTTP status it maps to; the app registers a single
handler that renders them as ``{"error": message}``.
"""


class ClinicError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ClinicError):
    status_code = 400


class AuthError(ClinicError):
    status_code = 401


class NotFoundError(ClinicError):
    status_code = 404


class ConflictError(ClinicError):
    status_code = 409


class StoreError(ClinicError):
    status_code = 500
