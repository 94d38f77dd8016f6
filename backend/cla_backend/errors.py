# backend/cla_backend/errors.py
"""
Service-level exceptions for the CLA backend.

The API layer maps these to HTTP responses using ``status_code``; services
raise them where an authorization or lookup failure must abort the request.
"""


class SignatureServiceError(Exception):
    """Base class for errors raised by the signature service."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(SignatureServiceError):
    """Missing or invalid identifiers, or a signature lookup failure."""

    status_code = 400


class NotFoundError(BadRequestError):
    """The requested signature does not exist."""

    status_code = 404


class ForbiddenError(SignatureServiceError):
    """The acting user is not in the signature ACL."""

    status_code = 403
