"""Error taxonomy shared by the HTTP layer and the payment coordinator."""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class; ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(StorefrontError):
    status_code = 400


class Unauthorized(StorefrontError):
    status_code = 401


class NotFound(StorefrontError):
    status_code = 404


class UpstreamFailure(StorefrontError):
    """The payment gateway failed, answered with a non-success code, or timed out."""

    status_code = 502


class InternalError(StorefrontError):
    status_code = 500
