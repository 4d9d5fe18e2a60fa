# portal/app/errors.py
"""Domain errors raised by services and translated to HTTP by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException


class PortalError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(PortalError):
    status_code = 404


class PermissionDenied(PortalError):
    status_code = 403


class Conflict(PortalError):
    status_code = 409


class InvalidInput(PortalError):
    status_code = 422


_IDENTITY_STATUS = {
    "EMAIL_EXISTS": 409,
    "WEAK_PASSWORD": 422,
    "EMAIL_NOT_FOUND": 404,
    "NETWORK_ERROR": 503,
}


class IdentityError(PortalError):
    """Identity provider rejection; `code` is the provider's error code."""

    status_code = 401

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code
        self.status_code = _IDENTITY_STATUS.get(code, 401)


def to_http(err: PortalError) -> HTTPException:
    detail = {"ok": False, "error": err.message}
    if isinstance(err, IdentityError):
        detail["code"] = err.code
    return HTTPException(status_code=err.status_code, detail=detail)
