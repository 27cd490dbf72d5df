"""Translation of identity domain errors into HTTP responses."""

from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException

from identity_vault.domain.errors import (
    ConfigurationError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    IdentityVaultError,
    InputError,
    IntegrityError,
    NotFoundError,
)

INTERNAL_ERROR_DETAIL = "internal error"

logger = logging.getLogger(__name__)


def raise_http_for_identity_error(exc: IdentityVaultError) -> NoReturn:
    """Raise the HTTPException matching one domain error; internals never leak."""

    if isinstance(exc, InputError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, ExpiredError):
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if isinstance(exc, IntegrityError):
        logger.error("request_failed security_event=integrity error=%s", type(exc).__name__)
    elif isinstance(exc, ConfigurationError):
        logger.error("request_failed misconfiguration error=%s", exc)
    else:
        logger.exception("request_failed unexpected_identity_error")
    raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL) from exc
