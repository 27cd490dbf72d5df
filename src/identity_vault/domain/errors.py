"""Error taxonomy shared by identity protection components."""

from __future__ import annotations


class IdentityVaultError(Exception):
    """Base class for all identity-vault domain errors."""


class InputError(IdentityVaultError, ValueError):
    """Raised when caller-supplied data is missing or invalid; message is safe to show."""


class ConfigurationError(IdentityVaultError):
    """Raised when deployment configuration prevents an operation from proceeding."""


class IntegrityError(IdentityVaultError):
    """Raised when authenticated decryption fails verification."""


class ConflictError(IdentityVaultError):
    """Raised when a create operation violates a uniqueness constraint."""


class NotFoundError(IdentityVaultError, LookupError):
    """Raised when a requested entity or MFA challenge does not exist."""


class ExpiredError(IdentityVaultError):
    """Raised when an MFA challenge is used after its expiry."""


class ForbiddenError(IdentityVaultError, PermissionError):
    """Raised when access policy denies an action."""
