"""Partial redaction of email addresses shown before the second factor completes."""

from __future__ import annotations

_MASK = "***"


def mask_email(email: str | None) -> str:
    """Keep the first two and last character of the local part and the whole domain.

    Local parts of three characters or fewer keep only their first character, so a
    short address is never echoed back in full.
    """

    if not email:
        return ""
    local, separator, domain = email.strip().rpartition("@")
    if not separator:
        local, domain = domain, ""
    if len(local) <= 3:
        masked_local = f"{local[:1]}{_MASK}"
    else:
        masked_local = f"{local[:2]}{_MASK}{local[-1]}"
    return f"{masked_local}@{domain}" if domain else masked_local
