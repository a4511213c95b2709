"""Helpers for keeping personal data out of log lines."""


def mask_email(email: str) -> str:
    """Mask the local part of an email, keeping its first character and domain."""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"
