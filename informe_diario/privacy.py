from __future__ import annotations

NSS_DELIMITER = "-"


def redact_nss(value: str, enabled: bool) -> str:
    """Drop the trailing identifier digits of an NSS (``"1234567890-12"`` -> ``"1234567890"``)."""
    if not enabled or not value or NSS_DELIMITER not in value:
        return value
    return value.split(NSS_DELIMITER, 1)[0]
