"""
Identity normalization.

Every comparison between two handles in the pipeline goes through
`normalize()`; there is no alternate comparison path.
"""
from __future__ import annotations

from typing import Any

# Returned for null/empty input. Consumers treat it as "unattributable"
# and exclude the record.
UNATTRIBUTABLE = ""


def normalize(raw: Any) -> str:
    """
    Canonicalize a handle: trim, strip the leading '@', lowercase.

    Total: never raises. Non-string or empty input yields UNATTRIBUTABLE.
    Idempotent: normalize(normalize(x)) == normalize(x). Repeated '@'
    prefixes are all stripped, otherwise "@@foo" would normalize in two steps.
    """
    if not isinstance(raw, str):
        return UNATTRIBUTABLE
    key = raw.strip()
    while key.startswith("@"):
        key = key[1:].strip()
    return key.lower()


def is_attributable(key: str) -> bool:
    return bool(key)
