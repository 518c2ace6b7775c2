"""
String Helpers.

Sanitising of user-supplied text before it is interpolated into
PostgREST filter expressions.
"""

from __future__ import annotations

import re

__all__ = ["sanitize_postgrest_value"]

# Allowlist: alphanumerics, whitespace, hyphens, slashes (record numbers
# such as ``PD/2024/001``) and accented Latin characters.  PostgREST
# operators (``.``, ``,``, ``(``, ``)``) and SQL wildcards are dropped.
_POSTGREST_UNSAFE_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9\s\-/\u00C0-\u024F]")


def sanitize_postgrest_value(value: str) -> str:
    """Strip characters unsafe for PostgREST filter interpolation.

    Parameters
    ----------
    value:
        The raw user-supplied search string.

    Returns
    -------
    str
        A sanitized string safe for interpolation into PostgREST
        ``ilike`` filter expressions.
    """
    return _POSTGREST_UNSAFE_RE.sub("", value).strip()
