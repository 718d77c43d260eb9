"""``application/x-www-form-urlencoded`` encoding for request bodies and query strings."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union
from urllib.parse import urlencode


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return str(value)


def generate_query_string(params: Mapping[str, Any]) -> str:
    """Encode *params* as a form-urlencoded string.

    ``None`` values are skipped. Lists and tuples produce one ``key=value``
    pair per element, in order, which is how OAuth2 repeats ``resource``.

    Example::

        >>> generate_query_string({"a": "x y", "resource": ["r1", "r2"], "b": None})
        'a=x+y&resource=r1&resource=r2'
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _stringify(item)) for item in value)
        else:
            pairs.append((key, _stringify(value)))
    return urlencode(pairs)


def as_list(value: Union[str, Iterable[str], None]) -> Optional[list[str]]:
    """Normalise a single value or an iterable of values to a list (``None`` stays ``None``)."""
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)
