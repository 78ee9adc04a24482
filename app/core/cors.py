"""Origin resolution for CORS responses.

The API echoes exactly one origin back to the caller. Browsers reject a list, and a
bare `*` would defeat an allow-list that names specific front-ends.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache

# `*` stands for one or more dot-separated host labels (e.g. `x` or `a.b`).
_WILDCARD_SEGMENT = r"[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*"


@lru_cache(maxsize=128)
def _compile_origin_pattern(entry: str) -> re.Pattern[str]:
    parts = [re.escape(part) for part in entry.split("*")]
    return re.compile(_WILDCARD_SEGMENT.join(parts))


def origin_matches(origin: str, entry: str) -> bool:
    if "*" not in entry:
        return origin == entry
    return _compile_origin_pattern(entry).fullmatch(origin) is not None


def resolve_allowed_origin(request_origin: str | None, allowed_origins: Sequence[str]) -> str:
    """
    Return the origin to echo in `Access-Control-Allow-Origin`.

    - The caller's origin is echoed verbatim when it matches an allow-list entry.
    - Otherwise the first allow-list entry is returned, so a disallowed front-end
      sees a mismatching origin and the browser blocks the response.
    - An empty allow-list means CORS is unrestricted and resolves to `*`.
    """

    if not allowed_origins:
        return "*"

    if request_origin:
        for entry in allowed_origins:
            if origin_matches(request_origin, entry):
                return request_origin

    return allowed_origins[0]
