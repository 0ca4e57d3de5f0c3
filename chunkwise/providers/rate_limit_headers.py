"""Extract the provider-suggested wait from an OpenAI rate-limit response.

OpenAI-compatible APIs send ``retry-after-ms`` (milliseconds) and/or the
standard ``retry-after`` header, which is either a number of seconds or an
HTTP date.  The value is read here, at the provider boundary, so the retry
loop never has to inspect error text.
"""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import openai


def retry_after_seconds(exc: openai.RateLimitError) -> float | None:
    """Return the suggested wait in seconds, or ``None`` when absent or unparseable."""
    response = getattr(exc, "response", None)
    if response is None:
        return None
    headers = response.headers

    retry_ms = headers.get("retry-after-ms")
    if retry_ms is not None:
        try:
            return max(0.0, float(retry_ms) / 1000.0)
        except ValueError:
            pass

    retry_after = headers.get("retry-after")
    if retry_after is None:
        return None
    try:
        return max(0.0, float(retry_after))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(retry_after)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)  # noqa: UP017
    return max(0.0, (when - datetime.now(tz=timezone.utc)).total_seconds())  # noqa: UP017
