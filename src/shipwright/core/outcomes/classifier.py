from __future__ import annotations

from .schemas import ErrorClassification

# Checked in order; the first matching rule wins.
_RULES: tuple[tuple[str, tuple[str, ...], bool, int | None], ...] = (
    ("network", ("fetch", "network", "econnrefused", "connection refused", "connectionrefused", "connecterror", "connectionerror", "dns"), True, 5_000),
    ("auth", ("401", "403", "unauthorized", "forbidden"), False, None),
    ("rate_limit", ("429", "rate limit", "too many requests"), True, 60_000),
    ("timeout", ("timeout", "timed out", "deadline exceeded", "aborted"), True, 10_000),
    ("validation", ("invalid", "validation", "parse", "syntax", "type error", "not configured"), False, None),
    ("external_service", ("500", "502", "503", "504", "service unavailable", "bad gateway"), True, 15_000),
)


def classify_error(error: object) -> ErrorClassification:
    """Map a raw error to the outcome taxonomy with retry guidance.

    Retry decisions stay with the caller; this only reports whether a retry
    could help and how long to wait.
    """
    full_message = str(error)
    if isinstance(error, BaseException) and not full_message:
        full_message = error.__class__.__name__
    haystack = full_message.casefold()

    for error_class, needles, retryable, delay_ms in _RULES:
        if any(needle in haystack for needle in needles):
            return ErrorClassification(
                error_class=error_class,
                error_message=full_message,
                is_retryable=retryable,
                suggested_delay_ms=delay_ms,
            )
    return ErrorClassification(error_class="logic", error_message=full_message, is_retryable=False)
