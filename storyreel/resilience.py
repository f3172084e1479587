"""Bounded exponential-backoff retry for flaky generation calls."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

import anyio

from .errors import PermanentUpstreamError, TransientUpstreamError
from .run_logger import RunLogger

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_DELAY_MS = 1000
TRANSIENT_CODES = {429, 503}
_TRANSIENT_MARKERS = ("429", "503", "UNAVAILABLE", "RESOURCE_EXHAUSTED")


def is_transient(err: BaseException) -> bool:
    """Classify rate-limit / overload failures as retryable."""
    if isinstance(err, TransientUpstreamError):
        return True
    if isinstance(err, PermanentUpstreamError):
        return False
    for attr in ("code", "status", "status_code"):
        value = getattr(err, attr, None)
        try:
            if value is not None and int(value) in TRANSIENT_CODES:
                return True
        except (TypeError, ValueError):
            if isinstance(value, str) and any(m in value.upper() for m in _TRANSIENT_MARKERS):
                return True
    message = str(err).upper()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = DEFAULT_RETRIES,
    delay_ms: int = DEFAULT_DELAY_MS,
    sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
    logger: Optional[RunLogger] = None,
    label: str = "call",
) -> T:
    """Run ``fn`` with one fresh retry budget.

    Transient errors are retried ``retries`` more times with delays of
    ``delay_ms``, doubling each time. Permanent errors and the last
    transient error propagate unchanged.
    """
    attempt = 0
    delay = delay_ms
    while True:
        try:
            return await fn()
        except Exception as err:
            if attempt >= retries or not is_transient(err):
                raise
            attempt += 1
            if logger:
                logger.log(f"retry:{label}:{attempt}:{delay}ms:{format_exception(err)}")
            await sleep(delay / 1000.0)
            delay *= 2


def format_exception(err: BaseException) -> str:
    msg = str(err).strip()
    if not msg:
        msg = repr(err)
    return f"{type(err).__name__}: {msg}"
