"""Tagged result types for provider calls.

Every component below the command line returns an ``Ok`` or an ``Err``
instead of raising. ``call_and_normalize`` is the single boundary that turns
botocore exceptions (and anything else a provider call raises) into an
``Err`` carrying the AWS error code and HTTP status.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional
from botocore.exceptions import BotoCoreError, ClientError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    """Successful outcome wrapping an optional value."""

    value: Any = None

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome.

    Attributes:
        kind: Stable error kind, AWS error code, or pipeline step name
        message: Human readable reason, passed through uninterpreted
        status: HTTP status code when the failure came from a response
    """

    kind: str
    message: str
    status: Optional[int] = None

    @property
    def is_ok(self) -> bool:
        return False


def error_from_exception(exc: Exception) -> Err:
    """Convert a raised exception into an ``Err``.

    Args:
        exc: Exception raised by a provider call

    Returns:
        Err with the AWS error code and HTTP status when available
    """
    if isinstance(exc, ClientError):
        error = exc.response.get('Error', {})
        metadata = exc.response.get('ResponseMetadata', {})
        return Err(
            kind=error.get('Code') or 'ClientError',
            message=error.get('Message') or str(exc),
            status=metadata.get('HTTPStatusCode'),
        )

    if isinstance(exc, BotoCoreError):
        return Err(kind=type(exc).__name__, message=str(exc))

    return Err(kind=type(exc).__name__, message=str(exc) or repr(exc))


def call_and_normalize(fn: Callable[..., Any], *args: Any, **kwargs: Any):
    """Call ``fn`` and wrap its outcome.

    Args:
        fn: Provider call to perform
        *args: Positional arguments for ``fn``
        **kwargs: Keyword arguments for ``fn``

    Returns:
        Ok(response) on success, Err on any raised exception or on a
        response whose metadata reports a non-2xx status
    """
    try:
        response = fn(*args, **kwargs)
    except Exception as e:
        logger.debug(f"Provider call {getattr(fn, '__name__', fn)} failed: {e}")
        return error_from_exception(e)

    status = _response_status(response)
    if status is not None and not 200 <= status < 300:
        return Err(kind='HTTPError', message=f"HTTP {status}", status=status)

    return Ok(response)


def _response_status(response: Any) -> Optional[int]:
    if not isinstance(response, dict):
        return None
    status = response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return status if isinstance(status, int) else None
