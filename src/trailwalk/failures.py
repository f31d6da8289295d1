"""Backend error types and failure classification."""

from __future__ import annotations

import socket
from enum import Enum

from trailwalk.walk_state import WalkStatus

NOT_FOUND_CODES = frozenset({404, 410})
PERMISSION_DENIED_CODES = frozenset({401, 403, 407})


class NavigationError(Exception):
    """A browser backend primitive failed."""


class NavigationTimeout(NavigationError):
    """The page did not finish loading within the backend's timeout."""


class FailureKind(Enum):
    TIMEOUT = "timeout"
    PAGE_CLOSED = "page_closed"
    UNCLASSIFIED = "unclassified"


def classify_error(exc: BaseException) -> FailureKind:
    if isinstance(exc, (NavigationTimeout, socket.timeout, TimeoutError)):
        return FailureKind.TIMEOUT
    cause = exc.__cause__
    if isinstance(cause, (socket.timeout, TimeoutError)):
        return FailureKind.TIMEOUT
    if is_timeout_error(exc) or (cause is not None and is_timeout_error(cause)):
        return FailureKind.TIMEOUT
    if is_page_closed_error(exc):
        return FailureKind.PAGE_CLOSED
    return FailureKind.UNCLASSIFIED


def classify_response_status(status_code: int | None) -> WalkStatus:
    if status_code in NOT_FOUND_CODES:
        return WalkStatus.PAGE_NOT_FOUND
    if status_code in PERMISSION_DENIED_CODES:
        return WalkStatus.PERMISSION_DENIED
    return WalkStatus.SUCCESSFUL_STEP


def is_timeout_error(exc: BaseException) -> bool:
    name = exc.__class__.__name__.lower()
    if "timeout" in name:
        return True
    msg = str(exc).lower()
    return "timeout" in msg and "exceeded" in msg


def is_page_closed_error(exc: BaseException) -> bool:
    msg = str(exc or "").lower()
    return (
        "target page" in msg and "closed" in msg
    ) or "context or browser has been closed" in msg or "page closed" in msg
