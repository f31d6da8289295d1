"""Recovery policy: which compensating actions follow a failed step."""

from __future__ import annotations

from enum import Enum

from trailwalk.walk_state import WalkStatus


class RecoveryAction(Enum):
    REFRESH = "refresh"
    GO_BACK = "go_back"
    GIVE_UP = "give_up"


# Not-found and denied pages cannot be fixed in place; timeouts get a
# refresh before retreating.
RECOVERY_ACTIONS: dict[WalkStatus, tuple[RecoveryAction, ...]] = {
    WalkStatus.PAGE_NOT_FOUND: (RecoveryAction.GO_BACK,),
    WalkStatus.PERMISSION_DENIED: (RecoveryAction.GO_BACK,),
    WalkStatus.PAGE_TIMED_OUT: (
        RecoveryAction.REFRESH,
        RecoveryAction.GO_BACK,
        RecoveryAction.GIVE_UP,
    ),
}

FAILURE_CEILING = 3


def recovery_actions(status: WalkStatus) -> tuple[RecoveryAction, ...]:
    return RECOVERY_ACTIONS.get(status, ())


def needs_recovery(status: WalkStatus) -> bool:
    return status is not WalkStatus.SUCCESSFUL_STEP and not status.is_terminal


def exceeds_failure_ceiling(status: WalkStatus, failure_count: int) -> bool:
    if status in (WalkStatus.SUCCESSFUL_STEP, WalkStatus.COMPLETE):
        return False
    return failure_count > FAILURE_CEILING
