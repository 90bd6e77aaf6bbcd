"""
Job lifecycle state machine.

The single place that decides whether a status change is legal:

    pending -> confirmed -> assigned -> in_progress -> pending_verification
            -> verified -> paid -> completed

Admins can send work back (pending_verification -> in_progress) and anything
before pending_verification can be cancelled.
"""

from enum import Enum as PyEnum
from typing import Dict, FrozenSet, Tuple

from app.exceptions import InvalidTransitionError
from app.models.job import JobStatus


class JobAction(str, PyEnum):
    CONFIRM = "confirm"
    ASSIGN = "assign"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    REJECT = "reject"
    VERIFY = "verify"
    PAY = "pay"
    COMPLETE = "complete"
    CANCEL = "cancel"


CANCELLABLE: FrozenSet[JobStatus] = frozenset({
    JobStatus.PENDING,
    JobStatus.CONFIRMED,
    JobStatus.ASSIGNED,
    JobStatus.IN_PROGRESS,
})

TERMINAL: FrozenSet[JobStatus] = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})

TRANSITIONS: Dict[Tuple[JobStatus, JobAction], JobStatus] = {
    (JobStatus.PENDING, JobAction.CONFIRM): JobStatus.CONFIRMED,
    (JobStatus.PENDING, JobAction.ASSIGN): JobStatus.ASSIGNED,
    (JobStatus.CONFIRMED, JobAction.ASSIGN): JobStatus.ASSIGNED,
    (JobStatus.ASSIGNED, JobAction.CHECK_IN): JobStatus.IN_PROGRESS,
    (JobStatus.IN_PROGRESS, JobAction.CHECK_OUT): JobStatus.PENDING_VERIFICATION,
    (JobStatus.PENDING_VERIFICATION, JobAction.REJECT): JobStatus.IN_PROGRESS,
    (JobStatus.PENDING_VERIFICATION, JobAction.VERIFY): JobStatus.VERIFIED,
    (JobStatus.VERIFIED, JobAction.PAY): JobStatus.PAID,
    (JobStatus.PAID, JobAction.COMPLETE): JobStatus.COMPLETED,
}
TRANSITIONS.update({(status, JobAction.CANCEL): JobStatus.CANCELLED for status in CANCELLABLE})

# Used when an admin edits the status field directly
ACTION_FOR_TARGET: Dict[JobStatus, JobAction] = {
    JobStatus.CONFIRMED: JobAction.CONFIRM,
    JobStatus.ASSIGNED: JobAction.ASSIGN,
    JobStatus.PENDING_VERIFICATION: JobAction.CHECK_OUT,
    JobStatus.VERIFIED: JobAction.VERIFY,
    JobStatus.PAID: JobAction.PAY,
    JobStatus.COMPLETED: JobAction.COMPLETE,
    JobStatus.CANCELLED: JobAction.CANCEL,
}

_ERROR_MESSAGES = {
    JobAction.CHECK_IN: "Job already started or completed",
    JobAction.CHECK_OUT: "Must check in first",
    JobAction.REJECT: "Can only reject jobs pending verification",
    JobAction.VERIFY: "Job must be pending verification",
    JobAction.CANCEL: "Job cannot be cancelled at this stage",
}


def can_transition(status: JobStatus, action: JobAction) -> bool:
    return (JobStatus(status), JobAction(action)) in TRANSITIONS


def transition(status: JobStatus, action: JobAction) -> JobStatus:
    """Return the status reached by applying ``action``; raise if it is not allowed."""
    status, action = JobStatus(status), JobAction(action)
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        message = _ERROR_MESSAGES.get(action, f"Cannot {action.value} a job that is {status.value}")
        raise InvalidTransitionError(
            message,
            extra={"status": status.value, "action": action.value},
        ) from None


def allowed_actions(status: JobStatus) -> list:
    """Actions available from ``status``, in declaration order."""
    status = JobStatus(status)
    return [action for action in JobAction if (status, action) in TRANSITIONS]


def action_for_target(current: JobStatus, target: JobStatus) -> JobAction:
    """Pick the action that moves ``current`` to ``target``."""
    current, target = JobStatus(current), JobStatus(target)
    if current == JobStatus.PENDING_VERIFICATION and target == JobStatus.IN_PROGRESS:
        return JobAction.REJECT
    if target == JobStatus.IN_PROGRESS:
        return JobAction.CHECK_IN
    action = ACTION_FOR_TARGET.get(target)
    if action is None:
        raise InvalidTransitionError(f"Cannot move a job back to {target.value}")
    return action


def is_terminal(status: JobStatus) -> bool:
    return JobStatus(status) in TERMINAL
