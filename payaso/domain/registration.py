"""
registration.py
State machine for one (user, event) registration.

    unregistered --register--> registered
    registered   --unregister--> unregistered
    registered   --mark_attended / mark_absent--> attended / absent
    attended <--> absent  (admin corrections, never terminal)
"""

from __future__ import annotations

from enum import Enum

from ..errors import CapacityFullError, InvalidTransition
from .capacity import is_full
from .types import AttendanceStatus


class RegistrationState(str, Enum):
    unregistered = "unregistered"
    registered = "registered"
    attended = "attended"
    absent = "absent"

    @classmethod
    def from_status(cls, status):
        if status is None:
            return cls.unregistered
        return cls(AttendanceStatus(status).value)


class Action(str, Enum):
    register = "register"
    unregister = "unregister"
    mark_attended = "mark_attended"
    mark_absent = "mark_absent"


_S = RegistrationState

TRANSITIONS = {
    (_S.unregistered, Action.register): _S.registered,
    (_S.registered, Action.register): _S.registered,
    (_S.attended, Action.register): _S.attended,
    (_S.absent, Action.register): _S.absent,
    (_S.registered, Action.unregister): _S.unregistered,
    (_S.registered, Action.mark_attended): _S.attended,
    (_S.registered, Action.mark_absent): _S.absent,
    (_S.attended, Action.mark_attended): _S.attended,
    (_S.attended, Action.mark_absent): _S.absent,
    (_S.absent, Action.mark_absent): _S.absent,
    (_S.absent, Action.mark_attended): _S.attended,
}


def transition(state, action) -> RegistrationState:
    state, action = RegistrationState(state), Action(action)
    try:
        return TRANSITIONS[(state, action)]
    except KeyError:
        raise InvalidTransition(f"Cannot {action.value.replace('_', ' ')} when {state.value}") from None


def viewer_state(event) -> RegistrationState:
    if not event.registered:
        return RegistrationState.unregistered
    return RegistrationState.from_status(event.current_user_status or AttendanceStatus.registered)


def attendance_action(status) -> Action:
    status = AttendanceStatus(status)
    if status == AttendanceStatus.attended:
        return Action.mark_attended
    if status == AttendanceStatus.absent:
        return Action.mark_absent
    raise InvalidTransition("Attendance can only be marked as attended or absent")


def check_can_register(event, role) -> bool:
    """Return True when the register call changes anything.

    Registering an already registered viewer is a no-op; a full bucket
    rejects everyone else.
    """
    state = viewer_state(event)
    if state != RegistrationState.unregistered:
        return False
    if is_full(event, role):
        raise CapacityFullError()
    transition(state, Action.register)
    return True
