from .user import User, UserRoleAssignment
from .location import Location
from .event import Event
from .registration import EventRegistration
from .payment import Payment
from .graduation import GraduationRequest
from .chat import EventChatMessage, SystemMessage

__all__ = [
    "User", "UserRoleAssignment",
    "Location", "Event", "EventRegistration",
    "Payment", "GraduationRequest",
    "EventChatMessage", "SystemMessage",
]
