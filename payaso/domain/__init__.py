from .roles import Role, RoleCapacityPolicy, policy, primary_role
from .types import (
    AttendanceRecord, AttendanceStatus, ChatMessage, EventType, GraduationRequest,
    GraduationStatus, PayasoEvent, PayasoLocation, Payment, PaymentStatus,
    RoleCapacity, SystemMessage, User, UserStats,
)

__all__ = [
    "Role", "RoleCapacityPolicy", "policy", "primary_role",
    "AttendanceRecord", "AttendanceStatus", "ChatMessage", "EventType",
    "GraduationRequest", "GraduationStatus", "PayasoEvent", "PayasoLocation",
    "Payment", "PaymentStatus", "RoleCapacity", "SystemMessage", "User", "UserStats",
]
