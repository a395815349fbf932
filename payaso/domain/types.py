"""
types.py
Plain records shared by the data services, the rules engine and the API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .roles import Role


class EventType(str, Enum):
    training = "training"
    visit = "visit"


class AttendanceStatus(str, Enum):
    registered = "registered"
    attended = "attended"
    absent = "absent"


class PaymentStatus(str, Enum):
    paid = "paid"
    pending_approval = "pending_approval"
    rejected = "rejected"


class GraduationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


LOCATION_TYPES = ("hospital", "albergue", "escuela", "otro")


@dataclass(frozen=True)
class RoleCapacity:
    recruit: int = 0
    dr_payaso: int = 0
    photographer: int = 0
    volunteer: int = 0

    @property
    def total(self) -> int:
        return self.recruit + self.dr_payaso + self.photographer + self.volunteer

    def to_dict(self) -> dict:
        return {
            "recruit": self.recruit,
            "dr_payaso": self.dr_payaso,
            "photographer": self.photographer,
            "volunteer": self.volunteer,
        }


@dataclass(frozen=True)
class User:
    id: str
    email: str
    full_name: str
    role: Role
    available_roles: tuple[Role, ...] = (Role.volunteer,)
    cedula: str = ""
    phone: str = ""
    whatsapp: str = ""
    photo_url: str = ""
    character_photo_url: str | None = None
    artistic_name: str | None = None
    is_super_admin: bool = False
    status: str = "active"  # 'active' or 'inactive'
    exempt_from_fees: bool = False
    valid_until: str | None = None
    admin_notes: str | None = None
    skills: str | None = None
    address: str | None = None

    def __post_init__(self):
        if not self.available_roles:
            object.__setattr__(self, "available_roles", (Role.volunteer,))
        if self.role not in self.available_roles:
            raise ValueError(f"Active role {self.role.value} is not one of the user's roles")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def display_name(self) -> str:
        if Role.dr_payaso in self.available_roles and self.artistic_name:
            return self.artistic_name
        return self.full_name

    @property
    def display_photo(self) -> str:
        return self.character_photo_url or self.photo_url


@dataclass(frozen=True)
class PayasoLocation:
    id: str
    name: str
    type: str = "otro"
    address: str | None = None
    active: bool = True


@dataclass(frozen=True)
class PayasoEvent:
    id: str
    type: EventType
    title: str
    date: datetime
    location: str = ""
    location_id: str | None = None
    description: str = ""
    capacity: RoleCapacity = field(default_factory=RoleCapacity)
    attendees: RoleCapacity = field(default_factory=RoleCapacity)
    total_capacity: int = 0
    total_attendees: int = 0
    registered: bool = False
    current_user_status: AttendanceStatus | None = None


@dataclass(frozen=True)
class Payment:
    id: str
    user_id: str
    amount: float
    month: str
    status: PaymentStatus
    date_paid: date | None = None
    reference_id: str | None = None
    receipt_url: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class UserStats:
    training_hours: int = 0
    visits_count: int = 0
    graduation_requested: bool = False


@dataclass(frozen=True)
class GraduationRequest:
    id: str
    user_id: str
    user_full_name: str
    user_photo: str
    stats: UserStats
    status: GraduationStatus
    request_date: datetime


@dataclass(frozen=True)
class ChatMessage:
    id: str
    event_id: str
    user_id: str
    user_name: str
    user_photo: str
    text: str
    timestamp: datetime


@dataclass(frozen=True)
class AttendanceRecord:
    user_id: str
    user_full_name: str
    user_role: str
    user_photo: str
    status: AttendanceStatus


@dataclass(frozen=True)
class SystemMessage:
    id: str
    subject: str
    body: str
    target_roles: tuple[Role, ...]
    sent_at: datetime
    sent_by: str
